"""Resolution of bearer tokens to authenticated users.

The identity provider itself (sign-in, passwords, token issuing) is external;
this service only needs to map a presented token to a user.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """A signed-in merchant or admin.

    Attributes:
        uid: Stable user identifier (also the id of a merchant's restaurant)
        email: Email address, if known
        claims: Additional signed claims, e.g. {"role": "admin"}
    """

    uid: str
    email: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


class IdentityProvider(ABC):
    """Maps bearer tokens to users."""

    @abstractmethod
    def verify(self, token: str) -> AuthenticatedUser | None:
        """Return the user for a valid token, None otherwise."""


class StaticTokenIdentityProvider(IdentityProvider):
    """Identity provider backed by a fixed token table.

    Used for local development and tests, and for deployments where an API
    gateway authorizer has already exchanged the user's credentials for a
    service token.
    """

    def __init__(self, users_by_token: dict[str, AuthenticatedUser]) -> None:
        """Initialize with a token to user mapping.

        Args:
            users_by_token: Mapping of accepted tokens to the users they identify
        """
        self.users_by_token = dict(users_by_token)

    @classmethod
    def from_config(cls, config: str) -> "StaticTokenIdentityProvider":
        """Build from a comma-separated list of token:uid[:email[:role]] entries.

        Example:
            "tok-1:merchant-1:chef@example.com,tok-2:admin-1:ops@example.com:admin"

        Raises:
            ValueError: If an entry lacks a token or uid
        """
        users: dict[str, AuthenticatedUser] = {}
        for entry in config.split(","):
            entry = entry.strip()
            if not entry:
                continue

            parts = [part.strip() for part in entry.split(":")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                raise ValueError("Invalid auth token entry: expected token:uid[:email[:role]]")

            token, uid = parts[0], parts[1]
            email = parts[2] if len(parts) > 2 and parts[2] else None
            claims = {"role": parts[3]} if len(parts) > 3 and parts[3] else {}
            users[token] = AuthenticatedUser(uid=uid, email=email, claims=claims)

        logger.info(f"Loaded {len(users)} static auth tokens")
        return cls(users)

    def verify(self, token: str) -> AuthenticatedUser | None:
        return self.users_by_token.get(token)
