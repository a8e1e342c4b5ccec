"""Admin authorization policies.

Admin checks go through an injectable policy so that the development
allow-list can be replaced by a signed role claim in production.
"""

from abc import ABC, abstractmethod

from bedside_ordering.auth.identity import AuthenticatedUser


class AuthorizationPolicy(ABC):
    """Decides whether an authenticated user has the admin role."""

    @abstractmethod
    def is_admin(self, user: AuthenticatedUser) -> bool:
        """Return True if the user may use admin operations."""


class ClaimsAuthorizationPolicy(AuthorizationPolicy):
    """Admin iff the user's signed claims carry the admin role."""

    def __init__(self, claim: str = "role", admin_value: str = "admin") -> None:
        self.claim = claim
        self.admin_value = admin_value

    def is_admin(self, user: AuthenticatedUser) -> bool:
        return user.claims.get(self.claim) == self.admin_value


class AllowListAuthorizationPolicy(AuthorizationPolicy):
    """Admin iff the user's email is on a fixed list. Development only."""

    def __init__(self, admin_emails: list[str]) -> None:
        """Initialize with the admin email addresses.

        Args:
            admin_emails: Emails granted the admin role (compared case-insensitively)
        """
        self.admin_emails = {email.strip().lower() for email in admin_emails if email.strip()}

    def is_admin(self, user: AuthenticatedUser) -> bool:
        return user.email is not None and user.email.lower() in self.admin_emails
