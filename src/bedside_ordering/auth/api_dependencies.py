"""FastAPI dependencies for caller identification.

Merchants and admins authenticate with a bearer token in the Authorization
header. Customers are anonymous and identified by the X-Session-Id header.
"""

from typing import Annotated

from fastapi import Header, HTTPException, Request

from bedside_ordering.auth.authorization import AuthorizationPolicy
from bedside_ordering.auth.identity import AuthenticatedUser, IdentityProvider


def authenticate_bearer(
    authorization: str | None,
    identity_provider: IdentityProvider | None,
) -> AuthenticatedUser:
    """Resolve an Authorization header value to a user.

    Args:
        authorization: Raw Authorization header value
        identity_provider: Provider used to verify the token

    Returns:
        AuthenticatedUser: The authenticated user

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing credentials")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    user = identity_provider.verify(token.strip()) if identity_provider else None
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return user


def ensure_admin(user: AuthenticatedUser, policy: AuthorizationPolicy) -> AuthenticatedUser:
    """Raise 403 unless the policy grants the user the admin role."""
    if not policy.is_admin(user):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    """FastAPI dependency returning the authenticated merchant or admin."""
    return authenticate_bearer(authorization, request.app.state.identity_provider)


def get_admin_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    """FastAPI dependency returning the authenticated user if they are an admin."""
    user = authenticate_bearer(authorization, request.app.state.identity_provider)
    return ensure_admin(user, request.app.state.authorization_policy)


def get_session_id(x_session_id: Annotated[str | None, Header()] = None) -> str:
    """FastAPI dependency returning the customer session id.

    Raises:
        HTTPException: 400 if the X-Session-Id header is missing or blank
    """
    if not x_session_id or not x_session_id.strip():
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header")
    return x_session_id.strip()
