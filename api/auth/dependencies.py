"""FastAPI dependencies for authentication.

Provides get_current_user, which turns the bearer token into a CurrentUser
principal, and load_principal, shared with the WebSocket endpoint.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from api.auth.jwt import verify_token
from api.exceptions import AuthenticationError
from teamsync.db.engine import get_session_dependency
from teamsync.db.models import User


# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Authenticated principal passed explicitly into every service call."""

    def __init__(self, user: User):
        self.user = user

    @property
    def user_id(self) -> UUID:
        return self.user.id

    @property
    def name(self) -> str:
        return self.user.name

    @property
    def profile_picture(self) -> Optional[str]:
        return self.user.profile_picture


def load_principal(session: Session, token: Optional[str]) -> CurrentUser:
    """Resolve a raw token into a CurrentUser.

    Raises:
        AuthenticationError: Missing, invalid or expired token, or unknown
            or deactivated user
    """
    if not token:
        raise AuthenticationError("Missing authentication credentials")

    payload = verify_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid user ID in token")

    user = session.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return CurrentUser(user=user)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session_dependency),
) -> CurrentUser:
    """Extract and validate the current user from the Authorization header."""
    token = credentials.credentials if credentials else None
    return load_principal(session, token)
