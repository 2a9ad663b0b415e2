"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from meriter_core.core.security import decode_access_token
from meriter_core.db.session import get_db
from meriter_core.models import Community, User

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _user_from_token(token: str, db: Session) -> User:
    """Resolve the user named by a bearer token.

    Raises:
        HTTPException: If the token is invalid or the user does not exist.
    """
    try:
        payload = decode_access_token(token)
    except JWTError as err:
        raise _credentials_error() from err

    subject = payload.get("sub")
    if subject is None:
        raise _credentials_error()
    try:
        user_id = int(str(subject))
    except ValueError as err:
        raise _credentials_error() from err

    user = db.get(User, user_id)
    if user is None:
        raise _credentials_error("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token."""
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(optional_bearer_scheme),
    ],
    db: SessionDep,
) -> User | None:
    """Return the authenticated user, or None for anonymous requests."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


def get_community_or_404(db: Session, community_id: int) -> Community:
    community = db.get(Community, community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return community


# Type aliases for current user dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
