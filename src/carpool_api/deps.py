"""
Request-scoped dependencies.

Bearer tokens are resolved to User rows here, role guards are built here, and
the ride search service is bound to the request's database session. Routers
only ever see a User or a RideSearchService.
"""

from __future__ import annotations

from typing import Callable, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from carpool_api.db import get_db
from carpool_api.models.user import User, UserRole
from carpool_api.security import decode_token
from carpool_api.services.ride_search import RideSearchService
from carpool_api.services.ride_store import RideStore

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Invalid or expired token.") -> HTTPException:
    """401 carrying the Bearer challenge header."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """
    Numeric id of the token's subject.

    Raises:
        HTTPException(401): no token, bad signature, expired, or a subject
            that is not an integer id.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing authentication token.")
    try:
        claims = decode_token(credentials.credentials)
        return int(claims["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _unauthorized()


# PUBLIC_INTERFACE
def get_current_user(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)) -> User:
    """
    The authenticated User row.

    A valid token whose user no longer exists is treated as unauthenticated.
    """
    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized()
    return user


def require_role(role: UserRole) -> Callable[..., User]:
    """Build a dependency that lets only users with `role` through (403 otherwise)."""

    def _guard(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.capitalize()} role required.",
            )
        return current_user

    return _guard


require_driver = require_role(UserRole.driver)


# PUBLIC_INTERFACE
def get_ride_search_service(db: Session = Depends(get_db)) -> RideSearchService:
    """Ride search service bound to the request's session."""
    return RideSearchService(RideStore(db))
