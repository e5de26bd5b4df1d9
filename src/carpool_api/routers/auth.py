import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carpool_api.db import get_db
from carpool_api.models.user import User, UserRole
from carpool_api.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from carpool_api.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _canonical_email(raw: object) -> str:
    return str(raw).strip().lower()


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(access_token=create_access_token(subject=user.id, role=user.role.value))


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Sign up as a passenger or a driver; the response carries a ready-to-use access token.",
    operation_id="auth_register",
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """
    Create a carpool account.

    Errors:
    - 409 if the nickname or the email is taken
    """
    user = User(
        nickname=payload.nickname.strip(),
        email=_canonical_email(payload.email),
        password_hash=hash_password(payload.password),
        role=UserRole(payload.role),
        avg_rating=0.0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Registration refused, nickname %r or email already taken", payload.nickname)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email or nickname already exists.",
        )
    db.refresh(user)
    logger.info("User %s registered as %s", user.id, user.role.value)
    return _token_for(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in",
    description="Exchange email and password for an access token.",
    operation_id="auth_login",
)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """
    Authenticate with email and password.

    Errors:
    - 401 for an unknown email or a wrong password (indistinguishable)
    """
    user = db.scalar(select(User).where(User.email == _canonical_email(payload.email)))
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_for(user)
