from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from carpool_api.settings import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REQUIRED_CLAIMS = ["sub", "role", "exp"]


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against its stored bcrypt hash."""
    return pwd_context.verify(password, password_hash)


def create_access_token(*, subject: int, role: str, expires_minutes: Optional[int] = None) -> str:
    """
    Sign an access token for a user.

    Claims:
    - sub: numeric user id, serialized as a string
    - role: passenger, driver or both
    - iat / exp: issue and expiry times (UTC, epoch seconds)
    """
    lifetime = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes)
    issued = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(subject),
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry and required claims; raises jwt.PyJWTError subclasses."""
    return jwt.decode(
        token,
        JWT_SECRET_KEY,
        algorithms=[JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
