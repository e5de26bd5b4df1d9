import io
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from PIL import Image, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.orm import Session

from carpool_api.db import get_db
from carpool_api.deps import get_current_user
from carpool_api.models.user import User
from carpool_api.schemas.user import UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

MAX_PHOTO_BYTES = 2 * 1024 * 1024
MAX_PHOTO_PIXELS = 4096 * 4096


def _to_public(user: User) -> UserPublic:
    """Convert ORM User row to public schema."""
    return UserPublic(
        id=user.id,
        nickname=user.nickname,
        email=user.email,
        role=user.role.value,
        avg_rating=float(user.avg_rating or 0.0),
        has_photo=bool(user.photo),
        created_at=user.created_at,
    )


@router.get(
    "/nickname-exists",
    summary="Check nickname availability",
    description="Tell the signup form whether a nickname is already taken.",
    operation_id="users_nickname_exists",
)
def nickname_exists(
    nick: Optional[str] = Query(default=None, description="Nickname to look up."),
    db: Session = Depends(get_db),
) -> Dict[str, bool]:
    """
    Report whether a nickname is taken. No authentication required.

    Errors:
    - 400 if the nickname is missing or blank
    """
    nickname = (nick or "").strip()
    if not nickname:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nickname is required.")
    taken = db.scalar(select(User.id).where(User.nickname == nickname)) is not None
    return {"exists": taken}


@router.get(
    "/me",
    response_model=UserPublic,
    summary="Get current user",
    description="Return the authenticated user's profile.",
    operation_id="users_me",
)
def get_me(current_user: User = Depends(get_current_user)) -> UserPublic:
    """
    Get the current authenticated user's profile.

    Authentication: Bearer JWT access token.
    """
    return _to_public(current_user)


@router.put(
    "/me/photo",
    response_model=UserPublic,
    summary="Upload profile photo",
    description="Replace the authenticated user's photo with the raw image bytes of the request body.",
    operation_id="users_upload_photo",
)
async def upload_my_photo(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserPublic:
    """
    Store a profile photo.

    Errors:
    - 400 if the body is empty, not a decodable image, or larger than
      4096x4096 pixels
    - 413 if the body exceeds 2 MiB
    """
    raw = await request.body()
    if not raw:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty photo.")
    if len(raw) > MAX_PHOTO_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Photo too large.")
    try:
        with Image.open(io.BytesIO(raw)) as img:
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Photo is not a valid image.")
    if width * height > MAX_PHOTO_PIXELS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Photo dimensions too large.")

    current_user.photo = raw
    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    logger.info("User %s uploaded a photo (%d bytes)", current_user.id, len(raw))
    return _to_public(current_user)
