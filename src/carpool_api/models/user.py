import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, Integer, LargeBinary, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from carpool_api.models.base import Base


class UserRole(str, enum.Enum):
    """Usage types chosen at signup; `both` may act as passenger and driver."""
    passenger = "passenger"
    driver = "driver"
    both = "both"


class User(Base):
    """
    ORM model for the 'users' table.

    Notes:
    - avg_rating is the only driver rating consulted anywhere (display,
      ratingMin filter, drivers0 flag); it defaults to 0 for unrated drivers.
    - photo holds the raw uploaded image bytes (nullable).
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nickname: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(180), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.passenger,
    )
    photo: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    avg_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def has_role(self, role: UserRole) -> bool:
        """True if the user may act as `role` (a `both` user holds every role)."""
        return self.role == role or self.role == UserRole.both
