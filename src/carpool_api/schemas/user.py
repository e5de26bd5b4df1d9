from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UserPublic(BaseModel):
    id: int = Field(..., description="User id")
    nickname: str = Field(..., description="Public nickname")
    email: EmailStr = Field(..., description="Email address")
    role: str = Field(..., description="Usage type: passenger, driver or both")
    avg_rating: float = Field(..., description="Average rating received as a driver")
    has_photo: bool = Field(..., description="Whether a profile photo is stored")
    created_at: datetime = Field(..., description="Account creation timestamp")
