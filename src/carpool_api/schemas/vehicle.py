from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VehicleCreateRequest(BaseModel):
    brand: str = Field(..., min_length=1, max_length=100, description="Vehicle brand, e.g. Peugeot.")
    model: str = Field(..., min_length=1, max_length=255, description="Vehicle model.")
    color: Optional[str] = Field(default=None, max_length=100, description="Vehicle color.")
    registration: str = Field(..., min_length=1, max_length=15, description="Registration plate (unique).")
    electric: bool = Field(default=False, description="Whether the vehicle is fully electric.")


class VehiclePublic(BaseModel):
    id: int = Field(..., description="Vehicle id.")
    owner_id: int = Field(..., description="Owner user id.")
    brand: str = Field(..., description="Vehicle brand.")
    model: str = Field(..., description="Vehicle model.")
    color: Optional[str] = Field(default=None, description="Vehicle color.")
    registration: str = Field(..., description="Registration plate.")
    electric: bool = Field(..., description="Electric flag.")
    created_at: datetime = Field(..., description="When the vehicle was registered.")
