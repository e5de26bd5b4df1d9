from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carpool_api.db import get_db
from carpool_api.deps import require_driver
from carpool_api.models.user import User
from carpool_api.models.vehicle import Vehicle
from carpool_api.schemas.vehicle import VehicleCreateRequest, VehiclePublic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


def _to_public(v: Vehicle) -> VehiclePublic:
    """Convert ORM Vehicle row to public schema."""
    return VehiclePublic(
        id=v.id,
        owner_id=v.owner_id,
        brand=v.brand,
        model=v.model,
        color=v.color,
        registration=v.registration,
        electric=bool(v.electric),
        created_at=v.created_at,
    )


@router.post(
    "",
    response_model=VehiclePublic,
    status_code=status.HTTP_201_CREATED,
    summary="Register a vehicle",
    description="Add a vehicle to the authenticated driver's garage.",
    operation_id="vehicles_create",
)
def create_vehicle(
    payload: VehicleCreateRequest,
    current_user: User = Depends(require_driver),
    db: Session = Depends(get_db),
) -> VehiclePublic:
    """
    Register a vehicle owned by the current driver.

    Errors:
    - 409 if the registration plate is already known
    """
    vehicle = Vehicle(
        owner_id=current_user.id,
        brand=payload.brand.strip(),
        model=payload.model.strip(),
        color=payload.color.strip() if payload.color is not None else None,
        registration=payload.registration.strip().upper(),
        electric=payload.electric,
    )
    db.add(vehicle)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A vehicle with this registration already exists.",
        )
    db.refresh(vehicle)
    logger.info("Vehicle %s registered by driver %s", vehicle.id, current_user.id)
    return _to_public(vehicle)


@router.get(
    "",
    response_model=List[VehiclePublic],
    summary="List my vehicles",
    description="Return the vehicles owned by the authenticated driver.",
    operation_id="vehicles_list_mine",
)
def list_my_vehicles(
    current_user: User = Depends(require_driver),
    db: Session = Depends(get_db),
) -> List[VehiclePublic]:
    """List the current driver's vehicles, oldest first."""
    vehicles = list(
        db.scalars(
            select(Vehicle).where(Vehicle.owner_id == current_user.id).order_by(Vehicle.id.asc())
        ).unique().all()
    )
    return [_to_public(v) for v in vehicles]
