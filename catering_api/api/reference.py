"""
Reference data API router: airports and aircraft types
"""
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import require_admin
from catering_api.models.reference import AircraftTypeCreate, AircraftTypeOut, AirportCreate, AirportOut
from catering_api.storage import CateringStorage

router = APIRouter(tags=["reference"])


@router.get("/aircraft-types", response_model=List[AircraftTypeOut])
async def list_aircraft_types(db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).list_aircraft_types()


@router.post("/aircraft-types", response_model=AircraftTypeOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin)])
async def create_aircraft_type(aircraft_type: AircraftTypeCreate, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    if storage.get_aircraft_type_by_name(aircraft_type.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Aircraft type already exists"
        )
    return storage.create_aircraft_type(aircraft_type.model_dump())


@router.get("/airports", response_model=List[AirportOut])
async def list_airports(db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).list_airports()


@router.post("/airports", response_model=AirportOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin)])
async def create_airport(airport: AirportCreate, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    data = {**airport.model_dump(), "code": airport.code.upper()}
    if storage.get_airport_by_code(data["code"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Airport code already exists"
        )
    return storage.create_airport(data)
