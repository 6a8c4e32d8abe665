"""
Reference data: airports served and aircraft types offered on order forms
"""
from sqlalchemy import Column, Integer, String
from pydantic import Field
from catering_api.core.database import Base
from catering_api.models.common import CamelModel

DEFAULT_AIRCRAFT_TYPES = (
    "Gulfstream G650",
    "Bombardier Global 7500",
    "Cessna Citation X",
    "Dassault Falcon 7X",
    "Embraer Legacy 650",
)

DEFAULT_AIRPORTS = (
    ("LGTS", "Thessaloniki International Airport", "Thessaloniki"),
    ("LGMK", "Mykonos International Airport", "Mykonos"),
    ("LGAV", "Athens International Airport", "Athens"),
)


class AircraftType(Base):
    __tablename__ = "aircraft_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)


class Airport(Base):
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    location = Column(String(100), nullable=False)


class AircraftTypeCreate(CamelModel):
    name: str = Field(min_length=1)


class AircraftTypeOut(AircraftTypeCreate):
    id: int


class AirportCreate(CamelModel):
    code: str = Field(min_length=3, max_length=10)
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)


class AirportOut(AirportCreate):
    id: int
