"""
Concierge request models
"""
from datetime import datetime
from typing import Optional
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from pydantic import Field, field_validator
from catering_api.core.database import Base
from catering_api.models.common import CamelModel, reject_null


class ConciergeStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    QUOTED = "quoted"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ConciergeRequest(Base):
    __tablename__ = "concierge_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    request_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    delivery_date = Column(String(20))
    delivery_time = Column(String(20))
    delivery_location = Column(String(255))
    special_instructions = Column(Text)
    urgent_request = Column(Boolean, default=False)
    status = Column(String(20), default=ConciergeStatus.PENDING.value, nullable=False)
    price = Column(Integer)  # cents, set by admins when quoting
    price_notes = Column(Text)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)


class ConciergeRequestCreate(CamelModel):
    request_type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    delivery_location: Optional[str] = None
    special_instructions: Optional[str] = None
    urgent_request: bool = False


class ConciergeRequestUpdate(CamelModel):
    status: Optional[ConciergeStatus] = None
    price: Optional[int] = Field(default=None, ge=0)
    price_notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class ConciergeRequestOut(CamelModel):
    id: int
    user_id: int
    request_type: str
    description: str
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    delivery_location: Optional[str] = None
    special_instructions: Optional[str] = None
    urgent_request: bool = False
    status: str
    price: Optional[int] = None
    price_notes: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
