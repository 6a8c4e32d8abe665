"""
Runtime integration settings and support chat schemas
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint
from pydantic import Field, HttpUrl, field_validator
from catering_api.core.database import Base
from catering_api.models.common import CamelModel, coerce_str_list, unique_list

ZAPIER_SERVICE = "zapier"

# Database Models


class IntegrationSetting(Base):
    """One key/value pair per integration; values are plain strings or JSON"""
    __tablename__ = "integration_settings"
    __table_args__ = (UniqueConstraint("service", "key", name="uq_integration_service_key"),)

    id = Column(Integer, primary_key=True, index=True)
    service = Column(String(50), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)

# Pydantic Schemas


class ZapierConfigUpdate(CamelModel):
    webhook_url: HttpUrl
    events: List[str] = []

    @field_validator("events", mode="before")
    @classmethod
    def dedupe_events(cls, value):
        return unique_list(coerce_str_list(value))


class ZapierConfigOut(CamelModel):
    webhook_url: str = ""
    events: List[str] = []


class ZapierTestRequest(CamelModel):
    webhook_url: HttpUrl


class SupportRequestCreate(CamelModel):
    message: str = Field(min_length=1)
    order_number: Optional[str] = None
    order_id: Optional[int] = None
