"""
Data-protection requests: erasure, consent and personal data export
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator
from catering_api.models.common import CamelModel
from catering_api.models.concierge import ConciergeRequestOut
from catering_api.models.order import OrderDetail
from catering_api.models.user import UserOut


class DataDeletionRequest(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    reason: Optional[str] = None

    @field_validator("email")
    @classmethod
    def looks_like_email(cls, value: str) -> str:
        local, _, domain = value.strip().partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return value.strip()


class ConsentUpdate(CamelModel):
    processing_consent: bool
    marketing_email: bool = False
    marketing_sms: bool = False


class PersonalDataExport(CamelModel):
    exported_at: datetime
    user: UserOut
    orders: List[OrderDetail]
    concierge_requests: List[ConciergeRequestOut]
