"""
User data models and authentication schemas
"""
from datetime import datetime
from typing import Optional
import enum
from sqlalchemy import Column, Integer, String, DateTime
from pydantic import BaseModel, Field
from catering_api.core.database import Base
from catering_api.models.common import CamelModel


class UserRole(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"
    KITCHEN = "kitchen"


STAFF_ROLES = (UserRole.ADMIN.value, UserRole.KITCHEN.value)

# Database Models


class User(Base):
    """User database model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255))
    company = Column(String(255))
    phone = Column(String(50))
    role = Column(String(20), default=UserRole.CLIENT.value, nullable=False)
    created = Column(DateTime, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

# Pydantic Schemas


class UserCreate(CamelModel):
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None


class UserProfileUpdate(CamelModel):
    """Self-service fields; username, role and password are ignored here"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None


class UserOut(CamelModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    created: Optional[datetime] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
