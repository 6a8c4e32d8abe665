"""
Order management data models and database schemas
"""
from datetime import datetime
from typing import Optional, List, Any
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from pydantic import AliasChoices, Field, field_validator
import enum
from catering_api.core.database import Base
from catering_api.models.common import CamelModel, coerce_int, coerce_str, coerce_str_list, reject_null

# Enums


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PREPARING = "preparing"
    READY = "ready"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# Forward ordering shown to clients; not enforced on transitions
ORDER_STATUS_STEPS = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
]

ORDER_STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready for Delivery",
    OrderStatus.IN_TRANSIT: "In Transit",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Statuses during which the owning client may still edit the order
CLIENT_EDITABLE_STATUSES = {OrderStatus.PENDING.value, OrderStatus.PROCESSING.value}

# Database Models


class Order(Base):
    """Catering order for one flight"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_number = Column(String(30), unique=True, index=True, nullable=False)

    # Flight details
    aircraft_type = Column(String(100), default="")
    tail_number = Column(String(50), default="")
    departure_date = Column(String(20), default="")
    departure_time = Column(String(20), default="")
    departure_airport = Column(String(100), default="")
    arrival_airport = Column(String(100), default="")
    passenger_count = Column(Integer, default=0)
    crew_count = Column(Integer, default=0)
    dietary_requirements = Column(JSON, default=list)
    special_notes = Column(Text, default="")

    # Delivery details
    delivery_location = Column(String(255), default="")
    delivery_time = Column(String(20), default="")
    delivery_instructions = Column(Text, default="")
    documents = Column(JSON, default=list)

    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)
    kitchen_location = Column(String(50), default="Thessaloniki", index=True)

    # Pricing in cents
    delivery_fee = Column(Integer, default=0)
    total_price = Column(Integer, nullable=False, default=0)

    # Payment
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value)
    payment_method = Column(String(50))
    payment_intent_id = Column(String(100))

    # Timestamps
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    user = relationship("User")


class OrderItem(Base):
    """Order line with a unit price snapshot"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # unit price in cents
    special_instructions = Column(Text, default="")

    order = relationship("Order", back_populates="items")


class OrderStatusHistory(Base):
    """Append-only status audit trail"""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    notes = Column(Text)
    performed_by = Column(Integer)
    performed_by_name = Column(String(200))
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)


class OrderAnnotation(Base):
    """Note attached to an order; internal notes are staff-only"""
    __tablename__ = "order_annotations"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, default=False)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)


class ActivityLog(Base):
    """Free-form audit log"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer)
    order_id = Column(Integer, index=True)
    action = Column(String(100), nullable=False)
    details = Column(Text)
    resource_id = Column(Integer)
    resource_type = Column(String(50))
    created = Column(DateTime, default=datetime.utcnow)

# Pydantic Schemas


class OrderItemCreate(CamelModel):
    menu_item_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    price: int = Field(ge=0, validation_alias=AliasChoices("price", "unitPrice", "unit_price"))
    special_instructions: str = ""

    @field_validator("special_instructions", mode="before")
    @classmethod
    def default_instructions(cls, value):
        return coerce_str(value)


class OrderItemOut(CamelModel):
    id: int
    order_id: int
    menu_item_id: int
    quantity: int
    price: int
    special_instructions: Optional[str] = ""


class OrderCreate(CamelModel):
    """Order submission; flight fields are coerced rather than rejected"""
    aircraft_type: str = ""
    tail_number: str = ""
    departure_date: str = ""
    departure_time: str = ""
    departure_airport: str = ""
    arrival_airport: str = ""
    passenger_count: int = 0
    crew_count: int = 0
    dietary_requirements: List[str] = []
    special_notes: str = ""
    delivery_location: str = ""
    delivery_time: str = ""
    delivery_instructions: str = ""
    documents: List[str] = []
    kitchen_location: Optional[str] = None
    payment_method: Optional[str] = None
    items: List[OrderItemCreate] = []

    @field_validator(
        "aircraft_type", "tail_number", "departure_date", "departure_time",
        "departure_airport", "arrival_airport", "special_notes",
        "delivery_location", "delivery_time", "delivery_instructions",
        mode="before",
    )
    @classmethod
    def lenient_str(cls, value: Any) -> str:
        return coerce_str(value)

    @field_validator("passenger_count", "crew_count", mode="before")
    @classmethod
    def lenient_count(cls, value: Any) -> int:
        return max(coerce_int(value), 0)

    @field_validator("dietary_requirements", "documents", mode="before")
    @classmethod
    def lenient_list(cls, value: Any) -> List[str]:
        return coerce_str_list(value)

    @field_validator("items", mode="before")
    @classmethod
    def missing_items(cls, value: Any):
        return [] if value is None else value


class OrderUpdate(CamelModel):
    aircraft_type: Optional[str] = None
    tail_number: Optional[str] = None
    departure_date: Optional[str] = None
    departure_time: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    passenger_count: Optional[int] = Field(default=None, ge=0)
    crew_count: Optional[int] = Field(default=None, ge=0)
    dietary_requirements: Optional[List[str]] = None
    special_notes: Optional[str] = None
    delivery_location: Optional[str] = None
    delivery_time: Optional[str] = None
    delivery_instructions: Optional[str] = None
    documents: Optional[List[str]] = None
    kitchen_location: Optional[str] = None
    payment_method: Optional[str] = None
    status: Optional[OrderStatus] = None
    # Only used for the status history entry
    notes: Optional[str] = None


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    notes: Optional[str] = None


class OrderOut(CamelModel):
    id: int
    user_id: int
    order_number: str
    aircraft_type: Optional[str] = ""
    tail_number: Optional[str] = ""
    departure_date: Optional[str] = ""
    departure_time: Optional[str] = ""
    departure_airport: Optional[str] = ""
    arrival_airport: Optional[str] = ""
    passenger_count: Optional[int] = 0
    crew_count: Optional[int] = 0
    dietary_requirements: List[str] = []
    special_notes: Optional[str] = ""
    delivery_location: Optional[str] = ""
    delivery_time: Optional[str] = ""
    delivery_instructions: Optional[str] = ""
    documents: List[str] = []
    status: OrderStatus
    kitchen_location: Optional[str] = None
    delivery_fee: int = 0
    total_price: int
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    payment_intent_id: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    @field_validator("dietary_requirements", "documents", mode="before")
    @classmethod
    def null_list(cls, value):
        return coerce_str_list(value)


class OrderDetail(OrderOut):
    items: List[OrderItemOut] = []


class StatusHistoryOut(CamelModel):
    id: int
    order_id: int
    status: str
    notes: Optional[str] = None
    performed_by: Optional[int] = None
    performed_by_name: Optional[str] = None
    timestamp: datetime


class StatusHistoryResponse(CamelModel):
    current_status: str
    status_history: List[StatusHistoryOut]


class StatusChangeResponse(StatusHistoryResponse):
    message: str


class AnnotationCreate(CamelModel):
    content: str = Field(min_length=1)
    is_internal: bool = False


class AnnotationUpdate(CamelModel):
    content: Optional[str] = Field(default=None, min_length=1)
    is_internal: Optional[bool] = None

    @field_validator("content", "is_internal", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class AnnotationOut(CamelModel):
    id: int
    order_id: int
    user_id: int
    content: str
    is_internal: bool
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class ActivityLogOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    order_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    resource_id: Optional[int] = None
    resource_type: Optional[str] = None
    created: Optional[datetime] = None


class InvoiceTotals(CamelModel):
    order_id: int
    order_number: str
    subtotal: int
    delivery_fee: int
    total_before_vat: int
    vat_rate: float
    vat_amount: int
    grand_total: int
    currency: str
