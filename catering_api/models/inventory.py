"""
Inventory, ledger and procurement models
"""
from datetime import datetime
from typing import Optional, List
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, ForeignKey
from sqlalchemy.orm import relationship
from pydantic import Field, field_validator
from catering_api.core.database import Base
from catering_api.models.common import CamelModel, reject_null

# Enums


class TransactionType(str, enum.Enum):
    RESTOCK = "restock"
    ORDER_CONSUMPTION = "order_consumption"
    ADJUST = "adjust"
    WASTE = "waste"
    TRANSFER = "transfer"


class PurchaseOrderStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# Database Models


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    preferred_payment_method = Column(String(100))
    notes = Column(Text)
    is_active = Column(Boolean, default=True)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)


class InventoryItem(Base):
    """Stock record; `in_stock` only moves through InventoryTransaction rows"""
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100), nullable=False, index=True)
    unit = Column(String(50), nullable=False)
    in_stock = Column(Float, nullable=False, default=0)
    reorder_point = Column(Float, nullable=False, default=0)
    ideal_stock = Column(Float, nullable=False, default=0)
    location = Column(String(50), nullable=False, index=True)
    last_restock_date = Column(DateTime)
    last_checked_date = Column(DateTime)
    cost = Column(Integer)  # cents per unit
    vendor_id = Column(Integer, ForeignKey("vendors.id"))
    is_active = Column(Boolean, default=True)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)


class InventoryTransaction(Base):
    """Immutable signed stock movement"""
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    user_id = Column(Integer)
    transaction_type = Column(String(30), nullable=False)
    quantity = Column(Float, nullable=False)
    order_id = Column(Integer, index=True)
    notes = Column(Text)
    location = Column(String(50))
    created = Column(DateTime, default=datetime.utcnow)


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    user_id = Column(Integer)
    order_number = Column(String(50), unique=True)
    status = Column(String(20), default=PurchaseOrderStatus.DRAFT.value, nullable=False)
    delivery_date = Column(String(20))
    total_cost = Column(Integer, default=0)  # cents, cached sum of items
    notes = Column(Text)
    location = Column(String(50), nullable=False)
    created = Column(DateTime, default=datetime.utcnow)
    updated = Column(DateTime, default=datetime.utcnow)

    items = relationship("PurchaseOrderItem", back_populates="purchase_order", cascade="all, delete-orphan")


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_cost = Column(Integer, nullable=False)  # cents
    received = Column(Boolean, default=False)
    notes = Column(Text)

    purchase_order = relationship("PurchaseOrder", back_populates="items")

# Pydantic Schemas


class VendorCreate(CamelModel):
    name: str = Field(min_length=1)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    preferred_payment_method: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class VendorUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    preferred_payment_method: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_active", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class VendorOut(VendorCreate):
    id: int
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class InventoryItemCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: str
    unit: str
    in_stock: float = 0
    reorder_point: float = Field(default=0, ge=0)
    ideal_stock: float = Field(default=0, ge=0)
    location: str
    cost: Optional[int] = Field(default=None, ge=0)
    vendor_id: Optional[int] = None
    is_active: bool = True


class InventoryItemUpdate(CamelModel):
    """Stock level is deliberately absent: it changes through transactions"""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    reorder_point: Optional[float] = Field(default=None, ge=0)
    ideal_stock: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    cost: Optional[int] = Field(default=None, ge=0)
    vendor_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "category", "unit", "reorder_point", "ideal_stock", "location", "is_active",
                     mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class InventoryItemOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    unit: str
    in_stock: float
    reorder_point: float
    ideal_stock: float
    location: str
    last_restock_date: Optional[datetime] = None
    last_checked_date: Optional[datetime] = None
    cost: Optional[int] = None
    vendor_id: Optional[int] = None
    is_active: bool = True
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class InventoryTransactionCreate(CamelModel):
    inventory_item_id: int = Field(gt=0)
    transaction_type: TransactionType
    quantity: float
    order_id: Optional[int] = None
    notes: Optional[str] = None
    location: Optional[str] = None


class InventoryTransactionOut(CamelModel):
    id: int
    inventory_item_id: int
    user_id: Optional[int] = None
    transaction_type: str
    quantity: float
    order_id: Optional[int] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    created: Optional[datetime] = None


class OrderConsumptionRequest(CamelModel):
    order_id: Optional[int] = None
    location: Optional[str] = None


class OrderConsumptionResponse(CamelModel):
    message: str
    transactions: List[InventoryTransactionOut]


class PurchaseOrderCreate(CamelModel):
    vendor_id: int = Field(gt=0)
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    location: str


class PurchaseOrderUpdate(CamelModel):
    vendor_id: Optional[int] = Field(default=None, gt=0)
    status: Optional[PurchaseOrderStatus] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None

    @field_validator("vendor_id", "status", "location", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class PurchaseOrderOut(CamelModel):
    id: int
    vendor_id: int
    user_id: Optional[int] = None
    order_number: Optional[str] = None
    status: str
    delivery_date: Optional[str] = None
    total_cost: int = 0
    notes: Optional[str] = None
    location: str
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class PurchaseOrderItemCreate(CamelModel):
    purchase_order_id: int = Field(gt=0)
    inventory_item_id: int = Field(gt=0)
    quantity: float = Field(gt=0)
    unit_cost: int = Field(ge=0)
    received: bool = False
    notes: Optional[str] = None


class PurchaseOrderItemUpdate(CamelModel):
    quantity: Optional[float] = Field(default=None, gt=0)
    unit_cost: Optional[int] = Field(default=None, ge=0)
    received: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("quantity", "unit_cost", "received", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class PurchaseOrderItemOut(CamelModel):
    id: int
    purchase_order_id: int
    inventory_item_id: int
    quantity: float
    unit_cost: int
    received: bool = False
    notes: Optional[str] = None
