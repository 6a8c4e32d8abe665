"""
Menu catalog and recipe (ingredient) models
"""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from pydantic import Field, field_validator
from catering_api.core.database import Base
from catering_api.models.common import CamelModel, coerce_str_list, reject_null, unique_list

KITCHEN_LOCATIONS = ("Thessaloniki", "Mykonos")

# Database Models


class MenuItem(Base):
    """Menu item with one price list per kitchen"""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    category = Column(String(100), nullable=False, index=True)
    dietary_options = Column(JSON, default=list)

    # Prices in cents
    price_thessaloniki = Column(Integer, nullable=False, default=0)
    price_mykonos = Column(Integer, nullable=False, default=0)

    available = Column(Boolean, default=True)
    image_url = Column(String(500))
    unit = Column(String(50))
    created = Column(DateTime, default=datetime.utcnow)

    ingredients = relationship("MenuItemIngredient", back_populates="menu_item", cascade="all, delete-orphan")

    def price_for(self, kitchen_location: str) -> int:
        if (kitchen_location or "").lower() == "mykonos":
            return self.price_mykonos
        return self.price_thessaloniki


class MenuItemIngredient(Base):
    """Recipe line: how much of an inventory item one unit of a menu item uses"""
    __tablename__ = "menu_item_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    created = Column(DateTime, default=datetime.utcnow)

    menu_item = relationship("MenuItem", back_populates="ingredients")

# Pydantic Schemas


class MenuItemBase(CamelModel):
    name: str
    description: str = ""
    category: str
    dietary_options: List[str] = []
    price_thessaloniki: int = Field(ge=0)
    price_mykonos: int = Field(ge=0)
    available: bool = True
    image_url: Optional[str] = None
    unit: Optional[str] = None

    @field_validator("dietary_options", mode="before")
    @classmethod
    def dedupe_dietary_options(cls, value):
        return unique_list(coerce_str_list(value))


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    dietary_options: Optional[List[str]] = None
    price_thessaloniki: Optional[int] = Field(default=None, ge=0)
    price_mykonos: Optional[int] = Field(default=None, ge=0)
    available: Optional[bool] = None
    image_url: Optional[str] = None
    unit: Optional[str] = None

    @field_validator("dietary_options", mode="before")
    @classmethod
    def dedupe_dietary_options(cls, value):
        return unique_list(coerce_str_list(reject_null(value)))

    @field_validator("name", "category", "price_thessaloniki", "price_mykonos", "available", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class MenuItemOut(MenuItemBase):
    id: int


class MenuItemIngredientCreate(CamelModel):
    menu_item_id: int = Field(gt=0)
    inventory_item_id: int = Field(gt=0)
    quantity: float = Field(gt=0)


class MenuItemIngredientUpdate(CamelModel):
    inventory_item_id: Optional[int] = Field(default=None, gt=0)
    quantity: Optional[float] = Field(default=None, gt=0)

    @field_validator("inventory_item_id", "quantity", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class MenuItemIngredientOut(CamelModel):
    id: int
    menu_item_id: int
    inventory_item_id: int
    quantity: float
