"""
ORM models and API schemas
"""
from catering_api.models.user import User, UserRole
from catering_api.models.menu import MenuItem, MenuItemIngredient
from catering_api.models.order import (
    Order, OrderItem, OrderStatusHistory, OrderAnnotation, ActivityLog, OrderStatus
)
from catering_api.models.inventory import (
    Vendor, InventoryItem, InventoryTransaction, PurchaseOrder, PurchaseOrderItem
)
from catering_api.models.concierge import ConciergeRequest
from catering_api.models.integration import IntegrationSetting
from catering_api.models.reference import AircraftType, Airport

__all__ = [
    "User", "UserRole", "MenuItem", "MenuItemIngredient", "Order", "OrderItem",
    "OrderStatusHistory", "OrderAnnotation", "ActivityLog", "OrderStatus", "Vendor",
    "InventoryItem", "InventoryTransaction", "PurchaseOrder", "PurchaseOrderItem",
    "ConciergeRequest", "IntegrationSetting", "AircraftType", "Airport",
]
