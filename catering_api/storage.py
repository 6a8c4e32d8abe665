"""
Catering storage - CRUD operations
==================================

Per-entity accessors over one SQLAlchemy session:
- Users
- Orders, order items, status history, annotations
- Activity log
- Menu items and recipes
- Inventory, vendors, ledger, purchase orders
- Concierge requests
- Integration settings and reference data

No business rules live here beyond defaulting: order numbers, timestamps
and the cached purchase-order total.
"""
import random
import string
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from catering_api.core.config import settings
from catering_api.core.security import get_password_hash
from catering_api.models.user import User, UserRole
from catering_api.models.menu import MenuItem, MenuItemIngredient
from catering_api.models.order import (
    Order, OrderItem, OrderStatusHistory, OrderAnnotation, ActivityLog
)
from catering_api.models.inventory import (
    Vendor, InventoryItem, InventoryTransaction, PurchaseOrder, PurchaseOrderItem
)
from catering_api.models.concierge import ConciergeRequest
from catering_api.models.integration import IntegrationSetting
from catering_api.models.reference import (
    AircraftType, Airport, DEFAULT_AIRCRAFT_TYPES, DEFAULT_AIRPORTS
)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(now: Optional[datetime] = None) -> str:
    """AG-YYYYMMDD-XXXX with four random base36 characters"""
    now = now or datetime.utcnow()
    suffix = "".join(random.choices(ORDER_NUMBER_ALPHABET, k=4))
    return f"{settings.ORDER_NUMBER_PREFIX}-{now.strftime('%Y%m%d')}-{suffix}"


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, nudged forward so it is always after `previous`"""
    now = datetime.utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class CateringStorage:
    """CRUD operations for the catering system"""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj, commit: bool = True):
        self.db.add(obj)
        if commit:
            self.db.commit()
            self.db.refresh(obj)
        else:
            self.db.flush()
        return obj

    def _apply(self, obj, fields: Dict[str, Any]):
        for key, value in fields.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

    def commit(self):
        self.db.commit()

    # =========================================================================
    # USERS
    # =========================================================================

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, user_data: Dict[str, Any], commit: bool = True) -> User:
        """Create a user; `password` is the plain text password"""
        data = dict(user_data)
        password = data.pop("password")
        user = User(password=get_password_hash(password), **data)
        return self._save(user, commit)

    def update_user(self, user: User, fields: Dict[str, Any]) -> User:
        self._apply(user, fields)
        return self._save(user)

    def ensure_guest_user(self) -> User:
        """Seed the sentinel account guest orders are attributed to"""
        guest = self.get_user(settings.GUEST_USER_ID)
        if guest:
            return guest
        guest = User(
            id=settings.GUEST_USER_ID,
            username="guest",
            password=get_password_hash("".join(random.choices(ORDER_NUMBER_ALPHABET, k=32))),
            first_name="Guest",
            last_name="User",
            role=UserRole.CLIENT.value,
        )
        return self._save(guest)

    # =========================================================================
    # ORDERS
    # =========================================================================

    def get_order(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def get_order_by_number(self, order_number: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.order_number == order_number).first()

    def list_orders(
        self,
        status: Optional[str] = None,
        kitchen: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> List[Order]:
        query = self.db.query(Order)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if status:
            query = query.filter(Order.status == status)
        if kitchen:
            query = query.filter(Order.kitchen_location == kitchen)
        return query.order_by(Order.created.desc(), Order.id.desc()).all()

    def create_order(self, order_data: Dict[str, Any], commit: bool = True) -> Order:
        now = datetime.utcnow()
        order = Order(
            order_number=generate_order_number(now),
            created=now,
            updated=now,
            **order_data,
        )
        return self._save(order, commit)

    def update_order(self, order: Order, fields: Dict[str, Any], commit: bool = True) -> Order:
        self._apply(order, fields)
        order.updated = next_timestamp(order.updated)
        return self._save(order, commit)

    def delete_order(self, order: Order):
        """Hard delete; items go first through the cascade"""
        self.db.delete(order)
        self.db.commit()

    def get_order_items(self, order_id: int) -> List[OrderItem]:
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
            .all()
        )

    def create_order_item(self, item_data: Dict[str, Any], commit: bool = True) -> OrderItem:
        return self._save(OrderItem(**item_data), commit)

    def replace_order_items(self, order_id: int, items: List[Dict[str, Any]]) -> List[OrderItem]:
        for item in self.get_order_items(order_id):
            self.db.delete(item)
        self.db.flush()
        created = [self.create_order_item({**item, "order_id": order_id}, commit=False) for item in items]
        self.db.commit()
        return created

    # =========================================================================
    # STATUS HISTORY
    # =========================================================================

    def get_status_history(self, order_id: int) -> List[OrderStatusHistory]:
        return (
            self.db.query(OrderStatusHistory)
            .filter(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.timestamp, OrderStatusHistory.id)
            .all()
        )

    def create_status_history(self, entry: Dict[str, Any], commit: bool = True) -> OrderStatusHistory:
        entry.setdefault("timestamp", datetime.utcnow())
        return self._save(OrderStatusHistory(**entry), commit)

    # =========================================================================
    # ANNOTATIONS
    # =========================================================================

    def list_annotations(self, order_id: int, include_internal: bool = True) -> List[OrderAnnotation]:
        query = self.db.query(OrderAnnotation).filter(OrderAnnotation.order_id == order_id)
        if not include_internal:
            query = query.filter(OrderAnnotation.is_internal.is_(False))
        return query.order_by(OrderAnnotation.created, OrderAnnotation.id).all()

    def get_annotation(self, annotation_id: int) -> Optional[OrderAnnotation]:
        return self.db.get(OrderAnnotation, annotation_id)

    def create_annotation(self, data: Dict[str, Any]) -> OrderAnnotation:
        return self._save(OrderAnnotation(**data))

    def update_annotation(self, annotation: OrderAnnotation, fields: Dict[str, Any]) -> OrderAnnotation:
        self._apply(annotation, fields)
        annotation.updated = next_timestamp(annotation.updated)
        return self._save(annotation)

    def delete_annotation(self, annotation: OrderAnnotation):
        self.db.delete(annotation)
        self.db.commit()

    # =========================================================================
    # ACTIVITY LOG
    # =========================================================================

    def create_activity_log(self, data: Dict[str, Any], commit: bool = True) -> ActivityLog:
        return self._save(ActivityLog(**data), commit)

    def list_activity_logs(self, limit: int = 100, order_id: Optional[int] = None) -> List[ActivityLog]:
        query = self.db.query(ActivityLog)
        if order_id is not None:
            query = query.filter(ActivityLog.order_id == order_id)
        return query.order_by(ActivityLog.created.desc(), ActivityLog.id.desc()).limit(limit).all()

    # =========================================================================
    # MENU
    # =========================================================================

    def list_menu_items(self, category: Optional[str] = None, available_only: bool = False) -> List[MenuItem]:
        query = self.db.query(MenuItem)
        if category:
            query = query.filter(MenuItem.category == category)
        if available_only:
            query = query.filter(MenuItem.available.is_(True))
        return query.order_by(MenuItem.category, MenuItem.name).all()

    def get_menu_item(self, menu_item_id: int) -> Optional[MenuItem]:
        return self.db.get(MenuItem, menu_item_id)

    def create_menu_item(self, data: Dict[str, Any]) -> MenuItem:
        return self._save(MenuItem(**data))

    def update_menu_item(self, item: MenuItem, fields: Dict[str, Any]) -> MenuItem:
        self._apply(item, fields)
        return self._save(item)

    def delete_menu_item(self, item: MenuItem):
        self.db.delete(item)
        self.db.commit()

    def get_menu_item_ingredients(self, menu_item_id: int) -> List[MenuItemIngredient]:
        return (
            self.db.query(MenuItemIngredient)
            .filter(MenuItemIngredient.menu_item_id == menu_item_id)
            .order_by(MenuItemIngredient.id)
            .all()
        )

    def get_menu_item_ingredient(self, ingredient_id: int) -> Optional[MenuItemIngredient]:
        return self.db.get(MenuItemIngredient, ingredient_id)

    def create_menu_item_ingredient(self, data: Dict[str, Any]) -> MenuItemIngredient:
        return self._save(MenuItemIngredient(**data))

    def update_menu_item_ingredient(self, ingredient: MenuItemIngredient, fields: Dict[str, Any]) -> MenuItemIngredient:
        self._apply(ingredient, fields)
        return self._save(ingredient)

    def delete_menu_item_ingredient(self, ingredient: MenuItemIngredient):
        self.db.delete(ingredient)
        self.db.commit()

    # =========================================================================
    # INVENTORY ITEMS
    # =========================================================================

    def list_inventory_items(self, location: Optional[str] = None) -> List[InventoryItem]:
        query = self.db.query(InventoryItem)
        if location:
            query = query.filter(InventoryItem.location == location)
        return query.order_by(InventoryItem.name).all()

    def get_inventory_item(self, item_id: int) -> Optional[InventoryItem]:
        return self.db.get(InventoryItem, item_id)

    def get_inventory_items_by_category(self, category: str, location: Optional[str] = None) -> List[InventoryItem]:
        query = self.db.query(InventoryItem).filter(InventoryItem.category == category)
        if location:
            query = query.filter(InventoryItem.location == location)
        return query.order_by(InventoryItem.name).all()

    def get_low_stock_items(self, location: Optional[str] = None) -> List[InventoryItem]:
        query = self.db.query(InventoryItem).filter(
            InventoryItem.in_stock <= InventoryItem.reorder_point
        )
        if location:
            query = query.filter(InventoryItem.location == location)
        return query.order_by(InventoryItem.name).all()

    def create_inventory_item(self, data: Dict[str, Any], commit: bool = True) -> InventoryItem:
        now = datetime.utcnow()
        return self._save(InventoryItem(created=now, updated=now, **data), commit)

    def update_inventory_item(self, item: InventoryItem, fields: Dict[str, Any], commit: bool = True) -> InventoryItem:
        self._apply(item, fields)
        item.updated = next_timestamp(item.updated)
        return self._save(item, commit)

    def delete_inventory_item(self, item: InventoryItem):
        """Recipes stop using the item; its ledger rows are kept"""
        self.db.query(MenuItemIngredient).filter(
            MenuItemIngredient.inventory_item_id == item.id
        ).delete(synchronize_session=False)
        self.db.delete(item)
        self.db.commit()

    # =========================================================================
    # VENDORS
    # =========================================================================

    def list_vendors(self, active_only: bool = False) -> List[Vendor]:
        query = self.db.query(Vendor)
        if active_only:
            query = query.filter(Vendor.is_active.is_(True))
        return query.order_by(Vendor.name).all()

    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        return self.db.get(Vendor, vendor_id)

    def create_vendor(self, data: Dict[str, Any]) -> Vendor:
        return self._save(Vendor(**data))

    def update_vendor(self, vendor: Vendor, fields: Dict[str, Any]) -> Vendor:
        self._apply(vendor, fields)
        vendor.updated = next_timestamp(vendor.updated)
        return self._save(vendor)

    def delete_vendor(self, vendor: Vendor):
        self.db.delete(vendor)
        self.db.commit()

    # =========================================================================
    # INVENTORY TRANSACTIONS
    # =========================================================================

    def list_inventory_transactions(
        self,
        inventory_item_id: Optional[int] = None,
        location: Optional[str] = None,
    ) -> List[InventoryTransaction]:
        query = self.db.query(InventoryTransaction)
        if inventory_item_id is not None:
            query = query.filter(InventoryTransaction.inventory_item_id == inventory_item_id)
        if location:
            query = query.filter(InventoryTransaction.location == location)
        return query.order_by(InventoryTransaction.created.desc(), InventoryTransaction.id.desc()).all()

    def get_inventory_transactions_by_order(self, order_id: int) -> List[InventoryTransaction]:
        return (
            self.db.query(InventoryTransaction)
            .filter(InventoryTransaction.order_id == order_id)
            .order_by(InventoryTransaction.id)
            .all()
        )

    def create_inventory_transaction(self, data: Dict[str, Any], commit: bool = True) -> InventoryTransaction:
        return self._save(InventoryTransaction(**data), commit)

    # =========================================================================
    # PURCHASE ORDERS
    # =========================================================================

    def list_purchase_orders(self, location: Optional[str] = None, status: Optional[str] = None) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder)
        if location:
            query = query.filter(PurchaseOrder.location == location)
        if status:
            query = query.filter(PurchaseOrder.status == status)
        return query.order_by(PurchaseOrder.created.desc(), PurchaseOrder.id.desc()).all()

    def get_purchase_order(self, purchase_order_id: int) -> Optional[PurchaseOrder]:
        return self.db.get(PurchaseOrder, purchase_order_id)

    def create_purchase_order(self, data: Dict[str, Any]) -> PurchaseOrder:
        """Insert, then derive PO-YYYYMMDD-<id> from the new key"""
        now = datetime.utcnow()
        purchase_order = PurchaseOrder(created=now, updated=now, total_cost=0, **data)
        self.db.add(purchase_order)
        self.db.flush()
        purchase_order.order_number = f"PO-{now.strftime('%Y%m%d')}-{purchase_order.id}"
        self.db.commit()
        self.db.refresh(purchase_order)
        return purchase_order

    def update_purchase_order(self, purchase_order: PurchaseOrder, fields: Dict[str, Any]) -> PurchaseOrder:
        self._apply(purchase_order, fields)
        purchase_order.updated = next_timestamp(purchase_order.updated)
        return self._save(purchase_order)

    def delete_purchase_order(self, purchase_order: PurchaseOrder):
        self.db.delete(purchase_order)
        self.db.commit()

    def get_purchase_order_items(self, purchase_order_id: int) -> List[PurchaseOrderItem]:
        return (
            self.db.query(PurchaseOrderItem)
            .filter(PurchaseOrderItem.purchase_order_id == purchase_order_id)
            .order_by(PurchaseOrderItem.id)
            .all()
        )

    def get_purchase_order_item(self, item_id: int) -> Optional[PurchaseOrderItem]:
        return self.db.get(PurchaseOrderItem, item_id)

    def _recalculate_purchase_order_total(self, purchase_order_id: int):
        """Refresh the cached total from the items currently in the session"""
        self.db.flush()
        purchase_order = self.get_purchase_order(purchase_order_id)
        if purchase_order is None:
            return
        items = self.get_purchase_order_items(purchase_order_id)
        purchase_order.total_cost = int(round(sum(item.quantity * item.unit_cost for item in items)))
        purchase_order.updated = next_timestamp(purchase_order.updated)

    def create_purchase_order_item(self, data: Dict[str, Any]) -> PurchaseOrderItem:
        item = PurchaseOrderItem(**data)
        self.db.add(item)
        self._recalculate_purchase_order_total(item.purchase_order_id)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_purchase_order_item(self, item: PurchaseOrderItem, fields: Dict[str, Any]) -> PurchaseOrderItem:
        self._apply(item, fields)
        self._recalculate_purchase_order_total(item.purchase_order_id)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_purchase_order_item(self, item: PurchaseOrderItem):
        purchase_order_id = item.purchase_order_id
        self.db.delete(item)
        self._recalculate_purchase_order_total(purchase_order_id)
        self.db.commit()

    # =========================================================================
    # CONCIERGE
    # =========================================================================

    def list_concierge_requests(self, user_id: Optional[int] = None) -> List[ConciergeRequest]:
        query = self.db.query(ConciergeRequest)
        if user_id is not None:
            query = query.filter(ConciergeRequest.user_id == user_id)
        return query.order_by(ConciergeRequest.created.desc(), ConciergeRequest.id.desc()).all()

    def get_concierge_request(self, request_id: int) -> Optional[ConciergeRequest]:
        return self.db.get(ConciergeRequest, request_id)

    def create_concierge_request(self, data: Dict[str, Any]) -> ConciergeRequest:
        now = datetime.utcnow()
        return self._save(ConciergeRequest(created=now, updated=now, **data))

    def update_concierge_request(self, request: ConciergeRequest, fields: Dict[str, Any]) -> ConciergeRequest:
        self._apply(request, fields)
        request.updated = next_timestamp(request.updated)
        return self._save(request)

    # =========================================================================
    # INTEGRATION SETTINGS
    # =========================================================================

    def get_integration_settings(self, service: str) -> Dict[str, Optional[str]]:
        rows = self.db.query(IntegrationSetting).filter(IntegrationSetting.service == service).all()
        return {row.key: row.value for row in rows}

    def set_integration_setting(self, service: str, key: str, value: Optional[str], commit: bool = True) -> IntegrationSetting:
        """Insert or overwrite one key"""
        setting = (
            self.db.query(IntegrationSetting)
            .filter(IntegrationSetting.service == service, IntegrationSetting.key == key)
            .first()
        )
        if setting is None:
            now = datetime.utcnow()
            setting = IntegrationSetting(service=service, key=key, created=now, updated=now)
        else:
            setting.updated = next_timestamp(setting.updated)
        setting.value = value
        return self._save(setting, commit)

    # =========================================================================
    # REFERENCE DATA
    # =========================================================================

    def list_aircraft_types(self) -> List[AircraftType]:
        return self.db.query(AircraftType).order_by(AircraftType.name).all()

    def get_aircraft_type_by_name(self, name: str) -> Optional[AircraftType]:
        return self.db.query(AircraftType).filter(AircraftType.name == name).first()

    def create_aircraft_type(self, data: Dict[str, Any], commit: bool = True) -> AircraftType:
        return self._save(AircraftType(**data), commit)

    def list_airports(self) -> List[Airport]:
        return self.db.query(Airport).order_by(Airport.code).all()

    def get_airport_by_code(self, code: str) -> Optional[Airport]:
        return self.db.query(Airport).filter(Airport.code == code).first()

    def create_airport(self, data: Dict[str, Any], commit: bool = True) -> Airport:
        return self._save(Airport(**data), commit)

    def ensure_reference_data(self):
        """Seed the default fleet and airports into empty tables"""
        if not self.db.query(AircraftType).first():
            for name in DEFAULT_AIRCRAFT_TYPES:
                self.create_aircraft_type({"name": name}, commit=False)
        if not self.db.query(Airport).first():
            for code, name, location in DEFAULT_AIRPORTS:
                self.create_airport({"code": code, "name": name, "location": location}, commit=False)
        self.db.commit()
