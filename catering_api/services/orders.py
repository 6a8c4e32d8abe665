"""
Order lifecycle: creation, updates, status transitions and deletion

Writes go through CateringStorage; notifications and WebSocket broadcasts
are queued on the request's BackgroundTasks after the write commits.
"""
import json
import logging
from typing import Any, Dict, List, Optional
from fastapi import BackgroundTasks, HTTPException, status
from catering_api.core.config import settings
from catering_api.models.menu import KITCHEN_LOCATIONS
from catering_api.models.order import (
    Order, OrderCreate, OrderItemCreate, OrderStatus, OrderUpdate,
    StatusHistoryOut, CLIENT_EDITABLE_STATUSES,
)
from catering_api.models.user import User
from catering_api.services.dispatch import dispatcher
from catering_api.services.notification_service import (
    NotificationType, notification_service, notification_type_for_status,
)
from catering_api.services.realtime import ConnectionRegistry
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)


def resolve_kitchen_location(departure_airport: str, requested: Optional[str] = None) -> str:
    """Explicit kitchen wins; otherwise Mykonos departures go to Mykonos"""
    if requested:
        for location in KITCHEN_LOCATIONS:
            if requested.strip().lower() == location.lower():
                return location
    airport = (departure_airport or "").lower()
    if "mykonos" in airport or "jmk" in airport:
        return "Mykonos"
    return "Thessaloniki"


def calculate_total(items: List[Dict[str, Any]], delivery_fee: int) -> int:
    return sum(item["quantity"] * item["price"] for item in items) + delivery_fee


def can_modify_order(order: Order, actor: Optional[User]) -> bool:
    if actor is None:
        return False
    if actor.is_staff:
        return True
    return actor.id == order.user_id and order.status in CLIENT_EDITABLE_STATUSES


def can_view_order(order: Order, actor: Optional[User]) -> bool:
    return actor is not None and (actor.is_staff or actor.id == order.user_id)


class OrderService:
    def __init__(
        self,
        storage: CateringStorage,
        background_tasks: BackgroundTasks,
        registry: Optional[ConnectionRegistry] = None,
        notifier=None,
    ):
        self.storage = storage
        self.background_tasks = background_tasks
        self.registry = registry
        self.notifier = notifier or notification_service

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def notify(self, order_id: int, notification_type: NotificationType):
        dispatcher.submit(
            self.background_tasks,
            f"notify:{notification_type.value}:{order_id}",
            self.notifier.send_order_notification,
            order_id,
            notification_type,
        )

    def broadcast_status(self, order: Order):
        if self.registry is None:
            return
        dispatcher.submit(
            self.background_tasks,
            f"broadcast:{order.id}",
            self.registry.broadcast_order_status,
            order.id,
            order.status,
            self.history_payload(order.id),
        )

    def history_payload(self, order_id: int) -> List[Dict[str, Any]]:
        return [
            StatusHistoryOut.model_validate(entry).model_dump(by_alias=True, mode="json")
            for entry in self.storage.get_status_history(order_id)
        ]

    def log(self, actor: Optional[User], order_id: Optional[int], action: str, details: Dict[str, Any]):
        self.storage.create_activity_log({
            "user_id": actor.id if actor else settings.GUEST_USER_ID,
            "order_id": order_id,
            "action": action,
            "details": json.dumps(details),
            "resource_id": order_id,
            "resource_type": "order",
        })

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_order(self, payload: OrderCreate, actor: Optional[User]) -> Order:
        """Persist an order and its items; guests are attributed to the sentinel user"""
        if not payload.items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please select at least one menu item."
            )

        departure_airport = payload.departure_airport or settings.DEFAULT_DEPARTURE_AIRPORT
        items = [item.model_dump() for item in payload.items]
        delivery_fee = settings.DELIVERY_FEE_CENTS
        user_id = actor.id if actor else settings.GUEST_USER_ID
        if actor is None:
            self.storage.ensure_guest_user()

        order_fields = payload.model_dump(exclude={"items", "kitchen_location"})
        order_fields.update({
            "user_id": user_id,
            "departure_airport": departure_airport,
            "kitchen_location": resolve_kitchen_location(departure_airport, payload.kitchen_location),
            "status": OrderStatus.PENDING.value,
            "delivery_fee": delivery_fee,
            "total_price": calculate_total(items, delivery_fee),
        })

        order = self.storage.create_order(order_fields, commit=False)
        for item in items:
            self.storage.create_order_item({**item, "order_id": order.id}, commit=False)
        self.storage.create_status_history({
            "order_id": order.id,
            "status": OrderStatus.PENDING.value,
            "notes": "Order submitted",
            "performed_by": user_id,
            "performed_by_name": actor.full_name if actor else "Guest",
            "timestamp": order.created,
        }, commit=False)
        self.storage.commit()

        self.log(actor, order.id, "CREATE_ORDER", {
            "orderNumber": order.order_number,
            "itemCount": len(items),
            "totalPrice": order.total_price,
            "guest": actor is None,
        })
        logger.info(f"Order {order.order_number} created for user {user_id}")

        self.notify(order.id, NotificationType.NEW_ORDER)
        return order

    def update_order(self, order: Order, payload: OrderUpdate, actor: Optional[User]) -> Order:
        """Merge fields; a status change also appends history and notifies"""
        if not can_modify_order(order, actor):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this order"
            )

        fields = payload.model_dump(exclude_unset=True, exclude={"notes"})
        new_status = fields.pop("status", None)
        if "kitchen_location" in fields:
            fields["kitchen_location"] = resolve_kitchen_location(
                fields.get("departure_airport", order.departure_airport), fields["kitchen_location"]
            )
        if new_status is not None:
            fields["status"] = OrderStatus(new_status).value

        return self._apply_update(order, fields, actor, payload.notes)

    def change_status(self, order: Order, new_status: OrderStatus, notes: Optional[str], actor: User) -> Order:
        return self._apply_update(order, {"status": OrderStatus(new_status).value}, actor, notes)

    def cancel_order(self, order: Order, actor: Optional[User], notes: Optional[str] = None) -> Order:
        return self.update_order(
            order, OrderUpdate(status=OrderStatus.CANCELLED, notes=notes or "Order cancelled"), actor
        )

    def _apply_update(self, order: Order, fields: Dict[str, Any], actor: Optional[User], notes: Optional[str]) -> Order:
        previous_status = order.status
        order = self.storage.update_order(order, fields, commit=False)

        status_changed = "status" in fields
        if status_changed:
            self.storage.create_status_history({
                "order_id": order.id,
                "status": order.status,
                "notes": notes,
                "performed_by": actor.id if actor else None,
                "performed_by_name": actor.full_name if actor else None,
                "timestamp": order.updated,
            }, commit=False)
        self.storage.commit()

        self.log(actor, order.id, "UPDATE_ORDER", {
            "orderNumber": order.order_number,
            "fields": sorted(fields),
            "previousStatus": previous_status,
            "status": order.status,
        })

        if status_changed:
            logger.info(f"Order {order.order_number} status {previous_status} -> {order.status}")
            self.notify(order.id, notification_type_for_status(order.status))
            self.broadcast_status(order)
        return order

    def add_item(self, order: Order, item: OrderItemCreate, actor: Optional[User]):
        if not can_modify_order(order, actor):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this order"
            )
        data = item.model_dump()
        created = self.storage.create_order_item({**data, "order_id": order.id}, commit=False)
        self.storage.update_order(order, {
            "total_price": order.total_price + data["quantity"] * data["price"],
        }, commit=False)
        self.storage.commit()
        self.log(actor, order.id, "ADD_ORDER_ITEM", {
            "menuItemId": data["menu_item_id"], "quantity": data["quantity"],
        })
        self.notify(order.id, NotificationType.ORDER_UPDATED)
        return created

    def replace_items(self, order: Order, items: List[OrderItemCreate], actor: Optional[User]):
        if not can_modify_order(order, actor):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this order"
            )
        if not items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please select at least one menu item."
            )
        data = [item.model_dump() for item in items]
        created = self.storage.replace_order_items(order.id, data)
        self.storage.update_order(order, {"total_price": calculate_total(data, order.delivery_fee or 0)})
        self.log(actor, order.id, "REPLACE_ORDER_ITEMS", {"itemCount": len(data)})
        self.notify(order.id, NotificationType.ORDER_UPDATED)
        return created

    def delete_order(self, order: Order, actor: User):
        """Administrative hard delete; inventory already consumed is not reversed"""
        order_id, order_number = order.id, order.order_number
        self.storage.delete_order(order)
        self.log(actor, order_id, "DELETE_ORDER", {"orderNumber": order_number})
        logger.info(f"Order {order_number} deleted by user {actor.id}")
