"""
Inventory ledger and order consumption
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from catering_api.models.inventory import InventoryItem, InventoryTransaction, TransactionType
from catering_api.models.user import User
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, storage: CateringStorage):
        self.storage = storage

    def apply_transaction(self, data: Dict[str, Any], commit: bool = True) -> InventoryTransaction:
        """Record a signed stock movement and fold it into the cached level

        Stock may go negative; there is no floor check.
        """
        item = self.storage.get_inventory_item(data["inventory_item_id"])
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Inventory item not found"
            )

        transaction_type = TransactionType(data["transaction_type"]).value
        transaction = self.storage.create_inventory_transaction(
            {**data, "transaction_type": transaction_type}, commit=False
        )

        now = datetime.utcnow()
        fields = {
            "in_stock": (item.in_stock or 0) + transaction.quantity,
            "last_checked_date": now,
        }
        if transaction_type == TransactionType.RESTOCK.value:
            fields["last_restock_date"] = now
        self.storage.update_inventory_item(item, fields, commit=False)

        if commit:
            self.storage.commit()
        return transaction

    def create_item(self, data: Dict[str, Any], actor: Optional[User]) -> InventoryItem:
        """New items start at zero; opening stock is booked as an adjustment"""
        opening_stock = data.pop("in_stock", 0) or 0
        item = self.storage.create_inventory_item({**data, "in_stock": 0}, commit=False)
        if opening_stock:
            self.apply_transaction({
                "inventory_item_id": item.id,
                "user_id": actor.id if actor else None,
                "transaction_type": TransactionType.ADJUST.value,
                "quantity": opening_stock,
                "notes": "Opening stock",
                "location": item.location,
            }, commit=False)
        self.storage.commit()
        self.storage.db.refresh(item)
        return item

    def consume_for_order(self, order_id: Optional[int], location: Optional[str], actor: Optional[User]) -> List[InventoryTransaction]:
        """Deduct each recipe ingredient for every item on the order

        Not idempotent: calling twice for one order deducts twice.
        """
        if not order_id or not location:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Order ID and location are required"
            )

        order = self.storage.get_order(order_id)
        if order is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )

        transactions = []
        for order_item in self.storage.get_order_items(order_id):
            menu_item = self.storage.get_menu_item(order_item.menu_item_id)
            if menu_item is None:
                logger.warning(
                    f"Menu item {order_item.menu_item_id} on order {order_id} no longer exists, skipping"
                )
                continue

            for ingredient in self.storage.get_menu_item_ingredients(menu_item.id):
                if self.storage.get_inventory_item(ingredient.inventory_item_id) is None:
                    logger.warning(
                        f"Inventory item {ingredient.inventory_item_id} used by {menu_item.name} no longer exists, skipping"
                    )
                    continue
                transactions.append(self.apply_transaction({
                    "inventory_item_id": ingredient.inventory_item_id,
                    "user_id": actor.id if actor else None,
                    "transaction_type": TransactionType.ORDER_CONSUMPTION.value,
                    "quantity": -(ingredient.quantity * order_item.quantity),
                    "order_id": order_id,
                    "notes": f"Consumed for order {order.order_number} ({menu_item.name} x{order_item.quantity})",
                    "location": location,
                }, commit=False))
        self.storage.commit()

        self.storage.create_activity_log({
            "user_id": actor.id if actor else None,
            "order_id": order_id,
            "action": "inventory_order_consumption",
            "details": json.dumps({
                "orderNumber": order.order_number,
                "location": location,
                "transactionCount": len(transactions),
            }),
            "resource_id": order_id,
            "resource_type": "order",
        })
        logger.info(f"Recorded {len(transactions)} consumption transaction(s) for order {order.order_number}")
        return transactions

    def low_stock(self, location: Optional[str] = None) -> List[InventoryItem]:
        return self.storage.get_low_stock_items(location)
