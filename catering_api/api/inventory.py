"""
Inventory, recipe, ledger and procurement API router

Every route requires an admin or kitchen user.
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import require_staff
from catering_api.models.user import User
from catering_api.models.menu import (
    MenuItemIngredientCreate, MenuItemIngredientOut, MenuItemIngredientUpdate,
)
from catering_api.models.inventory import (
    InventoryItemCreate, InventoryItemOut, InventoryItemUpdate,
    InventoryTransactionCreate, InventoryTransactionOut,
    OrderConsumptionRequest, OrderConsumptionResponse,
    PurchaseOrderCreate, PurchaseOrderItemCreate, PurchaseOrderItemOut,
    PurchaseOrderItemUpdate, PurchaseOrderOut, PurchaseOrderUpdate,
    VendorCreate, VendorOut, VendorUpdate,
)
from catering_api.services.inventory import InventoryService
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/inventory", tags=["inventory"], dependencies=[Depends(require_staff)])


def not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} not found"
    )

# Inventory items


@router.get("/inventory-items", response_model=List[InventoryItemOut])
async def list_inventory_items(location: Optional[str] = None, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).list_inventory_items(location)


@router.get("/inventory-items/low-stock", response_model=List[InventoryItemOut])
async def list_low_stock_items(location: Optional[str] = None, db: Session = Depends(get_db)) -> Any:
    """Items at or below their reorder point"""
    return InventoryService(CateringStorage(db)).low_stock(location)


@router.get("/inventory-items/category/{category}", response_model=List[InventoryItemOut])
async def list_inventory_items_by_category(
    category: str,
    location: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Any:
    return CateringStorage(db).get_inventory_items_by_category(category, location)


@router.get("/inventory-items/{item_id}", response_model=InventoryItemOut)
async def get_inventory_item(item_id: int, db: Session = Depends(get_db)) -> Any:
    item = CateringStorage(db).get_inventory_item(item_id)
    if not item:
        raise not_found("Inventory item")
    return item


@router.post("/inventory-items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    item_data: InventoryItemCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
) -> Any:
    return InventoryService(CateringStorage(db)).create_item(item_data.model_dump(), current_user)


@router.patch("/inventory-items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: int,
    item_update: InventoryItemUpdate,
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    item = storage.get_inventory_item(item_id)
    if not item:
        raise not_found("Inventory item")
    return storage.update_inventory_item(item, item_update.model_dump(exclude_unset=True))


@router.delete("/inventory-items/{item_id}")
async def delete_inventory_item(item_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    item = storage.get_inventory_item(item_id)
    if not item:
        raise not_found("Inventory item")
    storage.delete_inventory_item(item)
    return {"message": "Inventory item deleted successfully"}

# Vendors


@router.get("/vendors", response_model=List[VendorOut])
async def list_vendors(active_only: bool = False, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).list_vendors(active_only)


@router.get("/vendors/{vendor_id}", response_model=VendorOut)
async def get_vendor(vendor_id: int, db: Session = Depends(get_db)) -> Any:
    vendor = CateringStorage(db).get_vendor(vendor_id)
    if not vendor:
        raise not_found("Vendor")
    return vendor


@router.post("/vendors", response_model=VendorOut, status_code=status.HTTP_201_CREATED)
async def create_vendor(vendor_data: VendorCreate, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).create_vendor(vendor_data.model_dump())


@router.patch("/vendors/{vendor_id}", response_model=VendorOut)
async def update_vendor(vendor_id: int, vendor_update: VendorUpdate, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    vendor = storage.get_vendor(vendor_id)
    if not vendor:
        raise not_found("Vendor")
    return storage.update_vendor(vendor, vendor_update.model_dump(exclude_unset=True))


@router.delete("/vendors/{vendor_id}")
async def delete_vendor(vendor_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    vendor = storage.get_vendor(vendor_id)
    if not vendor:
        raise not_found("Vendor")
    storage.delete_vendor(vendor)
    return {"message": "Vendor deleted successfully"}

# Recipes


@router.get("/menu-ingredients/{menu_item_id}", response_model=List[MenuItemIngredientOut])
async def list_menu_item_ingredients(menu_item_id: int, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).get_menu_item_ingredients(menu_item_id)


@router.post("/menu-ingredients", response_model=MenuItemIngredientOut, status_code=status.HTTP_201_CREATED)
async def create_menu_item_ingredient(ingredient: MenuItemIngredientCreate, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    if not storage.get_menu_item(ingredient.menu_item_id):
        raise not_found("Menu item")
    if not storage.get_inventory_item(ingredient.inventory_item_id):
        raise not_found("Inventory item")
    return storage.create_menu_item_ingredient(ingredient.model_dump())


@router.patch("/menu-ingredients/{ingredient_id}", response_model=MenuItemIngredientOut)
async def update_menu_item_ingredient(
    ingredient_id: int,
    ingredient_update: MenuItemIngredientUpdate,
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    ingredient = storage.get_menu_item_ingredient(ingredient_id)
    if not ingredient:
        raise not_found("Ingredient")
    return storage.update_menu_item_ingredient(ingredient, ingredient_update.model_dump(exclude_unset=True))


@router.delete("/menu-ingredients/{ingredient_id}")
async def delete_menu_item_ingredient(ingredient_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    ingredient = storage.get_menu_item_ingredient(ingredient_id)
    if not ingredient:
        raise not_found("Ingredient")
    storage.delete_menu_item_ingredient(ingredient)
    return {"message": "Ingredient deleted successfully"}

# Ledger


@router.get("/inventory-transactions", response_model=List[InventoryTransactionOut])
async def list_inventory_transactions(
    inventory_item_id: Optional[int] = None,
    location: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Any:
    return CateringStorage(db).list_inventory_transactions(inventory_item_id, location)


@router.get("/inventory-transactions/order/{order_id}", response_model=List[InventoryTransactionOut])
async def list_order_transactions(order_id: int, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).get_inventory_transactions_by_order(order_id)


@router.post("/inventory-transactions", response_model=InventoryTransactionOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_transaction(
    transaction: InventoryTransactionCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
) -> Any:
    """Record a stock movement and apply it to the item"""
    service = InventoryService(CateringStorage(db))
    return service.apply_transaction({**transaction.model_dump(), "user_id": current_user.id})


@router.post("/order-consumption", response_model=OrderConsumptionResponse, status_code=status.HTTP_201_CREATED)
async def consume_inventory_for_order(
    request_data: OrderConsumptionRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
) -> Any:
    """Deduct recipe ingredients for every item of an order"""
    service = InventoryService(CateringStorage(db))
    transactions = service.consume_for_order(request_data.order_id, request_data.location, current_user)
    return {
        "message": f"Recorded {len(transactions)} inventory transaction(s)",
        "transactions": transactions,
    }

# Purchase orders


@router.get("/purchase-orders", response_model=List[PurchaseOrderOut])
async def list_purchase_orders(
    location: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Any:
    return CateringStorage(db).list_purchase_orders(location, status)


@router.get("/purchase-orders/{purchase_order_id}", response_model=PurchaseOrderOut)
async def get_purchase_order(purchase_order_id: int, db: Session = Depends(get_db)) -> Any:
    purchase_order = CateringStorage(db).get_purchase_order(purchase_order_id)
    if not purchase_order:
        raise not_found("Purchase order")
    return purchase_order


@router.post("/purchase-orders", response_model=PurchaseOrderOut, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    purchase_order: PurchaseOrderCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    if not storage.get_vendor(purchase_order.vendor_id):
        raise not_found("Vendor")
    data = purchase_order.model_dump()
    data["status"] = purchase_order.status.value
    return storage.create_purchase_order({**data, "user_id": current_user.id})


@router.patch("/purchase-orders/{purchase_order_id}", response_model=PurchaseOrderOut)
async def update_purchase_order(
    purchase_order_id: int,
    purchase_order_update: PurchaseOrderUpdate,
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    purchase_order = storage.get_purchase_order(purchase_order_id)
    if not purchase_order:
        raise not_found("Purchase order")
    fields = purchase_order_update.model_dump(exclude_unset=True)
    if fields.get("status") is not None:
        fields["status"] = fields["status"].value
    return storage.update_purchase_order(purchase_order, fields)


@router.delete("/purchase-orders/{purchase_order_id}")
async def delete_purchase_order(purchase_order_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    purchase_order = storage.get_purchase_order(purchase_order_id)
    if not purchase_order:
        raise not_found("Purchase order")
    storage.delete_purchase_order(purchase_order)
    return {"message": "Purchase order deleted successfully"}


@router.get("/purchase-orders/{purchase_order_id}/items", response_model=List[PurchaseOrderItemOut])
async def list_purchase_order_items(purchase_order_id: int, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).get_purchase_order_items(purchase_order_id)


@router.post("/purchase-order-items", response_model=PurchaseOrderItemOut, status_code=status.HTTP_201_CREATED)
async def create_purchase_order_item(item: PurchaseOrderItemCreate, db: Session = Depends(get_db)) -> Any:
    """Add a line; the order's total cost is recomputed in the same commit"""
    storage = CateringStorage(db)
    if not storage.get_purchase_order(item.purchase_order_id):
        raise not_found("Purchase order")
    if not storage.get_inventory_item(item.inventory_item_id):
        raise not_found("Inventory item")
    return storage.create_purchase_order_item(item.model_dump())


@router.patch("/purchase-order-items/{item_id}", response_model=PurchaseOrderItemOut)
async def update_purchase_order_item(
    item_id: int,
    item_update: PurchaseOrderItemUpdate,
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    item = storage.get_purchase_order_item(item_id)
    if not item:
        raise not_found("Purchase order item")
    return storage.update_purchase_order_item(item, item_update.model_dump(exclude_unset=True))


@router.delete("/purchase-order-items/{item_id}")
async def delete_purchase_order_item(item_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    item = storage.get_purchase_order_item(item_id)
    if not item:
        raise not_found("Purchase order item")
    storage.delete_purchase_order_item(item)
    return {"message": "Purchase order item deleted successfully"}
