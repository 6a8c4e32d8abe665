"""
Orders API router
"""
import json
from typing import Any, List, Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user, get_optional_user, require_admin, require_staff
from catering_api.models.user import User
from catering_api.models.order import (
    AnnotationCreate, AnnotationOut, AnnotationUpdate, InvoiceTotals, Order, OrderCreate,
    OrderDetail, OrderItemCreate, OrderItemOut, OrderOut, OrderStatus, OrderStatusUpdate,
    OrderUpdate, PaymentStatus, StatusChangeResponse, StatusHistoryResponse, ORDER_STATUS_LABELS, ORDER_STATUS_STEPS,
)
from catering_api.services.invoice import invoice_totals
from catering_api.services.orders import OrderService, can_view_order
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
) -> OrderService:
    registry = getattr(request.app.state, "connections", None)
    return OrderService(CateringStorage(db), background_tasks, registry)


def get_order_or_404(storage: CateringStorage, order_id: int) -> Order:
    order = storage.get_order(order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    return order


def get_visible_order(storage: CateringStorage, order_id: int, current_user: User) -> Order:
    order = get_order_or_404(storage, order_id)
    if not can_view_order(order, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this order"
        )
    return order


@router.post("", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: OrderService = Depends(get_order_service)
) -> Any:
    """Submit a catering order; guests are accepted"""
    return service.create_order(order_data, current_user)


@router.get("", response_model=List[OrderOut])
async def list_orders(
    status: Optional[OrderStatus] = None,
    kitchen: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Staff see every order; clients only their own"""
    storage = CateringStorage(db)
    status_value = status.value if status else None
    if current_user.is_staff:
        return storage.list_orders(status=status_value, kitchen=kitchen)
    return storage.list_orders(status=status_value, user_id=current_user.id)


@router.get("/status-steps")
async def get_status_steps() -> Any:
    """Advisory display order of statuses with their labels"""
    return [
        {"status": step.value, "label": ORDER_STATUS_LABELS[step]}
        for step in ORDER_STATUS_STEPS
    ]


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    return get_visible_order(CateringStorage(db), order_id, current_user)


@router.patch("/{order_id}", response_model=OrderDetail)
async def update_order(
    order_id: int,
    order_update: OrderUpdate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
) -> Any:
    order = get_order_or_404(service.storage, order_id)
    return service.update_order(order, order_update, current_user)


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    current_user: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
) -> Any:
    """Hard delete for administrative cleanup"""
    order = get_order_or_404(service.storage, order_id)
    service.delete_order(order, current_user)
    return {"message": "Order deleted successfully"}


@router.post("/{order_id}/cancel", response_model=OrderDetail)
async def cancel_order(
    order_id: int,
    notes: Optional[str] = Body(default=None, embed=True),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
) -> Any:
    order = get_order_or_404(service.storage, order_id)
    return service.cancel_order(order, current_user, notes)

# Items


@router.get("/{order_id}/items", response_model=List[OrderItemOut])
async def get_order_items(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    get_visible_order(storage, order_id, current_user)
    return storage.get_order_items(order_id)


@router.post("/{order_id}/items", response_model=OrderItemOut, status_code=status.HTTP_201_CREATED)
async def add_order_item(
    order_id: int,
    item: OrderItemCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
) -> Any:
    order = get_order_or_404(service.storage, order_id)
    return service.add_item(order, item, current_user)


@router.put("/{order_id}/items", response_model=List[OrderItemOut])
async def replace_order_items(
    order_id: int,
    items: List[OrderItemCreate],
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
) -> Any:
    order = get_order_or_404(service.storage, order_id)
    return service.replace_items(order, items, current_user)

# Status


@router.post("/{order_id}/status", response_model=StatusChangeResponse)
async def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    current_user: User = Depends(require_staff),
    service: OrderService = Depends(get_order_service)
) -> Any:
    """Explicit status transition for admin and kitchen staff"""
    order = get_order_or_404(service.storage, order_id)
    order = service.change_status(order, status_update.status, status_update.notes, current_user)
    return {
        "current_status": order.status,
        "status_history": service.storage.get_status_history(order.id),
        "message": f"Order status updated to {ORDER_STATUS_LABELS[OrderStatus(order.status)]}",
    }


@router.get("/{order_id}/status-history", response_model=StatusHistoryResponse)
async def get_status_history(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    order = get_visible_order(storage, order_id, current_user)
    return {
        "current_status": order.status,
        "status_history": storage.get_status_history(order.id),
    }

# Billing


@router.get("/{order_id}/invoice", response_model=InvoiceTotals)
async def get_invoice(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Invoice breakdown with VAT on top of the order total"""
    storage = CateringStorage(db)
    order = get_visible_order(storage, order_id, current_user)
    return invoice_totals(order, storage.get_order_items(order.id))


@router.post("/{order_id}/mark-paid", response_model=OrderOut)
async def mark_order_paid(
    order_id: int,
    payment_method: str = Body(default="manual", embed=True, alias="paymentMethod"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Any:
    """Record an offline payment"""
    storage = CateringStorage(db)
    order = get_order_or_404(storage, order_id)
    order = storage.update_order(order, {
        "payment_status": PaymentStatus.PAID.value,
        "payment_method": payment_method,
    })
    storage.create_activity_log({
        "user_id": current_user.id,
        "order_id": order.id,
        "action": "payment",
        "details": json.dumps({"orderNumber": order.order_number, "method": payment_method}),
        "resource_id": order.id,
        "resource_type": "order",
    })
    return order

# Annotations


@router.get("/{order_id}/annotations", response_model=List[AnnotationOut])
async def list_annotations(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Internal annotations are hidden from clients"""
    storage = CateringStorage(db)
    get_visible_order(storage, order_id, current_user)
    return storage.list_annotations(order_id, include_internal=current_user.is_staff)


@router.post("/{order_id}/annotations", response_model=AnnotationOut, status_code=status.HTTP_201_CREATED)
async def create_annotation(
    order_id: int,
    annotation: AnnotationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    get_visible_order(storage, order_id, current_user)
    if annotation.is_internal and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can add internal notes"
        )
    return storage.create_annotation({
        **annotation.model_dump(),
        "order_id": order_id,
        "user_id": current_user.id,
    })


def get_own_annotation(storage: CateringStorage, order_id: int, annotation_id: int, current_user: User):
    annotation = storage.get_annotation(annotation_id)
    if not annotation or annotation.order_id != order_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Annotation not found"
        )
    if annotation.user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only change your own annotations"
        )
    return annotation


@router.patch("/{order_id}/annotations/{annotation_id}", response_model=AnnotationOut)
async def update_annotation(
    order_id: int,
    annotation_id: int,
    annotation_update: AnnotationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    annotation = get_own_annotation(storage, order_id, annotation_id, current_user)
    fields = annotation_update.model_dump(exclude_unset=True)
    if fields.get("is_internal") and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can add internal notes"
        )
    return storage.update_annotation(annotation, fields)


@router.delete("/{order_id}/annotations/{annotation_id}")
async def delete_annotation(
    order_id: int,
    annotation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    annotation = get_own_annotation(storage, order_id, annotation_id, current_user)
    storage.delete_annotation(annotation)
    return {"message": "Annotation deleted successfully"}
