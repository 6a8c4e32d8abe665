"""
Payments API router (Stripe)
"""
import json
import logging
from typing import Any
from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user
from catering_api.models.order import PaymentStatus
from catering_api.models.user import User
from catering_api.services.orders import can_view_order
from catering_api.services.payment_service import PaymentError, payment_service
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def require_payments_enabled():
    if not payment_service.enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured"
        )


@router.get("/config")
async def get_payment_config() -> Any:
    return {"enabled": payment_service.enabled, "publicKey": payment_service.stripe_public_key}


@router.post("/create-payment-intent", dependencies=[Depends(require_payments_enabled)])
async def create_payment_intent(
    order_id: int = Body(..., embed=True, alias="orderId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Start a card payment for the order's full total"""
    storage = CateringStorage(db)
    order = storage.get_order(order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    if not can_view_order(order, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this order"
        )
    if order.payment_status == PaymentStatus.PAID.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order is already paid"
        )

    try:
        intent = payment_service.create_payment_intent(order.total_price, order.id, order.order_number)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    storage.update_order(order, {
        "payment_intent_id": intent["paymentIntentId"],
        "payment_method": "card",
    })
    return intent


@router.get("/status/{payment_intent_id}", dependencies=[Depends(require_payments_enabled)])
async def get_payment_status(
    payment_intent_id: str,
    current_user: User = Depends(get_current_user)
) -> Any:
    try:
        return payment_service.get_payment_status(payment_intent_id)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)) -> Any:
    """Stripe event receiver; the signature header is mandatory"""
    payload = await request.body()
    try:
        event = payment_service.parse_webhook(payload, request.headers.get("stripe-signature"))
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    event_type = event["type"]
    intent = event["data"]["object"]
    handled = {
        "payment_intent.succeeded": PaymentStatus.PAID.value,
        "payment_intent.payment_failed": PaymentStatus.FAILED.value,
    }
    if event_type not in handled:
        logger.info(f"Ignoring Stripe event {event_type}")
        return {"received": True}

    order_id = (intent.get("metadata") or {}).get("order_id")
    storage = CateringStorage(db)
    order = storage.get_order(int(order_id)) if order_id and str(order_id).isdigit() else None
    if order is None:
        logger.warning(f"Stripe event {event_type} for unknown order {order_id}")
        return {"received": True}

    storage.update_order(order, {
        "payment_status": handled[event_type],
        "payment_intent_id": intent.get("id"),
    })
    storage.create_activity_log({
        "order_id": order.id,
        "action": "payment",
        "details": json.dumps({"event": event_type, "paymentIntentId": intent.get("id")}),
        "resource_id": order.id,
        "resource_type": "order",
    })
    logger.info(f"Order {order.order_number} payment status set to {handled[event_type]}")
    return {"received": True}
