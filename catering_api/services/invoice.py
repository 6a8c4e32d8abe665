"""
Invoice totals; VAT is applied on the invoice only, never on the stored order total
"""
from typing import Iterable, Optional
from catering_api.core.config import settings
from catering_api.models.order import InvoiceTotals, Order, OrderItem


def invoice_totals(order: Order, items: Iterable[OrderItem], vat_rate: Optional[float] = None) -> InvoiceTotals:
    rate = settings.VAT_RATE if vat_rate is None else vat_rate
    subtotal = sum(item.quantity * item.price for item in items)
    delivery_fee = order.delivery_fee or 0
    total_before_vat = subtotal + delivery_fee
    vat_amount = int(round(total_before_vat * rate))
    return InvoiceTotals(
        order_id=order.id,
        order_number=order.order_number,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total_before_vat=total_before_vat,
        vat_rate=rate,
        vat_amount=vat_amount,
        grand_total=total_before_vat + vat_amount,
        currency=settings.PAYMENT_CURRENCY.upper(),
    )
