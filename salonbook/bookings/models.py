"""
Modèles Pydantic pour la feature 'bookings'.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LineItem(BaseModel):
    service_id: str
    service_name: str = ""
    plan_name: str = ""
    category: str = ""
    duration: int = 0
    price: Decimal = Decimal("0")
    quantity: int = Field(default=1, ge=1)

    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class BookingRecord(BaseModel):
    id: str
    booking_number: Optional[str] = None
    customer_id: Optional[str] = None
    vendor_id: str = ""
    vendor_name: str = ""
    booking_date: str = ""
    booking_time: str = ""
    services: List[LineItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    booking_fee: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    remaining_amount: Decimal = Decimal("0")
    payment_status: str = ""
    payment_method: str = ""
    payment_reference: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def times(self) -> List[str]:
        return [t.strip() for t in self.booking_time.split(",") if t.strip()]


def line_items_from_cart(cart) -> List[LineItem]:
    return [
        LineItem(
            service_id=i.service_id,
            service_name=i.service_name,
            plan_name=i.plan_name,
            category=i.category,
            duration=i.duration,
            price=i.price,
            quantity=i.quantity,
        )
        for i in cart.items
    ]


def booking_from_row(row: Optional[Dict[str, Any]]) -> Optional[BookingRecord]:
    """
    Normalise une ligne 'bookings' (ou une réponse {booking: {...}}).
    - salon_id/salon_name sont exposés en vendor_id/vendor_name
    - all_booking_times prime sur booking_time si présent
    """
    if not row:
        return None
    data = row.get("booking") if isinstance(row.get("booking"), dict) else row
    if not data.get("id"):
        return None
    services = []
    for raw in data.get("services") or []:
        if isinstance(raw, dict) and (raw.get("service_id") or raw.get("serviceId")):
            services.append(LineItem(
                service_id=str(raw.get("service_id") or raw.get("serviceId")),
                service_name=raw.get("service_name") or raw.get("name") or "",
                plan_name=raw.get("plan_name") or "",
                category=raw.get("category") or "",
                duration=int(raw.get("duration") or 0),
                price=Decimal(str(raw.get("price") or 0)),
                quantity=int(raw.get("quantity") or 1),
            ))
    return BookingRecord(
        id=str(data["id"]),
        booking_number=str(data["booking_number"]) if data.get("booking_number") else None,
        customer_id=data.get("user_id"),
        vendor_id=str(data.get("salon_id") or data.get("vendor_id") or ""),
        vendor_name=data.get("salon_name") or data.get("vendor_name") or "",
        booking_date=str(data.get("booking_date") or ""),
        booking_time=data.get("all_booking_times") or data.get("booking_time") or "",
        services=services,
        total_amount=Decimal(str(data.get("total_amount") or 0)),
        booking_fee=Decimal(str(data.get("booking_fee") or 0)),
        tax=Decimal(str(data.get("tax_amount") or data.get("tax") or 0)),
        amount_paid=Decimal(str(data.get("amount_paid") or 0)),
        remaining_amount=Decimal(str(data.get("remaining_amount") or 0)),
        payment_status=data.get("payment_status") or "",
        payment_method=data.get("payment_method") or "",
        payment_reference=data.get("payment_reference"),
        created_at=data.get("created_at"),
    )
