"""
Cas d'usage 'bookings'.
- Une référence de paiement ne produit qu'une seule réservation (create-or-fetch),
  ce qui rend les nouvelles tentatives sûres.
"""
from typing import List, Optional
import logging

from salonbook.errors import BookingCreationError
from salonbook.checkout.pricing import PricingBreakdown, money
from salonbook.checkout.slots import SlotSelection
from . import repository
from .models import BookingRecord, LineItem, booking_from_row, line_items_from_cart

logger = logging.getLogger(__name__)

PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_METHOD_ONLINE = "online"


def build_payload(
    customer_id: str,
    payment_reference: str,
    slot: SlotSelection,
    line_items: List[LineItem],
    pricing: PricingBreakdown,
    vendor_id: str,
    vendor_name: str = "",
) -> dict:
    """Ligne 'bookings' telle qu'insérée (montants en unités monétaires)."""
    return {
        "user_id": customer_id,
        "salon_id": vendor_id,
        "salon_name": vendor_name,
        "booking_date": slot.date,
        "booking_time": slot.combined_label(),
        "services": [li.model_dump(mode="json") for li in line_items],
        "total_amount": money(pricing.service_total),
        "booking_fee": money(pricing.booking_fee),
        "tax_amount": money(pricing.tax),
        "amount_paid": money(pricing.pay_now),
        "remaining_amount": money(pricing.pay_at_venue),
        "payment_status": PAYMENT_STATUS_PARTIAL,
        "payment_method": PAYMENT_METHOD_ONLINE,
        "payment_reference": payment_reference,
    }


def get_booking_by_reference(payment_reference: str, strict: bool = False) -> Optional[BookingRecord]:
    return booking_from_row(repository.fetch_booking_by_reference(payment_reference, strict=strict))


def create_booking(
    customer_id: str,
    payment_reference: str,
    slot: SlotSelection,
    line_items: List[LineItem],
    pricing: PricingBreakdown,
    vendor_id: str,
    vendor_name: str = "",
) -> BookingRecord:
    """
    Crée (ou retrouve) la réservation associée à payment_reference.
    - Lecture préalable: une tentative précédente a pu réussir côté base
    - En cas d'échec d'insertion, relecture (insert concurrent, conflit d'unicité)
    - Une lecture en erreur est propagée: elle ne vaut jamais « aucune réservation »
    - Rien de lisible -> BookingCreationError(support_reference=payment_reference)
    """
    if not payment_reference:
        raise BookingCreationError("Référence de paiement manquante")
    existing = get_booking_by_reference(payment_reference, strict=True)
    if existing:
        logger.info("bookings.create reused booking=%s reference=%s", existing.id, payment_reference)
        return existing

    payload = build_payload(customer_id, payment_reference, slot, line_items, pricing, vendor_id, vendor_name)
    booking = booking_from_row(repository.insert_booking(payload)) or get_booking_by_reference(payment_reference, strict=True)
    if booking is None:
        raise BookingCreationError(support_reference=payment_reference)
    logger.info("bookings.create booking=%s customer=%s reference=%s", booking.id, customer_id, payment_reference)
    return booking
