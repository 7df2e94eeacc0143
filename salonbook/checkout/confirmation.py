"""
Vue-modèle de la page de confirmation (lecture seule).
Sans réservation à afficher: MissingContextError avec redirection vers l'accueil.
"""
from typing import Any, Dict, Optional

from salonbook.config import HOME_PATH
from salonbook.errors import MissingContextError
from salonbook.bookings.models import BookingRecord
from .pricing import money


def render_confirmation(booking: Optional[BookingRecord]) -> Dict[str, Any]:
    if booking is None:
        raise MissingContextError(redirect_to=HOME_PATH)
    return {
        "booking_id": booking.id,
        "booking_number": booking.booking_number or booking.id[:8],
        "vendor_id": booking.vendor_id,
        "vendor_name": booking.vendor_name,
        "date": booking.booking_date,
        "times": booking.times,
        "time_label": booking.booking_time,
        "services": [
            {
                "service_name": s.service_name,
                "plan_name": s.plan_name,
                "quantity": s.quantity,
                "subtotal": money(s.subtotal()),
            }
            for s in booking.services
        ],
        "amount_paid": money(booking.amount_paid),
        "remaining_amount": money(booking.remaining_amount),
        "payment_status": booking.payment_status,
        "status": "confirmed",
    }
