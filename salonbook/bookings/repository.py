"""
Accès aux données pour la feature 'bookings' (table 'bookings', client service-role).
"""
from typing import Any, Dict, Optional
import logging

import salonbook.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module salonbook.bookings.repository
def fetch_booking_by_reference(payment_reference: str, strict: bool = False) -> Optional[Dict[str, Any]]:
    """
    Retourne la réservation liée à une référence de paiement, ou None.
    - strict=False: None aussi en cas d'erreur (journalisée)
    - strict=True: l'erreur est propagée (None signifie alors « aucune ligne »)
    """
    if not payment_reference:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select("*")
            .eq("payment_reference", payment_reference)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if isinstance(rows, list) and rows else None
    except Exception:
        logger.exception("bookings.repository.fetch_booking_by_reference failed reference=%s", payment_reference)
        if strict:
            raise
        return None

def insert_booking(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Insert via service-role; retourne la ligne créée ou None."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .insert(payload)
            .execute()
        )
        rows = res.data or []
        return rows[0] if isinstance(rows, list) and rows else None
    except Exception:
        logger.exception(
            "bookings.repository.insert_booking failed user_id=%s reference=%s",
            payload.get("user_id"), payload.get("payment_reference"),
        )
        return None
