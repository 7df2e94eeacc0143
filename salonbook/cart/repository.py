"""
Accès aux données 'user_carts' (un panier par client).
- Les erreurs sont journalisées; les écritures retournent un booléen de succès.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

import salonbook.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module salonbook.cart.repository
def fetch_cart_row(customer_id: str, strict: bool = False) -> Optional[Dict[str, Any]]:
    """
    Lit la ligne panier du client.
    - Retourne None si aucun panier
    - En cas d'erreur: None, ou l'exception si strict=True
    """
    if not customer_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_carts")
            .select("*")
            .eq("user_id", customer_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if isinstance(rows, list) and rows else None
    except Exception:
        logger.exception("cart.repository.fetch_cart_row failed customer_id=%s", customer_id)
        if strict:
            raise
        return None

def upsert_cart_row(customer_id: str, row: Dict[str, Any]) -> bool:
    """Upsert sur user_id (contrainte unique côté base)."""
    try:
        payload = {**row, "user_id": customer_id, "updated_at": datetime.now(timezone.utc).isoformat()}
        (
            supabase_client.get_service_supabase()
            .table("user_carts")
            .upsert(payload, on_conflict="user_id")
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.upsert_cart_row failed customer_id=%s", customer_id)
        return False

def delete_cart_row(customer_id: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("user_carts")
            .delete()
            .eq("user_id", customer_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.delete_cart_row failed customer_id=%s", customer_id)
        return False
