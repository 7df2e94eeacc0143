"""
Accès au catalogue (table 'services' + jointures salon/catégorie), lecture seule.
"""
from typing import Any, Dict, Optional
import logging

import salonbook.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

SERVICE_COLUMNS = "id, salon_id, name, price, duration_minutes, description, plan_name, salons(name), service_categories(name)"

def fetch_service(service_id: str) -> Optional[Dict[str, Any]]:
    """
    Récupère un service par id avec le nom du salon et de la catégorie.
    - Retourne None si introuvable ou en cas d'erreur.
    """
    if not service_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("services")
            .select(SERVICE_COLUMNS)
            .eq("id", service_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if isinstance(rows, list) and rows else None
    except Exception:
        logger.exception("catalog.repository.fetch_service failed service_id=%s", service_id)
        return None
