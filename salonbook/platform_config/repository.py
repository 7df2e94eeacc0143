"""
Lecture des configurations publiques de la plateforme (table 'system_configs').
"""
from typing import Any, Dict, List
import logging

import salonbook.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def fetch_public_configs() -> List[Dict[str, Any]]:
    """
    Retourne les lignes {key, value} publiques.
    - [] en cas d'erreur (le service décide alors de bloquer le paiement).
    """
    try:
        res = (
            supabase_client.get_supabase()
            .table("system_configs")
            .select("key, value")
            .eq("is_public", True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("platform_config.repository.fetch_public_configs failed")
        return []
