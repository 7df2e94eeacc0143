"""
Authentification des requêtes: jeton Supabase (Bearer ou cookie de session).
La gestion des identifiants (connexion, inscription) est hors de ce service.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, HTTPException, Request

import salonbook.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"


def _token_from_request(request: Request) -> Optional[str]:
    # Priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(COOKIE_NAME)


def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Normalise supabase.auth.get_user(access_token) en {id, email, metadata, token}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return {
        "id": user.get("id"),
        "email": user.get("email"),
        "metadata": user.get("user_metadata") or {},
        "token": access_token,
    }


def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = get_user_from_access_token(token)
    except Exception:
        logger.warning("utils.security.get_current_user token rejected", exc_info=True)
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return user


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user
