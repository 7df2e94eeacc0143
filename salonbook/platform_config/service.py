"""
Configuration plateforme en lecture seule, partagée par le processus.
- Cache avec TTL (PLATFORM_CONFIG_TTL_SECONDS).
- Une valeur absente force une relecture avant de répondre: le pourcentage de
  frais n'est jamais remplacé par une valeur par défaut.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
import logging
import time

from salonbook.config import DEFAULT_ADVANCE_BOOKING_DAYS, PLATFORM_CONFIG_TTL_SECONDS
from . import repository

logger = logging.getLogger(__name__)

FEE_PERCENTAGE_KEY = "convenience_fee_percentage"
ADVANCE_DAYS_KEY = "max_booking_advance_days"

_cache: Dict[str, Any] = {}
_loaded_at: Optional[float] = None


def normalize_configs(payload: Any) -> Dict[str, Any]:
    """
    Accepte les lignes [{key, value}], un dict {configs: {...}} ou un dict plat.
    """
    if isinstance(payload, dict):
        configs = payload.get("configs") if isinstance(payload.get("configs"), dict) else payload
        return dict(configs)
    out: Dict[str, Any] = {}
    for row in payload or []:
        if isinstance(row, dict) and row.get("key"):
            out[str(row["key"])] = row.get("value")
    return out


def invalidate() -> None:
    global _loaded_at
    _cache.clear()
    _loaded_at = None


def _refresh() -> Dict[str, Any]:
    global _loaded_at
    configs = normalize_configs(repository.fetch_public_configs())
    _cache.clear()
    _cache.update(configs)
    _loaded_at = time.monotonic()
    logger.info("platform_config.refresh keys=%s", sorted(configs.keys()))
    return dict(_cache)


def get_public_configs(force: bool = False) -> Dict[str, Any]:
    expired = _loaded_at is None or (time.monotonic() - _loaded_at) > PLATFORM_CONFIG_TTL_SECONDS
    if force or expired:
        return _refresh()
    return dict(_cache)


def _get(key: str, refetch_if_absent: bool = False) -> Any:
    value = get_public_configs().get(key)
    if refetch_if_absent and value in (None, ""):
        # valeur absente du cache: relecture avant de conclure
        value = _refresh().get(key)
    return value


def get_fee_percentage() -> Optional[Decimal]:
    """Pourcentage de frais de réservation, ou None si non configuré/illisible."""
    raw = _get(FEE_PERCENTAGE_KEY, refetch_if_absent=True)
    if raw in (None, ""):
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        logger.error("platform_config.invalid %s=%r", FEE_PERCENTAGE_KEY, raw)
        return None


def get_advance_booking_window_days() -> int:
    raw = _get(ADVANCE_DAYS_KEY)
    try:
        days = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_ADVANCE_BOOKING_DAYS
    return days if days > 0 else DEFAULT_ADVANCE_BOOKING_DAYS


def prime(configs: Any) -> None:
    """Injecte des configs déjà connues (démarrage, tests)."""
    global _loaded_at
    _cache.clear()
    _cache.update(normalize_configs(configs))
    _loaded_at = time.monotonic()
