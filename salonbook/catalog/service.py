"""
Catalogue: normalise les services lus en base vers un modèle interne stable.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel

from salonbook.errors import CatalogError
from . import repository


class CatalogService(BaseModel):
    id: str
    vendor_id: str
    vendor_name: str = ""
    name: str
    price: Decimal
    duration_minutes: int = 0
    category_name: str = ""
    plan_name: str = ""
    description: str = ""


def _nested_name(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("name") or ""
    if isinstance(value, list) and value:
        return _nested_name(value[0])
    return value if isinstance(value, str) else ""


def service_from_row(row: Dict[str, Any]) -> CatalogService:
    """Accepte {service: {...}} ou la ligne brute; tolère les deux nommages des jointures."""
    data = row.get("service") if isinstance(row.get("service"), dict) else row
    return CatalogService(
        id=str(data.get("id")),
        vendor_id=str(data.get("salon_id") or data.get("vendor_id") or ""),
        vendor_name=_nested_name(data.get("salons")) or data.get("salon_name") or "",
        name=data.get("name") or data.get("service_name") or "",
        price=Decimal(str(data.get("price") or 0)),
        duration_minutes=int(data.get("duration_minutes") or data.get("duration") or 0),
        category_name=_nested_name(data.get("service_categories")) or data.get("category_name") or data.get("category") or "",
        plan_name=data.get("plan_name") or "",
        description=data.get("description") or "",
    )


def get_service(service_id: str) -> CatalogService:
    """Lève CatalogError si le service n'existe pas (ou n'a pas de salon)."""
    row: Optional[Dict[str, Any]] = repository.fetch_service(service_id)
    if not row:
        raise CatalogError(service_id=service_id)
    service = service_from_row(row)
    if not service.vendor_id:
        raise CatalogError("Service sans salon rattaché", service_id=service_id)
    return service
