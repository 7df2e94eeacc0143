# module salonbook.cart.models
"""
Panier en mémoire d'un client.
- Invariant mono-salon: toutes les lignes partagent le même vendor_id.
- Totaux toujours recalculés depuis les lignes (aucune copie mutable).
- Chaque mutation notifie les abonnés (synchronisation, recalcul des prix).
"""
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4
import logging

from pydantic import BaseModel, Field

from salonbook.errors import ItemAlreadyInCartError, ItemNotFoundError, VendorMismatchError

logger = logging.getLogger(__name__)

CartListener = Callable[[str, "CartAggregate"], None]

ITEM_ADDED = "item_added"
QUANTITY_CHANGED = "quantity_changed"
ITEM_REMOVED = "item_removed"
CLEARED = "cleared"


class CartItem(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    vendor_id: str
    vendor_name: str = ""
    service_id: str
    service_name: str = ""
    plan_name: str = ""
    category: str = ""
    duration: int = Field(default=0, ge=0)
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    description: str = ""

    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class CartAggregate:
    def __init__(self, items: Optional[List[CartItem]] = None):
        self._items: List[CartItem] = list(items or [])
        self._listeners: List[CartListener] = []

    # --- lectures dérivées ---

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    @property
    def vendor_id(self) -> Optional[str]:
        return self._items[0].vendor_id if self._items else None

    @property
    def vendor_name(self) -> Optional[str]:
        return self._items[0].vendor_name if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def total_amount(self) -> Decimal:
        return sum((item.subtotal() for item in self._items), Decimal("0"))

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def get(self, item_id: str) -> Optional[CartItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def contains_service(self, service_id: str) -> bool:
        return any(i.service_id == service_id for i in self._items)

    # --- mutations ---

    def add_item(self, item: CartItem) -> CartItem:
        """
        Ajoute une ligne.
        - VendorMismatchError si le panier contient un autre salon (panier inchangé)
        - ItemAlreadyInCartError si le service est déjà présent (pas de fusion)
        """
        if self._items and item.vendor_id != self.vendor_id:
            raise VendorMismatchError(current_vendor=self.vendor_name or self.vendor_id)
        if self.contains_service(item.service_id):
            raise ItemAlreadyInCartError(service_id=item.service_id)
        self._items.append(item)
        self._notify(ITEM_ADDED)
        return item

    def increment_quantity(self, item_id: str) -> CartItem:
        item = self._require(item_id)
        updated = item.model_copy(update={"quantity": item.quantity + 1})
        self._replace(updated)
        self._notify(QUANTITY_CHANGED)
        return updated

    def decrement_quantity(self, item_id: str) -> Optional[CartItem]:
        """Quantité 1 -> la ligne est retirée (retourne None)."""
        item = self._require(item_id)
        if item.quantity <= 1:
            self._items = [i for i in self._items if i.id != item_id]
            self._notify(ITEM_REMOVED)
            return None
        updated = item.model_copy(update={"quantity": item.quantity - 1})
        self._replace(updated)
        self._notify(QUANTITY_CHANGED)
        return updated

    def remove_item(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        if len(self._items) != before:
            self._notify(ITEM_REMOVED)

    def clear(self) -> None:
        self._items = []
        self._notify(CLEARED)

    # --- abonnements ---

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def snapshot(self) -> "CartAggregate":
        return CartAggregate([i.model_copy() for i in self._items])

    def to_row(self) -> Dict[str, Any]:
        """Forme persistée (table user_carts); totaux recopiés pour lecture humaine uniquement."""
        return {
            "salon_id": self.vendor_id,
            "salon_name": self.vendor_name,
            "items": [i.model_dump(mode="json") for i in self._items],
            "total_amount": float(self.total_amount()),
            "item_count": self.item_count(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "items": [i.model_dump(mode="json") for i in self._items],
            "total_amount": float(self.total_amount()),
            "item_count": self.item_count(),
        }

    # --- interne ---

    def _require(self, item_id: str) -> CartItem:
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id=item_id)
        return item

    def _replace(self, updated: CartItem) -> None:
        self._items = [updated if i.id == updated.id else i for i in self._items]

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)


# Les lignes persistées proviennent de plusieurs clients (front camelCase, API snake_case)
_ITEM_KEYS = {
    "vendor_id": ("vendor_id", "salon_id", "salonId", "vendorId"),
    "vendor_name": ("vendor_name", "salon_name", "salonName", "vendorName"),
    "service_id": ("service_id", "serviceId"),
    "service_name": ("service_name", "serviceName", "name"),
    "plan_name": ("plan_name", "planName"),
    "category": ("category", "category_name", "categoryName"),
    "duration": ("duration", "duration_minutes", "durationMinutes"),
    "price": ("price", "unit_price"),
    "quantity": ("quantity", "qty"),
    "description": ("description",),
}


def _first(raw: Dict[str, Any], keys) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw.get(k)
    return None


def item_from_raw(raw: Dict[str, Any], vendor_id: Optional[str] = None, vendor_name: Optional[str] = None) -> CartItem:
    data: Dict[str, Any] = {k: _first(raw, keys) for k, keys in _ITEM_KEYS.items()}
    data["vendor_id"] = str(data.get("vendor_id") or vendor_id or "")
    data["vendor_name"] = data.get("vendor_name") or vendor_name or ""
    data["service_id"] = str(data.get("service_id") or "")
    data = {k: v for k, v in data.items() if v is not None}
    if raw.get("id") is not None:
        data["id"] = str(raw["id"])
    return CartItem(**data)


def cart_from_row(row: Optional[Dict[str, Any]]) -> CartAggregate:
    """
    Normalise une ligne user_carts (ou une réponse API {cart: {...}}) en CartAggregate.
    - Les totaux stockés sont ignorés: ils sont recalculés depuis les lignes.
    - Les lignes illisibles sont ignorées (journalisées).
    """
    if not row:
        return CartAggregate()
    data = row.get("cart") if isinstance(row.get("cart"), dict) else row
    vendor_id = data.get("salon_id") or data.get("salonId") or data.get("vendor_id")
    vendor_name = data.get("salon_name") or data.get("salonName") or data.get("vendor_name")
    items: List[CartItem] = []
    for raw in data.get("items") or []:
        try:
            items.append(item_from_raw(raw, vendor_id=vendor_id, vendor_name=vendor_name))
        except Exception:
            logger.exception("cart.models.cart_from_row skipped item=%s", raw)
    if items:
        kept = [i for i in items if i.vendor_id == items[0].vendor_id]
        if len(kept) != len(items):
            logger.warning("cart.models.cart_from_row dropped %s items from other vendors", len(items) - len(kept))
        items = kept
    return CartAggregate(items)
