"""
Cas d'usage 'cart': lecture/écriture du panier persistant d'un client.
- Chaque mutation est synchronisée en base via un abonné du CartAggregate.
- Un panier resté plein après une réservation (échec du vidage) est marqué
  « périmé » et vidé au prochain read_cart.
"""
from typing import Dict, Optional
import logging

from salonbook.errors import CartClearError, CartSyncError
from salonbook.catalog import service as catalog_service
from . import repository
from .models import CartAggregate, CartItem, cart_from_row

logger = logging.getLogger(__name__)

# customer_id -> référence de paiement de la réservation qui aurait dû vider le panier
_stale_carts: Dict[str, str] = {}


def mark_stale(customer_id: str, reference: Optional[str] = None) -> None:
    _stale_carts[customer_id] = reference or ""
    logger.warning("cart.stale flagged customer=%s reference=%s", customer_id, reference)


def is_stale(customer_id: str) -> bool:
    return customer_id in _stale_carts


def _cleanup_stale(customer_id: str) -> bool:
    """Vidage best-effort d'un panier périmé; True si le panier est désormais vide."""
    reference = _stale_carts.get(customer_id)
    if repository.delete_cart_row(customer_id):
        _stale_carts.pop(customer_id, None)
        logger.info("cart.stale cleaned customer=%s reference=%s", customer_id, reference)
        return True
    logger.warning("cart.stale cleanup failed again customer=%s reference=%s", customer_id, reference)
    return False


def read_cart(customer_id: str) -> CartAggregate:
    """
    Retourne le panier du client (totaux recalculés depuis les lignes).
    - Si le panier est marqué périmé, tente d'abord de le vider.
    - Lecture en erreur -> CartSyncError (jamais un panier vide par défaut)
    """
    if is_stale(customer_id) and _cleanup_stale(customer_id):
        return CartAggregate()
    try:
        row = repository.fetch_cart_row(customer_id, strict=True)
    except Exception as e:
        raise CartSyncError("Impossible de lire le panier, réessayez", customer_id=customer_id) from e
    return cart_from_row(row)


def save_cart(customer_id: str, cart: CartAggregate) -> None:
    """Un panier vide supprime la ligne; sinon upsert. Lève CartSyncError en cas d'échec."""
    ok = repository.delete_cart_row(customer_id) if cart.is_empty() else repository.upsert_cart_row(customer_id, cart.to_row())
    if not ok:
        raise CartSyncError(customer_id=customer_id)


def clear_cart(customer_id: str) -> None:
    """Vide le panier persistant; lève CartClearError en cas d'échec."""
    if not repository.delete_cart_row(customer_id):
        raise CartClearError(customer_id=customer_id)
    _stale_carts.pop(customer_id, None)


def open_cart(customer_id: str) -> CartAggregate:
    """Panier synchronisé: chaque mutation est enregistrée immédiatement."""
    cart = read_cart(customer_id)
    cart.subscribe(lambda event, c: save_cart(customer_id, c))
    return cart


def add_service(customer_id: str, service_id: str) -> CartAggregate:
    """
    Ajoute un service du catalogue au panier.
    - CatalogError si le service n'existe pas
    - VendorMismatchError / ItemAlreadyInCartError selon les règles du panier
    """
    service = catalog_service.get_service(service_id)
    cart = open_cart(customer_id)
    cart.add_item(CartItem(
        vendor_id=service.vendor_id,
        vendor_name=service.vendor_name,
        service_id=service.id,
        service_name=service.name,
        plan_name=service.plan_name,
        category=service.category_name,
        duration=service.duration_minutes,
        price=service.price,
        description=service.description,
    ))
    logger.info("cart.add customer=%s service=%s vendor=%s", customer_id, service.id, service.vendor_id)
    return cart


def increment(customer_id: str, item_id: str) -> CartAggregate:
    cart = open_cart(customer_id)
    cart.increment_quantity(item_id)
    return cart


def decrement(customer_id: str, item_id: str) -> CartAggregate:
    cart = open_cart(customer_id)
    cart.decrement_quantity(item_id)
    return cart


def remove(customer_id: str, item_id: str) -> CartAggregate:
    cart = open_cart(customer_id)
    cart.remove_item(item_id)
    return cart


def empty(customer_id: str) -> CartAggregate:
    cart = open_cart(customer_id)
    cart.clear()
    return cart
