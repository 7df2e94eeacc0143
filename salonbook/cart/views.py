# module salonbook.cart.views

"""Endpoints du panier persistant (un panier par client, un seul salon à la fois).
- GET /: panier courant avec totaux recalculés
- POST /items: ajoute un service du catalogue
- POST /items/{item_id}/increment | /decrement, DELETE /items/{item_id}: modifie une ligne
- DELETE /: vide le panier
Les erreurs métier (CheckoutError) sont converties par le handler d'exceptions de l'app.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from salonbook.utils.security import require_user
from salonbook.utils.rate_limit import optional_rate_limit
from salonbook.cart import service as cart_service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])
_mutation_limit = [Depends(optional_rate_limit(times=60, seconds=60))]


class AddItemPayload(BaseModel):
    service_id: str


def _cart_response(cart) -> Dict[str, Any]:
    return {"cart": cart.to_dict()}


@router.get("")
def get_cart(user: dict = Depends(require_user)):
    return _cart_response(cart_service.read_cart(user["id"]))


@router.post("/items", dependencies=_mutation_limit)
def add_item(payload: AddItemPayload, user: dict = Depends(require_user)):
    """Ajoute un service; 409 si un autre salon est déjà dans le panier ou si le service y est déjà."""
    return _cart_response(cart_service.add_service(user["id"], payload.service_id))


@router.post("/items/{item_id}/increment", dependencies=_mutation_limit)
def increment_item(item_id: str, user: dict = Depends(require_user)):
    return _cart_response(cart_service.increment(user["id"], item_id))


@router.post("/items/{item_id}/decrement", dependencies=_mutation_limit)
def decrement_item(item_id: str, user: dict = Depends(require_user)):
    return _cart_response(cart_service.decrement(user["id"], item_id))


@router.delete("/items/{item_id}", dependencies=_mutation_limit)
def remove_item(item_id: str, user: dict = Depends(require_user)):
    return _cart_response(cart_service.remove(user["id"], item_id))


@router.delete("", dependencies=_mutation_limit)
def empty_cart(user: dict = Depends(require_user)):
    return _cart_response(cart_service.empty(user["id"]))
