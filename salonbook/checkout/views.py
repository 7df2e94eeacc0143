# module salonbook.checkout.views

"""Endpoints du checkout (sélection de créneaux, paiement des frais, confirmation).
- GET /slots, GET /config: données d'affichage (dates, horaires, frais)
- POST /pricing: aperçu des montants pour le panier courant
- POST /start: valide date/horaires, calcule les montants et crée l'ordre de paiement
- POST /confirm: vérifie le paiement puis crée la réservation et vide le panier
- POST /cancel: fermeture de la fenêtre de paiement
- GET /session, GET /confirmation: état courant et récapitulatif de réservation
Sécurité:
- require_user sur toutes les routes, optional_rate_limit sur les mutations.
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from salonbook.config import CURRENCY, FEE_MODE, MAX_SELECTED_TIMES, TAX_RATE_PERCENT
from salonbook.errors import InvalidTransitionError, ValidationError
from salonbook.utils.security import require_user
from salonbook.utils.rate_limit import optional_rate_limit
from salonbook.cart import service as cart_service
from salonbook.platform_config import service as config_service
from salonbook.bookings import service as booking_service
from salonbook import payments
from .confirmation import render_confirmation
from .orchestrator import CheckoutOrchestrator
from .pricing import breakdown_for_cart, money
from .session import CheckoutSession, CheckoutState, PaymentOutcome, SessionStore
from .slots import SlotSelection, generate_dates, generate_time_slots

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])
_mutation_limit = [Depends(optional_rate_limit(times=10, seconds=60))]

sessions = SessionStore()


class StartPayload(BaseModel):
    date: Optional[str] = None
    times: List[str] = Field(default_factory=list)


class ConfirmPayload(BaseModel):
    payment_intent_id: Optional[str] = None
    error: Optional[str] = None


def build_orchestrator(session: CheckoutSession, gateway=None) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        session,
        cart_service=cart_service,
        config_service=config_service,
        gateway=gateway or payments.get_gateway(),
        booking_service=booking_service,
    )


def _require_session(customer_id: str) -> CheckoutSession:
    session = sessions.get(customer_id)
    if session is None:
        raise InvalidTransitionError("Aucun paiement en cours", current_state=CheckoutState.IDLE.value)
    return session


@router.get("/slots")
def get_slots(user: dict = Depends(require_user)):
    window_days = config_service.get_advance_booking_window_days()
    return {
        "dates": [d.model_dump() for d in generate_dates(window_days)],
        "times": generate_time_slots(),
        "max_times": MAX_SELECTED_TIMES,
    }


@router.get("/config")
def get_checkout_config(user: dict = Depends(require_user)):
    """Frais affichés au client; fee_percentage null ou nul => paiement indisponible."""
    fee = config_service.get_fee_percentage()
    return {
        "fee_percentage": money(fee) if fee is not None else None,
        "payments_available": fee is not None and fee > 0,
        "advance_booking_days": config_service.get_advance_booking_window_days(),
        "tax_rate": TAX_RATE_PERCENT,
        "fee_mode": FEE_MODE,
        "currency": CURRENCY,
        "max_times": MAX_SELECTED_TIMES,
    }


@router.post("/pricing")
def preview_pricing(user: dict = Depends(require_user)):
    cart = cart_service.read_cart(user["id"])
    if cart.is_empty():
        raise ValidationError("Votre panier est vide")
    return {"pricing": breakdown_for_cart(cart, config_service.get_fee_percentage()).as_dict()}


@router.post("/start", dependencies=_mutation_limit)
async def start_checkout(payload: StartPayload, user: dict = Depends(require_user)):
    """Ouvre une session (remplace une tentative en cours), valide la sélection et crée l'ordre de paiement.
    Retour: {session, order, pricing}; order.provider_key est transmis au SDK de paiement.
    """
    gateway = payments.get_gateway()
    session = await run_in_threadpool(sessions.open, user["id"], gateway.cancel_order)
    orchestrator = build_orchestrator(session, gateway)
    await orchestrator.start(SlotSelection(date=payload.date, times=payload.times))
    order = await orchestrator.initiate_payment()
    return {
        "session": session.to_dict(),
        "order": order.model_dump(),
        "pricing": session.pricing.as_dict(),
    }


@router.post("/confirm", dependencies=_mutation_limit)
async def confirm_checkout(payload: ConfirmPayload, user: dict = Depends(require_user)):
    """Retour du SDK de paiement: succès ({payment_intent_id}) ou erreur ({error}).
    Idempotent: une session déjà COMPLETED renvoie la même réservation.
    """
    session = _require_session(user["id"])
    if payload.error:
        outcome = PaymentOutcome.error(payload.error)
    else:
        outcome = PaymentOutcome.success({"payment_intent_id": payload.payment_intent_id})
    booking = await build_orchestrator(session).resolve_payment(outcome)
    return {
        "session": session.to_dict(),
        "booking": render_confirmation(booking),
        "cart_stale": session.cart_stale,
    }


@router.post("/cancel", dependencies=_mutation_limit)
async def cancel_checkout(user: dict = Depends(require_user)):
    session = _require_session(user["id"])
    if session.state in (CheckoutState.IDLE, CheckoutState.SLOT_PENDING):
        sessions.discard(user["id"])
        return {"session": None}
    await build_orchestrator(session).cancel()
    return {"session": session.to_dict()}


@router.get("/session")
def get_session(user: dict = Depends(require_user)):
    session = sessions.get(user["id"])
    return {"session": session.to_dict() if session else None}


@router.get("/confirmation")
def get_confirmation(user: dict = Depends(require_user)):
    """Récapitulatif de la dernière réservation; sans réservation: 404 JSON ou redirection vers l'accueil."""
    session = sessions.get(user["id"])
    booking = session.booking if session and session.state == CheckoutState.COMPLETED else None
    return render_confirmation(booking)


@router.post("/webhook/stripe", include_in_schema=False)
async def webhook_stripe(request: Request):
    """Signal de rapprochement: un paiement réussi sans réservation est journalisé pour le support.
    - parse_event: valide la signature Stripe.
    - Réponse {"status": "ok"} même sans action.
    """
    try:
        event = await payments.parse_event(request)
    except Exception:
        logger.exception("checkout.webhook_stripe invalid payload")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    if event["type"] == "payment_intent.succeeded":
        intent_id = event["data"]["object"]["id"]
        booking = await run_in_threadpool(booking_service.get_booking_by_reference, intent_id)
        if booking is None:
            logger.warning("checkout.webhook_stripe payment without booking reference=%s", intent_id)
    return {"status": "ok"}
