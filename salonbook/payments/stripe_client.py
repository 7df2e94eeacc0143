"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- Un « ordre » de paiement est un PaymentIntent (order_id = id du PaymentIntent).
- La vérification relit le PaymentIntent côté serveur: le retour client seul
  n'est jamais considéré comme une preuve de paiement.
"""
from typing import Any, Dict, Optional
import logging

import stripe
from fastapi import Request
from pydantic import BaseModel

from salonbook.errors import PaymentInitError, PaymentVerificationError

logger = logging.getLogger(__name__)


class PaymentOrder(BaseModel):
    order_id: str
    provider_key: str
    amount_minor: int
    currency: str
    publishable_key: str = ""


class PaymentVerification(BaseModel):
    verified: bool
    reference: Optional[str] = None
    status: str = ""
    reason: str = ""


# module salonbook.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    from salonbook.config import STRIPE_SECRET_KEY
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    try:
        return obj[key]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, key, default)


def create_order(amount_minor: int, currency: str, metadata: Optional[Dict[str, str]] = None) -> PaymentOrder:
    """
    Crée un PaymentIntent pour le montant « à payer maintenant ».
    - amount_minor: montant dans la plus petite unité (paise, centimes)
    - metadata: ex {"customer_id": "...", "vendor_id": "...", "session_id": "..."}
    Lève PaymentInitError si Stripe refuse ou est injoignable.
    """
    if amount_minor <= 0:
        raise PaymentInitError("Montant de paiement invalide", amount_minor=amount_minor)
    from salonbook.config import STRIPE_PUBLIC_KEY
    require_stripe()
    try:
        intent = stripe.PaymentIntent.create(
            amount=int(amount_minor),
            currency=currency,
            metadata=metadata or {},
            automatic_payment_methods={"enabled": True},
        )
    except Exception as e:
        logger.exception("payments.stripe_client.create_order failed amount=%s currency=%s", amount_minor, currency)
        raise PaymentInitError() from e
    return PaymentOrder(
        order_id=_get(intent, "id"),
        provider_key=_get(intent, "client_secret") or "",
        amount_minor=int(_get(intent, "amount", amount_minor)),
        currency=_get(intent, "currency", currency),
        publishable_key=STRIPE_PUBLIC_KEY,
    )


def verify_payment(provider_response: Dict[str, Any], expected_order: PaymentOrder) -> PaymentVerification:
    """
    Vérifie le retour du SDK client (ex: {"payment_intent_id": "pi_..."}).
    - L'identifiant doit correspondre à l'ordre créé pour cette session.
    - Le PaymentIntent relu chez Stripe doit être 'succeeded' avec montant/devise identiques.
    Retour: PaymentVerification(verified=False, reason=...) si une condition échoue.
    Lève PaymentVerificationError si Stripe est injoignable.
    """
    intent_id = (provider_response or {}).get("payment_intent_id") or (provider_response or {}).get("payment_intent")
    if not intent_id or intent_id != expected_order.order_id:
        return PaymentVerification(verified=False, reason="order_mismatch")
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id)
    except Exception as e:
        logger.exception("payments.stripe_client.verify_payment retrieve failed intent=%s", intent_id)
        raise PaymentVerificationError() from e

    status = _get(intent, "status") or ""
    if status != "succeeded":
        return PaymentVerification(verified=False, status=status, reason="not_succeeded")
    if int(_get(intent, "amount", -1)) != expected_order.amount_minor:
        return PaymentVerification(verified=False, status=status, reason="amount_mismatch")
    if str(_get(intent, "currency", "")).lower() != expected_order.currency.lower():
        return PaymentVerification(verified=False, status=status, reason="currency_mismatch")
    return PaymentVerification(verified=True, reference=intent_id, status=status)


def cancel_order(order_id: str) -> bool:
    """Annule un PaymentIntent abandonné (best-effort, jamais bloquant)."""
    require_stripe()
    try:
        stripe.PaymentIntent.cancel(order_id)
        return True
    except Exception:
        logger.warning("payments.stripe_client.cancel_order failed order_id=%s", order_id, exc_info=True)
        return False


async def parse_event(request: Request):
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    Retour: l'objet event si la signature est valide.
    """
    from salonbook.config import STRIPE_WEBHOOK_SECRET
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or request.headers.get("Stripe-Signature")
    return stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
