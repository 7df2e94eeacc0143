"""
Module 'payments': point d'entrée public de la passerelle de paiement.
Stripe par défaut; passerelle de démonstration seulement si PAYMENT_DEMO_MODE est actif.
"""

from .stripe_client import (
    PaymentOrder,
    PaymentVerification,
    require_stripe,
    create_order,
    verify_payment,
    cancel_order,
    parse_event,
)
from .demo import DemoGateway


def get_gateway():
    """Retourne l'objet passerelle (create_order / verify_payment / cancel_order)."""
    from salonbook import config
    if config.PAYMENT_DEMO_MODE:
        return DemoGateway()
    from . import stripe_client
    return stripe_client


__all__ = [
    "PaymentOrder",
    "PaymentVerification",
    "require_stripe",
    "create_order",
    "verify_payment",
    "cancel_order",
    "parse_event",
    "DemoGateway",
    "get_gateway",
]
