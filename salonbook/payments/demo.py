"""
Passerelle de démonstration (PAYMENT_DEMO_MODE=1 uniquement).
Simule un paiement réussi après un délai fixe, SANS vérification de signature.
Ne doit jamais servir de chemin de confiance en production.
"""
from typing import Any, Dict, Optional
from uuid import uuid4
import logging
import time

from salonbook.config import PAYMENT_DEMO_DELAY_SECONDS
from .stripe_client import PaymentOrder, PaymentVerification

logger = logging.getLogger(__name__)


class DemoGateway:
    def __init__(self, delay_seconds: float = PAYMENT_DEMO_DELAY_SECONDS):
        self.delay_seconds = delay_seconds

    def create_order(self, amount_minor: int, currency: str, metadata: Optional[Dict[str, str]] = None) -> PaymentOrder:
        order_id = f"demo_{uuid4().hex[:16]}"
        logger.warning("payments.demo create_order order_id=%s amount=%s (mode démo, aucun paiement réel)", order_id, amount_minor)
        return PaymentOrder(order_id=order_id, provider_key="demo", amount_minor=amount_minor, currency=currency)

    def verify_payment(self, provider_response: Dict[str, Any], expected_order: PaymentOrder) -> PaymentVerification:
        time.sleep(self.delay_seconds)
        logger.warning("payments.demo verify_payment order_id=%s: succès simulé, non vérifié", expected_order.order_id)
        return PaymentVerification(verified=True, reference=f"{expected_order.order_id}_paid", status="demo")

    def cancel_order(self, order_id: str) -> bool:
        return True
