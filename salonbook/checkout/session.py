"""
Session de checkout: machine à états d'une tentative de paiement/réservation.

IDLE -> SLOT_PENDING -> PAYMENT_INITIATING -> PAYMENT_PROCESSING -> PAYMENT_SUCCEEDED
     -> BOOKING_CREATING -> CART_CLEARING -> COMPLETED
FAILED depuis tout état non terminal; CANCELLED depuis PAYMENT_INITIATING / PAYMENT_PROCESSING.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4
import logging
import threading

from pydantic import BaseModel, Field

from salonbook.errors import CheckoutError, InvalidTransitionError

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    SLOT_PENDING = "slot_pending"
    PAYMENT_INITIATING = "payment_initiating"
    PAYMENT_PROCESSING = "payment_processing"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    BOOKING_CREATING = "booking_creating"
    CART_CLEARING = "cart_clearing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({CheckoutState.COMPLETED, CheckoutState.FAILED, CheckoutState.CANCELLED})
# paiement encaissé, finalisation en cours: la session ne peut pas être remplacée
FINALIZING_STATES = frozenset({
    CheckoutState.PAYMENT_SUCCEEDED,
    CheckoutState.BOOKING_CREATING,
    CheckoutState.CART_CLEARING,
})

ALLOWED_TRANSITIONS: Dict[CheckoutState, frozenset] = {
    CheckoutState.IDLE: frozenset({CheckoutState.SLOT_PENDING}),
    CheckoutState.SLOT_PENDING: frozenset({CheckoutState.PAYMENT_INITIATING}),
    CheckoutState.PAYMENT_INITIATING: frozenset({CheckoutState.PAYMENT_PROCESSING, CheckoutState.CANCELLED}),
    CheckoutState.PAYMENT_PROCESSING: frozenset({CheckoutState.PAYMENT_SUCCEEDED, CheckoutState.CANCELLED}),
    CheckoutState.PAYMENT_SUCCEEDED: frozenset({CheckoutState.BOOKING_CREATING}),
    CheckoutState.BOOKING_CREATING: frozenset({CheckoutState.CART_CLEARING}),
    CheckoutState.CART_CLEARING: frozenset({CheckoutState.COMPLETED}),
}


def can_transition(current: CheckoutState, target: CheckoutState) -> bool:
    if current in TERMINAL_STATES:
        return False
    if target == CheckoutState.FAILED:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class CheckoutFailure(BaseModel):
    code: str
    message: str
    support_reference: Optional[str] = None


OUTCOME_SUCCESS = "success"
OUTCOME_CANCELLED = "cancelled"
OUTCOME_ERROR = "error"


class PaymentOutcome(BaseModel):
    """Issue du paiement côté client: succès (avec la réponse du SDK), annulation, ou erreur."""
    kind: str
    provider_response: Dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    @classmethod
    def success(cls, provider_response: Dict[str, Any]) -> "PaymentOutcome":
        return cls(kind=OUTCOME_SUCCESS, provider_response=dict(provider_response or {}))

    @classmethod
    def cancelled(cls) -> "PaymentOutcome":
        return cls(kind=OUTCOME_CANCELLED)

    @classmethod
    def error(cls, message: str = "") -> "PaymentOutcome":
        return cls(kind=OUTCOME_ERROR, message=message)


class CheckoutSession:
    def __init__(self, customer_id: Optional[str]):
        self.id = uuid4().hex
        self.customer_id = customer_id
        self.state = CheckoutState.IDLE
        self.cart = None
        self.selection = None
        self.pricing = None
        self.order = None
        self.payment_reference: Optional[str] = None
        self.booking = None
        self.failure: Optional[CheckoutFailure] = None
        self.cart_stale = False
        self.history: List[Dict[str, str]] = []

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: CheckoutState) -> None:
        """Change d'état ou lève InvalidTransitionError (état inchangé)."""
        if not can_transition(self.state, target):
            raise InvalidTransitionError(current_state=self.state.value, target_state=target.value)
        previous = self.state
        self.state = target
        self.history.append({
            "from": previous.value,
            "to": target.value,
            "at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info("checkout.transition customer=%s %s -> %s", self.customer_id, previous.value, target.value)

    def fail(self, error: CheckoutError) -> None:
        self.failure = CheckoutFailure(
            code=error.code,
            message=error.message,
            support_reference=error.context.get("support_reference"),
        )
        self.transition(CheckoutState.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "selection": self.selection.model_dump() if self.selection else None,
            "pricing": self.pricing.as_dict() if self.pricing else None,
            "order": self.order.model_dump() if self.order else None,
            "payment_reference": self.payment_reference,
            "booking_id": self.booking.id if self.booking else None,
            "failure": self.failure.model_dump() if self.failure else None,
            "cart_stale": self.cart_stale,
            "history": list(self.history),
        }


class SessionStore:
    """Sessions en mémoire, une par client (processus unique)."""

    def __init__(self):
        self._sessions: Dict[str, CheckoutSession] = {}
        self._lock = threading.Lock()

    def open(self, customer_id: str, cancel_order: Optional[Callable[[str], Any]] = None) -> CheckoutSession:
        """
        Ouvre une nouvelle session pour le client.
        - Une session en paiement est annulée (ordre annulé en best-effort)
        - Une session en cours de finalisation ne peut pas être remplacée
        """
        with self._lock:
            previous = self._sessions.get(customer_id)
            if previous is not None and previous.state in FINALIZING_STATES:
                raise InvalidTransitionError(
                    "Un paiement est en cours de finalisation, patientez",
                    current_state=previous.state.value,
                )
            session = CheckoutSession(customer_id)
            self._sessions[customer_id] = session
        if previous is not None and previous.state in (CheckoutState.PAYMENT_INITIATING, CheckoutState.PAYMENT_PROCESSING):
            previous.transition(CheckoutState.CANCELLED)
            if previous.order is not None and cancel_order is not None:
                try:
                    cancel_order(previous.order.order_id)
                except Exception:
                    logger.warning("checkout.session superseded order cancel failed order_id=%s", previous.order.order_id, exc_info=True)
        return session

    def get(self, customer_id: str) -> Optional[CheckoutSession]:
        return self._sessions.get(customer_id)

    def discard(self, customer_id: str) -> None:
        with self._lock:
            self._sessions.pop(customer_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
