"""
Orchestration du checkout: sélection -> paiement -> réservation -> vidage du panier.

Garanties:
- aucun appel de réservation ni modification du panier avant un paiement vérifié
- une réservation par référence de paiement (nouvelles tentatives avec la même référence)
- un échec du vidage du panier n'annule jamais une réservation confirmée

Les collaborateurs sont synchrones (Supabase, Stripe): chaque appel passe par
run_in_threadpool pour ne pas bloquer la boucle d'événements.
"""
from typing import Awaitable, Callable, Optional, Sequence
from datetime import date
import asyncio
import logging

from starlette.concurrency import run_in_threadpool

from salonbook.config import (
    BOOKING_RETRY_ATTEMPTS,
    BOOKING_RETRY_BACKOFF_SECONDS,
    CURRENCY,
    LOGIN_PATH,
)
from salonbook.errors import (
    AuthenticationRequired,
    BookingCreationError,
    CheckoutError,
    ConfigurationError,
    InvalidTransitionError,
    PaymentInitError,
    PaymentVerificationError,
    ValidationError,
)
from .pricing import compute_breakdown
from .session import (
    CheckoutSession,
    CheckoutState,
    OUTCOME_CANCELLED,
    OUTCOME_SUCCESS,
    PaymentOutcome,
)
from .slots import SlotSelection, validate_selection

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    def __init__(
        self,
        session: CheckoutSession,
        cart_service,
        config_service,
        gateway,
        booking_service,
        retry_attempts: int = BOOKING_RETRY_ATTEMPTS,
        retry_backoff: float = BOOKING_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        currency: str = CURRENCY,
        time_slots: Optional[Sequence[str]] = None,
        today: Optional[date] = None,
    ):
        self.session = session
        self.cart_service = cart_service
        self.config_service = config_service
        self.gateway = gateway
        self.booking_service = booking_service
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self.currency = currency
        self.time_slots = time_slots
        self.today = today

    @property
    def state(self) -> CheckoutState:
        return self.session.state

    def _require(self, *states: CheckoutState) -> None:
        if self.session.state not in states:
            raise InvalidTransitionError(current_state=self.session.state.value)

    def _fail(self, error: CheckoutError) -> CheckoutError:
        self.session.fail(error)
        logger.error(
            "checkout.failed customer=%s code=%s reference=%s",
            self.session.customer_id, error.code, error.context.get("support_reference"),
        )
        return error

    async def start(self, selection: SlotSelection) -> CheckoutSession:
        """
        Valide le panier et la sélection de créneaux, puis passe en SLOT_PENDING.
        - Client non authentifié -> AuthenticationRequired (reste IDLE)
        - Panier vide / sélection invalide -> ValidationError (reste IDLE)
        """
        customer_id = self.session.customer_id
        if not customer_id:
            raise AuthenticationRequired(redirect_to=LOGIN_PATH)
        self._require(CheckoutState.IDLE)

        cart = await run_in_threadpool(self.cart_service.read_cart, customer_id)
        if cart.is_empty():
            raise ValidationError("Votre panier est vide")
        window_days = await run_in_threadpool(self.config_service.get_advance_booking_window_days)
        normalized = validate_selection(selection, window_days, self.time_slots, today=self.today)

        self.session.cart = cart.snapshot()
        self.session.selection = normalized
        self.session.transition(CheckoutState.SLOT_PENDING)
        return self.session

    async def initiate_payment(self):
        """
        Calcule les montants (pourcentage relu à chaque tentative) et crée l'ordre de paiement.
        Montant à payer nul -> FAILED(configuration_error), sans appel à la passerelle.
        Retour: PaymentOrder à transmettre au SDK client.
        """
        self._require(CheckoutState.SLOT_PENDING)
        session = self.session

        fee_percentage = await run_in_threadpool(self.config_service.get_fee_percentage)
        try:
            pricing = compute_breakdown(session.cart.total_amount(), fee_percentage)
        except CheckoutError as e:
            raise self._fail(e)
        if pricing.amount_minor() <= 0:
            # frais nuls (ou arrondis à 0): rien à encaisser en ligne
            raise self._fail(ConfigurationError("Aucun montant de réservation à régler en ligne"))
        session.pricing = pricing

        session.transition(CheckoutState.PAYMENT_INITIATING)
        metadata = {
            "customer_id": str(session.customer_id),
            "vendor_id": str(session.cart.vendor_id or ""),
            "session_id": session.id,
        }
        try:
            order = await run_in_threadpool(self.gateway.create_order, pricing.amount_minor(), self.currency, metadata)
        except CheckoutError as e:
            raise self._fail(e)
        except Exception as e:
            logger.exception("checkout.initiate_payment gateway error customer=%s", session.customer_id)
            raise self._fail(PaymentInitError()) from e

        if session.state != CheckoutState.PAYMENT_INITIATING:
            # annulé pendant la création de l'ordre
            await self._cancel_order(order.order_id)
            raise InvalidTransitionError(current_state=session.state.value)
        session.order = order
        session.transition(CheckoutState.PAYMENT_PROCESSING)
        logger.info(
            "checkout.order created customer=%s order=%s amount_minor=%s",
            session.customer_id, order.order_id, order.amount_minor,
        )
        return order

    async def resolve_payment(self, outcome: PaymentOutcome):
        """
        Traite l'issue du paiement.
        - annulé -> CANCELLED (retourne None)
        - erreur / non vérifié -> FAILED + PaymentVerificationError
        - vérifié -> réservation (avec nouvelles tentatives) puis vidage du panier
        Un second appel sur une session COMPLETED retourne la même réservation.
        """
        session = self.session
        if session.state == CheckoutState.COMPLETED:
            return session.booking
        self._require(CheckoutState.PAYMENT_PROCESSING)

        if outcome.kind == OUTCOME_CANCELLED:
            await self.cancel()
            return None
        if outcome.kind != OUTCOME_SUCCESS:
            raise self._fail(PaymentVerificationError(outcome.message or None))

        try:
            verification = await run_in_threadpool(self.gateway.verify_payment, outcome.provider_response, session.order)
        except CheckoutError as e:
            raise self._fail(e)
        except Exception as e:
            logger.exception("checkout.resolve_payment verification error customer=%s", session.customer_id)
            raise self._fail(PaymentVerificationError()) from e
        if not verification.verified:
            raise self._fail(PaymentVerificationError(reason=verification.reason or None))

        session.payment_reference = verification.reference
        session.transition(CheckoutState.PAYMENT_SUCCEEDED)

        session.booking = await self._create_booking()
        session.transition(CheckoutState.CART_CLEARING)
        await self._clear_cart()
        session.transition(CheckoutState.COMPLETED)
        return session.booking

    async def run(self, selection: SlotSelection, await_outcome: Callable[..., Awaitable[PaymentOutcome]]):
        """Parcours complet: await_outcome(order) attend l'issue du SDK de paiement."""
        await self.start(selection)
        order = await self.initiate_payment()
        outcome = await await_outcome(order)
        return await self.resolve_payment(outcome)

    async def cancel(self) -> CheckoutSession:
        """Fermeture de la fenêtre de paiement par le client."""
        session = self.session
        if session.state == CheckoutState.CANCELLED:
            return session
        self._require(CheckoutState.PAYMENT_INITIATING, CheckoutState.PAYMENT_PROCESSING)
        session.transition(CheckoutState.CANCELLED)
        if session.order is not None:
            await self._cancel_order(session.order.order_id)
        logger.info("checkout.cancelled customer=%s", session.customer_id)
        return session

    async def _cancel_order(self, order_id: str) -> None:
        try:
            await run_in_threadpool(self.gateway.cancel_order, order_id)
        except Exception:
            logger.warning("checkout.cancel_order failed order_id=%s", order_id, exc_info=True)

    async def _create_booking(self):
        session = self.session
        session.transition(CheckoutState.BOOKING_CREATING)
        line_items = self.booking_service.line_items_from_cart(session.cart)
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await run_in_threadpool(
                    self.booking_service.create_booking,
                    session.customer_id,
                    session.payment_reference,
                    session.selection,
                    line_items,
                    session.pricing,
                    session.cart.vendor_id,
                    session.cart.vendor_name or "",
                )
            except Exception as e:
                last_error = e
                if attempt < self.retry_attempts:
                    delay = self.retry_backoff * (2 ** (attempt - 1))
                    logger.warning(
                        "checkout.booking retry customer=%s reference=%s attempt=%s delay=%s",
                        session.customer_id, session.payment_reference, attempt, delay,
                    )
                    await self._sleep(delay)
        logger.error(
            "checkout.booking exhausted customer=%s reference=%s attempts=%s error=%r",
            session.customer_id, session.payment_reference, self.retry_attempts, last_error,
        )
        raise self._fail(BookingCreationError(support_reference=session.payment_reference)) from last_error

    async def _clear_cart(self) -> None:
        session = self.session
        try:
            await run_in_threadpool(self.cart_service.clear_cart, session.customer_id)
        except Exception:
            session.cart_stale = True
            self.cart_service.mark_stale(session.customer_id, session.payment_reference)
            logger.warning(
                "checkout.cart_clear failed customer=%s booking=%s (panier marqué périmé)",
                session.customer_id, getattr(session.booking, "id", None), exc_info=True,
            )
