"""Order/payment orchestration — turns a reviewed checkout into a paid order.

Finalizing runs in two phases, strictly one after the other:

    1. Create: only while the session has no ``order_id``. The Order Service
       creates the order and answers with the totals it will charge; these
       replace the preview on the session.
    2. Settle: the authoritative grand total is settled against that order.
       A refusal sends the session back to review with the order kept, so
       finalizing again goes straight to phase 2.

Service failures are recorded on the session and returned in the result;
they are never raised to the caller, so the session (with its order id) is
always persisted after a finalize attempt.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from checkout.address.address import shipping_payload
from checkout.analytics.emitter import EventEmitter
from checkout.errors import OrderCreationFailed, SettlementFailed
from checkout.gateways.port import (
    CartService,
    CartSnapshot,
    DiscountSnapshot,
    OrderResult,
    OrderService,
    ServiceUnavailable,
    SettlementResult,
    SettlementService,
)
from checkout.settings import CheckoutSettings
from checkout.totals.calculator import (
    CENT,
    FlatShippingPolicy,
    authoritative_totals,
    calculate_totals,
    drift,
    first_coupon_code,
)
from checkout.totals.totals import Totals

logger = structlog.get_logger(__name__)


class FinalizeOutcome(Enum):
    CONFIRMED = "confirmed"
    ORDER_FAILED = "order_failed"
    SETTLEMENT_FAILED = "settlement_failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class FinalizeResult:
    outcome: FinalizeOutcome
    checkout_id: str
    phase: str
    order_id: str | None = None
    order_number: str | None = None
    error: OrderCreationFailed | SettlementFailed | None = None

    @property
    def reason(self) -> str | None:
        return self.error.reason if self.error is not None else None


def preview_totals(cart: CartSnapshot, discounts: DiscountSnapshot, settings: CheckoutSettings) -> Totals:
    return calculate_totals(
        cart.lines,
        discounts.lines,
        shipping_policy=FlatShippingPolicy(settings.flat_shipping),
        tax_rate=settings.tax_rate,
        currency=settings.currency,
    )


def build_order_payload(session, preview: Totals, discount_lines) -> dict:
    """The Order Service request: shipping destination, preview totals and coupon."""
    payload = shipping_payload(session.shipping_selection)
    payload["subtotal"] = preview.subtotal
    payload["shipping_cost"] = preview.shipping
    payload["tax"] = preview.tax

    coupon_code = first_coupon_code(discount_lines)
    if coupon_code:
        payload["coupon_code"] = coupon_code
    payload["discount"] = preview.discount_total
    return payload


class OrderPaymentOrchestrator:
    def __init__(
        self,
        order_service: OrderService,
        settlement_service: SettlementService,
        cart_service: CartService,
        emitter: EventEmitter,
        settings: CheckoutSettings,
    ) -> None:
        self.order_service = order_service
        self.settlement_service = settlement_service
        self.cart_service = cart_service
        self.emitter = emitter
        self.settings = settings

    def finalize(
        self,
        session,
        cart: CartSnapshot,
        discounts: DiscountSnapshot,
        authenticated: bool,
    ) -> FinalizeResult:
        """Create the order if needed, then settle its payment.

        Raises ``EmptyCart``, ``Unauthenticated`` or ``MissingAddress`` before
        any service is called. A finalize arriving while another one is in
        flight is ignored.
        """
        if session.is_processing:
            logger.info("finalize_ignored", checkout_id=str(session.id), phase=session.phase)
            return self._result(session, FinalizeOutcome.IGNORED)

        session.ensure_finalizable(authenticated, cart.item_count)
        session.begin_processing()
        try:
            if not session.has_order:
                error = self._create_order(session, cart, discounts)
                if error is not None:
                    return self._result(session, FinalizeOutcome.ORDER_FAILED, error)
            else:
                logger.info(
                    "order_creation_skipped",
                    checkout_id=str(session.id),
                    order_id=session.order_id,
                )

            error = self._settle(session, cart)
            if error is not None:
                return self._result(session, FinalizeOutcome.SETTLEMENT_FAILED, error)
            return self._result(session, FinalizeOutcome.CONFIRMED)
        finally:
            session.end_processing()

    # -------------------------------------------------------------------
    # Phase 1: create
    # -------------------------------------------------------------------
    def _create_order(self, session, cart: CartSnapshot, discounts: DiscountSnapshot) -> OrderCreationFailed | None:
        preview = preview_totals(cart, discounts, self.settings)
        session.refresh_preview(preview)

        payload = build_order_payload(session, preview, discounts.lines)
        totals = None
        try:
            result = self.order_service.create_order(payload)
            if result.success:
                totals = authoritative_totals(
                    result.order.subtotal,
                    result.order.shipping_cost,
                    result.order.tax,
                    result.order.total,
                    currency=self.settings.currency,
                )
        except ServiceUnavailable as exc:
            result = OrderResult(success=False, message=f"Order service unavailable: {exc.reason}")
        except Exception as exc:
            logger.error("order_service_error", checkout_id=str(session.id), error=repr(exc), exc_info=True)
            result = OrderResult(success=False, message="Order service returned an unusable response")

        if not result.success:
            error = OrderCreationFailed(result.message or "Order could not be created")
            session.record_order_failure(error.reason)
            logger.warning("order_creation_failed", checkout_id=str(session.id), reason=error.reason)
            return error

        order = result.order
        delta = drift(preview, totals)
        if abs(delta) > CENT:
            logger.warning(
                "checkout_totals_drift",
                checkout_id=str(session.id),
                order_id=order.id,
                preview_total=preview.grand_total,
                order_total=totals.grand_total,
                drift=str(delta),
            )

        session.record_order_placed(order.id, order.order_number, totals)
        logger.info(
            "order_created",
            checkout_id=str(session.id),
            order_id=order.id,
            order_number=order.order_number,
            grand_total=totals.grand_total,
        )
        self._after_success(session, "emit_order_created", self.emitter.order_created, session, cart.lines)
        return None

    # -------------------------------------------------------------------
    # Phase 2: settle
    # -------------------------------------------------------------------
    def _settle(self, session, cart: CartSnapshot) -> SettlementFailed | None:
        session.enter_payment_processing()
        amount = session.amount_due
        idempotency_key = session.settlement_idempotency_key

        try:
            result = self.settlement_service.settle(
                session.order_id,
                amount,
                session.totals.currency,
                session.payment_method,
                idempotency_key,
            )
        except ServiceUnavailable as exc:
            result = SettlementResult(success=False, failure_reason=f"Payment service unavailable: {exc.reason}")
        except Exception as exc:
            logger.error(
                "settlement_service_error",
                checkout_id=str(session.id),
                order_id=session.order_id,
                error=repr(exc),
                exc_info=True,
            )
            result = SettlementResult(success=False, failure_reason="Payment service returned an unusable response")

        if not result.success:
            error = SettlementFailed(result.failure_reason or "Payment could not be settled")
            session.record_settlement_failure(error.reason)
            logger.warning(
                "settlement_failed",
                checkout_id=str(session.id),
                order_id=session.order_id,
                attempt=session.settlement_attempts,
                reason=error.reason,
            )
            return error

        session.record_settlement_success(result.settlement_reference)
        logger.info(
            "payment_settled",
            checkout_id=str(session.id),
            order_id=session.order_id,
            amount=amount,
            attempt=session.settlement_attempts,
        )

        self._after_success(session, "clear_cart", self.cart_service.clear_cart, session.customer_id)
        self._after_success(session, "emit_purchase", self.emitter.purchase, session, cart.lines)
        return None

    @staticmethod
    def _after_success(session, step: str, action, *args) -> None:
        """Run a follow-up of a recorded order or settlement. Failures are logged, never raised."""
        try:
            action(*args)
        except ServiceUnavailable as exc:
            logger.warning("checkout_followup_failed", checkout_id=str(session.id), step=step, reason=exc.reason)
        except Exception as exc:
            logger.warning(
                "checkout_followup_failed",
                checkout_id=str(session.id),
                step=step,
                reason=repr(exc),
                exc_info=True,
            )

    @staticmethod
    def _result(session, outcome: FinalizeOutcome, error=None) -> FinalizeResult:
        return FinalizeResult(
            outcome=outcome,
            checkout_id=str(session.id),
            phase=session.phase,
            order_id=session.order_id,
            order_number=session.order_number,
            error=error,
        )


def build_orchestrator() -> OrderPaymentOrchestrator:
    """Wire an orchestrator to the currently registered collaborators."""
    from checkout.analytics.emitter import get_emitter
    from checkout.gateways import get_cart_service, get_order_service, get_settlement_service
    from checkout.settings import get_settings

    return OrderPaymentOrchestrator(
        order_service=get_order_service(),
        settlement_service=get_settlement_service(),
        cart_service=get_cart_service(),
        emitter=get_emitter(),
        settings=get_settings(),
    )
