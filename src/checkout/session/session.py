"""CheckoutSession aggregate — the state machine behind one checkout attempt.

State Machine:
    SHIPPING → PAYMENT → REVIEW → PAYMENT_PROCESSING → CONFIRMATION
    PAYMENT_PROCESSING → REVIEW (settlement failed; order kept, payment retryable)
    PAYMENT → SHIPPING, REVIEW → PAYMENT (back)
    SHIPPING, PAYMENT, REVIEW → ABANDONED

The order is created while the session sits in REVIEW. ``order_id`` is set
exactly once; a session returning to REVIEW after a failed settlement keeps
it, so finalizing again only retries the settlement.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, ValueObject

from checkout.address.address import InlineAddress, SavedAddressRef, ShippingSelection
from checkout.domain import checkout
from checkout.errors import EmptyCart, MissingAddress, Unauthenticated
from checkout.session.card import CARD_PAYMENT_METHODS
from checkout.session.events import (
    CheckoutAbandoned,
    CheckoutAdvanced,
    CheckoutStarted,
    CheckoutSteppedBack,
    OrderPlaced,
    OrderPlacementFailed,
    PaymentMethodChosen,
    PaymentSettled,
    PaymentSettlementFailed,
    ShippingAddressSelected,
)
from checkout.totals.totals import Totals


class CheckoutPhase(Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"
    PAYMENT_PROCESSING = "payment_processing"
    CONFIRMATION = "confirmation"
    ABANDONED = "abandoned"


_VALID_TRANSITIONS = {
    CheckoutPhase.SHIPPING: {CheckoutPhase.PAYMENT, CheckoutPhase.ABANDONED},
    CheckoutPhase.PAYMENT: {CheckoutPhase.SHIPPING, CheckoutPhase.REVIEW, CheckoutPhase.ABANDONED},
    CheckoutPhase.REVIEW: {
        CheckoutPhase.PAYMENT,
        CheckoutPhase.PAYMENT_PROCESSING,
        CheckoutPhase.ABANDONED,
    },
    CheckoutPhase.PAYMENT_PROCESSING: {
        CheckoutPhase.CONFIRMATION,
        CheckoutPhase.REVIEW,  # Settlement failure → retry
    },
    CheckoutPhase.CONFIRMATION: set(),  # Terminal
    CheckoutPhase.ABANDONED: set(),  # Terminal
}

_BACK_TRANSITIONS = {
    CheckoutPhase.PAYMENT: CheckoutPhase.SHIPPING,
    CheckoutPhase.REVIEW: CheckoutPhase.PAYMENT,
}

_TERMINAL_PHASES = {CheckoutPhase.CONFIRMATION, CheckoutPhase.ABANDONED}


@checkout.aggregate
class CheckoutSession:
    customer_id = Identifier(required=True)
    phase = String(choices=CheckoutPhase, default=CheckoutPhase.SHIPPING.value)
    saved_address = ValueObject(SavedAddressRef)
    inline_address = ValueObject(InlineAddress)
    payment_method = String(max_length=50)
    card_last4 = String(max_length=4)
    order_id = String(max_length=64)
    order_number = String(max_length=64)
    totals = ValueObject(Totals)
    last_error = String(max_length=500)
    is_processing = Boolean(default=False)
    checkout_begun = Boolean(default=False)
    settlement_attempts = Integer(default=0)
    settlement_reference = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def only_one_shipping_selection(self):
        if self.saved_address is not None and self.inline_address is not None:
            raise ValidationError({"shipping_address": ["Choose either a saved address or a new one, not both"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, customer_id, item_count, totals=None):
        """Open a checkout session for a signed-in customer with a non-empty cart."""
        if not customer_id:
            raise Unauthenticated()
        if item_count < 1:
            raise EmptyCart()

        now = datetime.now(UTC)
        session = cls(
            customer_id=customer_id,
            phase=CheckoutPhase.SHIPPING.value,
            totals=totals if totals is not None else Totals(),
            created_at=now,
            updated_at=now,
        )
        session.raise_(
            CheckoutStarted(
                checkout_id=str(session.id),
                customer_id=str(customer_id),
                item_count=item_count,
                started_at=now,
            )
        )
        return session

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def current_phase(self) -> CheckoutPhase:
        return CheckoutPhase(self.phase)

    @property
    def shipping_selection(self) -> ShippingSelection | None:
        if self.saved_address is not None:
            return self.saved_address
        return self.inline_address

    def is_owned_by(self, customer_id) -> bool:
        return bool(customer_id) and str(customer_id) == str(self.customer_id)

    @property
    def has_order(self) -> bool:
        return bool(self.order_id)

    @property
    def amount_due(self) -> float:
        """The amount to settle: the authoritative grand total, never the preview."""
        if not self.has_order or self.totals is None or not self.totals.authoritative:
            raise InvalidOperationError({"totals": ["No authoritative totals before the order exists"]})
        return self.totals.grand_total

    @property
    def settlement_idempotency_key(self) -> str:
        return f"{self.order_id}-attempt-{self.settlement_attempts}"

    def _assert_open(self):
        if self.current_phase in _TERMINAL_PHASES:
            raise ValidationError({"phase": [f"Checkout is already {self.phase}"]})

    def _assert_can_transition(self, target: CheckoutPhase):
        current = self.current_phase
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"phase": [f"Cannot move from {current.value} to {target.value}"]})

    def _assert_address_editable(self):
        self._assert_open()
        if self.is_processing or self.current_phase == CheckoutPhase.PAYMENT_PROCESSING:
            raise ValidationError({"shipping_address": ["A payment is in progress"]})
        if self.has_order:
            raise ValidationError({"shipping_address": ["The order has been placed; its address can no longer change"]})

    def _move_to(self, target: CheckoutPhase):
        self._assert_can_transition(target)
        self.phase = target.value
        self.last_error = None
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Shipping address
    # -------------------------------------------------------------------
    def select_saved_address(self, address_id):
        """Ship to a saved address; any hand-entered address is discarded."""
        self._assert_address_editable()

        ref = SavedAddressRef(address_id=str(address_id))
        self.inline_address = None
        self.saved_address = ref
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ShippingAddressSelected(
                checkout_id=str(self.id),
                selection="saved",
                address_id=ref.address_id,
            )
        )

    def set_inline_address(self, address: InlineAddress):
        """Ship to a hand-entered address; any saved selection is discarded."""
        self._assert_address_editable()

        self.saved_address = None
        self.inline_address = address
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ShippingAddressSelected(
                checkout_id=str(self.id),
                selection="inline",
            )
        )

    def clear_shipping_address(self):
        self._assert_address_editable()
        self.saved_address = None
        self.inline_address = None
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Payment method
    # -------------------------------------------------------------------
    def choose_payment_method(self, method: str, card_last4: str | None = None):
        """Record the payment method. Card methods need the last four digits of a validated card."""
        if self.current_phase != CheckoutPhase.PAYMENT:
            raise ValidationError({"payment_method": ["The payment method is chosen on the payment step"]})
        if not method or not method.strip():
            raise ValidationError({"payment_method": ["Select a payment method"]})

        method = method.strip()
        if method in CARD_PAYMENT_METHODS:
            if not card_last4:
                raise ValidationError({"card_number": ["Card details are required"]})
            if len(card_last4) != 4 or not card_last4.isdigit():
                raise ValidationError({"card_number": ["Invalid card number"]})

        self.payment_method = method
        self.card_last4 = card_last4 if method in CARD_PAYMENT_METHODS else None
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentMethodChosen(
                checkout_id=str(self.id),
                payment_method=method,
                card_last4=self.card_last4,
            )
        )

    # -------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------
    def advance(self, authenticated: bool) -> CheckoutPhase:
        """Move forward one step: shipping → payment, or payment → review."""
        current = self.current_phase
        if not authenticated and current in (CheckoutPhase.SHIPPING, CheckoutPhase.PAYMENT):
            raise Unauthenticated()

        if current == CheckoutPhase.SHIPPING:
            if self.shipping_selection is None:
                raise MissingAddress()
            target = CheckoutPhase.PAYMENT
        elif current == CheckoutPhase.PAYMENT:
            if not self.payment_method:
                raise ValidationError({"payment_method": ["Select a payment method"]})
            if self.payment_method in CARD_PAYMENT_METHODS and not self.card_last4:
                raise ValidationError({"card_number": ["Card details are required"]})
            target = CheckoutPhase.REVIEW
        else:
            raise ValidationError({"phase": [f"Cannot advance from {current.value}"]})

        self._move_to(target)
        if target == CheckoutPhase.PAYMENT:
            self.checkout_begun = True

        self.raise_(
            CheckoutAdvanced(
                checkout_id=str(self.id),
                from_phase=current.value,
                to_phase=target.value,
            )
        )
        return target

    def back(self) -> bool:
        """Step back one phase. Returns False when ignored because a payment is in flight."""
        if self.is_processing:
            return False

        current = self.current_phase
        target = _BACK_TRANSITIONS.get(current)
        if target is None:
            raise ValidationError({"phase": [f"Cannot go back from {current.value}"]})

        self._move_to(target)
        self.raise_(
            CheckoutSteppedBack(
                checkout_id=str(self.id),
                from_phase=current.value,
                to_phase=target.value,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Finalize (driven by the orchestrator)
    # -------------------------------------------------------------------
    def ensure_finalizable(self, authenticated: bool, item_count: int):
        """Check the review → payment_processing guards without touching any state."""
        if self.current_phase != CheckoutPhase.REVIEW:
            raise ValidationError({"phase": [f"Cannot finalize from {self.phase}"]})
        if item_count < 1:
            raise EmptyCart()
        if not authenticated:
            raise Unauthenticated()
        if self.shipping_selection is None:
            raise MissingAddress()

    def begin_processing(self):
        if self.is_processing:
            raise InvalidOperationError({"checkout": ["A finalize request is already in flight"]})
        self.is_processing = True

    def end_processing(self):
        self.is_processing = False

    def refresh_preview(self, totals: Totals) -> bool:
        """Replace the preview totals. Ignored once authoritative totals exist."""
        if self.totals is not None and self.totals.authoritative:
            return False
        self.totals = totals
        return True

    def record_order_placed(self, order_id, order_number, totals: Totals):
        if self.has_order:
            raise InvalidOperationError({"order_id": [f"Order {self.order_id} already exists for this checkout"]})
        if not totals.authoritative:
            raise InvalidOperationError({"totals": ["Order totals must come from the Order Service"]})

        now = datetime.now(UTC)
        self.order_id = str(order_id)
        self.order_number = str(order_number) if order_number else None
        self.totals = totals
        self.last_error = None
        self.updated_at = now

        self.raise_(
            OrderPlaced(
                checkout_id=str(self.id),
                order_id=self.order_id,
                order_number=self.order_number,
                grand_total=totals.grand_total,
                currency=totals.currency,
                placed_at=now,
            )
        )

    def record_order_failure(self, reason: str):
        if self.has_order:
            raise InvalidOperationError({"order_id": ["Order creation cannot fail after the order exists"]})

        now = datetime.now(UTC)
        self.last_error = reason
        self.updated_at = now

        self.raise_(
            OrderPlacementFailed(
                checkout_id=str(self.id),
                reason=reason,
                failed_at=now,
            )
        )

    def enter_payment_processing(self):
        if not self.has_order:
            raise InvalidOperationError({"order_id": ["Payment cannot be settled before the order exists"]})

        self._move_to(CheckoutPhase.PAYMENT_PROCESSING)
        self.settlement_attempts = (self.settlement_attempts or 0) + 1

        self.raise_(
            CheckoutAdvanced(
                checkout_id=str(self.id),
                from_phase=CheckoutPhase.REVIEW.value,
                to_phase=CheckoutPhase.PAYMENT_PROCESSING.value,
            )
        )

    def record_settlement_success(self, settlement_reference: str | None):
        self._move_to(CheckoutPhase.CONFIRMATION)
        self.settlement_reference = settlement_reference

        self.raise_(
            PaymentSettled(
                checkout_id=str(self.id),
                order_id=self.order_id,
                amount=self.amount_due,
                settlement_reference=settlement_reference,
                attempt_number=self.settlement_attempts,
                settled_at=self.updated_at,
            )
        )

    def record_settlement_failure(self, reason: str):
        self._move_to(CheckoutPhase.REVIEW)
        self.last_error = reason

        self.raise_(
            PaymentSettlementFailed(
                checkout_id=str(self.id),
                order_id=self.order_id,
                reason=reason,
                attempt_number=self.settlement_attempts,
                failed_at=self.updated_at,
            )
        )

    def dismiss_error(self):
        self.last_error = None

    # -------------------------------------------------------------------
    # Exits
    # -------------------------------------------------------------------
    def abandon(self, reason: str | None = None):
        self._assert_open()
        if self.is_processing or self.current_phase == CheckoutPhase.PAYMENT_PROCESSING:
            raise ValidationError({"phase": ["A payment is in progress and cannot be abandoned"]})

        current = self.current_phase
        self._move_to(CheckoutPhase.ABANDONED)

        self.raise_(
            CheckoutAbandoned(
                checkout_id=str(self.id),
                phase=current.value,
                reason=reason,
                abandoned_at=self.updated_at,
            )
        )

    def cart_emptied(self) -> bool:
        """React to the cart becoming empty. Returns True if the session was abandoned."""
        if self.is_processing or self.current_phase in (
            CheckoutPhase.PAYMENT_PROCESSING,
            CheckoutPhase.CONFIRMATION,
            CheckoutPhase.ABANDONED,
        ):
            return False

        self.abandon(reason="cart_emptied")
        return True
