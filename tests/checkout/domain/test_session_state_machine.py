"""Tests for the CheckoutSession state machine — valid transitions and guards."""

import pytest
from checkout.errors import EmptyCart, MissingAddress, Unauthenticated
from checkout.session.events import (
    CheckoutAbandoned,
    CheckoutAdvanced,
    CheckoutStarted,
    CheckoutSteppedBack,
    PaymentMethodChosen,
)
from checkout.session.session import CheckoutPhase, CheckoutSession
from checkout.totals.calculator import authoritative_totals
from checkout.totals.totals import Totals
from protean.exceptions import InvalidOperationError, ValidationError


def _session_at(target):
    """Create a session and advance it to the desired phase."""
    session = CheckoutSession.start(customer_id="cust-001", item_count=2, totals=Totals())
    session._events.clear()
    if target == CheckoutPhase.SHIPPING:
        return session

    if target == CheckoutPhase.ABANDONED:
        session.abandon()
        session._events.clear()
        return session

    session.select_saved_address("7")
    session.advance(authenticated=True)
    session._events.clear()
    if target == CheckoutPhase.PAYMENT:
        return session

    session.choose_payment_method("paypal")
    session.advance(authenticated=True)
    session._events.clear()
    if target == CheckoutPhase.REVIEW:
        return session

    session.record_order_placed("42", "RS-00000042", authoritative_totals(100.0, 0.0, 0.0, 100.0))
    session.enter_payment_processing()
    session._events.clear()
    if target == CheckoutPhase.PAYMENT_PROCESSING:
        return session

    session.record_settlement_success("stl-001")
    session._events.clear()
    return session


class TestStart:
    def test_start_opens_shipping_step(self):
        session = CheckoutSession.start(customer_id="cust-001", item_count=3)
        assert session.phase == CheckoutPhase.SHIPPING.value
        assert session.is_processing is False
        assert session.order_id is None
        assert session.totals is not None

    def test_start_raises_checkout_started(self):
        session = CheckoutSession.start(customer_id="cust-001", item_count=3)
        assert len(session._events) == 1
        event = session._events[0]
        assert isinstance(event, CheckoutStarted)
        assert event.item_count == 3

    def test_guest_cannot_start(self):
        with pytest.raises(Unauthenticated) as exc:
            CheckoutSession.start(customer_id=None, item_count=1)
        assert "customer" in exc.value.messages

    def test_empty_cart_cannot_start(self):
        with pytest.raises(EmptyCart) as exc:
            CheckoutSession.start(customer_id="cust-001", item_count=0)
        assert "cart" in exc.value.messages

    def test_precondition_errors_are_validation_errors(self):
        with pytest.raises(ValidationError):
            CheckoutSession.start(customer_id="", item_count=1)


class TestAdvance:
    def test_shipping_to_payment(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        session.select_saved_address("7")
        assert session.advance(authenticated=True) == CheckoutPhase.PAYMENT
        assert session.phase == CheckoutPhase.PAYMENT.value
        assert session.checkout_begun is True

        advanced = [e for e in session._events if isinstance(e, CheckoutAdvanced)]
        assert advanced[0].from_phase == "shipping"
        assert advanced[0].to_phase == "payment"

    def test_shipping_requires_address(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        with pytest.raises(MissingAddress) as exc:
            session.advance(authenticated=True)
        assert "shipping_address" in exc.value.messages
        assert session.phase == CheckoutPhase.SHIPPING.value

    def test_shipping_requires_authentication(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        session.select_saved_address("7")
        with pytest.raises(Unauthenticated):
            session.advance(authenticated=False)
        assert session.checkout_begun is False

    def test_payment_to_review(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        session.choose_payment_method("paypal")
        assert session.advance(authenticated=True) == CheckoutPhase.REVIEW

    def test_payment_requires_authentication(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        session.choose_payment_method("paypal")
        with pytest.raises(Unauthenticated):
            session.advance(authenticated=False)
        assert session.phase == CheckoutPhase.PAYMENT.value

    def test_payment_requires_method(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        with pytest.raises(ValidationError) as exc:
            session.advance(authenticated=True)
        assert "payment_method" in exc.value.messages

    def test_cannot_advance_from_review(self):
        session = _session_at(CheckoutPhase.REVIEW)
        with pytest.raises(ValidationError):
            session.advance(authenticated=True)

    @pytest.mark.parametrize("phase", [CheckoutPhase.CONFIRMATION, CheckoutPhase.ABANDONED])
    def test_cannot_advance_from_terminal_phases(self, phase):
        session = _session_at(phase)
        with pytest.raises(ValidationError):
            session.advance(authenticated=True)


class TestPaymentMethod:
    def test_card_method_keeps_last4(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        session.choose_payment_method("credit_card", card_last4="4242")
        assert session.payment_method == "credit_card"
        assert session.card_last4 == "4242"
        assert isinstance(session._events[-1], PaymentMethodChosen)

    def test_card_method_requires_card(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        with pytest.raises(ValidationError) as exc:
            session.choose_payment_method("credit_card")
        assert "card_number" in exc.value.messages

    @pytest.mark.parametrize("card_last4", ["42", "42424", "42a2"])
    def test_card_method_rejects_malformed_last4(self, card_last4):
        session = _session_at(CheckoutPhase.PAYMENT)
        with pytest.raises(ValidationError) as exc:
            session.choose_payment_method("credit_card", card_last4=card_last4)
        assert "card_number" in exc.value.messages
        assert session.payment_method is None

    def test_switching_to_non_card_method_drops_last4(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        session.choose_payment_method("debit_card", card_last4="1111")
        session.choose_payment_method("paypal")
        assert session.card_last4 is None

    def test_method_chosen_only_on_payment_step(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        with pytest.raises(ValidationError):
            session.choose_payment_method("paypal")


class TestBack:
    def test_payment_back_to_shipping(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        assert session.back() is True
        assert session.phase == CheckoutPhase.SHIPPING.value
        assert isinstance(session._events[-1], CheckoutSteppedBack)

    def test_review_back_to_payment(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.back()
        assert session.phase == CheckoutPhase.PAYMENT.value

    def test_no_back_from_shipping(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        with pytest.raises(ValidationError):
            session.back()

    def test_no_back_from_confirmation(self):
        session = _session_at(CheckoutPhase.CONFIRMATION)
        with pytest.raises(ValidationError):
            session.back()

    def test_back_ignored_while_processing(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.begin_processing()
        assert session.back() is False
        assert session.phase == CheckoutPhase.REVIEW.value

    def test_checkout_begun_survives_going_back(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        session.back()
        session.advance(authenticated=True)
        assert session.checkout_begun is True


class TestAddressLock:
    def test_address_editable_in_review_before_order(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.select_saved_address("8")
        assert session.saved_address.address_id == "8"

    def test_address_locked_once_order_exists(self, inline_address):
        session = _session_at(CheckoutPhase.REVIEW)
        session.record_order_placed("42", "RS-00000042", authoritative_totals(100.0, 0.0, 0.0, 100.0))
        with pytest.raises(ValidationError):
            session.set_inline_address(inline_address)
        assert session.saved_address.address_id == "7"

    def test_address_locked_while_processing(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.begin_processing()
        with pytest.raises(ValidationError):
            session.select_saved_address("9")


class TestExits:
    @pytest.mark.parametrize("phase", [CheckoutPhase.SHIPPING, CheckoutPhase.PAYMENT, CheckoutPhase.REVIEW])
    def test_abandon_from_open_phases(self, phase):
        session = _session_at(phase)
        session.abandon(reason="changed_mind")
        assert session.phase == CheckoutPhase.ABANDONED.value
        event = session._events[-1]
        assert isinstance(event, CheckoutAbandoned)
        assert event.phase == phase.value
        assert event.reason == "changed_mind"

    def test_cannot_abandon_confirmed_checkout(self):
        session = _session_at(CheckoutPhase.CONFIRMATION)
        with pytest.raises(ValidationError):
            session.abandon()

    def test_cannot_abandon_during_payment(self):
        session = _session_at(CheckoutPhase.PAYMENT_PROCESSING)
        with pytest.raises(ValidationError):
            session.abandon()

    def test_cart_emptied_abandons_open_session(self):
        session = _session_at(CheckoutPhase.REVIEW)
        assert session.cart_emptied() is True
        assert session.phase == CheckoutPhase.ABANDONED.value
        assert session._events[-1].reason == "cart_emptied"

    @pytest.mark.parametrize("phase", [CheckoutPhase.PAYMENT_PROCESSING, CheckoutPhase.CONFIRMATION])
    def test_cart_emptied_ignored_after_payment_started(self, phase):
        session = _session_at(phase)
        assert session.cart_emptied() is False
        assert session.phase == phase.value

    def test_cart_emptied_ignored_while_processing(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.begin_processing()
        assert session.cart_emptied() is False


class TestFinalizeGuards:
    def test_review_with_everything_in_place_is_finalizable(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.ensure_finalizable(authenticated=True, item_count=2)

    def test_only_review_can_be_finalized(self):
        session = _session_at(CheckoutPhase.PAYMENT)
        with pytest.raises(ValidationError) as exc:
            session.ensure_finalizable(authenticated=True, item_count=2)
        assert "phase" in exc.value.messages

    def test_empty_cart(self):
        session = _session_at(CheckoutPhase.REVIEW)
        with pytest.raises(EmptyCart):
            session.ensure_finalizable(authenticated=True, item_count=0)

    def test_unauthenticated(self):
        session = _session_at(CheckoutPhase.REVIEW)
        with pytest.raises(Unauthenticated):
            session.ensure_finalizable(authenticated=False, item_count=2)

    def test_missing_address(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.clear_shipping_address()
        with pytest.raises(MissingAddress):
            session.ensure_finalizable(authenticated=True, item_count=2)

    def test_second_begin_processing_rejected(self):
        session = _session_at(CheckoutPhase.REVIEW)
        session.begin_processing()
        with pytest.raises(InvalidOperationError):
            session.begin_processing()
        session.end_processing()
        assert session.is_processing is False


class TestOwnership:
    def test_owner(self):
        session = _session_at(CheckoutPhase.SHIPPING)
        assert session.is_owned_by("cust-001") is True

    @pytest.mark.parametrize("customer_id", [None, "", "cust-002"])
    def test_not_owner(self, customer_id):
        session = _session_at(CheckoutPhase.SHIPPING)
        assert session.is_owned_by(customer_id) is False
