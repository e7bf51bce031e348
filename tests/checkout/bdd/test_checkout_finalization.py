"""BDD tests for checkout finalization through commands."""

from decimal import Decimal

from checkout.gateways.port import DiscountSnapshot
from checkout.session.finalization import FinalizeCheckout
from checkout.session.navigation import AdvanceCheckout
from checkout.session.payment import ChoosePaymentMethod
from checkout.session.session import CheckoutSession
from checkout.session.shipping import SelectSavedAddress
from checkout.session.starting import StartCheckout
from checkout.totals.calculator import CartLine, DiscountLine
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/checkout_finalization.feature")


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _session(checkout_id):
    return current_domain.repository_for(CheckoutSession).get(checkout_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the cart holds {amount} of goods"))
def cart_holds(fakes, customer_id, amount):
    fakes["carts"].set_cart(
        customer_id,
        [CartLine(product_id="prod-001", name="Goods", unit_price=Decimal(amount), quantity=1)],
    )


@given(parsers.cfparse('a {amount} coupon "{code}" is applied'))
def coupon_applied(fakes, customer_id, amount, code):
    fakes["discounts"].set_discounts(customer_id, DiscountSnapshot(manual=[DiscountLine.manual(code, Decimal(amount))]))


@given(parsers.cfparse("the tax rate is {rate}"))
def tax_rate(monkeypatch, rate):
    monkeypatch.setenv("CHECKOUT_TAX_RATE", rate)


@given("a checkout in review", target_fixture="checkout_id")
def checkout_in_review(customer_id):
    checkout_id = _process(StartCheckout(customer_id=customer_id))
    _process(SelectSavedAddress(checkout_id=checkout_id, customer_id=customer_id, address_id="7"))
    _process(AdvanceCheckout(checkout_id=checkout_id, customer_id=customer_id))
    _process(ChoosePaymentMethod(checkout_id=checkout_id, customer_id=customer_id, payment_method="paypal"))
    _process(AdvanceCheckout(checkout_id=checkout_id, customer_id=customer_id))
    return checkout_id


@given(parsers.cfparse('the payment will be declined with "{reason}"'))
def payment_declined(fakes, reason):
    fakes["settlement"].configure(should_succeed=False, failure_reason=reason)


@given("the payment will be accepted")
def payment_accepted(fakes):
    fakes["settlement"].configure(should_succeed=True)


@given(parsers.cfparse("the order service will charge {amount}"))
def order_service_charges(fakes, amount):
    fakes["orders"].configure(total_override=float(amount))


@given(parsers.cfparse('the order service will refuse with "{message}"'))
def order_service_refuses(fakes, message):
    fakes["orders"].configure(should_succeed=False, failure_message=message)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@given("the customer finalizes the checkout", target_fixture="result")
@when("the customer finalizes the checkout", target_fixture="result")
def finalize(checkout_id, customer_id):
    return _process(FinalizeCheckout(checkout_id=checkout_id, customer_id=customer_id))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the finalize outcome is "{outcome}"'))
def finalize_outcome_is(result, outcome):
    assert result.outcome.value == outcome


@then(parsers.cfparse('the checkout phase is "{phase}"'))
def checkout_phase_is(checkout_id, phase):
    assert _session(checkout_id).phase == phase


@then(parsers.cfparse('the checkout holds order "{order_id}"'))
def checkout_holds_order(checkout_id, order_id):
    assert _session(checkout_id).order_id == order_id


@then("the checkout has no order")
def checkout_has_no_order(checkout_id):
    assert _session(checkout_id).order_id is None


@then(parsers.cfparse('the checkout error is "{message}"'))
def checkout_error_is(checkout_id, message):
    assert _session(checkout_id).last_error == message


@then(parsers.cfparse("the checkout grand total is {amount}"))
def grand_total_is(checkout_id, amount):
    assert _session(checkout_id).totals.grand_total == float(amount)


@then(parsers.cfparse("the checkout tax is {amount}"))
def tax_is(checkout_id, amount):
    assert _session(checkout_id).totals.tax == float(amount)


@then(parsers.cfparse("the last settlement amount is {amount}"))
def last_settlement_amount(fakes, amount):
    assert fakes["settlement"].calls[-1]["amount"] == float(amount)


@then(parsers.cfparse("{count:d} order was created"))
def orders_created(fakes, count):
    assert len(fakes["orders"].calls) == count


@then(parsers.cfparse("{count:d} settlements were attempted"))
def settlements_attempted(fakes, count):
    assert len(fakes["settlement"].calls) == count


@then("the cart is empty")
def cart_is_empty(fakes, customer_id):
    assert fakes["carts"].get_cart(customer_id).is_empty
