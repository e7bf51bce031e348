"""Checkout finalization — command and handler.

Runs the order/payment orchestrator against the customer's current cart and
discounts. The session is saved whatever the outcome, so an order created
before a failed settlement is never created twice.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.gateways import get_cart_service, get_discount_service
from checkout.session.orchestrator import build_orchestrator
from checkout.session.session import CheckoutSession
from checkout.utils.logging import add_context, clear_context


@checkout.command(part_of="CheckoutSession")
class FinalizeCheckout:
    checkout_id = Identifier(required=True)
    customer_id = Identifier()


@checkout.command_handler(part_of=CheckoutSession)
class FinalizeCheckoutHandler:
    @handle(FinalizeCheckout)
    def finalize_checkout(self, command):
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.checkout_id)

        cart = get_cart_service().get_cart(session.customer_id)
        discounts = get_discount_service().get_discounts(session.customer_id)

        add_context(checkout_id=str(session.id), customer_id=str(session.customer_id))
        try:
            result = build_orchestrator().finalize(
                session,
                cart,
                discounts,
                authenticated=session.is_owned_by(command.customer_id),
            )
        finally:
            clear_context()

        repo.add(session)
        return result
