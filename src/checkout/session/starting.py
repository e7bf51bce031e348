"""Checkout start — command and handler.

Opens a session for the customer's current cart with preview totals and,
when the address book has one, a preselected saved address.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.address.address import default_address
from checkout.domain import checkout
from checkout.errors import Unauthenticated
from checkout.gateways import get_address_book, get_cart_service, get_discount_service
from checkout.session.orchestrator import preview_totals
from checkout.session.session import CheckoutSession
from checkout.settings import get_settings

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class StartCheckout:
    customer_id = Identifier()  # Missing for guests, who must sign in first


@checkout.command_handler(part_of=CheckoutSession)
class StartCheckoutHandler:
    @handle(StartCheckout)
    def start_checkout(self, command):
        if not command.customer_id:
            raise Unauthenticated()

        customer_id = str(command.customer_id)
        cart = get_cart_service().get_cart(customer_id)
        discounts = get_discount_service().get_discounts(customer_id)

        session = CheckoutSession.start(
            customer_id=customer_id,
            item_count=cart.item_count,
            totals=preview_totals(cart, discounts, get_settings()),
        )

        preselected = default_address(get_address_book().list_addresses(customer_id))
        if preselected is not None:
            session.select_saved_address(preselected.id)

        current_domain.repository_for(CheckoutSession).add(session)
        logger.info(
            "checkout_started",
            checkout_id=str(session.id),
            customer_id=customer_id,
            item_count=cart.item_count,
        )
        return str(session.id)
