"""Leaving checkout — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.session.ownership import load_owned_session
from checkout.session.session import CheckoutSession


@checkout.command(part_of="CheckoutSession")
class AbandonCheckout:
    checkout_id = Identifier(required=True)
    customer_id = Identifier()
    reason = String(max_length=255)


@checkout.command(part_of="CheckoutSession")
class HandleCartEmptied:
    """The customer's cart became empty while a checkout was open.

    Sent by the cart service rather than the customer, so it carries no
    customer id.
    """

    checkout_id = Identifier(required=True)


@checkout.command_handler(part_of=CheckoutSession)
class CheckoutExitHandler:
    @handle(AbandonCheckout)
    def abandon(self, command):
        session = load_owned_session(command.checkout_id, command.customer_id)
        session.abandon(reason=command.reason)
        current_domain.repository_for(CheckoutSession).add(session)

    @handle(HandleCartEmptied)
    def cart_emptied(self, command):
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.checkout_id)
        abandoned = session.cart_emptied()
        if abandoned:
            repo.add(session)
        return abandoned
