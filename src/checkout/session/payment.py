"""Payment method selection — command and handler.

Card numbers never reach the command. Callers validate the full card with
``CardDetails`` (the HTTP API does so in its payment-method route) and pass
only its last four digits; the session itself checks no more than that
``card_last4`` is four digits. Code that dispatches ``ChoosePaymentMethod``
directly is trusted to have validated the card first.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.session.ownership import load_owned_session
from checkout.session.session import CheckoutSession


@checkout.command(part_of="CheckoutSession")
class ChoosePaymentMethod:
    """Record the payment method. ``card_last4`` must come from a card already validated with ``CardDetails``."""

    checkout_id = Identifier(required=True)
    customer_id = Identifier()
    payment_method = String(required=True, max_length=50)
    card_last4 = String(max_length=4)


@checkout.command_handler(part_of=CheckoutSession)
class ChoosePaymentMethodHandler:
    @handle(ChoosePaymentMethod)
    def choose_payment_method(self, command):
        session = load_owned_session(command.checkout_id, command.customer_id)
        session.choose_payment_method(command.payment_method, card_last4=command.card_last4)
        current_domain.repository_for(CheckoutSession).add(session)
