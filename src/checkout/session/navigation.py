"""Step navigation — commands and handler.

Moving forward is guarded (sign-in and address before payment, a payment
method before review). The first entry to the payment step is reported to
analytics as ``begin_checkout``.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.analytics.emitter import get_emitter
from checkout.domain import checkout
from checkout.gateways import get_cart_service
from checkout.session.ownership import load_owned_session
from checkout.session.session import CheckoutPhase, CheckoutSession

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class AdvanceCheckout:
    checkout_id = Identifier(required=True)
    customer_id = Identifier()


@checkout.command(part_of="CheckoutSession")
class StepBack:
    checkout_id = Identifier(required=True)
    customer_id = Identifier()


@checkout.command_handler(part_of=CheckoutSession)
class NavigationHandler:
    @handle(AdvanceCheckout)
    def advance(self, command):
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.checkout_id)

        first_entry = not session.checkout_begun
        target = session.advance(authenticated=session.is_owned_by(command.customer_id))
        repo.add(session)

        if target == CheckoutPhase.PAYMENT and first_entry:
            cart = get_cart_service().get_cart(session.customer_id)
            get_emitter().begin_checkout(session, cart.lines)

        return target.value

    @handle(StepBack)
    def step_back(self, command):
        session = load_owned_session(command.checkout_id, command.customer_id)
        if session.back():
            current_domain.repository_for(CheckoutSession).add(session)
        else:
            logger.info("step_back_ignored", checkout_id=str(session.id), phase=session.phase)
        return session.phase
