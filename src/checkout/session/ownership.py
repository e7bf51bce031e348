"""Loading a checkout session on behalf of a customer.

A session that belongs to someone else is reported exactly like one that
does not exist, so one customer cannot learn about another's checkouts.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.session.session import CheckoutSession


def load_owned_session(checkout_id, customer_id) -> CheckoutSession:
    """Return the session if ``customer_id`` owns it; raise ``ObjectNotFoundError`` otherwise."""
    session = current_domain.repository_for(CheckoutSession).get(checkout_id)
    if not session.is_owned_by(customer_id):
        raise ObjectNotFoundError(f"Checkout {checkout_id} does not exist")
    return session
