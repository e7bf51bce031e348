"""Checkout error taxonomy.

Precondition errors block a transition before any network call is made. They
are Protean ``ValidationError``s keyed by the field the user has to correct,
so they render next to that field and map to HTTP 400.

Service errors come back from the Order or Settlement service. They carry a
human-readable reason, leave the session retryable and are reported through
the finalize outcome rather than raised to the caller.
"""

from protean.exceptions import ValidationError


class PreconditionError(ValidationError):
    """A checkout guard failed; the user must correct something first."""

    code = "precondition_failed"
    field = "checkout"
    default_message = "Checkout cannot continue"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__({self.field: [self.message]})


class Unauthenticated(PreconditionError):
    code = "unauthenticated"
    field = "customer"
    default_message = "You must sign in to complete your order"


class EmptyCart(PreconditionError):
    code = "empty_cart"
    field = "cart"
    default_message = "Your cart is empty"


class MissingAddress(PreconditionError):
    code = "missing_address"
    field = "shipping_address"
    default_message = "Select or enter a shipping address"


class CheckoutServiceError(Exception):
    """A retryable failure reported by an external checkout service."""

    code = "service_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class OrderCreationFailed(CheckoutServiceError):
    code = "order_creation_failed"


class SettlementFailed(CheckoutServiceError):
    code = "settlement_failed"
