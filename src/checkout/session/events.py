"""Domain events for the CheckoutSession aggregate.

Versioned, immutable facts about a checkout attempt. Analytics events
(``begin_checkout``, ``order_created``, ``purchase``) are a separate,
best-effort concern handled by ``checkout.analytics``.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="CheckoutSession")
class CheckoutStarted:
    """A signed-in customer entered checkout with a non-empty cart."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    started_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class ShippingAddressSelected:
    """A saved or hand-entered shipping address was chosen."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    selection = String(required=True, max_length=10)  # "saved" or "inline"
    address_id = String(max_length=64)


@checkout.event(part_of="CheckoutSession")
class PaymentMethodChosen:
    __version__ = 1

    checkout_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    card_last4 = String(max_length=4)


@checkout.event(part_of="CheckoutSession")
class CheckoutAdvanced:
    """The session moved forward one step."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    from_phase = String(required=True, max_length=30)
    to_phase = String(required=True, max_length=30)


@checkout.event(part_of="CheckoutSession")
class CheckoutSteppedBack:
    __version__ = 1

    checkout_id = Identifier(required=True)
    from_phase = String(required=True, max_length=30)
    to_phase = String(required=True, max_length=30)


@checkout.event(part_of="CheckoutSession")
class OrderPlaced:
    """The Order Service created the order for this checkout."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    order_id = String(required=True, max_length=64)
    order_number = String(max_length=64)
    grand_total = Float(required=True)
    currency = String(default="USD")
    placed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class OrderPlacementFailed:
    __version__ = 1

    checkout_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    failed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class PaymentSettled:
    """Money moved for the order; the checkout is confirmed."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    order_id = String(required=True, max_length=64)
    amount = Float(required=True)
    settlement_reference = String(max_length=255)
    attempt_number = Integer(required=True)
    settled_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class PaymentSettlementFailed:
    """Settlement was refused; the order stands and payment can be retried."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    order_id = String(required=True, max_length=64)
    reason = String(required=True, max_length=500)
    attempt_number = Integer(required=True)
    failed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutAbandoned:
    __version__ = 1

    checkout_id = Identifier(required=True)
    phase = String(required=True, max_length=30)
    reason = String(max_length=255)
    abandoned_at = DateTime(required=True)
