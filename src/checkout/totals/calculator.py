"""Totals calculator — derives checkout money totals from cart and discount lines.

All arithmetic is done in ``Decimal`` and quantized to cents, half-up,
before the result is stored on a ``Totals`` value object.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from checkout.totals.totals import Totals

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Quantize a number to cents, rounding half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def grand_total_of(subtotal: Decimal, discount_total: Decimal, shipping: Decimal, tax: Decimal) -> Decimal:
    return max(ZERO, subtotal - discount_total + shipping + tax)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CartLine:
    """A line of the shopping cart as supplied by the Cart Service."""

    product_id: str
    unit_price: Decimal
    quantity: int
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_money(self.unit_price))
        if self.unit_price < ZERO:
            raise ValueError(f"Unit price cannot be negative: {self.unit_price}")
        if self.quantity < 1:
            raise ValueError(f"Quantity must be at least 1: {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class DiscountSource(Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


@dataclass(frozen=True)
class DiscountLine:
    """A discount applied to the cart, from a coupon code or an automatic rule."""

    source: DiscountSource
    amount: Decimal
    code: str | None = None
    rule_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "amount", to_money(self.amount))
        if self.amount < ZERO:
            raise ValueError(f"Discount amount cannot be negative: {self.amount}")

    @classmethod
    def manual(cls, code: str, amount) -> "DiscountLine":
        return cls(source=DiscountSource.MANUAL, amount=amount, code=code)

    @classmethod
    def automatic(cls, rule_id: str, amount) -> "DiscountLine":
        return cls(source=DiscountSource.AUTOMATIC, amount=amount, rule_id=rule_id)


@dataclass(frozen=True)
class FlatShippingPolicy:
    """Flat shipping rate; the store currently ships for free."""

    amount: Decimal = field(default=ZERO)

    def shipping_for(self, subtotal: Decimal) -> Decimal:  # noqa: ARG002
        return to_money(self.amount)


FREE_SHIPPING = FlatShippingPolicy()


def first_coupon_code(discount_lines: list[DiscountLine]) -> str | None:
    """The coupon code forwarded with an order: the first manual line applied."""
    return next(
        (line.code for line in discount_lines if line.source == DiscountSource.MANUAL and line.code),
        None,
    )


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------
def calculate_totals(
    cart_lines: list[CartLine],
    discount_lines: list[DiscountLine],
    shipping_policy: FlatShippingPolicy = FREE_SHIPPING,
    tax_rate: Decimal = ZERO,
    currency: str = "USD",
) -> Totals:
    """Compute preview totals for display before the order exists."""
    tax_rate = Decimal(str(tax_rate))
    if tax_rate < ZERO:
        raise ValueError(f"Tax rate cannot be negative: {tax_rate}")

    subtotal = to_money(sum((line.line_total for line in cart_lines), ZERO))
    discount_total = min(to_money(sum((line.amount for line in discount_lines), ZERO)), subtotal)
    shipping = shipping_policy.shipping_for(subtotal)
    tax = to_money((subtotal - discount_total) * tax_rate)

    return Totals(
        subtotal=float(subtotal),
        discount_total=float(discount_total),
        shipping=float(shipping),
        tax=float(tax),
        grand_total=float(grand_total_of(subtotal, discount_total, shipping, tax)),
        currency=currency,
        authoritative=False,
    )


def authoritative_totals(subtotal, shipping_cost, tax, total, currency: str = "USD") -> Totals:
    """Build authoritative totals from an Order Service response.

    The service does not echo the discount it applied; it is whatever
    separates the components from the total it reports.
    """
    subtotal = to_money(subtotal)
    shipping = to_money(shipping_cost)
    tax = to_money(tax)
    grand_total = max(ZERO, to_money(total))
    discount_total = max(ZERO, subtotal + shipping + tax - grand_total)

    return Totals(
        subtotal=float(subtotal),
        discount_total=float(discount_total),
        shipping=float(shipping),
        tax=float(tax),
        grand_total=float(grand_total),
        currency=currency,
        authoritative=True,
    )


def drift(preview: Totals, authoritative: Totals) -> Decimal:
    """How far the authoritative grand total moved away from the preview."""
    return to_money(authoritative.grand_total) - to_money(preview.grand_total)
