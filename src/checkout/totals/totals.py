"""Totals value object — the money summary shown and charged at checkout.

A preview is computed locally from cart and discount lines and is for
display only. Once the Order Service has created the order, its totals
replace the preview and are marked authoritative; from then on they are
used verbatim, including as the settlement amount.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, String

from checkout.domain import checkout

# Half a cent: float fields cannot hold exact cents
_TOLERANCE = 0.005


@checkout.value_object(part_of="CheckoutSession")
class Totals:
    subtotal = Float(default=0.0, min_value=0.0)
    discount_total = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    grand_total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="USD")
    authoritative = Boolean(default=False)

    @invariant.post
    def preview_must_add_up(self):
        if self.authoritative:
            return

        if self.discount_total > self.subtotal + _TOLERANCE:
            raise ValidationError({"discount_total": ["Discount cannot exceed the subtotal"]})

        expected = max(0.0, self.subtotal - self.discount_total + self.shipping + self.tax)
        if abs(self.grand_total - expected) > _TOLERANCE:
            raise ValidationError(
                {"grand_total": [f"Grand total {self.grand_total} does not match its components ({expected:.2f})"]}
            )

