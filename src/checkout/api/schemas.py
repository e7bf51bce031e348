"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Card fields are accepted here, validated, and
reduced to the last four digits before any command is built.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class SelectSavedAddressRequest(BaseModel):
    address_id: str = Field(min_length=1, max_length=64)


class InlineAddressRequest(BaseModel):
    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "first_name": "Ada",
                    "last_name": "Lovelace",
                    "street": "12 Analytical Way",
                    "city": "London",
                    "state": "Greater London",
                    "postal_code": "NW1 6XE",
                    "country": "United Kingdom",
                    "phone": "+44 20 7946 0958",
                }
            ]
        }
    }


class ChoosePaymentMethodRequest(BaseModel):
    payment_method: str
    card_number: str | None = None
    card_expiry: str | None = None  # MM/YY
    card_cvc: str | None = None
    card_holder_name: str | None = None


class AbandonCheckoutRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutIdResponse(BaseModel):
    checkout_id: str


class StatusResponse(BaseModel):
    status: str


class PhaseResponse(BaseModel):
    phase: str


class TotalsSchema(BaseModel):
    subtotal: float
    discount_total: float
    shipping: float
    tax: float
    grand_total: float
    currency: str
    authoritative: bool


class ShippingSchema(BaseModel):
    selection: str  # saved, inline
    address_id: str | None = None
    address: dict | None = None


class CheckoutResponse(BaseModel):
    checkout_id: str
    customer_id: str
    phase: str
    shipping: ShippingSchema | None = None
    payment_method: str | None = None
    card_last4: str | None = None
    order_id: str | None = None
    order_number: str | None = None
    totals: TotalsSchema | None = None
    last_error: str | None = None
    settlement_attempts: int = 0


class FinalizeResponse(BaseModel):
    outcome: str  # confirmed, order_failed, settlement_failed, ignored
    checkout_id: str
    phase: str
    order_id: str | None = None
    order_number: str | None = None
    reason: str | None = None
