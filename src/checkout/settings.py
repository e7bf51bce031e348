"""Checkout settings, read from the environment.

``PROTEAN_ENV`` selects the environment as it does for the domain itself;
the ``CHECKOUT_*`` variables below tune money handling and the external
service endpoints.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation


def _decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


@dataclass(frozen=True)
class CheckoutSettings:
    currency: str = "USD"
    tax_rate: Decimal = Decimal("0")
    flat_shipping: Decimal = Decimal("0")
    order_service_url: str | None = None
    settlement_service_url: str | None = None
    api_token: str | None = None
    http_timeout: float = 10.0
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            currency=os.getenv("CHECKOUT_CURRENCY", "USD").upper(),
            tax_rate=_decimal("CHECKOUT_TAX_RATE", "0"),
            flat_shipping=_decimal("CHECKOUT_FLAT_SHIPPING", "0"),
            order_service_url=os.getenv("CHECKOUT_ORDER_SERVICE_URL") or None,
            settlement_service_url=os.getenv("CHECKOUT_SETTLEMENT_SERVICE_URL") or None,
            api_token=os.getenv("CHECKOUT_API_TOKEN") or None,
            http_timeout=float(os.getenv("CHECKOUT_HTTP_TIMEOUT", "10")),
            environment=os.getenv("PROTEAN_ENV", "development"),
        )


def get_settings() -> CheckoutSettings:
    return CheckoutSettings.from_env()
