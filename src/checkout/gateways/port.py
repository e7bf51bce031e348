"""Checkout collaborator ports (abstract interfaces).

Defines the contracts of the external services the checkout talks to, so
fake adapters (development and tests) and HTTP adapters (production) can be
swapped without changing any domain or application code.

Adapters raise ``ServiceUnavailable`` for transport-level trouble
(connection errors, timeouts, malformed responses). Business refusals come
back as results with ``success=False``.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from checkout.address.address import SavedAddress
from checkout.totals.calculator import CartLine, DiscountLine


class ServiceUnavailable(Exception):
    """An external service could not be reached or answered nonsense."""

    def __init__(self, service: str, reason: str) -> None:
        self.service = service
        self.reason = reason
        super().__init__(f"{service}: {reason}")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CreatedOrder:
    """The ``data.order`` part of a successful Order Service response."""

    id: str
    order_number: str | None
    status: str
    total: float
    subtotal: float
    shipping_cost: float
    tax: float
    created_at: datetime | str | None = None
    shipping_address: dict | None = None


def _order_amount(order: dict, name: str, required: bool = True) -> float:
    """Read a money field of an order response.

    ``total`` and ``subtotal`` must be present; ``shipping_cost`` and
    ``tax`` default to zero. Anything that is not a finite, non-negative
    number makes the whole response unusable.
    """
    value = order.get(name)
    if value is None:
        if required:
            raise ServiceUnavailable("order_service", f"order response is missing {name}")
        return 0.0

    if isinstance(value, bool):
        raise ServiceUnavailable("order_service", f"order {name} is not a number: {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ServiceUnavailable("order_service", f"order {name} is not a number: {value!r}") from exc

    if not math.isfinite(amount) or amount < 0:
        raise ServiceUnavailable("order_service", f"order {name} is out of range: {value!r}")
    return amount


@dataclass(frozen=True)
class OrderResult:
    success: bool
    order: CreatedOrder | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, body: dict) -> "OrderResult":
        """Parse ``{success, message?, data: {order: {...}}}``.

        Raises ``ServiceUnavailable`` when a successful response carries
        money fields that are missing, non-numeric or negative.
        """
        if not body.get("success"):
            return cls(success=False, message=body.get("message") or "Order could not be created")

        order = (body.get("data") or {}).get("order")
        if not order or order.get("id") is None:
            return cls(success=False, message=body.get("message") or "Order response carried no order")

        return cls(
            success=True,
            order=CreatedOrder(
                id=str(order["id"]),
                order_number=order.get("order_number"),
                status=order.get("status", "pending"),
                total=_order_amount(order, "total"),
                subtotal=_order_amount(order, "subtotal"),
                shipping_cost=_order_amount(order, "shipping_cost", required=False),
                tax=_order_amount(order, "tax", required=False),
                created_at=order.get("created_at"),
                shipping_address=order.get("shipping_address"),
            ),
            message=body.get("message"),
        )


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    settlement_reference: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class CartSnapshot:
    lines: list[CartLine] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


@dataclass(frozen=True)
class DiscountSnapshot:
    """Discounts applied to a cart, with the service's own cart totals."""

    manual: list[DiscountLine] = field(default_factory=list)
    automatic: list[DiscountLine] = field(default_factory=list)
    discount_total: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    total: float = 0.0

    @property
    def lines(self) -> list[DiscountLine]:
        return [*self.manual, *self.automatic]


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------
class OrderService(ABC):
    @abstractmethod
    def create_order(self, payload: dict) -> OrderResult:
        """Create an order from an outbound checkout payload."""
        ...


class SettlementService(ABC):
    @abstractmethod
    def settle(
        self,
        order_id: str,
        amount: float,
        currency: str,
        payment_method: str | None,
        idempotency_key: str,
    ) -> SettlementResult:
        """Move money for a previously created order."""
        ...


class CartService(ABC):
    @abstractmethod
    def get_cart(self, customer_id: str) -> CartSnapshot: ...

    @abstractmethod
    def clear_cart(self, customer_id: str) -> None: ...


class DiscountService(ABC):
    @abstractmethod
    def get_discounts(self, customer_id: str) -> DiscountSnapshot: ...


class AddressBook(ABC):
    @abstractmethod
    def list_addresses(self, customer_id: str) -> list[SavedAddress]: ...


class AnalyticsSink(ABC):
    @abstractmethod
    def track(self, name: str, properties: dict) -> None:
        """Deliver one analytics event. Delivery is best effort."""
        ...
