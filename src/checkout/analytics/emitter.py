"""Analytics for the checkout funnel.

Three events are tracked: ``begin_checkout`` (first entry to the payment
step), ``order_created`` (the Order Service accepted the order) and
``purchase`` (payment settled). Delivery is fire-and-forget: a sink that
fails is logged and skipped, and never affects the checkout itself.
"""

import structlog

from checkout.gateways.port import AnalyticsSink

logger = structlog.get_logger(__name__)

BEGIN_CHECKOUT = "begin_checkout"
ORDER_CREATED = "order_created"
PURCHASE = "purchase"

_BASE_KEYS = ("checkout_id", "currency", "total_value", "item_count", "items")

REQUIRED_KEYS = {
    BEGIN_CHECKOUT: _BASE_KEYS,
    ORDER_CREATED: (*_BASE_KEYS, "order_id"),
    PURCHASE: (*_BASE_KEYS, "order_id", "payment_method"),
}


class LoggingSink(AnalyticsSink):
    """Writes analytics events to the structured log."""

    def track(self, name: str, properties: dict) -> None:
        logger.info("analytics_event", analytics_event=name, **properties)


def _item_properties(cart_lines) -> list[dict]:
    return [
        {
            "product_id": line.product_id,
            "product_name": line.name,
            "quantity": line.quantity,
            "price": float(line.unit_price),
        }
        for line in cart_lines
    ]


class EventEmitter:
    """Builds analytics property bags from a session and fans them out to sinks."""

    def __init__(self, sinks: list[AnalyticsSink] | None = None) -> None:
        self.sinks: list[AnalyticsSink] = list(sinks) if sinks is not None else [LoggingSink()]

    def add_sink(self, sink: AnalyticsSink) -> None:
        self.sinks.append(sink)

    def _properties(self, session, cart_lines) -> dict:
        totals = session.totals
        return {
            "checkout_id": str(session.id),
            "currency": totals.currency if totals is not None else None,
            "total_value": totals.grand_total if totals is not None else None,
            "item_count": sum(line.quantity for line in cart_lines),
            "items": _item_properties(cart_lines),
        }

    def emit(self, name: str, properties: dict) -> bool:
        """Deliver an event to every sink. Returns False if the payload was dropped."""
        missing = [key for key in REQUIRED_KEYS.get(name, ()) if properties.get(key) is None]
        if missing:
            logger.warning("analytics_event_dropped", analytics_event=name, missing=missing)
            return False

        for sink in self.sinks:
            try:
                sink.track(name, properties)
            except Exception as exc:
                logger.warning(
                    "analytics_sink_failed",
                    analytics_event=name,
                    sink=sink.__class__.__name__,
                    error=str(exc),
                )
        return True

    def begin_checkout(self, session, cart_lines) -> bool:
        return self.emit(BEGIN_CHECKOUT, self._properties(session, cart_lines))

    def order_created(self, session, cart_lines) -> bool:
        properties = self._properties(session, cart_lines)
        properties["order_id"] = session.order_id
        properties["order_number"] = session.order_number
        return self.emit(ORDER_CREATED, properties)

    def purchase(self, session, cart_lines) -> bool:
        properties = self._properties(session, cart_lines)
        properties["order_id"] = session.order_id
        properties["order_number"] = session.order_number
        properties["settlement_reference"] = session.settlement_reference
        properties["payment_method"] = session.payment_method
        return self.emit(PURCHASE, properties)


_current_emitter: EventEmitter | None = None


def get_emitter() -> EventEmitter:
    """Return the current emitter. Defaults to one logging sink."""
    global _current_emitter
    if _current_emitter is None:
        _current_emitter = EventEmitter()
    return _current_emitter


def set_emitter(emitter: EventEmitter) -> None:
    global _current_emitter
    _current_emitter = emitter


def reset_emitter() -> None:
    global _current_emitter
    _current_emitter = None
