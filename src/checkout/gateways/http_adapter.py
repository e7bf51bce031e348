"""HTTP adapters for the Order and Settlement services (httpx).

Both services answer with the storefront's envelope::

    {"success": bool, "message": str?, "data": {...}}

A non-2xx status with a parseable envelope is a business refusal and comes
back as a failed result. Connection errors, timeouts and bodies that are not
JSON are raised as ``ServiceUnavailable``.
"""

import httpx
import structlog

from checkout.gateways.port import (
    OrderResult,
    OrderService,
    ServiceUnavailable,
    SettlementResult,
    SettlementService,
)

logger = structlog.get_logger(__name__)


def _client_headers(api_token: str | None) -> dict:
    headers = {"Accept": "application/json"}
    if api_token:
        headers["Authorization"] = f"Bearer {api_token}"
    return headers


def _post(client: httpx.Client, service: str, path: str, payload: dict, headers: dict | None = None) -> dict:
    try:
        response = client.post(path, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("service_request_failed", service=service, path=path, error=str(exc))
        raise ServiceUnavailable(service, str(exc) or exc.__class__.__name__) from exc

    try:
        body = response.json()
    except ValueError as exc:
        logger.warning(
            "service_response_unreadable",
            service=service,
            path=path,
            status_code=response.status_code,
        )
        raise ServiceUnavailable(service, f"unreadable response (HTTP {response.status_code})") from exc

    if not isinstance(body, dict):
        raise ServiceUnavailable(service, f"unexpected response (HTTP {response.status_code})")

    if response.status_code >= 500 and "success" not in body:
        raise ServiceUnavailable(service, f"HTTP {response.status_code}")

    if response.is_error:
        body = {**body, "success": False}
    return body


class HttpOrderService(OrderService):
    """Creates orders through ``POST {base_url}/orders``."""

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = httpx.Client(
            base_url=base_url,
            headers=_client_headers(api_token),
            timeout=timeout,
            transport=transport,
        )

    def create_order(self, payload: dict) -> OrderResult:
        body = _post(self.client, "order_service", "/orders", payload)
        result = OrderResult.from_response(body)
        if result.success:
            logger.info(
                "order_service_created_order",
                order_id=result.order.id,
                order_number=result.order.order_number,
            )
        return result


class HttpSettlementService(SettlementService):
    """Settles payments through ``POST {base_url}/payments/settle``."""

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = httpx.Client(
            base_url=base_url,
            headers=_client_headers(api_token),
            timeout=timeout,
            transport=transport,
        )

    def settle(
        self,
        order_id: str,
        amount: float,
        currency: str,
        payment_method: str | None,
        idempotency_key: str,
    ) -> SettlementResult:
        body = _post(
            self.client,
            "settlement_service",
            "/payments/settle",
            {
                "order_id": order_id,
                "amount": amount,
                "currency": currency,
                "payment_method": payment_method,
            },
            headers={"Idempotency-Key": idempotency_key},
        )

        data = body.get("data") or {}
        if not body.get("success"):
            reason = data.get("failure_reason") or body.get("message") or "Payment could not be settled"
            return SettlementResult(success=False, failure_reason=reason)

        return SettlementResult(success=True, settlement_reference=data.get("settlement_reference"))
