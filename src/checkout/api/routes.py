"""FastAPI routes for the Checkout bounded context.

Each route translates between Pydantic schemas (external contract) and
Protean commands (internal domain concepts). The acting customer arrives in
the ``X-Customer-Id`` header; authentication itself happens upstream.
"""

from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    AbandonCheckoutRequest,
    CheckoutIdResponse,
    CheckoutResponse,
    ChoosePaymentMethodRequest,
    FinalizeResponse,
    InlineAddressRequest,
    PhaseResponse,
    SelectSavedAddressRequest,
    ShippingSchema,
    StatusResponse,
    TotalsSchema,
)
from checkout.session.card import CARD_PAYMENT_METHODS, CardDetails
from checkout.session.exits import AbandonCheckout, HandleCartEmptied
from checkout.session.finalization import FinalizeCheckout
from checkout.session.navigation import AdvanceCheckout, StepBack
from checkout.session.ownership import load_owned_session
from checkout.session.payment import ChoosePaymentMethod
from checkout.session.session import CheckoutSession
from checkout.session.shipping import EnterInlineAddress, SelectSavedAddress
from checkout.session.starting import StartCheckout

checkout_router = APIRouter(prefix="/checkouts", tags=["checkouts"])


def register_checkout_exception_handlers(app: FastAPI) -> None:
    """Protean's handlers, plus 404 for unknown sessions and 409 for state conflicts."""
    register_exception_handlers(app)

    @app.exception_handler(ObjectNotFoundError)
    async def object_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.messages})

    @app.exception_handler(InvalidOperationError)
    async def invalid_operation(request: Request, exc: InvalidOperationError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": exc.messages})


def _checkout_response(session: CheckoutSession) -> CheckoutResponse:
    shipping = None
    if session.saved_address is not None:
        shipping = ShippingSchema(selection="saved", address_id=session.saved_address.address_id)
    elif session.inline_address is not None:
        shipping = ShippingSchema(selection="inline", address=session.inline_address.to_dict())

    totals = TotalsSchema(**session.totals.to_dict()) if session.totals is not None else None

    return CheckoutResponse(
        checkout_id=str(session.id),
        customer_id=str(session.customer_id),
        phase=session.phase,
        shipping=shipping,
        payment_method=session.payment_method,
        card_last4=session.card_last4,
        order_id=session.order_id,
        order_number=session.order_number,
        totals=totals,
        last_error=session.last_error,
        settlement_attempts=session.settlement_attempts or 0,
    )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
@checkout_router.post("", status_code=201, response_model=CheckoutIdResponse)
async def start_checkout(x_customer_id: str = Header(default="")) -> CheckoutIdResponse:
    """Open a checkout for the customer's current cart."""
    command = StartCheckout(customer_id=x_customer_id or None)
    checkout_id = current_domain.process(command, asynchronous=False)
    return CheckoutIdResponse(checkout_id=checkout_id)


@checkout_router.get("/{checkout_id}", response_model=CheckoutResponse)
async def get_checkout(checkout_id: str, x_customer_id: str = Header(default="")) -> CheckoutResponse:
    """Current state of a checkout. Other customers' sessions are not visible."""
    return _checkout_response(load_owned_session(checkout_id, x_customer_id))


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------
@checkout_router.put("/{checkout_id}/shipping/saved", response_model=StatusResponse)
async def select_saved_address(
    checkout_id: str, body: SelectSavedAddressRequest, x_customer_id: str = Header(default="")
) -> StatusResponse:
    command = SelectSavedAddress(
        checkout_id=checkout_id, customer_id=x_customer_id or None, address_id=body.address_id
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="ok")


@checkout_router.put("/{checkout_id}/shipping/inline", response_model=StatusResponse)
async def enter_inline_address(
    checkout_id: str, body: InlineAddressRequest, x_customer_id: str = Header(default="")
) -> StatusResponse:
    command = EnterInlineAddress(checkout_id=checkout_id, customer_id=x_customer_id or None, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="ok")


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------
@checkout_router.put("/{checkout_id}/payment-method", response_model=StatusResponse)
async def choose_payment_method(
    checkout_id: str, body: ChoosePaymentMethodRequest, x_customer_id: str = Header(default="")
) -> StatusResponse:
    """Choose how to pay. Card fields are checked here and only the last four digits are kept."""
    card_last4 = None
    if body.payment_method in CARD_PAYMENT_METHODS and body.card_number:
        card = CardDetails(
            number=body.card_number,
            expiry=body.card_expiry or "",
            cvc=body.card_cvc or "",
            holder_name=body.card_holder_name or "",
        )
        card_last4 = card.last4

    command = ChoosePaymentMethod(
        checkout_id=checkout_id,
        customer_id=x_customer_id or None,
        payment_method=body.payment_method,
        card_last4=card_last4,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="ok")


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
@checkout_router.post("/{checkout_id}/advance", response_model=PhaseResponse)
async def advance_checkout(checkout_id: str, x_customer_id: str = Header(default="")) -> PhaseResponse:
    command = AdvanceCheckout(checkout_id=checkout_id, customer_id=x_customer_id or None)
    phase = current_domain.process(command, asynchronous=False)
    return PhaseResponse(phase=phase)


@checkout_router.post("/{checkout_id}/back", response_model=PhaseResponse)
async def step_back(checkout_id: str, x_customer_id: str = Header(default="")) -> PhaseResponse:
    command = StepBack(checkout_id=checkout_id, customer_id=x_customer_id or None)
    phase = current_domain.process(command, asynchronous=False)
    return PhaseResponse(phase=phase)


# ---------------------------------------------------------------------------
# Finalize
# ---------------------------------------------------------------------------
@checkout_router.post("/{checkout_id}/finalize", response_model=FinalizeResponse)
async def finalize_checkout(checkout_id: str, x_customer_id: str = Header(default="")) -> FinalizeResponse:
    """Place the order and settle its payment.

    Service failures are part of the response (``outcome`` and ``reason``);
    the checkout stays open for a retry.
    """
    command = FinalizeCheckout(checkout_id=checkout_id, customer_id=x_customer_id or None)
    result = current_domain.process(command, asynchronous=False)
    return FinalizeResponse(
        outcome=result.outcome.value,
        checkout_id=result.checkout_id,
        phase=result.phase,
        order_id=result.order_id,
        order_number=result.order_number,
        reason=result.reason,
    )


# ---------------------------------------------------------------------------
# Exits
# ---------------------------------------------------------------------------
@checkout_router.post("/{checkout_id}/abandon", response_model=StatusResponse)
async def abandon_checkout(
    checkout_id: str, body: AbandonCheckoutRequest | None = None, x_customer_id: str = Header(default="")
) -> StatusResponse:
    command = AbandonCheckout(
        checkout_id=checkout_id,
        customer_id=x_customer_id or None,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="abandoned")


@checkout_router.post("/{checkout_id}/cart-emptied", response_model=StatusResponse)
async def cart_emptied(checkout_id: str) -> StatusResponse:
    abandoned = current_domain.process(HandleCartEmptied(checkout_id=checkout_id), asynchronous=False)
    return StatusResponse(status="abandoned" if abandoned else "unchanged")
