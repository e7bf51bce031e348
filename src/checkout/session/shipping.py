"""Shipping address selection — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.address.address import InlineAddress
from checkout.domain import checkout
from checkout.session.ownership import load_owned_session
from checkout.session.session import CheckoutSession


@checkout.command(part_of="CheckoutSession")
class SelectSavedAddress:
    checkout_id = Identifier(required=True)
    customer_id = Identifier()
    address_id = String(required=True, max_length=64)


@checkout.command(part_of="CheckoutSession")
class EnterInlineAddress:
    """Ship to an address typed in at checkout."""

    checkout_id = Identifier(required=True)
    customer_id = Identifier()
    first_name = String(required=True, max_length=127)
    last_name = String(required=True, max_length=127)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=255)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=20)


@checkout.command_handler(part_of=CheckoutSession)
class ShippingAddressHandler:
    @handle(SelectSavedAddress)
    def select_saved_address(self, command):
        session = load_owned_session(command.checkout_id, command.customer_id)
        session.select_saved_address(command.address_id)
        current_domain.repository_for(CheckoutSession).add(session)

    @handle(EnterInlineAddress)
    def enter_inline_address(self, command):
        session = load_owned_session(command.checkout_id, command.customer_id)

        address = InlineAddress(
            first_name=command.first_name,
            last_name=command.last_name,
            street=command.street,
            city=command.city,
            state=command.state,
            postal_code=command.postal_code,
            country=command.country,
            phone=command.phone,
        )
        session.set_inline_address(address)
        current_domain.repository_for(CheckoutSession).add(session)
