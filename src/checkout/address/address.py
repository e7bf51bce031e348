"""Shipping address selection for a checkout session.

A session ships either to an address saved in the customer's address book
(``SavedAddressRef``) or to an address typed in at checkout
(``InlineAddress``), never both. ``shipping_payload`` turns whichever one is
selected into the fields the Order Service expects.
"""

import re
from dataclasses import dataclass

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from checkout.domain import checkout

_PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


@checkout.value_object(part_of="CheckoutSession")
class SavedAddressRef:
    """Reference to an address in the customer's address book."""

    address_id = String(required=True, max_length=64)

    @invariant.post
    def address_id_must_not_be_blank(self):
        if not str(self.address_id).strip():
            raise ValidationError({"address_id": ["Address reference cannot be blank"]})


@checkout.value_object(part_of="CheckoutSession")
class InlineAddress:
    """An address entered by hand at checkout.

    Validation is structural only: required fields present and within the
    length bounds the Order Service accepts. No carrier or geocoding checks.
    """

    first_name = String(required=True, min_length=1, max_length=127)
    last_name = String(required=True, min_length=1, max_length=127)
    street = String(required=True, min_length=5, max_length=255)
    city = String(required=True, min_length=2, max_length=255)
    state = String(required=True, min_length=2, max_length=100)
    postal_code = String(required=True, min_length=3, max_length=20)
    country = String(required=True, min_length=2, max_length=100)
    phone = String(max_length=20)

    @invariant.post
    def required_fields_must_not_be_blank(self):
        blank = [
            name
            for name in ("first_name", "last_name", "street", "city", "state", "postal_code", "country")
            if not (getattr(self, name) or "").strip()
        ]
        if blank:
            raise ValidationError({name: ["This field is required"] for name in blank})

    @invariant.post
    def phone_must_be_well_formed(self):
        if self.phone and not (re.search(r"\d", self.phone) and _PHONE_PATTERN.match(self.phone)):
            raise ValidationError({"phone": [f"Invalid phone number: {self.phone!r}"]})

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}"


ShippingSelection = SavedAddressRef | InlineAddress


def shipping_payload(selection: ShippingSelection) -> dict:
    """Serialize a shipping selection into Order Service request fields."""
    if isinstance(selection, SavedAddressRef):
        address_id = str(selection.address_id).strip()
        return {"address_id": int(address_id) if address_id.isdigit() else address_id}

    if isinstance(selection, InlineAddress):
        payload = {
            "shipping_name": selection.full_name,
            "shipping_street": selection.street.strip(),
            "shipping_city": selection.city.strip(),
            "shipping_state": selection.state.strip(),
            "shipping_zip": selection.postal_code.strip(),
            "shipping_country": selection.country.strip(),
        }
        if selection.phone:
            payload["shipping_phone"] = selection.phone.strip()
        return payload

    raise TypeError(f"Unsupported shipping selection: {type(selection).__name__}")


# ---------------------------------------------------------------------------
# Address book records
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SavedAddress:
    """An address as listed by the Address Service."""

    id: str
    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    is_default: bool = False
    company: str | None = None
    phone: str | None = None
    type: str = "shipping"

    @classmethod
    def from_payload(cls, data: dict) -> "SavedAddress":
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            street=data.get("street", ""),
            city=data.get("city", ""),
            state=data.get("state", ""),
            zip_code=data.get("zip_code", ""),
            country=data.get("country", ""),
            is_default=bool(data.get("is_default", False)),
            company=data.get("company") or None,
            phone=data.get("phone") or None,
            type=data.get("type") or "shipping",
        )

    def as_ref(self) -> SavedAddressRef:
        return SavedAddressRef(address_id=self.id)


def default_address(addresses: list[SavedAddress]) -> SavedAddress | None:
    """Pick the address to preselect: the one flagged default, else the first."""
    if not addresses:
        return None
    return next((address for address in addresses if address.is_default), addresses[0])
