"""Inline card fields entered on the payment step.

Only the format is checked here; tokenization and authorization belong to
the settlement provider. The card itself is never stored on the session,
only its last four digits.
"""

import re
from dataclasses import dataclass, field

from protean.exceptions import ValidationError

CARD_PAYMENT_METHODS = frozenset({"credit_card", "debit_card"})

_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")
_CVC_PATTERN = re.compile(r"^\d{3,4}$")


def card_format_errors(number: str, expiry: str, cvc: str, holder_name: str) -> dict:
    errors = {}

    digits = re.sub(r"[\s-]", "", number or "")
    if not digits.isdigit() or not 13 <= len(digits) <= 19:
        errors["card_number"] = ["Invalid card number"]
    if not _EXPIRY_PATTERN.match((expiry or "").strip()):
        errors["card_expiry"] = ["Expiry must be MM/YY"]
    if not _CVC_PATTERN.match((cvc or "").strip()):
        errors["card_cvc"] = ["Invalid CVC"]
    if not (holder_name or "").strip():
        errors["card_holder_name"] = ["Cardholder name is required"]

    return errors


@dataclass(frozen=True)
class CardDetails:
    number: str = field(repr=False)
    expiry: str
    cvc: str = field(repr=False)
    holder_name: str

    def __post_init__(self):
        errors = card_format_errors(self.number, self.expiry, self.cvc, self.holder_name)
        if errors:
            raise ValidationError(errors)

    @property
    def last4(self) -> str:
        return re.sub(r"[\s-]", "", self.number)[-4:]
