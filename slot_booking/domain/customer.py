# slot_booking/domain/customer.py

import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from slot_booking.domain.exceptions import ValidationError

PHONE_LENGTH = 10
_COUNTRY_CODE = "91"
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    phone: str
    email: Optional[str] = None


def normalize_phone(raw: object) -> str:
    """
    Reduce a phone number to its national digits.

    Non-digits are stripped and a leading country code on a 12 digit
    number is dropped. Anything that is not 10 digits afterwards is rejected.
    """
    digits = re.sub(r"\D", "", str(raw or ""))
    if len(digits) == PHONE_LENGTH + len(_COUNTRY_CODE) and digits.startswith(_COUNTRY_CODE):
        digits = digits[len(_COUNTRY_CODE):]
    if len(digits) != PHONE_LENGTH:
        raise ValidationError("Invalid phone number")
    return digits


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_order_id() -> str:
    timestamp = _to_base36(int(time.time() * 1000))
    return f"EF{timestamp}{secrets.token_hex(3).upper()}"
