"""Money parsing and formatting at the API boundary.

All arithmetic happens on integer cents. Decimal is only used to read
incoming decimal strings exactly; floats are rejected.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from splitpay_gateway.domain.exceptions import InvalidAmountError
from splitpay_gateway.domain.models import Money

CENT = Decimal("0.01")
# Amounts below 10**15 (before the decimal point)
MAX_INTEGER_DIGITS = 15


def to_cents(value: Union[str, int, Decimal]) -> int:
    """
    Convert a decimal amount ("12.34", "1000", Decimal("0.5")) to cents.

    Raises:
        InvalidAmountError: negative, non-numeric, too large, or finer than 1 cent
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(f"Amount must be a decimal string, got {value!r}")

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if amount < 0:
        raise InvalidAmountError(f"Amount must be non-negative: {value!r}")
    if amount.adjusted() >= MAX_INTEGER_DIGITS:
        raise InvalidAmountError(f"Amount is too large: {value!r}")

    try:
        exact = amount.quantize(CENT) == amount
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from e
    if not exact:
        raise InvalidAmountError(f"Amount has more than 2 fractional digits: {value!r}")

    return int(amount * 100)


def format_cents(cents: int) -> str:
    """Format cents as a 2-fraction-digit decimal string"""
    return Money(cents).amount


def parse_money(data: Mapping[str, Any], default_currency: str = "USD") -> Money:
    """Parse a Money object {"amount": "12.34", "currency": "USD"}"""
    if "amount" not in data:
        raise InvalidAmountError("Money object has no amount")
    currency = data.get("currency") or default_currency
    return Money(to_cents(data["amount"]), str(currency).upper())


def parse_money_json(raw: Optional[str], default_currency: str = "USD") -> Optional[Money]:
    """
    Parse a Money JSON string as found in forward-navigation params.

    Returns None for blank or malformed input so callers can fall back to a
    plain amount param.
    """
    if not raw or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return parse_money(data, default_currency)
    except InvalidAmountError:
        return None


def resolve_total(
    total_money_json: Optional[str],
    plain_amount: Optional[str],
    default_currency: str = "USD",
) -> Money:
    """
    Pick the amount to split: Money JSON if it holds a positive amount,
    otherwise the plain amount string.

    Raises:
        InvalidAmountError: neither source yields a usable amount
    """
    money = parse_money_json(total_money_json, default_currency)
    if money is not None and money.amount_cents > 0:
        return money
    if plain_amount and plain_amount.strip():
        return Money(to_cents(plain_amount), default_currency)
    if money is not None:
        return money
    raise InvalidAmountError("No total amount to split")
