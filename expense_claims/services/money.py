"""
Monetary computation for expense claims.

All amounts are ``decimal.Decimal``. Floats are only accepted at the edges
and are converted through their string form so ``0.1`` stays ``0.1``.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

from expense_claims.utils.errors import ValidationError

CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
ZERO_AMOUNT = Decimal("0.00")
ZERO_RATE = Decimal("0.0000")
# Largest value a stored SGD amount or claim total can hold
MAX_SGD_AMOUNT = Decimal("9999999999.99")

DecimalLike = Union[Decimal, int, str, float]


def to_decimal(value: DecimalLike) -> Decimal:
    """
    Convert a numeric value to Decimal without going through binary floats.

    Raises:
        InvalidOperation: if a string is not a decimal literal
        TypeError: for booleans and non-numeric types
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not monetary values")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"Unsupported monetary value type: {type(value).__name__}")


def _usable(value: DecimalLike) -> Decimal | None:
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError):
        return None
    if not number.is_finite() or number.is_zero():
        return None
    return number


def compute_sgd_amount(amount: DecimalLike, rate: DecimalLike) -> Decimal:
    """
    Convert an original-currency amount to SGD.

    Returns ``amount * rate`` rounded half up to cents, or ``0.00`` when
    either input is zero or not a finite number.

    Raises:
        ValidationError: the converted amount does not fit ``MAX_SGD_AMOUNT``
    """
    amount_dec = _usable(amount)
    rate_dec = _usable(rate)
    if amount_dec is None or rate_dec is None:
        return ZERO_AMOUNT
    try:
        sgd = (amount_dec * rate_dec).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValidationError(
            "SGD amount is too large", amount=str(amount_dec), rate=str(rate_dec)
        ) from e
    return _bounded(sgd, "SGD amount")


def compute_forex_rate(sgd_amount: DecimalLike, amount: DecimalLike) -> Decimal:
    """
    Back out the exchange rate from an SGD amount, to 4 decimal places.

    Used when a receipt already states the SGD charge (card statements).
    Returns ``0.0000`` when amount is zero or either input is unusable.
    """
    amount_dec = _usable(amount)
    if amount_dec is None:
        return ZERO_RATE
    try:
        sgd_dec = to_decimal(sgd_amount)
    except (InvalidOperation, TypeError):
        return ZERO_RATE
    if not sgd_dec.is_finite():
        return ZERO_RATE
    return (sgd_dec / amount_dec).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def compute_claim_total(items: Iterable[Any]) -> Decimal:
    """
    Sum the ``sgd_amount`` of every item, exactly, to cents.

    Items may be ORM rows, prepared item rows or mappings with an
    ``sgd_amount`` key.

    Raises:
        ValidationError: the total does not fit ``MAX_SGD_AMOUNT``
    """
    total = ZERO_AMOUNT
    for item in items:
        value = item["sgd_amount"] if isinstance(item, dict) else item.sgd_amount
        total += to_decimal(value)
    return _bounded(total.quantize(CENT, rounding=ROUND_HALF_UP), "Claim total")


def _bounded(value: Decimal, label: str) -> Decimal:
    if value > MAX_SGD_AMOUNT:
        raise ValidationError(f"{label} {value} exceeds {MAX_SGD_AMOUNT}", limit=str(MAX_SGD_AMOUNT))
    return value
