"""
Expense date normalization.

Employees type item dates as ``MM/dd`` (year implied) or ``MM/dd/yyyy``.
Year-less dates are placed in the year that keeps them closest to today:
an expense more than 30 days in the future belongs to last year, and one
more than 335 days in the past belongs to next year. This keeps claims
filed around New Year on the right side of the boundary.

Month and day are range-checked only (1-12, 1-31). A day past the end of
its month rolls forward into the next month (``02/30`` is 1 or 2 March),
which is how dates have always been stored.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from expense_claims.utils.errors import InvalidDateError
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

FUTURE_WINDOW_DAYS = 30
PAST_WINDOW_DAYS = 335


def today_local() -> date:
    """Today's date in the configured business timezone."""
    from expense_claims.api.config import settings

    return datetime.now(ZoneInfo(settings.TZ)).date()


def _rolled_date(year: int, month: int, day: int) -> date:
    """Build a date, letting day overflow carry into the following month."""
    try:
        return date(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError) as err:
        raise InvalidDateError(f"Date out of range: {month}/{day}/{year}") from err


def _parse_component(raw: str, label: str, value: str) -> int:
    if not raw.isdigit():
        raise InvalidDateError(f"Invalid {label} in date '{value}'", value=value)
    return int(raw)


def resolve_partial_date(value: str, today: date | None = None) -> date:
    """
    Resolve ``MM/dd`` or ``MM/dd/yyyy`` to a calendar date.

    Args:
        value: The date as typed on the claim form
        today: Reference date for the year heuristic (defaults to today)

    Raises:
        InvalidDateError: if the value is malformed or out of range
    """
    if not isinstance(value, str):
        raise InvalidDateError("Date must be a string", value=repr(value))

    parts = value.strip().split("/")
    if len(parts) not in (2, 3):
        raise InvalidDateError(f"Expected MM/dd or MM/dd/yyyy, got '{value}'", value=value)

    month = _parse_component(parts[0].strip(), "month", value)
    day = _parse_component(parts[1].strip(), "day", value)
    if not 1 <= month <= 12:
        raise InvalidDateError(f"Month out of range in '{value}'", value=value)
    if not 1 <= day <= 31:
        raise InvalidDateError(f"Day out of range in '{value}'", value=value)

    if len(parts) == 3:
        year = _parse_component(parts[2].strip(), "year", value)
        if year < 1:
            raise InvalidDateError(f"Year out of range in '{value}'", value=value)
        return _rolled_date(year, month, day)

    today = today or today_local()
    candidate = _rolled_date(today.year, month, day)
    days_diff = (candidate - today).days

    if days_diff > FUTURE_WINDOW_DAYS:
        return _rolled_date(today.year - 1, month, day)
    if days_diff < -PAST_WINDOW_DAYS:
        return _rolled_date(today.year + 1, month, day)
    return candidate


def resolve_partial_date_or_today(value: str, today: date | None = None) -> date:
    """
    Lenient variant for batch imports: unparseable dates fall back to today.

    User-facing submission must use :func:`resolve_partial_date` instead.
    """
    today = today or today_local()
    try:
        return resolve_partial_date(value, today=today)
    except InvalidDateError as err:
        logger.warning(f"Falling back to {today.isoformat()} for date {value!r}: {err.message}")
        return today
