import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Mapping, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_ONE_DECIMAL = Decimal("0.1")


def now_utc_iso() -> str:
    """Return current UTC time as ISO8601 string with 'Z'."""
    return (
        datetime.datetime.now(datetime.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def field_value(record: Any, name: str) -> Any:
    """Read a field from a pydantic model, dataclass or plain dict."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def clean_text(value: Any) -> Optional[str]:
    """Stripped string, or None for null/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date(raw: Optional[str]) -> Optional[datetime.date]:
    """
    Parse an incident date ("2024-03-15", "2024-03", "2024-03-15T10:00:00Z").

    Returns None for empty or unparseable values.
    """
    text = clean_text(raw)
    if not text:
        return None
    default = datetime.datetime(2000, 1, 1)
    try:
        return date_parser.parse(text, default=default).date()
    except (ValueError, OverflowError):
        return None


def month_key(day: datetime.date) -> str:
    """Calendar-month bucket key, YYYY-MM."""
    return f"{day.year:04d}-{day.month:02d}"


def month_window(end: datetime.date, months: int) -> List[str]:
    """
    Month keys for the `months` calendar months ending at `end`'s month,
    oldest first.
    """
    if months < 1:
        return []
    first = end.replace(day=1)
    return [
        month_key(first - relativedelta(months=offset))
        for offset in range(months - 1, -1, -1)
    ]


def round_half_up(value: Decimal) -> Decimal:
    """Round to one decimal place, halves away from zero."""
    return value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)


def percentage(part: int, whole: int) -> float:
    """part/whole as a percentage with one decimal; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return float(round_half_up(Decimal(part) * 100 / Decimal(whole)))
