"""DateKey helpers: the ``DD-MM-YYYY`` strings that key every grade map."""

from datetime import date, datetime, timedelta
import math
import re
from typing import Any, Iterable

DATE_KEY_FORMAT = "%d-%m-%Y"
DATE_KEY_PLACEHOLDER = "DD-MM-YYYY"
DATE_KEY_PATTERN = re.compile(r"\d{2}-\d{2}-\d{4}")
LOOSE_DATE_PATTERN = re.compile(r"\d{2}[-./]\d{2}[-./]\d{4}")

# Spreadsheet serial day 0 (the 1900 date system as used by Excel and LibreOffice)
SERIAL_EPOCH = date(1899, 12, 30)
MAX_SERIAL = 100000


def is_date_key(value: Any) -> bool:
    return isinstance(value, str) and DATE_KEY_PATTERN.fullmatch(value) is not None


def format_date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> date:
    """Parse a ``DD-MM-YYYY`` key into a date; raises ValueError on bad input."""
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def serial_to_date_key(serial: float) -> str:
    """Convert a spreadsheet day count (days since 1899-12-30) to a DateKey.

    Any time-of-day fraction is dropped.
    """
    return format_date_key(SERIAL_EPOCH + timedelta(days=math.floor(serial)))


def _is_serial(number: float) -> bool:
    return 0 < number < MAX_SERIAL


def normalize_date_header(value: Any) -> str:
    """
    Normalize a date column header read from a grade sheet.

    ``DD.MM.YYYY`` / ``DD/MM/YYYY`` / ``DD-MM-YYYY`` text gets ``-`` separators,
    numeric serials below 100000 are converted from the spreadsheet epoch and
    date cells are formatted directly. Anything else is returned as trimmed
    text so the caller can reject it.
    """
    if isinstance(value, (datetime, date)):
        return format_date_key(value)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if _is_serial(value):
            return serial_to_date_key(value)
        return str(value)

    text = str(value if value is not None else "").strip()
    if LOOSE_DATE_PATTERN.fullmatch(text):
        return re.sub(r"[./]", "-", text)

    try:
        number = float(text)
    except ValueError:
        return text
    if _is_serial(number):
        return serial_to_date_key(number)
    return text


def _sort_key(key: str) -> tuple:
    if is_date_key(key):
        day, month, year = (int(part) for part in key.split("-"))
        return (0, year, month, day, key)
    return (1, 0, 0, 0, key)


def sort_date_keys(keys: Iterable[str]) -> list[str]:
    """Sort DateKeys by calendar order, not string order."""
    return sorted(set(keys), key=_sort_key)
