"""
City and date normalization for ride search.

Free-text city names and calendar date structs coming from the search form
are validated and canonicalized here before any query runs. Nothing in this
module performs I/O; the only external input is the clock used to decide what
"the current year" is, which is injectable for tests.
"""

from __future__ import annotations

import calendar
import unicodedata
from datetime import MAXYEAR, date, datetime
from typing import Any, Callable, Mapping, Optional
from zoneinfo import ZoneInfo

from carpool_api.settings import SEARCH_TIMEZONE

CITY_MAX_LENGTH = 255


def _is_sanitized_char(ch: str) -> bool:
    return ch.isalpha() or ch.isnumeric() or ch.isspace() or ch == "-"


# PUBLIC_INTERFACE
def sanitize(text: str, max_length: int = CITY_MAX_LENGTH) -> str:
    """Trim, cap the length and drop anything but letters, numbers, whitespace and hyphens."""
    clean = text.strip()[:max_length]
    return "".join(ch for ch in clean if _is_sanitized_char(ch))


# PUBLIC_INTERFACE
def normalize_city(name: str) -> str:
    """
    Fold a city name to its comparison key.

    The name is sanitized, NFKD-decomposed, stripped of combining marks and
    lower-cased, so "Évry-Courcouronnes" and "evry-courcouronnes" compare equal.
    """
    decomposed = unicodedata.normalize("NFKD", sanitize(name))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return stripped.lower()


# PUBLIC_INTERFACE
def is_valid_city(name: Optional[str]) -> bool:
    """
    True iff the trimmed name is non-empty and only holds letters, whitespace and hyphens.

    The name is NFC-composed first, so "E" followed by a combining acute
    accent counts as the single letter "É".
    """
    if not isinstance(name, str):
        return False
    city = unicodedata.normalize("NFC", name).strip()
    if not city:
        return False
    return all(ch.isalpha() or ch.isspace() or ch == "-" for ch in city)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CityDateNormalizer:
    """
    Validates and canonicalizes search input.

    Args:
        tz_name: reference timezone for "current year" and "today".
        clock: callable returning an aware datetime; defaults to the wall
            clock in the reference timezone.
    """

    def __init__(
        self,
        tz_name: str = SEARCH_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tz = ZoneInfo(tz_name)
        self._clock = clock or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def is_valid_city(self, name: Optional[str]) -> bool:
        return is_valid_city(name)

    def normalize_city(self, name: str) -> str:
        return normalize_city(name)

    def is_valid_date(self, date_struct: Optional[Mapping[str, Any]]) -> bool:
        """
        Validate a {year, month, day} struct.

        Rules:
        - all three fields present and integral
        - year >= current year in the reference timezone (past years are
          always rejected, whatever the month/day)
        - 1 <= month <= 12
        - day exists in that month (leap years accounted for)
        """
        if not date_struct:
            return False

        year = _as_int(date_struct.get("year"))
        month = _as_int(date_struct.get("month"))
        day = _as_int(date_struct.get("day"))
        if year is None or month is None or day is None:
            return False

        if year < self.now().year or year > MAXYEAR:
            return False
        if month < 1 or month > 12:
            return False
        return 1 <= day <= calendar.monthrange(year, month)[1]

    def to_date(self, date_struct: Optional[Mapping[str, Any]]) -> Optional[date]:
        """Return the calendar date for a valid struct, or None."""
        if not self.is_valid_date(date_struct):
            return None
        return date(int(date_struct["year"]), int(date_struct["month"]), int(date_struct["day"]))
