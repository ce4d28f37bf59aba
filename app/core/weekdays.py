"""Weekday normalization for stored weekly schedules.

Profile data stores weekdays in several spellings ("tuesday", "Tue", "tues",
"TU"); everything is mapped onto :class:`Weekday` before comparison.
"""

from datetime import date
from enum import Enum


class Weekday(str, Enum):
    """Day of week, ordered to match ``date.weekday()``."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Weekday a calendar date falls on."""
        return _ORDERED[day.weekday()]

    @property
    def abbreviation(self) -> str:
        """Three-letter form, e.g. ``tue``."""
        return self.value[:3]

    @property
    def short_form(self) -> str:
        """Two-letter form, e.g. ``tu``."""
        return self.value[:2]


_ORDERED = list(Weekday)

# Common four-letter spellings that are not a prefix-free 3-letter abbreviation
_EXTRA_ALIASES = {
    "tues": Weekday.TUESDAY,
    "weds": Weekday.WEDNESDAY,
    "thur": Weekday.THURSDAY,
    "thurs": Weekday.THURSDAY,
}

_ALIASES: dict[str, Weekday] = {}
for _day in _ORDERED:
    _ALIASES[_day.value] = _day
    _ALIASES[_day.abbreviation] = _day
    _ALIASES[_day.short_form] = _day
_ALIASES.update(_EXTRA_ALIASES)


def parse_weekday(value: object) -> Weekday | None:
    """
    Map a stored weekday representation onto a Weekday.

    Accepts full names, 3-letter abbreviations and 2-letter short forms in
    any case, plus integers 0-6 counted from Sunday.

    Args:
        value: Raw weekday as stored in profile data

    Returns:
        Matching Weekday, or None when the value is not recognised
    """
    if isinstance(value, Weekday):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if 0 <= value <= 6:
            # Sunday-based index, as produced by JavaScript clients
            return _ORDERED[(value - 1) % 7]
        return None
    if not isinstance(value, str):
        return None
    return _ALIASES.get(value.strip().lower())


def matches(stored: object, day: date) -> bool:
    """Check whether a stored weekday value denotes the weekday of ``day``."""
    return parse_weekday(stored) == Weekday.from_date(day)
