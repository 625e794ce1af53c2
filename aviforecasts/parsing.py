"""
Sub-algorithms shared by the parser strategies.

Providers describe danger levels as free text, keywords or numbers, and
publish their issue timestamps in a handful of different shapes. The
helpers here turn those into DangerLevel values and calendar dates, and
assemble day sequences with the leading-day backfill rule.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .models import DangerLevel, DayForecast, Forecast

logger = logging.getLogger(__name__)

LEVEL_NAMES = {
    "low": DangerLevel.LOW,
    "moderate": DangerLevel.MODERATE,
    "considerable": DangerLevel.CONSIDERABLE,
    "high": DangerLevel.HIGH,
    "extreme": DangerLevel.EXTREME,
}

# Weekday names by date.weekday(); independent of the process locale
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_LEVEL_KEYWORD_RE = re.compile(r"\b(low|moderate|considerable|high|extreme)\b", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_MONTH_DAY_YEAR_RE = re.compile(r"([A-Za-z]+)\.?\s+(\d{1,2})[a-z]*\s*,?\s*(\d{4})")


# =============================================================================
# Danger levels
# =============================================================================

def level_from_name(name: Optional[str]) -> DangerLevel:
    """Convert a single level keyword such as ' Low ' to its DangerLevel."""
    if not name or not isinstance(name, str):
        return DangerLevel.UNKNOWN
    return LEVEL_NAMES.get(name.strip().lower(), DangerLevel.UNKNOWN)


def highest_level_in_text(text: Optional[str]) -> DangerLevel:
    """
    Find the highest level keyword in a block of free text.

    Matching is case-insensitive and whole-word only, so "highway" does not
    count as "high". Returns UNKNOWN when no keyword is present.
    """
    if not text or not isinstance(text, str):
        return DangerLevel.UNKNOWN

    level = DangerLevel.UNKNOWN
    for match in _LEVEL_KEYWORD_RE.finditer(text):
        level = max(level, level_from_name(match.group(1)))
    return level


def level_from_number(value) -> DangerLevel:
    """Parse a leading integer and accept it only when it is a valid level (0-5)."""
    if value is None or isinstance(value, bool):
        return DangerLevel.UNKNOWN
    if isinstance(value, int):
        number = value
    else:
        match = _LEADING_INT_RE.match(str(value))
        if not match:
            return DangerLevel.UNKNOWN
        number = int(match.group(1))

    if DangerLevel.UNKNOWN <= number <= DangerLevel.EXTREME:
        return DangerLevel(number)
    return DangerLevel.UNKNOWN


def highest_of(levels: Iterable[DangerLevel]) -> DangerLevel:
    return max(levels, default=DangerLevel.UNKNOWN)


# =============================================================================
# Dates
# =============================================================================

def date_from_timestamp(text: str) -> date:
    """Date part of a timestamp like '2012-02-02T18:14:00' or '2012-02-10T00:00:00Z'."""
    return date.fromisoformat(text.strip()[:10])


def date_from_month_day_year(text: Optional[str]) -> Optional[date]:
    """
    Find a date written as 'November 9, 2012', 'February 24th, 2012' or
    'Nov 9 2012' anywhere in the text.
    """
    if not text:
        return None
    match = _MONTH_DAY_YEAR_RE.search(text)
    if not match:
        return None

    month, day, year = match.groups()
    for fmt in ("%B %d %Y", "%b %d %Y"):
        try:
            return datetime.strptime(f"{month} {day} {year}", fmt).date()
        except ValueError:
            continue
    return None


def date_from_epoch(seconds, utc_offset_hours: int) -> date:
    """Calendar date of a Unix timestamp, shifted by a fixed offset from UTC."""
    moment = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    return (moment + timedelta(hours=utc_offset_hours)).date()


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def first_forecast_date(issued: date, day_text: Optional[str]) -> Optional[date]:
    """
    Work out which date a forecast's first described day refers to.

    Forecasts are issued either on the morning of the first forecasted day
    or the evening before it, so the candidates are the issue date and the
    day after. The weekday named in day_text (e.g. 'Friday night and
    Saturday') decides between them.
    """
    if not day_text:
        return None
    for offset in (0, 1):
        candidate = issued + timedelta(days=offset)
        if re.search(rf"\b{weekday_name(candidate)}\b", day_text, re.IGNORECASE):
            return candidate
    return None


# =============================================================================
# Day sequences
# =============================================================================

def sequential_days(start: date, levels: Iterable[DangerLevel]) -> Forecast:
    return [DayForecast(start + timedelta(days=i), level) for i, level in enumerate(levels)]


def with_leading_day(days: Forecast) -> Forecast:
    """
    Prepend a day before the first described day, carrying the same level.

    Some bulletins are issued with the following day as the first described
    day; the leading entry covers the time until that day starts.
    """
    if not days:
        return days
    first = days[0]
    return [DayForecast(first.date - timedelta(days=1), first.level)] + list(days)


def backfill_from_issue(days: Forecast, issued: date) -> Forecast:
    """Apply the leading-day rule only when the first described day is the day after issue."""
    if days and days[0].date == issued + timedelta(days=1):
        return with_leading_day(days)
    return days


def log_forecast(region_id: str, forecast: Optional[List[DayForecast]]) -> None:
    for i, day in enumerate(forecast or []):
        logger.debug(f"regionId: {region_id}; forecast[{i}]: {day.to_dict()}")
