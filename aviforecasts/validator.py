"""
Plausibility checks for parsed forecasts.

Validation is diagnostic only: results are logged and counted, and never
stop a forecast from being published. Each check can be waived for known
exceptions through the allow-lists in config.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .config import (
    DATE_SEQUENCE_EXEMPT,
    NOT_ISSUED_DAILY,
    NULL_FORECAST_EXPECTED,
    PACIFIC_UTC_OFFSET_HOURS,
    UNKNOWN_LEVEL_ALLOWED,
)
from .models import DangerLevel, Forecast, forecast_to_dicts

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    problems: List[str] = field(default_factory=list)


def pacific_today(now: Optional[datetime] = None) -> date:
    """
    Today's date in a fixed UTC-8 approximation of Pacific time.

    NOTE ignores daylight saving; the allow-lists were tuned against this.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now.astimezone(timezone.utc) + timedelta(hours=PACIFIC_UTC_OFFSET_HOURS)).date()


def is_listed(region_id: str, allow_list: Iterable[str]) -> bool:
    """An allow-list entry matches the exact regionId or its whole provider."""
    provider = region_id.split("_", 1)[0] if region_id else ""
    return region_id in allow_list or provider in allow_list


class ForecastValidator:

    def __init__(
        self,
        null_forecast_expected: Iterable[str] = NULL_FORECAST_EXPECTED,
        date_sequence_exempt: Iterable[str] = DATE_SEQUENCE_EXEMPT,
        unknown_level_allowed: Iterable[str] = UNKNOWN_LEVEL_ALLOWED,
        not_issued_daily: Iterable[str] = NOT_ISSUED_DAILY,
    ):
        self.null_forecast_expected = frozenset(null_forecast_expected)
        self.date_sequence_exempt = frozenset(date_sequence_exempt)
        self.unknown_level_allowed = frozenset(unknown_level_allowed)
        self.not_issued_daily = frozenset(not_issued_daily)

    def validate(
        self,
        region_id: str,
        forecast: Optional[Forecast],
        for_current_day: bool = False,
        today: Optional[date] = None,
        fetch_pending: bool = False,
    ) -> ValidationResult:
        """
        Run every check against one region's forecast.

        fetch_pending marks a throttled region skipped this run with nothing
        cached yet; its missing forecast is not counted against it.
        """
        if not forecast:
            if fetch_pending:
                logger.info(f"forecast validation: as expected, throttled source skipped with nothing cached; regionId: {region_id}")
                return ValidationResult(valid=True)
            return self._check_null(region_id)

        problems: List[str] = []
        problems.extend(self._check_dates(region_id, forecast))
        problems.extend(self._check_levels(region_id, forecast))

        if not problems and for_current_day:
            problems.extend(self._check_current_day(region_id, forecast, today or pacific_today()))

        return ValidationResult(valid=not problems, problems=problems)

    def _check_null(self, region_id: str) -> ValidationResult:
        if is_listed(region_id, self.null_forecast_expected):
            logger.info(f"forecast validation: as expected, got null forecast; regionId: {region_id}")
            return ValidationResult(valid=True)

        logger.warning(f"forecast validation: UNEXPECTED got null forecast; regionId: {region_id}")
        return ValidationResult(valid=False, problems=["null forecast"])

    def _check_dates(self, region_id: str, forecast: Forecast) -> List[str]:
        if is_listed(region_id, self.date_sequence_exempt):
            return []

        first = forecast[0].date
        for i, day in enumerate(forecast):
            if day.date != first + timedelta(days=i):
                logger.warning(f"forecast validation: UNEXPECTED date for regionId: {region_id}; "
                               f"forecast: {forecast_to_dicts(forecast)}")
                return [f"date gap at index {i}"]
        return []

    def _check_levels(self, region_id: str, forecast: Forecast) -> List[str]:
        problems = []

        if any(day.level is None for day in forecast):
            logger.warning(f"forecast validation: UNEXPECTED got null aviLevel; regionId: {region_id}; "
                           f"forecast: {forecast_to_dicts(forecast)}")
            problems.append("null level")

        if any(day.level == DangerLevel.UNKNOWN for day in forecast):
            if is_listed(region_id, self.unknown_level_allowed):
                logger.info(f"forecast validation: as expected, got aviLevel 0 in forecast; regionId: {region_id}")
            else:
                logger.warning(f"forecast validation: UNEXPECTED got aviLevel 0 in forecast; regionId: {region_id}; "
                               f"forecast: {forecast_to_dicts(forecast)}")
                problems.append("unknown level")

        return problems

    def _check_current_day(self, region_id: str, forecast: Forecast, today: date) -> List[str]:
        # TODO early in the morning some centers have not issued the day's forecast yet
        if any(day.date == today for day in forecast):
            logger.info(f"forecast validation: as expected, found forecast for current day; regionId: {region_id}")
            return []

        if is_listed(region_id, self.not_issued_daily):
            logger.info(f"forecast validation: as expected, did not find forecast for current day; regionId: {region_id}")
            return []

        logger.warning(f"forecast validation: UNEXPECTED did not find forecast for current day; "
                       f"current date: {today.isoformat()}; regionId: {region_id}; "
                       f"forecast: {forecast_to_dicts(forecast)}")
        return ["no forecast for current day"]
