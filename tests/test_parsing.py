from datetime import date

import pytest

from aviforecasts.models import DangerLevel, DayForecast
from aviforecasts.parsing import (
    backfill_from_issue,
    date_from_epoch,
    date_from_month_day_year,
    date_from_timestamp,
    first_forecast_date,
    highest_level_in_text,
    level_from_name,
    level_from_number,
    sequential_days,
    with_leading_day,
)


@pytest.mark.parametrize("name, expected", [
    ("low", 1),
    ("moderate", 2),
    ("considerable", 3),
    ("high", 4),
    ("extreme", 5),
    ("Low", 1),
    ("lOW", 1),
    (" low", 1),
    ("low ", 1),
    (" LOW ", 1),
    ("   lOw ", 1),
    ("foo", 0),
    ("lower", 0),
    ("", 0),
    (None, 0),
])
def test_level_from_name(name, expected):
    assert level_from_name(name) == expected


@pytest.mark.parametrize("text, expected", [
    ("low", 1),
    ("extreme", 5),
    ("   lOw ", 1),
    ("low high", 4),
    (" low high   ", 4),
    ("high low", 4),
    ("low low", 1),
    ("low high low", 4),
    ("low highways", 1),
    ("highway", 0),
    ("lowhigh", 0),
    ("lower", 0),
    ("The danger is CONSIDERABLE above treeline.", 3),
    ("3:Considerable", 3),
    ("", 0),
    (None, 0),
])
def test_highest_level_in_text(text, expected):
    assert highest_level_in_text(text) == expected


def test_highest_level_in_text_ignores_non_strings():
    assert highest_level_in_text(4) == DangerLevel.UNKNOWN


@pytest.mark.parametrize("value, expected", [
    ("3", 3),
    (" 2 ", 2),
    ("3 - Considerable", 3),
    (4, 4),
    ("0", 0),
    ("5", 5),
    ("6", 0),
    ("-1", 0),
    (-1, 0),
    ("abc", 0),
    ("", 0),
    (None, 0),
])
def test_level_from_number(value, expected):
    assert level_from_number(value) == expected


@pytest.mark.parametrize("text, expected", [
    ("2012-02-02T18:14:00", date(2012, 2, 2)),
    ("2012-02-10T00:00:00Z", date(2012, 2, 10)),
    ("2012-02-02", date(2012, 2, 2)),
    ("2012-11-02 18:30:00", date(2012, 11, 2)),
])
def test_date_from_timestamp(text, expected):
    assert date_from_timestamp(text) == expected


@pytest.mark.parametrize("text, expected", [
    ("February 24, 2012 at 11:19AM", date(2012, 2, 24)),
    ("February 24th, 2012 at 11:19AM", date(2012, 2, 24)),
    ("Issued by Drew Hardesty for November 9, 2012 - 11:19am", date(2012, 11, 9)),
    ("Sun. November 18, 2012", date(2012, 11, 18)),
    ("Nov 9 2012", date(2012, 11, 9)),
    ("no date here", None),
    ("", None),
])
def test_date_from_month_day_year(text, expected):
    assert date_from_month_day_year(text) == expected


def test_date_from_epoch_applies_fixed_offset():
    midnight_utc = 1354579200  # 2012-12-04T00:00:00Z
    assert date_from_epoch(midnight_utc, 0) == date(2012, 12, 4)
    assert date_from_epoch(midnight_utc, -8) == date(2012, 12, 3)
    assert date_from_epoch(midnight_utc + 9 * 3600, -8) == date(2012, 12, 4)


def test_first_forecast_date_prefers_issue_day_then_next_day():
    friday = date(2012, 11, 2)

    assert first_forecast_date(friday, "Friday") == friday
    assert first_forecast_date(friday, "SATURDAY") == date(2012, 11, 3)
    assert first_forecast_date(friday, "Friday night and Saturday") == friday
    assert first_forecast_date(friday, "Monday") is None
    assert first_forecast_date(friday, "") is None
    assert first_forecast_date(friday, None) is None


def test_with_leading_day_copies_first_level():
    days = sequential_days(date(2012, 12, 5), [DangerLevel.CONSIDERABLE, DangerLevel.HIGH])

    result = with_leading_day(days)

    assert result[0] == DayForecast(date(2012, 12, 4), DangerLevel.CONSIDERABLE)
    assert result[1:] == days
    assert with_leading_day([]) == []


def test_backfill_from_issue_only_when_first_day_follows_issue():
    days = sequential_days(date(2012, 11, 3), [DangerLevel.LOW])

    assert len(backfill_from_issue(days, date(2012, 11, 2))) == 2
    assert backfill_from_issue(days, date(2012, 11, 3)) == days
