from datetime import date, datetime, timezone

from aviforecasts.models import DangerLevel, DayForecast
from aviforecasts.parsing import sequential_days
from aviforecasts.validator import ForecastValidator, is_listed, pacific_today

TODAY = date(2012, 12, 4)


def days(start, *levels):
    return sequential_days(start, [DangerLevel(level) for level in levels])


def test_valid_forecast():
    validator = ForecastValidator()

    result = validator.validate("nwac_1", days(TODAY, 1, 2), for_current_day=True, today=TODAY)

    assert result.valid
    assert result.problems == []


def test_null_forecast_unexpected():
    result = ForecastValidator().validate("nwac_1", None)

    assert not result.valid
    assert result.problems == ["null forecast"]


def test_null_forecast_expected_for_listed_regions():
    validator = ForecastValidator(null_forecast_expected={"cac_bighorn", "wcmac"})

    assert validator.validate("cac_bighorn", None).valid
    assert validator.validate("wcmac_north", []).valid
    assert not validator.validate("cac_bighorn-south", None).valid


def test_date_gap_is_flagged():
    forecast = [
        DayForecast(date(2012, 12, 4), DangerLevel.LOW),
        DayForecast(date(2012, 12, 6), DangerLevel.LOW),
    ]

    result = ForecastValidator().validate("cac_1", forecast)

    assert not result.valid
    assert result.problems == ["date gap at index 1"]


def test_date_gap_waived_for_exempt_region():
    forecast = [
        DayForecast(date(2012, 12, 4), DangerLevel.LOW),
        DayForecast(date(2012, 12, 6), DangerLevel.LOW),
    ]

    assert ForecastValidator(date_sequence_exempt={"cac_1"}).validate("cac_1", forecast).valid


def test_unknown_level_flagged_unless_allowed():
    forecast = days(TODAY, 0, 2)
    validator = ForecastValidator(unknown_level_allowed={"caic_090"})

    assert not validator.validate("caic_040", forecast).valid
    assert validator.validate("caic_090", forecast).valid


def test_null_level_always_flagged():
    forecast = [DayForecast(TODAY, None)]
    validator = ForecastValidator(unknown_level_allowed={"caic_090"})

    result = validator.validate("caic_090", forecast)

    assert not result.valid
    assert "null level" in result.problems


def test_missing_current_day():
    forecast = days(date(2012, 12, 2), 2, 2)

    result = ForecastValidator().validate("nwac_1", forecast, for_current_day=True, today=TODAY)

    assert not result.valid
    assert result.problems == ["no forecast for current day"]


def test_missing_current_day_waived_for_non_daily_regions():
    forecast = days(date(2012, 12, 2), 2)
    validator = ForecastValidator(not_issued_daily={"uac_moab_1"})

    assert validator.validate("uac_moab_1", forecast, for_current_day=True, today=TODAY).valid


def test_current_day_not_checked_by_default():
    forecast = days(date(2012, 12, 2), 2)

    assert ForecastValidator().validate("nwac_1", forecast, today=TODAY).valid


def test_current_day_skipped_when_other_checks_fail():
    forecast = days(date(2012, 12, 2), 0)

    result = ForecastValidator().validate("nwac_1", forecast, for_current_day=True, today=TODAY)

    assert result.problems == ["unknown level"]


def test_pacific_today_uses_fixed_offset():
    assert pacific_today(datetime(2012, 12, 4, 7, 59, tzinfo=timezone.utc)) == date(2012, 12, 3)
    assert pacific_today(datetime(2012, 12, 4, 8, 0, tzinfo=timezone.utc)) == date(2012, 12, 4)
    # naive datetimes are read as UTC
    assert pacific_today(datetime(2012, 12, 4, 8, 0)) == date(2012, 12, 4)


def test_is_listed_matches_region_or_provider():
    assert is_listed("wcmac_north", {"wcmac"})
    assert is_listed("caic_090", {"caic_090"})
    assert not is_listed("caic_091", {"caic_090"})
    assert not is_listed("", {"caic"})


def test_throttled_region_with_nothing_cached_is_expected():
    validator = ForecastValidator()

    assert validator.validate("nac_1234", None, for_current_day=True, fetch_pending=True).valid
    assert not validator.validate("nac_1234", None, for_current_day=True).valid
