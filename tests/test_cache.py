from datetime import date
from concurrent.futures import ThreadPoolExecutor

from aviforecasts.cache import ForecastCache, RunContext
from aviforecasts.models import DangerLevel, DayForecast


FORECAST = [DayForecast(date(2012, 11, 2), DangerLevel.LOW)]


def test_cache_put_and_get():
    cache = ForecastCache()

    assert cache.get("nwac_1") is None
    cache.put("nwac_1", FORECAST)

    assert cache.get("nwac_1") == FORECAST
    assert "nwac_1" in cache
    assert len(cache) == 1
    assert cache.snapshot() == {"nwac_1": FORECAST}


def test_fallback_returns_cached_or_none():
    cache = ForecastCache()

    assert cache.fallback("nwac_1", "fetch failed") is None
    cache.put("nwac_1", FORECAST)
    assert cache.fallback("nwac_1", "fetch failed") == FORECAST


def test_run_numbers_are_sequential_from_zero():
    context = RunContext()

    assert [context.begin_run() for _ in range(3)] == [0, 1, 2]
    assert context.run_count == 3


def test_run_numbers_are_unique_across_threads():
    context = RunContext()

    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(pool.map(lambda _: context.begin_run(), range(100)))

    assert sorted(numbers) == list(range(100))


def test_throttled_provider_fetches_every_nth_run():
    context = RunContext(throttle_every=6, throttled_providers={"nac"})

    fetching_runs = [n for n in range(13) if not context.skips_fetch("nac", n)]

    assert fetching_runs == [0, 6, 12]
    assert not any(context.skips_fetch("nwac", n) for n in range(13))
