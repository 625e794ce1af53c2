"""
Avalanche Forecast Aggregator

Collects avalanche danger forecasts from many heterogeneous sources and
republishes them as one normalized snapshot:
- Per-provider parsing of JSON APIs, CAAML XML, RSS and scraped HTML
- Bounded-concurrency fetching with a single attempt per run
- Stale-result fallback cache and per-provider fetch throttling
- Diagnostic plausibility validation
- Atomic snapshot publication
"""

from .cache import ForecastCache, RunContext
from .fetcher import FetchError, FetchErrorKind, SourceFetcher
from .models import DangerLevel, DayForecast, Forecast, ParserId, RegionDescriptor, RegionResult
from .parsers import PARSERS, ParserStrategy, parse_forecast
from .parsing import highest_level_in_text, level_from_name, level_from_number
from .publisher import SnapshotPublisher
from .registry import SourceRegistry
from .scheduler import AggregationRun, ForecastAggregator, ForecastScheduler, RunState
from .validator import ForecastValidator, ValidationResult

__version__ = "1.0.0"

__all__ = [
    "ForecastCache",
    "RunContext",
    "FetchError",
    "FetchErrorKind",
    "SourceFetcher",
    "DangerLevel",
    "DayForecast",
    "Forecast",
    "ParserId",
    "RegionDescriptor",
    "RegionResult",
    "PARSERS",
    "ParserStrategy",
    "parse_forecast",
    "highest_level_in_text",
    "level_from_name",
    "level_from_number",
    "SnapshotPublisher",
    "SourceRegistry",
    "AggregationRun",
    "ForecastAggregator",
    "ForecastScheduler",
    "RunState",
    "ForecastValidator",
    "ValidationResult",
]
