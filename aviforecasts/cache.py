"""
Process-lifetime state shared between aggregation runs.

ForecastCache keeps the last successfully parsed forecast per region and
is served whenever a fetch or parse fails. RunContext counts runs and
decides which providers skip fetching in a given run. Both are created
once at process start and handed to the aggregator.
"""

import logging
import threading
from typing import Dict, Iterable, Optional

from .config import THROTTLE_EVERY_N_RUNS, THROTTLED_PROVIDERS
from .models import Forecast

logger = logging.getLogger(__name__)


class ForecastCache:
    """
    Thread-safe regionId -> Forecast mapping.

    Entries are written only after a successful parse and never expire.
    Nothing is persisted; a restart begins with an empty cache.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Forecast] = {}

    def get(self, region_id: str) -> Optional[Forecast]:
        with self._lock:
            return self._entries.get(region_id)

    def put(self, region_id: str, forecast: Forecast) -> None:
        with self._lock:
            self._entries[region_id] = forecast

    def fallback(self, region_id: str, reason: str) -> Optional[Forecast]:
        """Cached forecast for a region whose fresh result is unavailable."""
        cached = self.get(region_id)
        if cached is None:
            logger.warning(f"no cached forecast to fall back on; regionId: {region_id}; reason: {reason}")
        else:
            logger.info(f"using cached forecast; regionId: {region_id}; reason: {reason}")
        return cached

    def snapshot(self) -> Dict[str, Forecast]:
        with self._lock:
            return dict(self._entries)

    def __contains__(self, region_id: str) -> bool:
        with self._lock:
            return region_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RunContext:
    """
    Run counter plus the fetch throttling policy.

    begin_run() is called exactly once per aggregation run; the number it
    returns is what every task of that run uses for its throttling decision.
    """

    def __init__(
        self,
        throttle_every: int = THROTTLE_EVERY_N_RUNS,
        throttled_providers: Iterable[str] = THROTTLED_PROVIDERS,
    ) -> None:
        self._lock = threading.Lock()
        self._run_count = 0
        self.throttle_every = max(1, throttle_every)
        self.throttled_providers = frozenset(throttled_providers)

    def begin_run(self) -> int:
        with self._lock:
            run_number = self._run_count
            self._run_count += 1
        return run_number

    @property
    def run_count(self) -> int:
        with self._lock:
            return self._run_count

    def skips_fetch(self, provider: str, run_number: int) -> bool:
        """Throttled providers are fetched on runs 0, N, 2N, ... and served from cache otherwise."""
        if provider not in self.throttled_providers:
            return False
        return run_number % self.throttle_every != 0
