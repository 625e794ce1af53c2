"""
Aggregation scheduler.

One aggregation run fans out over every region on a bounded worker pool;
each task resolves, fetches (or serves from cache), parses, validates and
updates the cache for its own region. When every task has finished, the
run's statistics are logged and the whole result set is published once.

Runs are triggered periodically by APScheduler.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .cache import ForecastCache, RunContext
from .config import FORECAST_GEN_INTERVAL_SECONDS, MAX_CONCURRENT_FETCHES, MAX_OVERLAPPING_RUNS
from .fetcher import FetchError, SourceFetcher
from .models import Forecast, RegionResult
from .parsers import parse_forecast, parser_for
from .publisher import SnapshotPublisher
from .registry import SourceRegistry, region_id_of, split_region_id
from .validator import ForecastValidator

logger = logging.getLogger(__name__)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class AggregationRun:
    """Bookkeeping for one aggregation run."""
    run_number: int
    expected_count: int
    state: RunState = RunState.IDLE
    results: List[RegionResult] = field(default_factory=list)
    invalid_count: int = 0
    elapsed_seconds: float = 0.0
    published: bool = False
    started_at: Optional[str] = None

    @property
    def processed_count(self) -> int:
        return len(self.results)


class ForecastAggregator:
    """
    Runs aggregation passes over a region list.

    The cache and run context outlive individual runs and are shared by all
    worker threads; each task only touches its own region's cache slot.
    """

    def __init__(
        self,
        cache: ForecastCache,
        run_context: RunContext,
        registry: Optional[SourceRegistry] = None,
        fetcher: Optional[SourceFetcher] = None,
        publisher: Optional[SnapshotPublisher] = None,
        validator: Optional[ForecastValidator] = None,
        max_workers: int = MAX_CONCURRENT_FETCHES,
    ):
        self.cache = cache
        self.run_context = run_context
        self.registry = registry or SourceRegistry()
        self.fetcher = fetcher or SourceFetcher()
        self.publisher = publisher or SnapshotPublisher()
        self.validator = validator or ForecastValidator()
        self.max_workers = max_workers
        self.last_run: Optional[AggregationRun] = None

    def aggregate(self, regions: Sequence[Any]) -> AggregationRun:
        """Run one full aggregation over the region records and publish the result."""
        region_ids = [region_id_of(region) for region in regions]
        run = AggregationRun(run_number=self.run_context.begin_run(), expected_count=len(region_ids))
        run.state = RunState.RUNNING
        run.started_at = datetime.now(timezone.utc).isoformat()
        self.last_run = run

        logger.info(f"aggregateForecasts: initiated; run: {run.run_number}; regions: {run.expected_count}")
        start = time.monotonic()

        # results are collected in region-list order, whatever order the tasks finish in
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="forecast") as pool:
            futures = [
                (region_id, pool.submit(self._process_region, region_id, run.run_number))
                for region_id in region_ids
            ]
            for region_id, future in futures:
                try:
                    result, valid = future.result()
                except Exception:
                    logger.exception(f"worker crashed; regionId: {region_id}")
                    result, valid = RegionResult(region_id, self.cache.get(region_id)), False
                run.results.append(result)
                if not valid:
                    run.invalid_count += 1

        run.elapsed_seconds = time.monotonic() - start
        run.state = RunState.COMPLETED

        logger.info(f"aggregateForecasts: all forecasts processed in {run.elapsed_seconds:.1f}s; "
                    f"processed: {run.processed_count}/{run.expected_count}")
        if run.invalid_count > 0:
            logger.warning(f"there were invalid forecasts; invalid forecast count: {run.invalid_count}")
        else:
            logger.info("all forecasts valid")

        run.published = self.publisher.publish(run.results)
        return run

    def _process_region(self, region_id: str, run_number: int):
        try:
            forecast = self.forecast_for_region(region_id, run_number)
        except Exception:
            logger.exception(f"unexpected failure processing regionId: {region_id}")
            forecast = self.cache.fallback(region_id, "unexpected error")

        fetch_pending = forecast is None and self._throttled_this_run(region_id, run_number)
        valid = self.validator.validate(
            region_id, forecast, for_current_day=True, fetch_pending=fetch_pending,
        ).valid
        return RegionResult(region_id=region_id, forecast=forecast), valid

    def _throttled_this_run(self, region_id: str, run_number: int) -> bool:
        parts = split_region_id(region_id)
        return parts is not None and self.run_context.skips_fetch(parts[0], run_number)

    def forecast_for_region(self, region_id: str, run_number: int) -> Optional[Forecast]:
        """Resolve, fetch-or-cache and parse one region; updates the cache on success."""
        logger.debug(f"generating forecast for regionId: {region_id}")

        region = self.registry.resolve(region_id)
        if region is None:
            return None

        strategy = parser_for(region.parser_id)
        if not strategy.needs_body:
            logger.info(f"no machine-readable danger rating, not fetched; regionId: {region_id}")
            return strategy.parse("", region)

        if self.run_context.skips_fetch(region.provider, run_number):
            logger.debug(f"fetch throttled this run; regionId: {region_id}")
            return self.cache.get(region_id)

        try:
            body = self.fetcher.fetch(region.source_url)
        except FetchError as e:
            logger.warning(f"failed dataURL response; regionId: {region_id}; dataURL: {region.source_url}; "
                           f"{e.kind.value}: {e}")
            return self.cache.fallback(region_id, "fetch failed")

        logger.info(f"successful dataURL response; regionId: {region_id}; dataURL: {region.source_url}")

        forecast = parse_forecast(body, region)
        if forecast is None:
            return self.cache.fallback(region_id, "parse failed")

        self.cache.put(region_id, forecast)
        return forecast


class ForecastScheduler:
    """
    Triggers aggregation runs on a fixed interval.

    NOTE overlapping runs are allowed (up to max_overlapping_runs at once):
    the interval is expected to be far longer than any single run. Set
    max_overlapping_runs=1 to skip a trigger while a run is still going.
    """

    def __init__(
        self,
        aggregator: ForecastAggregator,
        regions: Sequence[Any],
        interval_seconds: int = FORECAST_GEN_INTERVAL_SECONDS,
        max_overlapping_runs: int = MAX_OVERLAPPING_RUNS,
    ):
        self.aggregator = aggregator
        self.regions = list(regions)
        self.interval_seconds = interval_seconds
        self.max_overlapping_runs = max_overlapping_runs
        self.scheduler = BackgroundScheduler()
        self._is_running = False

    def _run(self) -> AggregationRun:
        return self.aggregator.aggregate(self.regions)

    def start(self) -> None:
        """Start the scheduler."""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="aggregate_job",
            name="Avalanche forecast aggregation",
            max_instances=self.max_overlapping_runs,
            coalesce=True,
            replace_existing=True
        )

        self.scheduler.start()
        self._is_running = True

        logger.info(f"Scheduler started: aggregating {len(self.regions)} regions every {self.interval_seconds}s")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            return
        self.scheduler.shutdown(wait=True)
        self._is_running = False
        logger.info("Scheduler stopped")

    def trigger_immediate_run(self) -> AggregationRun:
        """Run one aggregation now, in the calling thread."""
        return self._run()

    def get_scheduler_status(self) -> Dict[str, Any]:
        """Get scheduler status information."""
        job = self.scheduler.get_job("aggregate_job")
        last_run = self.aggregator.last_run

        return {
            "is_running": self._is_running,
            "interval_seconds": self.interval_seconds,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "runs_started": self.aggregator.run_context.run_count,
            "cached_regions": len(self.aggregator.cache),
            "last_run": {
                "run_number": last_run.run_number,
                "state": last_run.state.value,
                "processed": last_run.processed_count,
                "expected": last_run.expected_count,
                "invalid": last_run.invalid_count,
                "elapsed_seconds": round(last_run.elapsed_seconds, 3),
                "published": last_run.published,
                "started_at": last_run.started_at,
            } if last_run else None,
        }

    @property
    def is_running(self) -> bool:
        return self._is_running
