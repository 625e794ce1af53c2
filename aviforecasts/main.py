"""
Process entry point: load the region list, run one aggregation right away,
then keep re-aggregating on the configured interval.
"""

import logging
import sys
import threading

from .cache import ForecastCache, RunContext
from .config import FORECASTS_DATA_PATH, LOG_FORMAT, LOG_LEVEL, REGIONS_PATH
from .publisher import SnapshotPublisher
from .registry import load_region_list
from .scheduler import ForecastAggregator, ForecastScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_scheduler(regions) -> ForecastScheduler:
    aggregator = ForecastAggregator(
        cache=ForecastCache(),
        run_context=RunContext(),
        publisher=SnapshotPublisher(FORECASTS_DATA_PATH),
    )
    return ForecastScheduler(aggregator, regions)


def main() -> int:
    configure_logging()
    logger.info("Starting avalanche forecast aggregator...")

    try:
        regions = load_region_list(REGIONS_PATH)
    except (OSError, ValueError) as e:
        logger.error(f"cannot load region list; path: {REGIONS_PATH}; error: {e}")
        return 1

    scheduler = build_scheduler(regions)

    logger.info("Performing initial aggregation...")
    scheduler.trigger_immediate_run()
    scheduler.start()

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        scheduler.stop()

    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
