"""
Runtime configuration for the avalanche forecast aggregator.

Every tunable can be overridden from the environment. Validator allow-lists
and the throttled-provider set are plain data so that adding a known
exception never needs a code change.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

# Time intervals
# NOTE keep FORECAST_GEN_INTERVAL_SECONDS much larger than DATA_REQUEST_TIMEOUT_SECONDS,
# otherwise one run may still be in flight when the next one is triggered
DATA_REQUEST_TIMEOUT_SECONDS = float(os.getenv("AVI_REQUEST_TIMEOUT", "15"))
FORECAST_GEN_INTERVAL_SECONDS = int(os.getenv("AVI_GEN_INTERVAL", "300"))

# Concurrency
MAX_CONCURRENT_FETCHES = int(os.getenv("AVI_MAX_WORKERS", "10"))
MAX_OVERLAPPING_RUNS = int(os.getenv("AVI_MAX_OVERLAPPING_RUNS", "3"))

# Upstream politeness: these providers are only fetched every Nth run
THROTTLE_EVERY_N_RUNS = int(os.getenv("AVI_THROTTLE_EVERY", "6"))
THROTTLED_PROVIDERS = frozenset({"nac"})

USER_AGENT = "avalancheforecasts.com"

# File paths
REGIONS_PATH = Path(os.getenv("AVI_REGIONS_PATH", str(BASE_DIR / "public" / "v1" / "regions.json")))
FORECASTS_DATA_PATH = Path(os.getenv("AVI_FORECASTS_PATH", str(BASE_DIR / "public" / "v1" / "forecasts.json")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Hours to add to UTC to approximate Pacific time for the current-day check
PACIFIC_UTC_OFFSET_HOURS = -8

# =============================================================================
# Validator allow-lists
# Entries are either a full regionId ("caic_090") or a provider code ("wcmac").
# =============================================================================

# Regions that never publish a machine-readable danger rating
NULL_FORECAST_EXPECTED = frozenset({
    "cac_bighorn",
    "cac_north-rockies",
    "wcmac",
})

# Regions whose day sequence is known to be irregular
DATE_SEQUENCE_EXEMPT = frozenset()

# Regions that always (or occasionally) publish days without a rating
UNKNOWN_LEVEL_ALLOWED = frozenset({
    "caic_090",
    "caic_091",
})

# Regions that do not issue a new forecast every day
NOT_ISSUED_DAILY = frozenset({
    "uac_moab_1",
    "uac_moab_2",
    "uac_skyline",
    "uac_uintas",
    "uac_logan",
})
