"""
Normalized forecast model shared by every stage of the pipeline.

A forecast is an ordered list of DayForecast entries whose dates are
strictly sequential. A region with no forecast is represented by None,
which is a valid outcome for some providers and not an error by itself.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class DangerLevel(IntEnum):
    """Ordinal avalanche danger rating; higher always wins when merging."""
    UNKNOWN = 0
    LOW = 1
    MODERATE = 2
    CONSIDERABLE = 3
    HIGH = 4
    EXTREME = 5


class ParserId(Enum):
    """Names a parser strategy; one per provider family."""
    NWAC = "nwac"
    CAC = "cac"
    PC = "pc"
    SIMPLE_CAAML = "simple_caaml"
    UAC = "uac"
    VIAC = "viac"
    SAC = "sac"
    NAC = "nac"
    IPAC = "ipac"
    NOOP = "noop"


@dataclass(frozen=True)
class DayForecast:
    """Danger level for one calendar day."""
    date: date
    level: Optional[DangerLevel]  # None means the level is absent, not UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "aviLevel": None if self.level is None else int(self.level),
        }


Forecast = List[DayForecast]


@dataclass(frozen=True)
class RegionDescriptor:
    """Everything needed to fetch and parse one region."""
    region_id: str          # <provider>_<subregion>
    provider: str
    subregion: str
    source_url: str
    parser_id: ParserId


@dataclass
class RegionResult:
    """Outcome of one region in one aggregation run."""
    region_id: str
    forecast: Optional[Forecast]


def is_sequential(forecast: Optional[Forecast]) -> bool:
    """True when every entry is dated exactly one day after the previous one."""
    if not forecast:
        return False
    first = forecast[0].date
    return all(day.date == first + timedelta(days=i) for i, day in enumerate(forecast))


def forecast_to_dicts(forecast: Optional[Forecast]) -> Optional[List[Dict[str, Any]]]:
    if forecast is None:
        return None
    return [day.to_dict() for day in forecast]
