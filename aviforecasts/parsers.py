"""
Parser strategies: one per provider family.

Each strategy turns a raw response body into a Forecast, or None when the
body cannot be understood. Strategies never raise; any internal error is
logged and reported as None. The PARSERS registry maps a ParserId to its
strategy, so a new provider family is added by registering a new entry.

Formats handled:
- JSON APIs (NWAC, NAC map layer, IPAC)
- CAAML XML bulletins (Avalanche Canada, Parks Canada, simple single-day CAAML)
- RSS (SAC)
- Scraped HTML (UAC, VIAC)
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from datetime import timedelta
from typing import Dict, Iterator, Optional

import feedparser
from bs4 import BeautifulSoup

from .config import PACIFIC_UTC_OFFSET_HOURS
from .models import DayForecast, Forecast, ParserId, RegionDescriptor, is_sequential
from .parsing import (
    backfill_from_issue,
    date_from_epoch,
    date_from_month_day_year,
    date_from_timestamp,
    first_forecast_date,
    highest_level_in_text,
    highest_of,
    level_from_number,
    log_forecast,
    sequential_days,
    with_leading_day,
)

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Raised inside a strategy when the body does not have the expected shape."""
    pass


class ParserStrategy:
    """
    Base class for all parser strategies.

    Subclasses implement _parse(); parse() wraps it so that exceptions and
    structurally invalid results (empty, or dates with gaps) become None.
    """

    parser_id: ParserId
    # strategies that derive nothing from the body are never fetched
    needs_body = True

    def parse(self, body: str, region: RegionDescriptor) -> Optional[Forecast]:
        try:
            forecast = self._parse(body, region)
        except Exception as e:
            logger.warning(f"parse failure; regionId: {region.region_id}; exception: {e!r}")
            return None

        if forecast is None:
            return None
        if not is_sequential(forecast):
            logger.warning(f"parse failure, dates not sequential; regionId: {region.region_id}; "
                           f"forecast: {[day.to_dict() for day in forecast]}")
            return None

        log_forecast(region.region_id, forecast)
        return forecast

    def _parse(self, body: str, region: RegionDescriptor) -> Optional[Forecast]:
        raise NotImplementedError


# =============================================================================
# XML helpers
# NOTE some providers put namespace prefixes on every tag and some do not, so
# lookups go by local name only
# =============================================================================

def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].split(":")[-1]


def _iter_named(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in element.iter():
        if _local_name(child.tag) == name:
            yield child


def _find_path(element: ET.Element, *names: str) -> ET.Element:
    """Follow a chain of descendant local names, e.g. ('validTime', 'beginPosition')."""
    current = element
    for name in names:
        current = next(_iter_named(current, name), None)
        if current is None:
            raise ParseError(f"element not found: {'/'.join(names)}")
    return current


def _find_text(element: ET.Element, *names: str) -> str:
    found = _find_path(element, *names)
    return (found.text or "").strip()


def _optional_text(element: ET.Element, name: str) -> Optional[str]:
    found = next(_iter_named(element, name), None)
    return None if found is None else (found.text or "")


def _parse_xml(body: str) -> ET.Element:
    try:
        return ET.fromstring(body.strip())
    except ET.ParseError as e:
        raise ParseError(f"XML parsing failed: {e}")


# =============================================================================
# JSON strategies
# =============================================================================

class NWACParser(ParserStrategy):
    """
    NWAC forecasts carry an issue timestamp and describe up to two days,
    labelled only by weekday name (e.g. 'Friday night and Saturday').
    They are usually issued in the evening for the following days, so the
    first described day is backfilled onto the issue date.
    """

    parser_id = ParserId.NWAC
    MAX_DESCRIBED_DAYS = 2
    ELEVATIONS = ("high", "middle", "low")

    def _parse(self, body, region):
        data = json.loads(body)
        issued = date_from_timestamp(data["published_date"])

        levels = []
        for day_number in range(1, self.MAX_DESCRIBED_DAYS + 1):
            keys = [f"day{day_number}_danger_elev_{elevation}" for elevation in self.ELEVATIONS]
            if not any(key in data for key in keys):
                break
            levels.append(highest_of(highest_level_in_text(data.get(key)) for key in keys))

        if not levels:
            raise ParseError("no forecast days found")

        label = data.get("day1_date")
        if label:
            first = first_forecast_date(issued, label)
            if first is None:
                raise ParseError(f"cannot place day1 label {label!r} relative to {issued}")
        else:
            # evening issue for the following day is the normal case
            first = issued + timedelta(days=1)

        return backfill_from_issue(sequential_days(first, levels), issued)


class NACParser(ParserStrategy):
    """
    The avalanche.org map layer is one GeoJSON document covering every
    zone; the region's subregion is the feature id.
    """

    parser_id = ParserId.NAC

    def _parse(self, body, region):
        data = json.loads(body)
        feature = next(
            (f for f in data.get("features", []) if str(f.get("id")) == region.subregion),
            None,
        )
        if feature is None:
            raise ParseError(f"zone {region.subregion} not in map layer")

        properties = feature.get("properties") or {}
        start = properties.get("start_date")
        if not start:
            # zone is off season or has no current product
            logger.info(f"no current forecast in map layer; regionId: {region.region_id}")
            return None

        issued = date_from_timestamp(start)
        end = properties.get("end_date")
        described = date_from_timestamp(end) if end else issued
        level = level_from_number(properties.get("danger_level"))

        return backfill_from_issue([DayForecast(described, level)], issued)


class IPACParser(ParserStrategy):
    """
    IPAC publishes the issue time as a Unix epoch; the calendar date is taken
    in a fixed Pacific offset. Days are labelled by weekday name.
    """

    parser_id = ParserId.IPAC
    BANDS = ("upper", "middle", "lower")

    def _parse(self, body, region):
        data = json.loads(body)
        issued = date_from_epoch(data["issued"], PACIFIC_UTC_OFFSET_HOURS)

        days = data.get("days") or []
        if not days:
            raise ParseError("no forecast days found")

        first = first_forecast_date(issued, days[0].get("label"))
        if first is None:
            raise ParseError(f"cannot place label {days[0].get('label')!r} relative to {issued}")

        levels = [highest_of(highest_level_in_text(day.get(band)) for band in self.BANDS) for day in days]
        return backfill_from_issue(sequential_days(first, levels), issued)


# =============================================================================
# CAAML strategies
# =============================================================================

class CACParser(ParserStrategy):
    """
    Avalanche Canada CAAML: one DangerRating per day with separate alpine,
    treeline and below-treeline values (not all always present); the
    highest one is the day's level.
    """

    parser_id = ParserId.CAC
    VALUE_FIELDS = ("dangerRatingAlpValue", "dangerRatingTlnValue", "dangerRatingBtlValue")

    def _parse(self, body, region):
        root = _parse_xml(body)
        measurements = _find_path(root, "BulletinMeasurements")

        days = []
        for rating in _iter_named(measurements, "DangerRating"):
            day = date_from_timestamp(_find_text(rating, "timePosition"))
            level = highest_of(
                highest_level_in_text(_optional_text(rating, field)) for field in self.VALUE_FIELDS
            )
            days.append(DayForecast(day, level))

        if not days:
            raise ParseError("no DangerRating elements")

        return with_leading_day(days)


class PCParser(ParserStrategy):
    """
    Parks Canada CAAML lists every day three times, once per elevation band.
    The entries are grouped by band with the alpine band first, and the
    alpine level is always the highest, so the first third of the entries
    is one rating per day.
    """

    parser_id = ParserId.PC
    ELEVATION_BANDS = 3

    def _parse(self, body, region):
        root = _parse_xml(body)
        measurements = _find_path(root, "BulletinMeasurements")
        ratings = list(_iter_named(measurements, "DangerRating"))

        day_count = len(ratings) // self.ELEVATION_BANDS
        if day_count == 0:
            raise ParseError("no DangerRating elements")

        days = [
            DayForecast(
                date_from_timestamp(_find_text(rating, "timePosition")),
                level_from_number(_find_text(rating, "mainValue")),
            )
            for rating in ratings[:day_count]
        ]
        return with_leading_day(days)


class SimpleCAAMLParser(ParserStrategy):
    """Single-day CAAML used by CAIC, BTAC and GNFAC."""

    parser_id = ParserId.SIMPLE_CAAML

    def _parse(self, body, region):
        root = _parse_xml(body)
        issued = date_from_timestamp(_find_text(root, "validTime", "TimePeriod", "beginPosition"))
        level = level_from_number(_find_text(root, "DangerRatingSingle", "mainValue"))
        return [DayForecast(issued, level)]


# =============================================================================
# RSS strategy
# =============================================================================

class SACParser(ParserStrategy):
    """Sierra Avalanche Center danger rating RSS; single-day forecasts."""

    parser_id = ParserId.SAC

    def _parse(self, body, region):
        parsed = feedparser.parse(body)
        if not parsed.entries:
            raise ParseError(f"RSS parsing failed: {getattr(parsed, 'bozo_exception', 'no entries')}")

        item = parsed.entries[0]
        # NOTE typical pubDate: 'Sun. November 18, 2012', which feedparser cannot parse itself
        issued = date_from_month_day_year(item.get("published"))
        if issued is None:
            raise ParseError(f"unrecognized pubDate: {item.get('published')!r}")

        description = item.get("summary") or item.get("description") or ""
        text = BeautifulSoup(description, "html.parser").get_text(" ")
        return [DayForecast(issued, highest_level_in_text(text))]


# =============================================================================
# HTML strategies
# =============================================================================

class UACParser(ParserStrategy):
    """
    Utah Avalanche Center advisory pages; issued the morning of, for one day.

    Typical fragments:
        <td class="advisory-date">Issued by Drew Hardesty for November 9, 2012 - 11:19am</td>
        <div id="upper-rating" class="rating-2"><span><h2>2. Moderate</h2> Above 9,500 ft.</span></div>
    """

    parser_id = ParserId.UAC
    RATING_SELECTORS = ("#upper-rating span h2", "#mid-rating span h2", "#lower-rating span h2")
    _ISSUED_RE = re.compile(r"for\s+(\w+\s+\d+\w*\s*,?\s+\d{4})")

    def _parse(self, body, region):
        soup = BeautifulSoup(body, "html.parser")

        date_block = soup.select_one(".advisory-date")
        match = self._ISSUED_RE.search(date_block.get_text(" ")) if date_block else None
        issued = date_from_month_day_year(match.group(1)) if match else None
        if issued is None:
            logger.warning(f"parse failure, forecast issue date not found; regionId: {region.region_id}")
            return None

        levels = []
        for selector in self.RATING_SELECTORS:
            node = soup.select_one(selector)
            levels.append(highest_level_in_text(node.get_text(" ") if node else None))

        return [DayForecast(issued, highest_of(levels))]


class VIACParser(ParserStrategy):
    """
    Vancouver Island bulletin page. It may be issued the day before or the
    day of the first forecasted day, so the issue date is correlated with
    the first weekday column of the 'Outlook' table; three days follow.
    """

    parser_id = ParserId.VIAC
    DAYS = 3
    # NOTE typical string: 'Date Issued </span>February 24, 2012 at 11:19AM</div>'
    _ISSUED_RE = re.compile(r"Date Issued\s*</span>\s*(\w+\s+\d+\w*\s*,?\s*\d{4})", re.IGNORECASE)

    def _parse(self, body, region):
        match = self._ISSUED_RE.search(body)
        issued = date_from_month_day_year(match.group(1)) if match else None
        if issued is None:
            logger.warning(f"parse failure, forecast issue date not found; regionId: {region.region_id}")
            return None

        soup = BeautifulSoup(body, "html.parser")

        outlook = soup.find("th", string=re.compile(r"^\s*Outlook\s*$", re.IGNORECASE))
        if outlook is None:
            logger.warning(f"parse failure, first forecasted day of week not found; regionId: {region.region_id}")
            return None
        headers = outlook.find_parent("tr").find_all("th")
        first = first_forecast_date(issued, headers[1].get_text(" ") if len(headers) > 1 else None)
        if first is None:
            raise ParseError(f"first forecasted day does not match issue date {issued}")

        alpine = soup.find(string=re.compile(r"^\s*Alpine\s*$", re.IGNORECASE))
        cells = alpine.find_parent("tr").find_all("td")[1:self.DAYS + 1] if alpine else []
        if len(cells) != self.DAYS:
            logger.warning(f"parse failure, danger levels not found; regionId: {region.region_id}")
            return None

        return sequential_days(first, [highest_level_in_text(cell.get_text(" ")) for cell in cells])


# =============================================================================
# No-op strategy
# =============================================================================

class NoopParser(ParserStrategy):
    """For providers that publish no machine-readable danger rating."""

    parser_id = ParserId.NOOP
    needs_body = False

    def _parse(self, body, region):
        return None


PARSERS: Dict[ParserId, ParserStrategy] = {
    strategy.parser_id: strategy
    for strategy in (
        NWACParser(),
        CACParser(),
        PCParser(),
        SimpleCAAMLParser(),
        UACParser(),
        VIACParser(),
        SACParser(),
        NACParser(),
        IPACParser(),
        NoopParser(),
    )
}


def parser_for(parser_id: ParserId) -> ParserStrategy:
    return PARSERS[parser_id]


def parse_forecast(body: str, region: RegionDescriptor) -> Optional[Forecast]:
    """Dispatch a body to the strategy named by the region descriptor."""
    return parser_for(region.parser_id).parse(body, region)
