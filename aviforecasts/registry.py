"""
Source registry: maps a regionId to its provider, data URL and parser.

A regionId is '<provider>_<subregion>'. Most providers build their URL
from a template; CAIC and IPAC look the subregion up in a static table.
All URLs and parser choices are static configuration.

NOTE the URLs used here to pull data may differ from the URLs users open
to read the same forecast as a web page.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import ParserId, RegionDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSource:
    """
    How to reach one provider.

    url_template may use {subregion} and {subregion_head} (the part of the
    subregion before its first underscore). url_table maps subregion codes
    to pre-built URLs instead.
    """
    provider: str
    parser_id: ParserId
    url_template: Optional[str] = None
    url_table: Optional[Mapping[str, str]] = None

    def url_for(self, subregion: str) -> Optional[str]:
        if self.url_table is not None:
            return self.url_table.get(subregion)
        if self.url_template is not None:
            return self.url_template.format(
                subregion=subregion,
                subregion_head=subregion.split("_")[0],
            )
        return None


# =============================================================================
# Indirect URL tables
# =============================================================================

CAIC_BASE_URL = "http://avalanche.state.co.us/media/xml/"

_CAIC_ZONE_FILES = {
    ("000", "001", "002", "003"): "Steamboat_and_Flat_Tops_Avalanche_Forecast.xml",
    ("010", "012", "013", "014", "015"): "Front_Range_Avalanche_Forecast.xml",
    ("020",): "Vail_and_Summit_County_Avalanche_Forecast.xml",
    ("030",): "Sawatch_Range_Avalanche_Forecast.xml",
    ("040", "042"): "Aspen_Avalanche_Forecast.xml",
    ("050",): "Gunnison_Avalanche_Forecast.xml",
    ("060", "061"): "Grand_Mesa_Avalanche_Forecast.xml",
    ("070",): "Northern_San_Juan_Avalanche_Forecast.xml",
    ("080",): "Southern_San_Juan_Avalanche_Forecast.xml",
    ("090", "091"): "Sangre_de_Cristo_Avalanche_Forecast.xml",
}

CAIC_DATA_URLS: Dict[str, str] = {
    code: CAIC_BASE_URL + filename
    for codes, filename in _CAIC_ZONE_FILES.items()
    for code in codes
}

IPAC_DATA_URLS: Dict[str, str] = {
    "st-joe": "https://www.idahopanhandleavalanche.org/api/advisory/st-joe.json",
    "kootenai": "https://www.idahopanhandleavalanche.org/api/advisory/kootenai.json",
    "silver-valley": "https://www.idahopanhandleavalanche.org/api/advisory/silver-valley.json",
    "selkirks": "https://www.idahopanhandleavalanche.org/api/advisory/selkirks.json",
    "cabinets": "https://www.idahopanhandleavalanche.org/api/advisory/cabinets.json",
}

NAC_MAP_LAYER_URL = "https://api.avalanche.org/v2/public/products/map-layer"

PROVIDERS: Dict[str, ProviderSource] = {
    source.provider: source
    for source in (
        ProviderSource("nwac", ParserId.NWAC,
                       url_template="http://www.nwac.us/api/v2/avalanche-forecast/{subregion}/"),
        ProviderSource("cac", ParserId.CAC,
                       url_template="http://www.avalanche.ca/dataservices/cac/bulletins/xml/{subregion}"),
        ProviderSource("pc", ParserId.PC,
                       url_template="http://avalanche.pc.gc.ca/CAAML-eng.aspx?d=TODAY&r={subregion}"),
        ProviderSource("caic", ParserId.SIMPLE_CAAML, url_table=CAIC_DATA_URLS),
        ProviderSource("btac", ParserId.SIMPLE_CAAML,
                       url_template="http://www.jhavalanche.org/media/xml/{subregion}_Avalanche_Forecast.xml"),
        ProviderSource("gnfac", ParserId.SIMPLE_CAAML,
                       url_template="http://www.mtavalanche.com/sites/default/files/xml/{subregion}_Forecast.xml"),
        ProviderSource("uac", ParserId.UAC,
                       url_template="http://utahavalanchecenter.org/advisory/{subregion_head}"),
        ProviderSource("viac", ParserId.VIAC, url_template="http://www.islandavalanchebulletin.com/"),
        ProviderSource("sac", ParserId.SAC,
                       url_template="http://www.sierraavalanchecenter.org/danger-rating-rss.xml"),
        ProviderSource("nac", ParserId.NAC, url_template=NAC_MAP_LAYER_URL),
        ProviderSource("ipac", ParserId.IPAC, url_table=IPAC_DATA_URLS),
        ProviderSource("wcmac", ParserId.NOOP,
                       url_template="https://www.missoulaavalanche.org/advisories/{subregion}/"),
    )
}


def split_region_id(region_id: Optional[str]) -> Optional[tuple]:
    """Split at the first underscore into (provider, subregion)."""
    if not region_id or not isinstance(region_id, str):
        return None
    provider, sep, subregion = region_id.partition("_")
    if not sep:
        return None
    return provider, subregion


class SourceRegistry:
    """Resolves regionIds against a provider table."""

    def __init__(self, providers: Mapping[str, ProviderSource] = None):
        self._providers = dict(PROVIDERS if providers is None else providers)

    def resolve(self, region_id: Optional[str]) -> Optional[RegionDescriptor]:
        """
        Resolve a regionId to a RegionDescriptor.

        Returns None for an id without an underscore, an unknown provider,
        or a subregion that has no URL.
        """
        parts = split_region_id(region_id)
        if parts is None:
            logger.warning(f"invalid regionId: {region_id!r}")
            return None

        provider, subregion = parts
        source = self._providers.get(provider)
        if source is None:
            logger.warning(f"no provider match for regionId: {region_id}")
            return None

        url = source.url_for(subregion)
        if not url:
            logger.warning(f"no data URL for subregion: {subregion}; regionId: {region_id}")
            return None

        descriptor = RegionDescriptor(
            region_id=region_id,
            provider=provider,
            subregion=subregion,
            source_url=url,
            parser_id=source.parser_id,
        )
        logger.debug(f"regionDetails: {descriptor}")
        return descriptor

    @property
    def providers(self) -> List[str]:
        return sorted(self._providers)


# =============================================================================
# Region list input
# =============================================================================

def region_id_of(record: Any) -> Optional[str]:
    """Pull the regionId out of a region record (mapping or object)."""
    if isinstance(record, Mapping):
        return record.get("regionId")
    return getattr(record, "regionId", None)


def load_region_ids(records: Iterable[Any]) -> List[str]:
    return [region_id_of(record) for record in records]


def load_region_list(path: Path) -> List[Dict[str, Any]]:
    """Read the region list produced by the region ingestion job."""
    with open(path, "r", encoding="utf-8") as handle:
        regions = json.load(handle)
    logger.info(f"Loaded {len(regions)} regions from {path}")
    return regions
