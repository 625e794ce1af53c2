import pytest

from aviforecasts.registry import SourceRegistry


NWAC_EVENING_ISSUE = """{
    "published_date": "2012-11-02 18:30:00",
    "day1_date": "Saturday",
    "day1_danger_elev_high": "low",
    "day1_danger_elev_middle": "low",
    "day1_danger_elev_low": "low",
    "day2_date": "Sunday",
    "day2_danger_elev_high": "moderate",
    "day2_danger_elev_middle": "low",
    "day2_danger_elev_low": "low"
}"""

CAC_ONE_DAY = """<?xml version="1.0" encoding="UTF-8"?>
<caaml:observations xmlns:caaml="http://caaml.org/Schemas/V5.0/Profiles/BulletinEAWS" xmlns:gml="http://www.opengis.net/gml">
  <caaml:Bulletin gml:id="bid_1">
    <caaml:bulletinResultsOf>
      <caaml:BulletinMeasurements>
        <caaml:dangerRatings>
          <caaml:DangerRating>
            <gml:validTime>
              <gml:TimeInstant><gml:timePosition>2012-12-05T00:00:00</gml:timePosition></gml:TimeInstant>
            </gml:validTime>
            <caaml:dangerRatingAlpValue>3:Considerable</caaml:dangerRatingAlpValue>
            <caaml:dangerRatingTlnValue>2:Moderate</caaml:dangerRatingTlnValue>
            <caaml:dangerRatingBtlValue>1:Low</caaml:dangerRatingBtlValue>
          </caaml:DangerRating>
        </caaml:dangerRatings>
      </caaml:BulletinMeasurements>
    </caaml:bulletinResultsOf>
  </caaml:Bulletin>
</caaml:observations>
"""

NAC_MAP_LAYER = """{
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": 1234,
            "properties": {
                "name": "Olympics",
                "danger_level": 3,
                "start_date": "2024-01-09T19:00:00",
                "end_date": "2024-01-10T19:00:00"
            }
        },
        {
            "type": "Feature",
            "id": 99,
            "properties": {
                "name": "Off season zone",
                "danger_level": -1,
                "start_date": null,
                "end_date": null
            }
        }
    ]
}"""


@pytest.fixture
def registry():
    return SourceRegistry()


@pytest.fixture
def nwac_body():
    return NWAC_EVENING_ISSUE


@pytest.fixture
def cac_body():
    return CAC_ONE_DAY


@pytest.fixture
def nac_body():
    return NAC_MAP_LAYER
