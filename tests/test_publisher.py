import json
import os
import stat
from datetime import date

from aviforecasts.models import DangerLevel, DayForecast, RegionResult
from aviforecasts.publisher import SnapshotPublisher, render_snapshot


RESULTS = [
    RegionResult("nwac_1", [
        DayForecast(date(2012, 11, 2), DangerLevel.LOW),
        DayForecast(date(2012, 11, 3), DangerLevel.MODERATE),
    ]),
    RegionResult("wcmac_north", None),
]


def test_render_snapshot_shape():
    payload = json.loads(render_snapshot(RESULTS))

    assert payload == [
        {
            "regionId": "nwac_1",
            "forecast": [
                {"date": "2012-11-02", "aviLevel": 1},
                {"date": "2012-11-03", "aviLevel": 2},
            ],
        },
        {"regionId": "wcmac_north", "forecast": None},
    ]


def test_null_level_is_published_as_null():
    payload = json.loads(render_snapshot([RegionResult("cac_1", [DayForecast(date(2012, 12, 4), None)])]))

    assert payload[0]["forecast"][0]["aviLevel"] is None


def test_publish_writes_file(tmp_path):
    path = tmp_path / "v1" / "forecasts.json"

    assert SnapshotPublisher(path).publish(RESULTS)

    assert json.loads(path.read_text(encoding="utf-8"))[0]["regionId"] == "nwac_1"
    assert list(path.parent.glob("*.tmp")) == []


def test_republishing_same_results_is_byte_identical(tmp_path):
    path = tmp_path / "forecasts.json"
    publisher = SnapshotPublisher(path)

    publisher.publish(RESULTS)
    first = path.read_bytes()
    publisher.publish(RESULTS)

    assert path.read_bytes() == first


def test_failed_publish_keeps_previous_snapshot(tmp_path, monkeypatch):
    path = tmp_path / "forecasts.json"
    publisher = SnapshotPublisher(path)
    publisher.publish(RESULTS)
    previous = path.read_bytes()

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("aviforecasts.publisher.os.replace", failing_replace)

    assert publisher.publish([RegionResult("nwac_1", None)]) is False
    assert path.read_bytes() == previous
    assert list(tmp_path.glob("*.tmp")) == []


def test_published_file_mode_follows_umask(tmp_path):
    path = tmp_path / "forecasts.json"
    previous_umask = os.umask(0o022)
    try:
        SnapshotPublisher(path).publish(RESULTS)
    finally:
        os.umask(previous_umask)

    assert stat.S_IMODE(path.stat().st_mode) == 0o644
