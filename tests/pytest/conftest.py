from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest


M_PER_DEG_AT_EQUATOR = 6_371_000.0 * math.pi / 180.0

# 4 m/s with a 5 m/s surge every other second once the detector is armed
ROW_SPEEDS = [4.0, 4.0, 4.0, 4.0, 4.0, 5.0, 4.0, 5.0, 4.0, 5.0, 4.0, 5.0]


def build_gpx(speeds: list[float], start: datetime | None = None) -> str:
    start = start or datetime(2026, 5, 2, 7, 30, 0, tzinfo=timezone.utc)
    points = []
    lng = 0.0
    for i in range(len(speeds) + 1):
        if i:
            lng += speeds[i - 1] / M_PER_DEG_AT_EQUATOR
        when = (start + timedelta(seconds=i)).strftime("%Y-%m-%dT%H:%M:%SZ")
        points.append(f'<trkpt lat="0.0" lon="{lng:.10f}"><time>{when}</time></trkpt>')
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
        "<trk><name>Morning row</name><trkseg>" + "".join(points) + "</trkseg></trk></gpx>"
    )


@pytest.fixture
def row_gpx_bytes() -> bytes:
    return build_gpx(ROW_SPEEDS).encode("utf-8")


@pytest.fixture
def api_client(tmp_path, monkeypatch):
    from fastapi.testclient import TestClient

    monkeypatch.setenv("STROKESCOPE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STROKESCOPE_LOG_DIR", str(tmp_path / "logs"))

    from api.main import app

    with TestClient(app) as client:
        yield client
