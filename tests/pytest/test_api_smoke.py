def _sawtooth_batch(n: int) -> dict:
    return {
        "samples": [
            {"timestamp_ms": k * 100, "magnitude": 16.0 if k % 10 == 0 else 10.0}
            for k in range(n)
        ]
    }


def test_health_check(api_client):
    response = api_client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["session"] == "idle"
    assert "X-Request-ID" in response.headers


def test_rate_before_any_detection_is_placeholder(api_client):
    payload = api_client.get("/session/rate").json()
    assert payload["method"] == "gps"
    assert payload["selected"] == 0
    assert payload["display"] == "--"
    assert payload["split_s"] is None
    assert payload["split_display"] == "--:--"


def test_motion_session_round_trip(api_client):
    resp = api_client.put("/settings", json={"stroke_rate_method": "motion"})
    assert resp.status_code == 200
    assert resp.json()["stroke_rate_method"] == "motion"

    start = api_client.post("/session/start").json()
    assert start == {"running": True, "changed": True, "method": "motion"}
    assert api_client.post("/session/start").json()["changed"] is False

    observed = api_client.post("/session/motion", json=_sawtooth_batch(201)).json()
    assert observed["received"] == 201
    assert observed["accepted"] == 201
    assert len(observed["events"]) == 19
    assert observed["events"][-1]["rate_spm"] == 40

    rate = api_client.get("/session/rate").json()
    assert rate["selected"] == 40
    assert rate["display"] == "40"

    summary = api_client.get("/session/summary").json()
    assert summary["running"] is True
    assert summary["stroke_count"] == 19

    stop = api_client.post("/session/stop").json()
    assert stop["running"] is False
    workout = stop["workout"]
    assert workout["stroke_count"] == 19
    assert workout["method"] == "motion"

    listed = api_client.get("/workouts").json()
    assert [w["id"] for w in listed] == [workout["id"]]
    assert api_client.get("/workouts/last").json()["id"] == workout["id"]
    assert api_client.get(f"/workouts/{workout['id']}").status_code == 200
    assert api_client.get("/workouts/stats").json()["total_workouts"] == 1

    assert api_client.delete(f"/workouts/{workout['id']}").status_code == 200
    assert api_client.delete(f"/workouts/{workout['id']}").status_code == 404


def test_motion_samples_without_values_are_skipped(api_client):
    api_client.put("/settings", json={"stroke_rate_method": "both"})
    api_client.post("/session/start")
    payload = {
        "samples": [
            {"timestamp_ms": 0, "x": 3.0, "y": 4.0},
            {"timestamp_ms": 10},
        ]
    }
    observed = api_client.post("/session/motion", json=payload).json()
    assert observed == {"received": 2, "accepted": 1, "events": []}

    rate = api_client.get("/session/rate").json()
    assert rate["selected"] == {"motion": 0, "gps": 0}
    assert rate["display"] == "GPS: -- / MOT: --"


def test_accepted_counts_only_consumed_samples(api_client):
    # session not started: nothing is consumed
    observed = api_client.post("/session/motion", json=_sawtooth_batch(5)).json()
    assert observed["received"] == 5
    assert observed["accepted"] == 0

    # default method is gps: motion samples are not used
    api_client.post("/session/start")
    assert api_client.post("/session/motion", json=_sawtooth_batch(5)).json()["accepted"] == 0

    fixes = {
        "fixes": [
            {"lat": 0.0, "lng": 0.0, "timestamp_ms": 2000},
            {"lat": 0.0, "lng": 0.0001, "timestamp_ms": 1000},
            {"lat": 0.0, "lng": 0.0001, "timestamp_ms": 3000},
        ]
    }
    observed = api_client.post("/session/position", json=fixes).json()
    assert observed == {"received": 3, "accepted": 2, "events": []}


def test_stop_when_idle_saves_nothing(api_client):
    stop = api_client.post("/session/stop").json()
    assert stop["changed"] is False
    assert stop.get("workout") is None
    assert api_client.get("/workouts").json() == []
    assert api_client.get("/workouts/last").status_code == 404


def test_settings_validation(api_client):
    assert api_client.put("/settings", json={"voice_speed": 3.0}).status_code == 400
    assert api_client.put("/settings", json={"split_interval_s": 45}).status_code == 400
    assert api_client.put("/settings", json={"stroke_rate_method": "sonar"}).status_code == 422

    resp = api_client.put("/settings", json={"split_interval_s": 120})
    assert resp.status_code == 200
    assert api_client.get("/settings").json()["split_interval_s"] == 120

    reset = api_client.post("/settings/reset").json()
    assert reset["split_interval_s"] == 60


def test_export_and_import(api_client):
    api_client.post("/session/start")
    api_client.post("/session/stop")
    exported = api_client.get("/workouts/export").json()
    assert len(exported["workouts"]) == 1

    assert api_client.delete("/workouts").json() == {"status": "cleared"}
    assert api_client.get("/workouts").json() == []

    imported = api_client.post("/workouts/import", json=exported)
    assert imported.status_code == 200
    assert imported.json()["imported"] == 1


def test_replay_gpx_upload(api_client, row_gpx_bytes):
    resp = api_client.post(
        "/workouts/replay",
        files={"file": ("row.gpx", row_gpx_bytes, "application/gpx+xml")},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["filename"] == "row.gpx"
    assert [e["rate_spm"] for e in payload["events"]] == [0, 30, 30, 30]
    assert payload["summary"]["distance_m"] == 52
    assert payload["summary"]["avg_stroke_rate"] == 30
    assert payload["intervals"]["gps"]["median_interval_ms"] == 2000.0


def test_replay_rejects_bad_uploads(api_client):
    resp = api_client.post("/workouts/replay", files={"file": ("row.txt", b"hello", "text/plain")})
    assert resp.status_code == 400

    resp = api_client.post("/workouts/replay", files={"file": ("row.gpx", b"not xml at all", "application/gpx+xml")})
    assert resp.status_code == 400


def test_client_request_id_is_echoed(api_client):
    response = api_client.get("/", headers={"X-Request-ID": "row-42"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "row-42"
