"""Tests for the FastAPI surface."""
import json
import time

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCapture, make_pipeline
from canonizer.agents.exceptions import CaptureError
from canonizer.app import main
from canonizer.app.service import ExtractionService
from canonizer.app.sessions import SessionRegistry
from canonizer.app.storage import BrandStore


@pytest.fixture
def store(tmp_path) -> BrandStore:
    return BrandStore(str(tmp_path))


@pytest.fixture
def client(monkeypatch, store):
    with TestClient(main.app) as test_client:
        service = ExtractionService(make_pipeline(store=store), SessionRegistry())
        monkeypatch.setattr(main, "service", service)
        monkeypatch.setattr(main, "store", store)
        yield test_client


def _start(client, url="https://www.stripe.com", adjectives=None) -> str:
    response = client.post("/extract", json={"url": url, "adjectives": adjectives or []})
    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "processing"
    return body["session_id"]


def _wait_for_result(client, session_id):
    for _ in range(200):
        response = client.get(f"/sessions/{session_id}/result")
        if response.status_code != 202:
            return response
        time.sleep(0.02)
    pytest.fail("extraction did not finish")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_status_describes_pipeline(client):
    body = client.get("/status").json()
    assert body["pipeline"]["stages"] == ["capture", "analyze", "synthesize", "evaluate", "refine"]
    assert body["active_sessions"] == 0


def test_extract_rejects_invalid_url(client):
    response = client.post("/extract", json={"url": "ftp://example.com"})
    assert response.status_code == 422


def test_extract_end_to_end(client):
    session_id = _start(client, adjectives=["modern", " "])

    response = _wait_for_result(client, session_id)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["error"] is None
    assert body["specification"]["metadata"]["adjectives"] == ["modern"]
    assert body["evaluation"]["quality_band"] == "excellent"
    assert [stage["name"] for stage in body["trace"]["stages"]][-1] == "refine"
    assert body["metadata"]["brand_id"].startswith("stripe_")


def test_events_are_read_from_a_cursor(client):
    session_id = _start(client)
    _wait_for_result(client, session_id)

    full = client.get(f"/sessions/{session_id}/events").json()
    assert full["terminal"] is True
    assert full["events"][0]["stage"] == "setup"
    assert full["events"][-1]["stage"] == "complete"
    assert full["events"][-1]["progress_percent"] == 100

    tail = client.get(f"/sessions/{session_id}/events", params={"cursor": full["cursor"] - 1}).json()
    assert [event["stage"] for event in tail["events"]] == ["complete"]

    empty = client.get(f"/sessions/{session_id}/events", params={"cursor": full["cursor"]}).json()
    assert empty["events"] == []
    assert empty["cursor"] == full["cursor"]


def test_stream_replays_events_until_terminal(client):
    session_id = _start(client)
    _wait_for_result(client, session_id)

    response = client.get(f"/sessions/{session_id}/stream")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    payloads = [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]
    assert payloads[0]["stage"] == "setup"
    assert payloads[-1]["stage"] == "complete"


def test_unknown_session_is_not_found(client):
    assert client.get("/sessions/missing/events").status_code == 404
    assert client.get("/sessions/missing/result").status_code == 404
    assert client.get("/sessions/missing/stream").status_code == 404


def test_failed_extraction_reports_error(client, monkeypatch):
    pipeline = make_pipeline(capture=FakeCapture(error=CaptureError("Timeout 30000ms exceeded")))
    monkeypatch.setattr(main, "service", ExtractionService(pipeline, SessionRegistry()))

    session_id = _start(client)
    response = _wait_for_result(client, session_id)

    body = response.json()
    assert body["status"] == "failed"
    assert "Timeout 30000ms exceeded" in body["error"]
    assert body["specification"] is None
    assert body["trace"]["summary"]["status"] == "failed"

    events = client.get(f"/sessions/{session_id}/events").json()["events"]
    assert events[-1]["stage"] == "error"


def test_stored_brands_are_listed_and_loaded(client):
    session_id = _start(client)
    brand_id = _wait_for_result(client, session_id).json()["metadata"]["brand_id"]

    brands = client.get("/brands").json()["brands"]
    assert [brand["brand_id"] for brand in brands] == [brand_id]

    brand = client.get(f"/brands/{brand_id}").json()
    assert brand["specification"]["metadata"]["brand_id"] == brand_id
    assert brand["evaluation"]["brand_id"] == brand_id

    assert client.get("/brands/unknown_brand").status_code == 404
    assert client.get("/brands/..%2Fetc").status_code == 404


def test_service_not_ready(client, monkeypatch):
    monkeypatch.setattr(main, "service", None)

    response = client.post("/extract", json={"url": "https://stripe.com"})

    assert response.status_code == 503
