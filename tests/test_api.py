import pytest
from fastapi.testclient import TestClient

from conftest import rr
from double_analyzer.api.main import create_app
from double_analyzer.collector.supervisor import CollectorSupervisor
from double_analyzer.config import settings
from test_supervisor import FakeReader


@pytest.fixture
def reader():
    return FakeReader([[rr(2, 30), rr(1, 0)], [rr(10, 60)]])


@pytest.fixture
def client(store, reader, monkeypatch):
    monkeypatch.setattr(settings, "api_key", None)
    sup = CollectorSupervisor(store, reader_factory=lambda: reader, poll_interval=3600, reconnect_backoff=0)
    with TestClient(create_app(store=store, supervisor=sup, auto_start=False)) as c:
        yield c


def test_home(client):
    assert client.get("/").json()["ok"] is True


def test_history_empty_waits(client):
    body = client.get("/history").json()
    assert body["history"] == []
    assert body["prediction"]["suggestion"] == "wait"
    assert body["prediction"]["confidence"] == 0


def test_history_with_prediction(client, store):
    # four blacks newest-first on top of one red
    store.insert_batch([rr(3, 0), rr(9, 30), rr(10, 60), rr(11, 90), rr(12, 120)])
    body = client.get("/history", params={"limit": 5}).json()
    assert [h["number"] for h in body["history"]] == [12, 11, 10, 9, 3]
    assert body["stats"]["blacks"] == 4 and body["stats"]["total"] == 5
    assert body["prediction"]["suggestion"] == "red"
    assert body["prediction"]["strategies"]


def test_collector_lifecycle(client, reader):
    assert client.post("/collector/collect").status_code == 409

    started = client.post("/collector/start").json()
    assert started["running"] is True
    assert started["record_count"] == 2

    collected = client.post("/collector/collect").json()
    assert collected["inserted"] == 1

    assert client.get("/collector/status").json()["state"] == "running"
    stopped = client.post("/collector/stop").json()
    assert stopped["running"] is False
    assert reader.closed


def test_start_failure_is_503(store, monkeypatch):
    monkeypatch.setattr(settings, "api_key", None)
    sup = CollectorSupervisor(store, reader_factory=lambda: FakeReader(fail_open=True), poll_interval=3600)
    with TestClient(create_app(store=store, supervisor=sup, auto_start=False)) as c:
        r = c.post("/collector/start")
    assert r.status_code == 503
    assert "Target" not in r.text


def test_purge_and_db_status(client, store):
    store.insert_batch([rr(1, 0), rr(2, 30)])
    assert client.get("/status").json()["total"] == 2
    assert client.post("/admin/purge").json() == {"deleted": 2}
    assert store.count() == 0


def test_api_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "api_key", "secret")
    assert client.post("/admin/purge").status_code == 401
    assert client.post("/admin/purge", headers={"X-API-Key": "secret"}).status_code == 200
