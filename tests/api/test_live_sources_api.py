"""
API tests for the live source routes.

File-backed sources keep these tests off the network: the real fetcher
reads the spec from tmp_path and every poll is triggered through the API.
"""
import copy
import json

import pytest


@pytest.fixture
def spec_file(tmp_path, users_spec):
    path = tmp_path / "openapi.json"
    path.write_text(json.dumps(users_spec))
    return path


def _create_file_source(client, spec_file, **extra):
    payload = {"name": "Local File", "file_path": str(spec_file), **extra}
    response = client.post("/live-sources", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "active_polls": 0}


def test_create_url_source(client):
    response = client.post(
        "/live-sources",
        json={"name": "Local API", "url": "http://localhost:8000/openapi.json", "framework": "fastapi"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["id"].startswith("live-spec-")
    assert body["source_type"] == "url"
    assert body["polling"]["is_polling"] is False


def test_create_source_with_both_locations_is_rejected(client, spec_file):
    response = client.post(
        "/live-sources",
        json={"name": "Both", "url": "http://localhost:8000/openapi.json", "file_path": str(spec_file)},
    )

    assert response.status_code == 422


def test_create_source_with_short_interval_is_rejected(client, spec_file):
    response = client.post(
        "/live-sources",
        json={"name": "Fast", "file_path": str(spec_file), "poll_interval_ms": 1000},
    )

    assert response.status_code == 422


def test_unknown_source_is_404(client):
    assert client.get("/live-sources/live-spec-missing").status_code == 404
    assert client.post("/live-sources/live-spec-missing/poll").status_code == 404
    assert client.post("/live-sources/live-spec-missing/polling/start").status_code == 404


def test_list_sources(client, spec_file):
    created = _create_file_source(client, spec_file)

    response = client.get("/live-sources")

    assert [s["id"] for s in response.json()] == [created["id"]]


def test_polling_lifecycle(client, spec_file):
    source = _create_file_source(client, spec_file, start_polling=True)
    source_id = source["id"]
    assert source["polling"]["is_polling"] is True
    assert source["polling"]["last_spec_hash"] is not None
    assert client.get("/health").json()["active_polls"] == 1

    response = client.post(f"/live-sources/{source_id}/polling/start")
    assert response.status_code == 409

    response = client.post(f"/live-sources/{source_id}/polling/stop", json={"preserve_state": True})
    assert response.status_code == 200
    assert response.json()["is_polling"] is False

    response = client.post(f"/live-sources/{source_id}/polling/resume")
    assert response.status_code == 200
    assert response.json()["is_polling"] is True

    response = client.patch(f"/live-sources/{source_id}/polling", json={"poll_interval_ms": 20000})
    assert response.json()["poll_interval_ms"] == 20000

    response = client.post(f"/live-sources/{source_id}/polling/stop")
    assert response.status_code == 200
    assert client.get(f"/live-sources/{source_id}/polling").json()["is_polling"] is False
    assert client.post(f"/live-sources/{source_id}/polling/stop").status_code == 404


def test_poll_detects_changes(client, spec_file, users_spec):
    source_id = _create_file_source(client, spec_file, start_polling=True)["id"]

    assert client.post(f"/live-sources/{source_id}/poll").json()["status"] == "no_change"

    # first change: nothing synced yet, so no diff
    with_health = copy.deepcopy(users_spec)
    with_health["paths"]["/health"] = {"get": {"summary": "Health", "responses": {"200": {"description": "OK"}}}}
    spec_file.write_text(json.dumps(with_health))
    first = client.post(f"/live-sources/{source_id}/poll").json()
    assert first["status"] == "synced"

    # second change is diffed against the synced snapshot
    without_details = copy.deepcopy(with_health)
    del without_details["paths"]["/users/{id}"]
    spec_file.write_text(json.dumps(without_details))
    second = client.post(f"/live-sources/{source_id}/poll").json()
    assert second["status"] == "synced"
    assert second["breaking"] is True
    assert second["summary"]["removed"] == 1

    notifications = client.get(f"/live-sources/{source_id}/notifications").json()
    assert [n["kind"] for n in notifications] == ["breaking-change", "sync-success"]


def test_poll_error_is_recorded(client, spec_file):
    source_id = _create_file_source(client, spec_file, start_polling=True)["id"]
    spec_file.unlink()

    result = client.post(f"/live-sources/{source_id}/poll").json()

    assert result["status"] == "error"
    assert result["error_type"] == "spec_not_found"
    assert result["retry_scheduled"] is True

    errors = client.get(f"/live-sources/{source_id}/errors").json()
    assert len(errors["errors"]) == 1
    assert errors["errors"][0]["retry_count"] == 0
    assert errors["degraded"] is False

    recover = client.post(f"/live-sources/{source_id}/errors/recover")
    assert recover.status_code == 200
    assert recover.json()["recovered"] is False

    assert client.delete(f"/live-sources/{source_id}/errors").status_code == 204
    assert client.get(f"/live-sources/{source_id}/errors").json()["errors"] == []
    assert client.post(f"/live-sources/{source_id}/errors/recover").status_code == 404


def test_delete_source(client, spec_file):
    source_id = _create_file_source(client, spec_file, start_polling=True)["id"]

    assert client.delete(f"/live-sources/{source_id}").status_code == 204

    assert client.get(f"/live-sources/{source_id}").status_code == 404
    assert client.services.polling.get_polling_status(source_id) is None
    assert client.get("/health").json()["active_polls"] == 0
