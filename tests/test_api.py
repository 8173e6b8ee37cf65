from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from eleva.dates import local_today
from eleva.main import app
from eleva.metrics import registry as metrics_registry
from eleva.rotation import registry as rotation_registry
from eleva.store import AppFirestoreStore, get_store
from tests.firestore_fakes import BrokenFirestoreClient, FakeFirestoreClient

REVIEWS = "/api/plans/plan-1/reviews"
ERRORS = "/api/plans/plan-1/errors"
ROTATION = "/api/plans/plan-1/rotation"


@pytest.fixture
def fake():
    return FakeFirestoreClient()


@pytest.fixture
def client(fake):
    app.dependency_overrides[get_store] = lambda: AppFirestoreStore(client=fake)
    rotation_registry.clear()
    metrics_registry.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    rotation_registry.clear()


def _iso(days: int = 0) -> str:
    return (local_today() + timedelta(days=days)).isoformat()


def _create_review(client: TestClient, days: int = 0, **overrides) -> dict:
    body = {
        "topic_id": "topic-crase",
        "discipline_id": "portugues",
        "content": "Crase",
        "scheduled_date": _iso(days),
    }
    body.update(overrides)
    resp = client.post(REVIEWS, json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_healthz_and_request_id_header(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "timezone": "America/Sao_Paulo", "today": _iso(0)}
    assert resp.headers["X-Request-ID"] == "req-123"

    generated = client.get("/healthz")
    assert len(generated.headers["X-Request-ID"]) == 32


def test_metrics_snapshot_counts_requests(client):
    client.get("/healthz")
    client.get("/healthz")
    paths = client.get("/metrics").json()["paths"]
    assert paths["GET /healthz"]["count"] == 2
    assert paths["GET /healthz"]["status"] == {"2xx": 2}
    assert paths["GET /healthz"]["errors"] == 0


def test_list_recomputes_overdue_without_persisting(client, fake):
    stale = _create_review(client, -2)
    _create_review(client, 0)

    resp = client.get(REVIEWS)
    assert resp.status_code == 200
    statuses = {item["id"]: item["status"] for item in resp.json()["items"]}
    assert statuses[stale["id"]] == "overdue"
    assert fake.document_data("reviews", stale["id"])["status"] == "pending"

    overdue_only = client.get(REVIEWS, params={"status": "overdue"}).json()
    assert overdue_only["total"] == 1


def test_refresh_overdue_persists_and_is_idempotent(client, fake):
    stale = _create_review(client, -1)

    first = client.post(f"{REVIEWS}/refresh-overdue").json()
    second = client.post(f"{REVIEWS}/refresh-overdue").json()

    assert first == {"updated": [stale["id"]]}
    assert second == {"updated": []}
    assert fake.document_data("reviews", stale["id"])["status"] == "overdue"


def test_complete_incorrect_returns_follow_up(client):
    review = _create_review(client, 0)

    resp = client.post(f"{REVIEWS}/{review['id']}/complete", json={"outcome": "incorrect"})

    assert resp.status_code == 200, resp.text
    payload = resp.json()
    assert payload["review"]["status"] == "completed"
    assert payload["follow_up"]["scheduled_date"] == _iso(1)
    assert payload["follow_up"]["difficulty"] == "hard"
    assert client.get(REVIEWS).json()["total"] == 2


def test_completing_twice_is_a_conflict(client):
    review = _create_review(client, 0)
    client.post(f"{REVIEWS}/{review['id']}/complete", json={"outcome": "correct"})

    resp = client.post(f"{REVIEWS}/{review['id']}/complete", json={"outcome": "correct"})

    assert resp.status_code == 409
    assert resp.json()["detail"] == "Esta revisão já foi concluída."


def test_complete_unknown_review_is_404(client):
    resp = client.post(f"{REVIEWS}/rv:missing/complete", json={"outcome": "correct"})
    assert resp.status_code == 404


def test_reschedule(client):
    review = _create_review(client, -3)

    resp = client.post(f"{REVIEWS}/{review['id']}/reschedule", json={"days": 2})
    assert resp.status_code == 200
    assert resp.json()["scheduled_date"] == _iso(2)
    assert resp.json()["status"] == "pending"

    invalid = client.post(f"{REVIEWS}/{review['id']}/reschedule", json={"days": -1})
    assert invalid.status_code == 422


def test_patch_get_and_delete_review(client):
    review = _create_review(client, 3)

    patched = client.patch(f"{REVIEWS}/{review['id']}", json={"content": "Regência"})
    assert patched.json()["content"] == "Regência"
    assert client.get(f"{REVIEWS}/{review['id']}").json()["content"] == "Regência"

    assert client.delete(f"{REVIEWS}/{review['id']}").status_code == 204
    assert client.get(f"{REVIEWS}/{review['id']}").status_code == 404
    assert client.patch(f"{REVIEWS}/{review['id']}", json={"content": "x"}).status_code == 404


def test_overview_buckets(client):
    _create_review(client, 0)
    _create_review(client, 1)
    _create_review(client, 10)
    _create_review(client, -1)

    overview = client.get(f"{REVIEWS}/overview").json()

    assert overview["total_due_today"] == 1
    assert len(overview["tomorrow"]) == 1
    assert len(overview["future"]) == 1
    assert overview["total_overdue"] == 1
    assert overview["statistics"]["completion_rate"] == 0


def test_auto_schedule_skips_existing_dates(client):
    body = {
        "discipline_id": "portugues",
        "discipline_name": "Português",
        "topic_id": "topic-crase",
        "topic_name": "Crase",
    }
    first = client.post(f"{REVIEWS}/auto-schedule", json=body)
    assert first.status_code == 201
    dates = [r["scheduled_date"] for r in first.json()["created"]]
    assert dates == [_iso(1), _iso(7), _iso(15), _iso(30)]

    again = client.post(f"{REVIEWS}/auto-schedule", json=body)
    assert again.json()["created"] == []

    bad = client.post(f"{REVIEWS}/auto-schedule", json={**body, "intervals": [0]})
    assert bad.status_code == 422


def test_error_log_flow_with_follow_up_review(client):
    created = client.post(
        ERRORS,
        json={"discipline_id": "portugues", "topic_id": "topic-crase", "subject": "Crase"},
    )
    assert created.status_code == 201
    error_id = created.json()["id"]
    assert created.json()["date"] == _iso(0)

    toggled = client.post(
        f"{ERRORS}/{error_id}/toggle-resolved", json={"schedule_review": True}
    ).json()

    assert toggled["error"]["resolved"] is True
    assert toggled["follow_up_error"] is None
    assert toggled["follow_up_review"]["scheduled_date"] == _iso(7)
    assert toggled["follow_up_review"]["content"] == "Review error: Crase"

    resolved = client.get(ERRORS, params={"status": "resolved"}).json()
    assert [e["id"] for e in resolved["items"]] == [error_id]
    assert client.get(ERRORS, params={"status": "pending"}).json()["total"] == 0


def test_error_requires_discipline(client):
    resp = client.post(ERRORS, json={"subject": "Sem disciplina"})
    assert resp.status_code == 422
    assert "discipline_id" in resp.json()["detail"]


def test_error_revision_and_delete(client):
    error_id = client.post(ERRORS, json={"discipline_id": "d", "subject": "Vírgula"}).json()["id"]

    revised = client.post(f"{ERRORS}/{error_id}/revisions", json={"status": "reviewed"})
    assert revised.status_code == 200
    assert revised.json()["revisions"] == [{"date": _iso(0), "status": "reviewed"}]

    assert client.delete(f"{ERRORS}/{error_id}").status_code == 204
    assert client.get(ERRORS).json()["total"] == 0


def test_rotation_weights_and_picks(client):
    saved = client.put(f"{ROTATION}/weights", json={"weights": {"A": 10, "B": 10}})
    assert saved.json() == {"weights": {"A": 10.0, "B": 10.0}}
    assert client.get(f"{ROTATION}/weights").json() == saved.json()

    first = client.post(f"{ROTATION}/next").json()["discipline"]
    second = client.post(f"{ROTATION}/next").json()
    assert first in {"A", "B"}
    assert second["discipline"] != first
    assert second["last_picked"] == second["discipline"]

    peek = client.get(f"{ROTATION}/peek").json()
    assert peek["discipline"] == first
    assert peek["last_picked"] == second["discipline"]

    assert client.post(f"{ROTATION}/reset").json() == {"discipline": None, "last_picked": None}


def test_rotation_without_weights_returns_none(client):
    assert client.post(f"{ROTATION}/next").json() == {"discipline": None, "last_picked": None}


def test_persistence_failure_maps_to_503():
    app.dependency_overrides[get_store] = lambda: AppFirestoreStore(client=BrokenFirestoreClient())
    try:
        with TestClient(app) as test_client:
            resp = test_client.get(REVIEWS)
            weights = test_client.get(f"{ROTATION}/weights")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Não foi possível carregar as revisões."}
    assert weights.status_code == 503


def test_metrics_group_requests_by_route_template(client):
    first = _create_review(client, 1)
    second = _create_review(client, 2)
    client.get(f"{REVIEWS}/{first['id']}")
    client.get(f"{REVIEWS}/{second['id']}")
    client.get(f"{REVIEWS}/rv:missing")
    client.get("/api/plans/plan-2/reviews")

    paths = client.get("/metrics").json()["paths"]

    by_id = paths["GET /api/plans/{plan_id}/reviews/{review_id}"]
    assert by_id["count"] == 3
    assert by_id["status"] == {"2xx": 2, "4xx": 1}
    assert paths["GET /api/plans/{plan_id}/reviews"]["count"] == 1
    assert paths["POST /api/plans/{plan_id}/reviews"]["status"] == {"2xx": 2}
    assert not any(first["id"] in key or "plan-1" in key for key in paths)


def test_patch_cannot_reopen_a_completed_review(client, fake):
    review = _create_review(client, 0)
    client.post(f"{REVIEWS}/{review['id']}/complete", json={"outcome": "correct"})

    resp = client.patch(f"{REVIEWS}/{review['id']}", json={"status": "pending"})

    assert resp.status_code == 409
    assert fake.document_data("reviews", review["id"])["status"] == "completed"


def test_patch_cannot_complete_a_review(client, fake):
    review = _create_review(client, 0)

    resp = client.patch(f"{REVIEWS}/{review['id']}", json={"status": "completed"})

    assert resp.status_code == 422
    assert fake.document_data("reviews", review["id"])["status"] == "pending"


def test_patch_with_null_required_field_is_invalid_input(client, fake):
    review = _create_review(client, 1)

    resp = client.patch(f"{REVIEWS}/{review['id']}", json={"scheduled_date": None})

    assert resp.status_code == 422
    assert fake.document_data("reviews", review["id"])["scheduled_date"] == _iso(1)


def test_error_patch_nulls(client):
    error_id = client.post(
        ERRORS, json={"discipline_id": "d", "topic_id": "t", "subject": "Vírgula"}
    ).json()["id"]

    assert client.patch(f"{ERRORS}/{error_id}", json={"subject": None}).status_code == 422

    cleared = client.patch(f"{ERRORS}/{error_id}", json={"topic_id": None})
    assert cleared.status_code == 200
    assert cleared.json()["topic_id"] is None
