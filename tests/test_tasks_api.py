import os
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

# Pin the fallback timezone so responses do not depend on the host environment
os.environ["DEFAULT_TIMEZONE"] = "UTC"

# Import the FastAPI app
from src.api.main import app  # noqa: E402
from src.api.routers import tasks as tasks_router  # noqa: E402
from src.api.settings import Settings  # noqa: E402

client = TestClient(app)


def canonical_task_payload(**overrides):
    payload = {
        "id": 42,
        "title": "Replace kitchen tiles",
        "description": "Grey, 20x20",
        "priority": "HIGH",
        "status": "OPEN",
        "createdAt": "2024-03-15T19:30:00Z",
        "updatedAt": "2024-07-01T12:00:00+00:00",
        "dueDate": None,
        "resolvedAt": None,
    }
    payload.update(overrides)
    return payload


def client_task_payload(**overrides):
    payload = {
        "id": 42,
        "title": "Replace kitchen tiles",
        "createdAt": "2024-03-15 20:30 CET",
        "updatedAt": "2024-07-01 14:00 CEST",
        "dueDate": None,
        "resolvedAt": None,
    }
    payload.update(overrides)
    return payload


def assert_error_shape(body: dict, error: str):
    assert body.get("error") == error
    assert isinstance(body.get("message"), str)
    assert isinstance(body.get("detail"), list)


class TestHealth:
    def test_health_check(self):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["default_timezone"] == "UTC"


class TestRender:
    def test_render_in_requested_timezone(self):
        res = client.post(
            "/api/v1/tasks/render",
            params={"timezone": "Europe/Paris"},
            json=canonical_task_payload(dueDate="2024-08-01T09:00:00Z"),
        )
        assert res.status_code == 200
        task = res.json()
        assert task["id"] == 42
        assert task["title"] == "Replace kitchen tiles"
        assert task["createdAt"] == "2024-03-15 20:30 CET"
        assert task["updatedAt"] == "2024-07-01 14:00 CEST"
        assert task["dueDate"] == "2024-08-01 11:00 CEST"
        assert task["resolvedAt"] is None
        assert "timezone" not in task

    def test_render_defaults_to_configured_timezone(self):
        res = client.post("/api/v1/tasks/render", json=canonical_task_payload())
        assert res.status_code == 200
        assert res.json()["createdAt"] == "2024-03-15 19:30 UTC"

    def test_default_timezone_resolved_once(self, monkeypatch):
        calls = []

        def fake_settings():
            calls.append(1)
            return Settings(default_timezone="Asia/Tokyo", cors_allow_origins=["*"], log_level="INFO")

        monkeypatch.setattr(tasks_router, "get_settings", fake_settings)
        tasks_router.default_timezone.cache_clear()
        try:
            first = client.post("/api/v1/tasks/render", json=canonical_task_payload())
            second = client.post("/api/v1/tasks/render", json=canonical_task_payload())
        finally:
            tasks_router.default_timezone.cache_clear()
        assert first.json()["createdAt"] == "2024-03-16 04:30 JST"
        assert second.json()["createdAt"] == "2024-03-16 04:30 JST"
        assert len(calls) == 1

    def test_render_with_numeric_offset(self):
        res = client.post(
            "/api/v1/tasks/render",
            params={"timezone": "+02:00"},
            json=canonical_task_payload(),
        )
        assert res.status_code == 200
        assert res.json()["createdAt"] == "2024-03-15 21:30 +02:00"

    def test_render_unknown_timezone(self):
        res = client.post(
            "/api/v1/tasks/render",
            params={"timezone": "Mars/Olympus"},
            json=canonical_task_payload(),
        )
        assert res.status_code == 400
        body = res.json()
        assert_error_shape(body, "UnknownTimezone")
        assert body["detail"] == [{"timezone": "Mars/Olympus"}]

    def test_render_validation_error_title_empty(self):
        res = client.post("/api/v1/tasks/render", json=canonical_task_payload(title="  "))
        assert res.status_code == 422
        body = res.json()
        assert_error_shape(body, "ValidationError")
        assert body["message"] == "Request validation failed"

    def test_render_validation_error_missing_created_at(self):
        payload = canonical_task_payload()
        del payload["createdAt"]
        res = client.post("/api/v1/tasks/render", json=payload)
        assert res.status_code == 422
        assert_error_shape(res.json(), "ValidationError")


class TestConvert:
    def test_convert_to_utc(self):
        res = client.post(
            "/api/v1/tasks/convert",
            params={"timezone": "UTC"},
            json=client_task_payload(resolvedAt="2024-07-02 08:00 CEST"),
        )
        assert res.status_code == 200
        task = res.json()
        assert task["createdAt"] == "2024-03-15 19:30 UTC"
        assert task["updatedAt"] == "2024-07-01 12:00 UTC"
        assert task["dueDate"] is None
        assert task["resolvedAt"] == "2024-07-02 06:00 UTC"

    def test_rendered_task_converts_back_unchanged(self):
        params = {"timezone": "Asia/Shanghai"}
        rendered = client.post("/api/v1/tasks/render", params=params, json=canonical_task_payload())
        assert rendered.status_code == 200
        task = rendered.json()
        assert task["createdAt"] == "2024-03-16 03:30 CST"
        assert task["updatedAt"] == "2024-07-01 20:00 CST"

        res = client.post("/api/v1/tasks/convert", params=params, json=task)
        assert res.status_code == 200
        assert res.json()["createdAt"] == task["createdAt"]
        assert res.json()["updatedAt"] == task["updatedAt"]

    def test_convert_malformed_date(self):
        res = client.post(
            "/api/v1/tasks/convert",
            params={"timezone": "UTC"},
            json=client_task_payload(dueDate="not-a-date"),
        )
        assert res.status_code == 422
        body = res.json()
        assert_error_shape(body, "MalformedDate")
        assert body["detail"] == [{"field": "dueDate", "value": "not-a-date"}]


class TestLocalize:
    def test_localize_returns_offset_datetimes(self):
        res = client.post(
            "/api/v1/tasks/localize",
            params={"timezone": "Asia/Tokyo"},
            json=client_task_payload(),
        )
        assert res.status_code == 200
        body = res.json()
        assert body["timezone"] == "Asia/Tokyo"
        created = datetime.fromisoformat(body["createdAt"])
        assert created == datetime(2024, 3, 15, 19, 30, tzinfo=timezone.utc)
        assert created.utcoffset() == timedelta(hours=9)
        assert body["dueDate"] is None
        assert body["errors"] == {}

    def test_localize_strict_rejects_malformed(self):
        res = client.post(
            "/api/v1/tasks/localize",
            params={"timezone": "UTC"},
            json=client_task_payload(createdAt="2024-13-01 10:00 UTC"),
        )
        assert res.status_code == 422
        body = res.json()
        assert_error_shape(body, "MalformedDate")
        assert body["detail"][0]["field"] == "createdAt"

    def test_localize_lenient_reports_per_field(self):
        res = client.post(
            "/api/v1/tasks/localize",
            params={"timezone": "UTC", "strict": "false"},
            json=client_task_payload(createdAt="2024-13-01 10:00 UTC", resolvedAt="soon"),
        )
        assert res.status_code == 200
        body = res.json()
        assert body["createdAt"] is None
        assert body["resolvedAt"] is None
        assert datetime.fromisoformat(body["updatedAt"]) == datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)
        assert set(body["errors"]) == {"createdAt", "resolvedAt"}
