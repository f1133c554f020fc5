import asyncio
from unittest.mock import patch

from a11y_insights.features.analytics.schemas.records import ConnectionReport
from a11y_insights.platform.config import settings

VALIDATOR = "a11y_insights.features.analytics.routes.analytics.ConnectionValidator"


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200

    payload = response.json()
    assert payload["status_code"] == 200
    assert payload["status"] == "success"
    assert payload["message"] == "Service is healthy"
    assert payload["data"] == {"status": "ok", "service": settings.APP_NAME}


def test_root_info(client):
    response = client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload["app_name"] == settings.APP_NAME
    assert payload["version"] == "1.0.0"
    assert payload["api_base"] == "/api/v1"


def test_analytics_health_ok(client):
    report = ConnectionReport(ok=True, stage="done", dataset_id="proj:a11y", location="EU")
    with patch(VALIDATOR) as validator:
        validator.return_value.validate.return_value = report
        response = client.get("/api/v1/analytics/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert payload["data"]["stage"] == "done"
    assert payload["data"]["location"] == "EU"


def test_analytics_health_failure(client):
    report = ConnectionReport(ok=False, stage="config", config_errors=["BQ_DATASET is missing"])
    with patch(VALIDATOR) as validator:
        validator.return_value.validate.return_value = report
        response = client.get("/api/v1/analytics/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["message"] == "Analytics warehouse check failed at stage 'config'"
    assert payload["data"]["config_errors"] == ["BQ_DATASET is missing"]
    assert payload["errors"] == ["BQ_DATASET is missing"]


def test_analytics_health_runs_validation_off_the_event_loop(client):
    seen = {}

    def validate():
        try:
            asyncio.get_running_loop()
            seen["loop"] = True
        except RuntimeError:
            seen["loop"] = False
        return ConnectionReport(ok=True, stage="done")

    with patch(VALIDATOR) as validator:
        validator.return_value.validate.side_effect = validate
        response = client.get("/api/v1/analytics/health")

    assert response.status_code == 200
    assert seen == {"loop": False}


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json()["status"] == "error"
    assert response.json()["errors"] == []
