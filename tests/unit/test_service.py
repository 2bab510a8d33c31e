"""Unit tests for the HTTP service (stubbed generator)."""

import base64
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from docgen.contexts.rendering.pipeline import HealthStatus
from docgen.contexts.service.app import MissingArgumentError, create_app, validate_request_params

PDF_BYTES = b"%PDF-1.4\nstub document"

VALID_BODY = {
    "metadata": {"type": "InstallationReport", "version": "1.0"},
    "data": {"name": "Project Phoenix", "metadata": {"header": "header"}},
}


@pytest.fixture
def generator():
    generator = MagicMock()
    generator.generate.return_value = PDF_BYTES
    generator.check_health.return_value = HealthStatus(
        status="passing", time=datetime(2024, 1, 1, 12, 0, 0)
    )
    return generator


@pytest.fixture
def client(generator):
    return TestClient(create_app(generator=generator))


class TestCreateDocument:
    """Test POST /document."""

    @pytest.mark.unit
    def test_returns_base64_pdf(self, client, generator):
        resp = client.post("/document", json=VALID_BODY)

        assert resp.status_code == 200
        assert base64.b64decode(resp.json()["data"]) == PDF_BYTES
        generator.generate.assert_called_once_with(
            "InstallationReport", "1.0", VALID_BODY["data"]
        )

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "body, argument",
        [
            ({"data": {}}, "metadata.type"),
            ({"metadata": {"version": "1.0"}, "data": {}}, "metadata.type"),
            ({"metadata": {"type": None, "version": "1.0"}, "data": {}}, "metadata.type"),
            ({"metadata": {"type": "InstallationReport"}, "data": {}}, "metadata.version"),
            ({"metadata": {"type": "InstallationReport", "version": "1.0"}}, "data"),
            (
                {"metadata": {"type": "InstallationReport", "version": "1.0"}, "data": None},
                "data",
            ),
        ],
    )
    def test_missing_argument_returns_400(self, client, generator, body, argument):
        resp = client.post("/document", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": f"missing argument '{argument}'"}
        generator.generate.assert_not_called()

    @pytest.mark.unit
    def test_malformed_body_returns_400(self, client):
        resp = client.post(
            "/document", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 400
        assert "error" in resp.json()

    @pytest.mark.unit
    def test_generation_failure_returns_500(self, client, generator):
        generator.generate.side_effect = FileNotFoundError(
            "could not find required template part 'document' at '/tmp/x'"
        )

        resp = client.post("/document", json=VALID_BODY)

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "could not find required template part 'document' at '/tmp/x'"
        }
        assert "data" not in resp.json()

    @pytest.mark.unit
    def test_numeric_version_is_passed_as_string(self, client, generator):
        body = {"metadata": {"type": "InstallationReport", "version": 1.0}, "data": {}}

        client.post("/document", json=body)

        generator.generate.assert_called_once_with("InstallationReport", "1.0", {})


class TestHealth:
    """Test GET /health."""

    @pytest.mark.unit
    def test_health_passing(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {
            "service": "docgen",
            "status": "passing",
            "time": "2024-01-01T12:00:00",
        }

    @pytest.mark.unit
    def test_health_failing(self, client, generator):
        generator.check_health.return_value = HealthStatus(
            status="failing", message="conversion from HTML to PDF failed"
        )

        resp = client.get("/health")

        assert resp.status_code == 500
        data = resp.json()
        assert data["status"] == "failing"
        assert data["message"] == "conversion from HTML to PDF failed"
        assert data["service"] == "docgen"


@pytest.mark.unit
def test_validate_request_params_accepts_valid_body():
    validate_request_params(VALID_BODY)


@pytest.mark.unit
def test_validate_request_params_rejects_non_mapping_metadata():
    with pytest.raises(MissingArgumentError) as exc_info:
        validate_request_params({"metadata": "InstallationReport", "data": {}})

    assert exc_info.value.argument == "metadata.type"


@pytest.mark.unit
def test_create_app_builds_generator_from_config(config):
    """Test that an app can be created from configuration alone."""
    app = create_app(config)

    assert app.state.generator.config is config


@pytest.mark.unit
def test_create_app_without_config_sets_up_logging(config, monkeypatch):
    """Test the uvicorn factory path: configuration is loaded and logging configured from it."""
    config.log_level = "DEBUG"
    logging_calls = []
    monkeypatch.setattr("docgen.contexts.service.app.load_config", lambda: config)
    monkeypatch.setattr(
        "docgen.contexts.service.app.setup_logger_from_config",
        lambda loaded, context_name: logging_calls.append((loaded, context_name)),
    )

    app = create_app()

    assert app.state.generator.config is config
    assert logging_calls == [(config, "service")]


@pytest.mark.unit
def test_create_app_with_config_leaves_logging_alone(config, monkeypatch):
    """Test that callers passing a config keep their own logging setup."""
    logging_calls = []
    monkeypatch.setattr(
        "docgen.contexts.service.app.setup_logger_from_config",
        lambda loaded, context_name: logging_calls.append(context_name),
    )

    create_app(config)

    assert logging_calls == []
