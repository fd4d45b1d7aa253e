"""Tests for the HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from configport.app import App
from configport.web.server import create_fastapi_app

SELECT_SOURCES = {"sources": True}


@pytest.fixture
def client(config, ports):
    app = App(config, ports)
    with TestClient(create_fastapi_app(app, config)) as test_client:
        yield test_client


class TestApi:
    def test_health(self, client):
        """Test the health endpoint."""
        assert client.get("/health").json() == {"status": "healthy"}

    def test_version(self, client):
        """Test that version and format information is reported."""
        data = client.get("/api/v1/metadata/version").json()
        assert data["dataFormatVersion"] == "3.0.0"
        assert "version" in data

    def test_import_then_export(self, client, ports, payload):
        """Test that imported sources are exported again."""
        response = client.post(
            "/api/v1/import", json={"fileContent": json.dumps(payload), "selectedItems": SELECT_SOURCES}
        )
        assert response.status_code == 200
        assert response.json()["stats"]["sources"]["imported"] == 2

        response = client.post("/api/v1/export", json={"selectedItems": SELECT_SOURCES})
        assert response.status_code == 200
        path = response.json()["files"][0]
        assert len(json.loads(ports.files.files[path])["sources"]) == 2

    def test_import_report_hides_credentials(self, client, payload):
        """Test that workspace credentials never appear in the import response."""
        payload["workspace"]["authData"] = {"type": "personal-token", "token": "ghp_secret"}
        response = client.post(
            "/api/v1/import",
            json={"fileContent": json.dumps(payload), "selectedItems": SELECT_SOURCES, "isGitSync": True},
        )
        assert response.status_code == 200
        assert "ghp_secret" not in response.text

    def test_invalid_options(self, client):
        """Test that option errors map to 400 validation errors."""
        response = client.post("/api/v1/export", json={"selectedItems": {}})
        assert response.status_code == 400
        assert response.json() == {
            "message": "At least one data type must be selected for export",
            "type": "validation_error",
        }

    def test_cancelled(self, client, ports):
        """Test that a dismissed dialog maps to 409."""
        ports.dialogs.cancel = True
        response = client.post("/api/v1/export", json={"selectedItems": SELECT_SOURCES})
        assert response.status_code == 409
        assert response.json()["type"] == "cancelled"

    def test_validate_payload(self, client, payload):
        """Test the standalone validation endpoint."""
        payload["version"] = "9.0.0"
        data = client.post("/api/v1/import/validate", json=payload).json()
        assert data["success"] is True
        assert data["warnings"]

    def test_preview(self, client, payload):
        """Test the preview endpoint."""
        response = client.post(
            "/api/v1/import/preview", json={"fileContent": json.dumps(payload), "selectedItems": SELECT_SOURCES}
        )
        assert response.json()["sources"] == {"new": 2, "duplicates": 0, "invalid": 0}
