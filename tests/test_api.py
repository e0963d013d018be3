"""
Tests for API endpoints in app/api/.

These tests verify the FastAPI endpoints for health checks and appointment
checks using the TestClient, with the discovery service mocked out.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.errors import DiscoveryFailedError, InputValidationError
from app.models.schemas import (
    AppointmentResults,
    Credentials,
    DiscoveryEvent,
    SearchPreferences,
)
from app.services.discovery_service import DiscoveryOutcome, DiscoverySnapshot


@pytest.fixture
def test_client() -> TestClient:
    """Create a TestClient for the FastAPI app."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def valid_inputs() -> tuple[Credentials, SearchPreferences]:
    credentials = Credentials(last_name="Smith", licence_number="1234567", keyword="secret")
    return credentials, SearchPreferences()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, test_client: TestClient) -> None:
        """Test the /health endpoint."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "icbc-road-test-notifier"

    def test_root_endpoint(self, test_client: TestClient) -> None:
        """Test the root / endpoint."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "ICBC Road Test Notifier"
        assert data["version"] == "0.1.0"
        assert data["endpoints"]["check"] == "/api/v1/appointments/check"
        assert data["endpoints"]["last"] == "/api/v1/appointments/last"


class TestCheckEndpoint:
    """Tests for POST /api/v1/appointments/check."""

    def test_found(self, test_client: TestClient, valid_inputs) -> None:
        """Test that a found event is reported with its summary."""
        event = DiscoveryEvent(summary_message="Available appointments found: 1 dates")

        with patch("app.api.appointments.load_discovery_inputs", return_value=valid_inputs):
            with patch("app.api.appointments.discovery_service") as mock_service:
                mock_service.check_appointments = AsyncMock(return_value=event)

                response = test_client.post("/api/v1/appointments/check")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "found"
        assert data["message"] == event.summary_message
        assert "checked_at" in data
        mock_service.check_appointments.assert_awaited_once_with(*valid_inputs)

    def test_none(self, test_client: TestClient, valid_inputs) -> None:
        """Test that 'checked, nothing matched' is a successful response."""
        with patch("app.api.appointments.load_discovery_inputs", return_value=valid_inputs):
            with patch("app.api.appointments.discovery_service") as mock_service:
                mock_service.check_appointments = AsyncMock(return_value=None)

                response = test_client.post("/api/v1/appointments/check")

        assert response.status_code == 200
        assert response.json()["status"] == "none"

    def test_failed(self, test_client: TestClient, valid_inputs) -> None:
        """Test that an incomplete check is reported as 502 failed."""
        with patch("app.api.appointments.load_discovery_inputs", return_value=valid_inputs):
            with patch("app.api.appointments.discovery_service") as mock_service:
                mock_service.check_appointments = AsyncMock(
                    side_effect=DiscoveryFailedError("Login timed out", attempts=3)
                )

                response = test_client.post("/api/v1/appointments/check")

        assert response.status_code == 502
        data = response.json()
        assert data["status"] == "failed"
        assert data["message"] == "Login timed out"

    def test_invalid_configuration(self, test_client: TestClient) -> None:
        """Test that bad credentials or preferences give 422."""
        with patch(
            "app.api.appointments.load_discovery_inputs",
            side_effect=InputValidationError("Invalid credentials: licence_number"),
        ):
            response = test_client.post("/api/v1/appointments/check")

        assert response.status_code == 422
        assert "licence_number" in response.json()["detail"]


class TestLastResultEndpoint:
    """Tests for GET /api/v1/appointments/last."""

    def test_no_run_yet(self, test_client: TestClient) -> None:
        """Test that 404 is returned before any check has completed."""
        with patch("app.api.appointments.discovery_service") as mock_service:
            mock_service.last_snapshot = None

            response = test_client.get("/api/v1/appointments/last")

        assert response.status_code == 404

    def test_last_found_snapshot(self, test_client: TestClient) -> None:
        """Test that the latest snapshot is returned with its counts."""
        results = AppointmentResults.from_mapping({"Monday, Jan 5, 2026": ["9:00 AM", "10:00 AM"]})
        snapshot = DiscoverySnapshot(
            outcome=DiscoveryOutcome.FOUND, message="Available appointments found", results=results
        )

        with patch("app.api.appointments.discovery_service") as mock_service:
            mock_service.last_snapshot = snapshot

            response = test_client.get("/api/v1/appointments/last")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "found"
        assert data["date_count"] == 1
        assert data["total_slots"] == 2
        assert data["date_to_slots"] == {"Monday, Jan 5, 2026": ["9:00 AM", "10:00 AM"]}

    def test_last_failed_snapshot(self, test_client: TestClient) -> None:
        """Test that a failed run is visible without results."""
        snapshot = DiscoverySnapshot(outcome=DiscoveryOutcome.FAILED, message="failed after 3")

        with patch("app.api.appointments.discovery_service", MagicMock(last_snapshot=snapshot)):
            response = test_client.get("/api/v1/appointments/last")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"
        assert data["total_slots"] == 0
