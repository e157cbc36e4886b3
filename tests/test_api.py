"""
Tests for API endpoints
"""
import random

import pytest
from fastapi.testclient import TestClient

from wastewatch.api.main import app, get_session
from wastewatch.api.session import DemoSession
from wastewatch.classification.client import ClassificationResult, MockClassificationClient
from wastewatch.core.constants import WasteType
from wastewatch.visualization.proximity import ProximitySimulator


@pytest.fixture
def session():
    """Demo session without debounce or review latency."""
    return DemoSession(
        classifier=MockClassificationClient(
            result=ClassificationResult(True, 92.0, WasteType.PLASTIC)
        ),
        simulator=ProximitySimulator(rng=random.Random(5)),
        debounce_seconds=0,
        processing_delay=0,
    )


@pytest.fixture
def client(session):
    """Test client bound to the demo session."""
    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _upload(client, data=b"\xff\xd8fake-jpeg"):
    response = client.post(
        "/api/v1/draft/image",
        files={"image": ("waste.jpg", data, "image/jpeg")},
    )
    assert response.status_code == 200
    return client.get("/api/v1/draft", params={"wait": True}).json()


class TestSystemEndpoints:
    """Test suite for system endpoints."""

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["classifier"] == "MockClassificationClient"

    def test_current_user(self, client):
        data = client.get("/api/v1/users/me").json()

        assert data["id"] == "u1"
        assert data["green_units"] == 980
        assert data["reports"] == []


class TestSubmissionEndpoints:
    """Test suite for the reporter flow."""

    def test_upload_classifies_image(self, client):
        draft = _upload(client)

        assert draft["is_classifying"] is False
        assert draft["auto_waste_type"] == "Plastic"
        assert draft["reward_estimate"] == 70

    def test_submit_report(self, client, session):
        _upload(client)

        response = client.post("/api/v1/reports", json={
            "description": "Bottles on the beach",
            "location": {"lat": 34.0522, "lng": -118.2437},
        })

        assert response.status_code == 201
        report = response.json()
        assert report["status"] == "Pending"
        assert report["reward"] == 70
        assert report["waste_type"] == "Plastic"

        user = client.get("/api/v1/users/me").json()
        assert user["green_units"] == 1050
        assert [r["id"] for r in user["reports"]] == [report["id"]]
        assert session.submitted == [report["id"]]

    def test_empty_submission(self, client):
        response = client.post("/api/v1/reports", json={})

        assert response.status_code == 400
        assert response.json()["error_code"] == "EMPTY_SUBMISSION"

    def test_low_confidence_submission(self, client, session):
        session.classifier.result = ClassificationResult(False, 90.0)
        _upload(client)

        response = client.post("/api/v1/reports", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "NO_WASTE_DETECTED"
        assert "try another image" in body["message"]

    def test_confirmation_flow(self, client):
        _upload(client)

        pending = client.post("/api/v1/draft/confirmation", json={"waste_type": "Glass"})
        assert pending.status_code == 200
        assert pending.json()["reward"] == 70

        confirmed = client.post("/api/v1/draft/confirmation/confirm")
        assert confirmed.status_code == 201
        assert confirmed.json()["waste_type"] == "Glass"

        again = client.post("/api/v1/draft/confirmation/confirm")
        assert again.status_code == 409
        assert again.json()["error_code"] == "NO_PENDING_CONFIRMATION"

    def test_update_and_reset_draft(self, client):
        _upload(client)
        draft = client.patch("/api/v1/draft", json={"description": "Near the park"}).json()
        assert draft["description"] == "Near the park"

        draft = client.delete("/api/v1/draft").json()
        assert draft["has_image"] is False
        assert draft["description"] is None

    def test_capture_location(self, client):
        draft = client.post("/api/v1/draft/location").json()

        assert draft["location"] == {"lat": 34.0522, "lng": -118.2437}
        assert draft["location_status"] == "Location acquired"


class TestReviewEndpoints:
    """Test suite for the organization flow."""

    def _submit(self, client):
        _upload(client)
        return client.post("/api/v1/reports", json={"description": "Cans"}).json()

    def test_review_queue(self, client):
        report = self._submit(client)

        data = client.get("/api/v1/reports").json()

        assert data["count"] == 1
        assert data["pending_count"] == 1
        assert data["reports"][0]["id"] == report["id"]
        assert data["reports"][0]["user_name"] == "sriram"

    def test_filter_by_status(self, client):
        self._submit(client)

        data = client.get("/api/v1/reports", params={"status": "Accepted"}).json()

        assert data["count"] == 0

    def test_accept_then_reject_conflicts(self, client):
        report = self._submit(client)

        accepted = client.post(f"/api/v1/reports/{report['id']}/accept")
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "Accepted"

        rejected = client.post(f"/api/v1/reports/{report['id']}/reject")
        assert rejected.status_code == 409
        assert rejected.json()["error_code"] == "INVALID_TRANSITION"

    def test_unknown_report(self, client):
        response = client.get("/api/v1/reports/r-missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_analysis_is_advisory(self, client):
        report = self._submit(client)

        analysis = client.post(f"/api/v1/reports/{report['id']}/analysis").json()

        assert analysis["is_waste_present"] is True
        assert analysis["waste_type"] == "Plastic"
        assert client.get(f"/api/v1/reports/{report['id']}").json()["status"] == "Pending"

    def test_token_round_trip(self, client):
        report = self._submit(client)

        token = client.get(f"/api/v1/reports/{report['id']}/verification-token").json()
        assert token["qr_code_url"].startswith("https://api.qrserver.com/")

        cleaned = client.post("/api/v1/verification-tokens/confirm", json={"token": token["payload"]})
        assert cleaned.status_code == 200
        assert cleaned.json()["status"] == "Cleaned"

        reused = client.post("/api/v1/verification-tokens/confirm", json={"token": token["payload"]})
        assert reused.status_code == 400
        assert reused.json()["error_code"] == "INVALID_TOKEN"

    def test_stats(self, client):
        self._submit(client)

        stats = client.get("/api/v1/reports/stats/summary").json()

        assert stats["total_reports"] == 1
        assert stats["with_photo"] == 1


class TestLeaderboardAndMap:
    """Test suite for read-side views."""

    def test_leaderboard(self, client):
        data = client.get("/api/v1/leaderboard").json()

        assert data["count"] == 6
        assert [e["name"] for e in data["entries"]] == [
            "sriram", "chandu", "mahesh", "tilak", "rohitha", "shiva",
        ]
        assert [e["rank"] for e in data["entries"]] == [1, 2, 3, 4, 5, 6]

    def test_nearby(self, client):
        data = client.get("/api/v1/map/nearby", params={"lat": 34.0522, "lng": -118.2437}).json()

        assert data["count"] == 10
        assert data["radius_meters"] == 700
        assert all(0 <= m["distance_meters"] <= 700 for m in data["markers"])

    def test_nearby_includes_located_reports(self, client):
        _upload(client)
        client.post("/api/v1/reports", json={"location": {"lat": 34.05, "lng": -118.24}})

        data = client.get(
            "/api/v1/map/nearby",
            params={"lat": 34.0522, "lng": -118.2437, "count": 2},
        ).json()

        assert [m["kind"] for m in data["markers"]] == ["simulated", "simulated", "report"]

    def test_nearby_rejects_bad_coordinates(self, client):
        response = client.get("/api/v1/map/nearby", params={"lat": 120, "lng": 0})
        assert response.status_code == 422
