"""
Tests for the FastAPI application.

Runs each endpoint through TestClient against both storage backends, with
uploads written to a temp directory.
"""

import inspect
import io
import re
import sys

import pytest
from PIL import Image

from autoclaims.api.app import app, get_settings, get_storage, upload_photos
from autoclaims.storage import MemoryClaimStore

from conftest import claim_payload, make_image


def png_upload(name: str = "front.png", width: int = 800, height: int = 600):
    return ("photos", (name, make_image(width, height), "image/png"))


# ============================================================================
# Test: Health
# ============================================================================


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client, created_claim):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["claims"] == 1
        assert data["config"]["image_bounds"] == [1200, 900]


# ============================================================================
# Test: Claims
# ============================================================================


class TestClaimEndpoints:

    def test_create_claim(self, client):
        response = client.post("/api/claims", json=claim_payload())

        assert response.status_code == 201
        data = response.json()
        assert re.match(r"^CLM-\d{4}-\d{4}-001$", data["claim_number"])
        assert data["status"] == "submitted"
        assert data["priority"] == "normal"
        assert data["submission_date"]
        assert data["total_estimate"] is None
        assert data["estimation_confidence"] is None

    def test_create_claim_missing_field(self, client):
        payload = claim_payload()
        del payload["vehicle_info"]

        response = client.post("/api/claims", json=payload)

        assert response.status_code == 400
        assert "vehicle_info" in response.json()["message"]

    def test_create_claim_blank_field(self, client):
        response = client.post("/api/claims", json=claim_payload(policyholder_name=" "))

        assert response.status_code == 400
        assert "policyholder_name" in response.json()["message"]

    def test_create_claim_bad_status(self, client):
        response = client.post("/api/claims", json=claim_payload(status="lost"))
        assert response.status_code == 400

    def test_create_claim_malformed_json(self, client):
        response = client.post(
            "/api/claims",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_list_claims_newest_first(self, client):
        first = client.post("/api/claims", json=claim_payload(policyholder_name="First")).json()
        second = client.post("/api/claims", json=claim_payload(policyholder_name="Second")).json()

        response = client.get("/api/claims")

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [second["id"], first["id"]]

    def test_list_claims_by_status(self, client, created_claim):
        other = client.post("/api/claims", json=claim_payload()).json()
        client.patch(f"/api/claims/{other['id']}", json={"status": "approved"})

        response = client.get("/api/claims", params={"status": "approved"})

        assert [c["id"] for c in response.json()] == [other["id"]]

    def test_list_claims_bad_filter(self, client):
        response = client.get("/api/claims", params={"status": "lost"})
        assert response.status_code == 400

    def test_get_claim(self, client, created_claim):
        response = client.get(f"/api/claims/{created_claim['id']}")

        assert response.status_code == 200
        assert response.json() == created_claim

    def test_get_missing_claim(self, client):
        response = client.get("/api/claims/999")

        assert response.status_code == 404
        assert response.json() == {"message": "Claim not found"}

    def test_get_claim_non_numeric_id(self, client):
        response = client.get("/api/claims/abc")
        assert response.status_code == 400

    def test_update_claim(self, client, created_claim):
        response = client.patch(
            f"/api/claims/{created_claim['id']}",
            json={"status": "under_review", "adjuster_notes": "Requested repair shop quote"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "under_review"
        assert data["adjuster_notes"] == "Requested repair shop quote"
        assert data["policyholder_name"] == created_claim["policyholder_name"]
        assert data["claim_number"] == created_claim["claim_number"]

    def test_update_ignores_claim_number(self, client, created_claim):
        response = client.patch(
            f"/api/claims/{created_claim['id']}",
            json={"claim_number": "CLM-0000-0000-000", "priority": "high"},
        )

        assert response.status_code == 200
        assert response.json()["claim_number"] == created_claim["claim_number"]
        assert response.json()["priority"] == "high"

    def test_update_invalid_priority(self, client, created_claim):
        response = client.patch(f"/api/claims/{created_claim['id']}", json={"priority": "asap"})
        assert response.status_code == 400

    def test_update_missing_claim(self, client):
        response = client.patch("/api/claims/999", json={"status": "approved"})

        assert response.status_code == 404
        assert response.json()["message"] == "Claim not found"


# ============================================================================
# Test: Photo Upload
# ============================================================================


class TestPhotoUpload:

    def test_upload_creates_photos_and_estimate(self, client, created_claim, test_settings):
        claim_id = created_claim["id"]

        response = client.post(
            f"/api/claims/{claim_id}/photos",
            files=[png_upload("front.png"), png_upload("rear.png")],
        )

        assert response.status_code == 201
        photos = response.json()
        assert len(photos) == 2
        for photo in photos:
            assert photo["claim_id"] == claim_id
            assert photo["mime_type"] == "image/jpeg"
            assert photo["filename"].endswith(".jpg")
            assert photo["severity"] in ("severe", "moderate", "minor")
            assert photo["damage_type"] in ("structural", "bodywork", "cosmetic")
            assert photo["ai_analysis"]["repair_types"]
            assert (test_settings.uploads_dir / photo["filename"]).is_file()
        assert [p["original_name"] for p in photos] == ["front.png", "rear.png"]

        breakdown = client.get(f"/api/claims/{claim_id}/cost-breakdown").json()
        claim = client.get(f"/api/claims/{claim_id}").json()
        assert breakdown["claim_id"] == claim_id
        assert breakdown["total_cost"] == (
            breakdown["bodywork_cost"] + breakdown["paint_cost"]
            + breakdown["parts_cost"] + breakdown["labor_cost"]
        )
        assert claim["total_estimate"] == breakdown["total_cost"]
        assert claim["estimation_confidence"] == breakdown["confidence_level"]
        assert 80 <= claim["estimation_confidence"] <= 99

    def test_upload_records_original_size(self, client, created_claim):
        raw = make_image(1000, 700)

        response = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[("photos", ("side.png", raw, "image/png"))],
        )

        assert response.json()[0]["size"] == len(raw)

    def test_upload_resizes_within_bounds(self, client, created_claim, test_settings):
        response = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[png_upload("wide.png", 3000, 1500)],
        )

        stored = test_settings.uploads_dir / response.json()[0]["filename"]
        with Image.open(stored) as img:
            assert img.format == "JPEG"
            assert img.size == (1200, 600)

    def test_second_upload_updates_same_breakdown(self, client, created_claim):
        claim_id = created_claim["id"]

        client.post(f"/api/claims/{claim_id}/photos", files=[png_upload()])
        first = client.get(f"/api/claims/{claim_id}/cost-breakdown").json()

        client.post(f"/api/claims/{claim_id}/photos", files=[png_upload("rear.png")])
        second = client.get(f"/api/claims/{claim_id}/cost-breakdown").json()

        assert second["id"] == first["id"]
        assert len(client.get(f"/api/claims/{claim_id}/photos").json()) == 2
        assert client.get(f"/api/claims/{claim_id}").json()["total_estimate"] == second["total_cost"]

    def test_upload_to_missing_claim(self, client):
        response = client.post("/api/claims/999/photos", files=[png_upload()])
        assert response.status_code == 404

    def test_upload_without_files(self, client, created_claim):
        response = client.post(f"/api/claims/{created_claim['id']}/photos")

        assert response.status_code == 400
        assert response.json()["message"] == "No files uploaded"

    def test_upload_invalid_type(self, client, created_claim):
        response = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[("photos", ("report.pdf", b"%PDF-1.4", "application/pdf"))],
        )

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["message"]

    def test_upload_undecodable_image(self, client, created_claim):
        response = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[("photos", ("broken.jpg", b"\xff\xd8 not really", "image/jpeg"))],
        )
        assert response.status_code == 400

    def test_oversized_file_rejected(self, client, created_claim, test_settings):
        claim_id = created_claim["id"]
        app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
            update={"max_upload_size": 1024}
        )

        response = client.post(
            f"/api/claims/{claim_id}/photos",
            files=[
                png_upload("small.png", 10, 10),
                ("photos", ("big.png", b"\x00" * 2048, "image/png")),
            ],
        )

        assert response.status_code == 400
        assert "File too large" in response.json()["message"]
        # Nothing is stored when any file fails validation
        assert client.get(f"/api/claims/{claim_id}/photos").json() == []
        assert client.get(f"/api/claims/{claim_id}/cost-breakdown").status_code == 404

    def test_too_many_files(self, client, created_claim, test_settings):
        app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
            update={"max_files_per_upload": 2}
        )

        response = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[png_upload(f"p{i}.png", 20, 20) for i in range(3)],
        )

        assert response.status_code == 400
        assert "Too many files" in response.json()["message"]

    def test_too_many_pixels_rejected(self, client, created_claim, test_settings):
        claim_id = created_claim["id"]
        app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
            update={"max_image_pixels": 10_000}
        )

        response = client.post(
            f"/api/claims/{claim_id}/photos",
            files=[png_upload("wide.png", 200, 100)],
        )

        assert response.status_code == 400
        assert "Image dimensions too large" in response.json()["message"]
        assert client.get(f"/api/claims/{claim_id}/photos").json() == []

    def test_decompression_bomb_rejected(self, client, created_claim, monkeypatch):
        upload = png_upload("bomb.png", 100, 100)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        response = client.post(f"/api/claims/{created_claim['id']}/photos", files=[upload])

        assert response.status_code == 400
        assert "Image dimensions too large" in response.json()["message"]

    def test_upload_runs_off_event_loop(self):
        assert not inspect.iscoroutinefunction(upload_photos)


# ============================================================================
# Test: Photos
# ============================================================================


class TestPhotoEndpoints:

    @pytest.fixture
    def uploaded_photo(self, client, created_claim):
        response = client.post(f"/api/claims/{created_claim['id']}/photos", files=[png_upload()])
        return response.json()[0]

    def test_list_photos_for_missing_claim(self, client):
        assert client.get("/api/claims/999/photos").status_code == 404

    def test_list_photos_empty(self, client, created_claim):
        response = client.get(f"/api/claims/{created_claim['id']}/photos")

        assert response.status_code == 200
        assert response.json() == []

    def test_get_photo(self, client, uploaded_photo):
        response = client.get(f"/api/photos/{uploaded_photo['id']}")

        assert response.status_code == 200
        assert response.json() == uploaded_photo

    def test_get_missing_photo(self, client):
        response = client.get("/api/photos/999")
        assert response.status_code == 404
        assert response.json()["message"] == "Photo not found"

    def test_delete_photo(self, client, uploaded_photo, test_settings):
        stored = test_settings.uploads_dir / uploaded_photo["filename"]
        assert stored.is_file()

        response = client.delete(f"/api/photos/{uploaded_photo['id']}")

        assert response.status_code == 204
        assert client.get(f"/api/photos/{uploaded_photo['id']}").status_code == 404
        assert not stored.exists()

    def test_delete_missing_photo(self, client):
        response = client.delete("/api/photos/999")

        assert response.status_code == 404
        assert response.json() == {"message": "Photo not found"}


# ============================================================================
# Test: Cost Breakdowns
# ============================================================================


class TestCostBreakdownEndpoints:

    def test_missing_breakdown(self, client, created_claim):
        response = client.get(f"/api/claims/{created_claim['id']}/cost-breakdown")

        assert response.status_code == 404
        assert response.json()["message"] == "Cost breakdown not found"

    def test_create_breakdown(self, client, created_claim):
        response = client.post(
            f"/api/claims/{created_claim['id']}/cost-breakdown",
            json={"bodywork_cost": 500, "labor_cost": 300, "total_cost": 800, "confidence_level": 90},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["claim_id"] == created_claim["id"]
        assert data["total_cost"] == 800
        assert data["paint_cost"] is None

    def test_create_breakdown_for_missing_claim(self, client):
        response = client.post("/api/claims/999/cost-breakdown", json={"total_cost": 100})
        assert response.status_code == 404

    def test_create_breakdown_negative_cost(self, client, created_claim):
        response = client.post(
            f"/api/claims/{created_claim['id']}/cost-breakdown",
            json={"paint_cost": -10},
        )
        assert response.status_code == 400

    def test_update_breakdown(self, client, created_claim):
        url = f"/api/claims/{created_claim['id']}/cost-breakdown"
        client.post(url, json={"labor_cost": 300, "total_cost": 300})

        response = client.patch(url, json={"paint_cost": 450, "total_cost": 750})

        assert response.status_code == 200
        data = response.json()
        assert data["labor_cost"] == 300
        assert data["paint_cost"] == 450
        assert data["total_cost"] == 750

    def test_update_missing_breakdown(self, client, created_claim):
        response = client.patch(
            f"/api/claims/{created_claim['id']}/cost-breakdown",
            json={"total_cost": 100},
        )
        assert response.status_code == 404


# ============================================================================
# Test: Stored Files
# ============================================================================


class TestFileEndpoint:

    def test_serves_uploaded_photo(self, client, created_claim):
        photo = client.post(
            f"/api/claims/{created_claim['id']}/photos",
            files=[png_upload()],
        ).json()[0]

        response = client.get(f"/api/files/{photo['filename']}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        with Image.open(io.BytesIO(response.content)) as img:
            assert img.format == "JPEG"

    def test_missing_file(self, client):
        response = client.get("/api/files/1700000000000-missing00.jpg")

        assert response.status_code == 404
        assert response.json() == {"message": "File not found"}

    def test_parent_directory_not_served(self, client):
        response = client.get("/api/files/..")
        assert response.status_code == 404


# ============================================================================
# Test: Server Errors
# ============================================================================


class FailingStore(MemoryClaimStore):
    """Store whose reads blow up, to exercise the 500 paths."""

    def count_claims(self, status=None):
        raise RuntimeError("database is locked")

    def list_claims(self, *args, **kwargs):
        raise RuntimeError("database is locked")

    def get_cost_breakdown(self, claim_id):
        raise RuntimeError("database is locked")


class TestServerErrors:

    @pytest.fixture
    def failing_client(self, test_settings):
        from fastapi.testclient import TestClient

        app.dependency_overrides[get_storage] = lambda: FailingStore()
        app.dependency_overrides[get_settings] = lambda: test_settings
        try:
            yield TestClient(app)
        finally:
            app.dependency_overrides.clear()

    def test_list_failure_is_generic_500(self, failing_client):
        response = failing_client.get("/api/claims")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch claims"}

    def test_breakdown_failure_is_generic_500(self, failing_client):
        response = failing_client.get("/api/claims/1/cost-breakdown")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch cost breakdown"}


    def test_health_failure_is_json_500(self, failing_client):
        response = failing_client.get("/health")

        assert response.status_code == 500
        assert response.json() == {"message": "Health check failed"}

    def test_file_lookup_failure_is_json_500(self, failing_client, monkeypatch):
        def broken_lookup(uploads_dir, filename):
            raise PermissionError("uploads directory unreadable")

        monkeypatch.setattr(sys.modules["autoclaims.api.app"], "resolve_upload", broken_lookup)

        response = failing_client.get("/api/files/1700000000000-abcdefghi.jpg")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch file"}
