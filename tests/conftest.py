"""
Shared fixtures for the claims API tests.
"""

import io
import random

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from autoclaims.api.app import app, get_random, get_storage
from autoclaims.claims.schema import ClaimCreate
from autoclaims.storage import MemoryClaimStore, SQLiteClaimStore
from autoclaims.utils.config import Settings, get_settings


# ============================================================================
# Helpers
# ============================================================================


def make_image(width: int = 800, height: int = 600, fmt: str = "PNG", color=(180, 40, 40)) -> bytes:
    """Create an in-memory image file."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def claim_payload(**overrides) -> dict:
    """Valid request body for filing a claim."""
    payload = {
        "policyholder_name": "Maria Lopez",
        "vehicle_info": "2019 Honda Civic, silver",
        "incident_date": "2024-03-02",
        "incident_location": "I-280 near exit 12, San Jose, CA",
        "incident_type": "collision",
        "damage_description": "Rear-ended at low speed, bumper cracked and trunk lid dented",
    }
    payload.update(overrides)
    return payload


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def memory_store():
    return MemoryClaimStore()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each storage backend in turn."""
    if request.param == "memory":
        return MemoryClaimStore()
    return SQLiteClaimStore(tmp_path / "claims.db")


@pytest.fixture
def claim_create():
    return ClaimCreate(**claim_payload())


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing uploads and the database at a temp directory."""
    return Settings(
        storage_backend="memory",
        database_path=tmp_path / "claims.db",
        uploads_dir=tmp_path / "uploads",
    )


@pytest.fixture
def client(store, test_settings):
    """TestClient wired to a fresh store, temp uploads dir and seeded randomness."""
    app.dependency_overrides[get_storage] = lambda: store
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_random] = lambda: random.Random(1234)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def created_claim(client):
    """A claim filed through the API."""
    response = client.post("/api/claims", json=claim_payload())
    assert response.status_code == 201
    return response.json()
