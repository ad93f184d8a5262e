"""Integration tests for FastAPI endpoints."""
from __future__ import annotations

from fastapi.testclient import TestClient

from leafify.main import app, create_app
from leafify.services.inference import InferenceService
from leafify.services.labels import PLANT_VILLAGE_CLASSES


def test_healthcheck():
    with TestClient(app) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_predict_returns_diagnosis(ready_service, photo_bytes):
    with TestClient(create_app(ready_service)) as client:
        assert client.get("/health").json()["model"] == "ready"
        response = client.post("/predict", files={"file": ("leaf.png", photo_bytes, "image/png")})
    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"prediction", "confidence", "treatment", "heatmap"}
    assert body["prediction"] in PLANT_VILLAGE_CLASSES
    assert body["confidence"].endswith("%")
    assert body["treatment"]
    assert body["heatmap"].startswith("data:image/png;base64,")


def test_predict_rejects_invalid_image(ready_service):
    with TestClient(create_app(ready_service)) as client:
        response = client.post("/predict", files={"file": ("leaf.jpg", b"garbage", "image/jpeg")})
    assert response.status_code == 400
    assert response.json()["error"] == "DecodeError"


def test_predict_without_model_is_unavailable(tmp_path, photo_bytes):
    service = InferenceService(tmp_path / "missing.pth")
    with TestClient(create_app(service)) as client:
        health = client.get("/health").json()
        response = client.post("/predict", files={"file": ("leaf.png", photo_bytes, "image/png")})
    assert health["model"] == "failed"
    assert "not found" in health["detail"]
    assert response.status_code == 503
    assert response.json()["error"] == "ModelUnavailable"
