import numpy as np
import pytest
from fastapi.testclient import TestClient

from handpose.api.main import app
from handpose.api.services import state as api_state
from handpose.api.services.state import get_pipeline
from handpose.core.config.settings import PipelineSettings
from handpose.core.decoder import DecoderConfig
from handpose.core.errors import InferenceError, ModelLoadError
from handpose.core.pipeline import KeypointPipeline
from handpose.core.types import OutputTensor

OCTET = {"content-type": "application/octet-stream"}


class DummySession:
    def __init__(self, scores, keypoint_count=1, error=None):
        attrs = 5 + 3 * keypoint_count
        arr = np.zeros((1, attrs, len(scores)), dtype=np.float32)
        arr[0, :4] = np.array([[8.0], [6.0], [4.0], [2.0]])
        arr[0, 4] = scores
        arr[0, 5:] = 1.0
        self.output = OutputTensor.from_array(arr)
        self.error = error

    def infer(self, tensor):
        if self.error is not None:
            raise self.error
        return self.output

    def describe(self):
        return {
            "model_path": "dummy.onnx",
            "input_name": "images",
            "output_name": "output0",
            "input_shape": [1, 3, 4, 4],
        }


def _pipeline(session):
    return KeypointPipeline(
        session, DecoderConfig(min_confidence=0.5, keypoint_count=1), width=4, height=4
    )


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_infer_returns_best_detection(client):
    app.dependency_overrides[get_pipeline] = lambda: _pipeline(DummySession([0.3, 0.9]))
    res = client.post("/infer", content=bytes(4 * 4 * 4), headers=OCTET)

    assert res.status_code == 200
    data = res.json()
    det = data["detection"]
    assert det["box_index"] == 1
    assert det["confidence"] == pytest.approx(0.9, abs=1e-6)
    assert det["box"] == {"x": 8.0, "y": 6.0, "width": 4.0, "height": 2.0}
    assert det["rect"] == [6.0, 5.0, 4.0, 2.0]
    assert det["keypoint_count"] == 1
    assert det["keypoints"] == [[1.0, 1.0, 1.0]]
    assert set(data["timings"]) == {"encode_ms", "infer_ms", "decode_ms", "pipeline_ms"}


def test_infer_without_detection_is_not_an_error(client):
    app.dependency_overrides[get_pipeline] = lambda: _pipeline(DummySession([0.1, 0.2]))
    res = client.post("/infer", content=bytes(4 * 4 * 4), headers=OCTET)
    assert res.status_code == 200
    assert res.json()["detection"] is None


def test_infer_rejects_wrong_frame_size(client):
    app.dependency_overrides[get_pipeline] = lambda: _pipeline(DummySession([0.9]))
    res = client.post("/infer", content=bytes(4 * 4 * 4 - 1), headers=OCTET)
    assert res.status_code == 422
    assert "multiple of 4" in res.json()["detail"]


def test_infer_reports_model_not_ready(client):
    def _not_ready():
        raise ModelLoadError("failed to load model missing.onnx")

    app.dependency_overrides[get_pipeline] = _not_ready
    res = client.post("/infer", content=bytes(64), headers=OCTET)
    assert res.status_code == 503


def test_infer_reports_inference_failure(client):
    session = DummySession([0.9], error=InferenceError("inference failed: boom"))
    app.dependency_overrides[get_pipeline] = lambda: _pipeline(session)
    res = client.post("/infer", content=bytes(64), headers=OCTET)
    assert res.status_code == 502
    assert "boom" in res.json()["detail"]


def test_model_status_when_not_loaded(client, monkeypatch):
    monkeypatch.setattr(api_state, "_settings", PipelineSettings(model_path="hand.onnx"))
    monkeypatch.setattr(api_state, "_pipeline", None)
    monkeypatch.setattr(api_state, "_last_error", "failed to load model hand.onnx")

    res = client.get("/model")
    assert res.status_code == 200
    data = res.json()
    assert data["ready"] is False
    assert data["model_path"] == "hand.onnx"
    assert data["error"] == "failed to load model hand.onnx"
    assert data["input_name"] is None


def test_model_status_when_loaded(client, monkeypatch):
    monkeypatch.setattr(api_state, "_settings", PipelineSettings(model_path="dummy.onnx"))
    monkeypatch.setattr(api_state, "_pipeline", _pipeline(DummySession([0.9])))
    monkeypatch.setattr(api_state, "_last_error", None)

    data = client.get("/model").json()
    assert data["ready"] is True
    assert data["input_name"] == "images"
    assert data["output_name"] == "output0"
    assert data["input_shape"] == [1, 3, 4, 4]


def test_get_config(client, monkeypatch):
    monkeypatch.setattr(api_state, "_settings", PipelineSettings(keypoint_count=17))
    data = client.get("/config").json()
    assert data["keypoint_count"] == 17
    assert data["keypoint_layout"] == "interleaved"


def test_config_validation(client):
    payload = {
        "model_path": "model.onnx",
        "keypoint_count": 21,
        "keypoint_layout": "zigzag",  # invalid
        "min_confidence": 1.2,  # invalid
    }
    res = client.post("/config", json=payload)
    assert res.status_code == 422


def test_config_rejects_blank_model_path(client, monkeypatch):
    monkeypatch.setattr(api_state, "_settings", PipelineSettings(model_path="dummy.onnx"))
    res = client.post("/config", json={"model_path": "   "})
    assert res.status_code == 422
    assert api_state.get_settings().model_path == "dummy.onnx"


def test_config_update_resets_pipeline(client, monkeypatch, tmp_path):
    monkeypatch.setenv("HANDPOSE_CONFIG", str(tmp_path / "missing.yml"))
    monkeypatch.setattr(api_state, "_settings", None)
    monkeypatch.setattr(api_state, "_pipeline", _pipeline(DummySession([0.9])))

    payload = {"model_path": "other.onnx", "keypoint_layout": "PLANAR", "min_confidence": 0.7}
    res = client.post("/config", json=payload)

    assert res.status_code == 200
    data = res.json()
    assert data["model_path"] == "other.onnx"
    assert data["keypoint_layout"] == "planar"
    assert data["min_confidence"] == 0.7
    assert api_state._pipeline is None
    assert api_state.get_settings().model_path == "other.onnx"
