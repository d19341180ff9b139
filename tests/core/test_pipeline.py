import numpy as np
import pytest

from handpose.core.decoder import DecoderConfig, KeypointLayout
from handpose.core.errors import ShapeMismatch
from handpose.core.pipeline import KeypointPipeline
from handpose.core.types import OutputTensor


class MockSession:
    def __init__(self, output):
        self.output = output
        self.inputs = []

    def infer(self, tensor):
        self.inputs.append(tensor)
        return self.output


def _output(scores, keypoint_count=1):
    attrs = 5 + 3 * keypoint_count
    arr = np.zeros((1, attrs, len(scores)), dtype=np.float32)
    arr[0, 0] = 320.0
    arr[0, 1] = 240.0
    arr[0, 2] = 64.0
    arr[0, 3] = 32.0
    arr[0, 4] = scores
    arr[0, 5:] = np.arange(attrs - 5, dtype=np.float32)[:, None]
    return OutputTensor.from_array(arr)


def test_process_encodes_infers_and_decodes():
    session = MockSession(_output([0.2, 0.7], keypoint_count=1))
    pipeline = KeypointPipeline(
        session, DecoderConfig(min_confidence=0.5, keypoint_count=1), width=4, height=2
    )
    pixels = np.tile(np.array([255, 0, 0, 255], dtype=np.uint8), 8)

    det = pipeline.process(pixels)

    assert det is not None
    assert det.box_index == 1
    assert det.box.to_xywh() == (288.0, 224.0, 64.0, 32.0)
    assert det.keypoints.tolist() == [[0.0, 1.0, 2.0]]
    sent = session.inputs[0]
    assert sent.dims == (1, 3, 2, 4)
    assert np.all(sent.data[0, 0] == 1.0)
    assert np.all(sent.data[0, 1:] == 0.0)


def test_process_returns_none_without_detection():
    pipeline = KeypointPipeline(
        MockSession(_output([0.1, 0.2])), DecoderConfig(min_confidence=0.5, keypoint_count=1), 2, 2
    )
    assert pipeline.process(np.zeros(16, dtype=np.uint8)) is None


def test_shape_mismatch_raised_before_inference():
    session = MockSession(_output([0.9]))
    pipeline = KeypointPipeline(session, DecoderConfig(keypoint_count=1), width=2, height=2)
    with pytest.raises(ShapeMismatch):
        pipeline.process(np.zeros(15, dtype=np.uint8))
    assert session.inputs == []


def test_output_with_wrong_dims_raises():
    bad = OutputTensor(data=np.zeros(10, dtype=np.float32), dims=(1, 8, 2))
    pipeline = KeypointPipeline(MockSession(bad), DecoderConfig(keypoint_count=1), 2, 2)
    with pytest.raises(ShapeMismatch):
        pipeline.process(np.zeros(16, dtype=np.uint8))


def test_process_with_profile_includes_timings():
    pipeline = KeypointPipeline(
        MockSession(_output([0.9])), DecoderConfig(keypoint_count=1), width=2, height=2
    )
    det, timings = pipeline.process_with_profile(np.zeros(16, dtype=np.uint8))
    assert det is not None
    for key in ("encode_ms", "infer_ms", "decode_ms", "pipeline_ms"):
        assert timings[key] >= 0.0
    assert timings["pipeline_ms"] >= timings["decode_ms"]


def test_default_decoder_config_matches_reference_model():
    pipeline = KeypointPipeline(MockSession(_output([0.9], keypoint_count=21)))
    assert pipeline.width == 640 and pipeline.height == 640
    assert pipeline.decoder_config.keypoint_count == 21
    assert pipeline.decoder_config.layout is KeypointLayout.INTERLEAVED
    det = pipeline.process(np.zeros(640 * 640 * 4, dtype=np.uint8))
    assert det.keypoints.shape == (21, 3)


def test_pipeline_keeps_no_state_between_frames():
    session = MockSession(_output([0.9]))
    pipeline = KeypointPipeline(
        session, DecoderConfig(min_confidence=0.5, keypoint_count=1), 2, 2
    )
    first = pipeline.process(np.zeros(16, dtype=np.uint8))
    session.output = _output([0.1, 0.2])
    assert pipeline.process(np.zeros(16, dtype=np.uint8)) is None
    assert first.box_index == 0
