import json
from pathlib import Path

import numpy as np

import handpose.tools.bench_pipeline as bench
from handpose.core.decoder import DecoderConfig
from handpose.core.pipeline import KeypointPipeline


def test_percentiles_empty_and_values():
    assert bench._percentiles([])["p50"] == 0.0
    stats = bench._percentiles([1.0, 2.0, 3.0])
    assert stats["min"] == 1.0
    assert stats["max"] == 3.0
    assert stats["mean"] == 2.0


def test_synthetic_frame_is_opaque_rgba():
    frame = bench.synthetic_frame(8, 4, np.random.default_rng(0))
    assert frame.shape == (8 * 4 * 4,)
    assert np.all(frame.reshape(-1, 4)[:, 3] == 255)


def test_random_session_matches_pose_layout():
    session = bench._RandomSession(keypoint_count=21, boxes=16)
    pipeline = KeypointPipeline(session, DecoderConfig(keypoint_count=21), width=8, height=8)
    det = pipeline.process(np.zeros(8 * 8 * 4, dtype=np.uint8))
    assert det is not None
    assert 0.0 <= det.confidence <= 1.0


def test_run_benchmark_reports_all_stages():
    session = bench._RandomSession(keypoint_count=1, boxes=16)
    pipeline = KeypointPipeline(session, DecoderConfig(keypoint_count=1), width=8, height=8)
    report = bench.run_benchmark(pipeline, frames=3, warmup=1)
    assert set(report) == set(bench.STAGES)
    assert report["pipeline_ms"]["max"] >= 0.0


def test_main_mock_writes_report(tmp_path: Path):
    out = tmp_path / "bench.json"
    rc = bench.main(
        ["--mock", "--size", "16", "--frames", "2", "--warmup", "0", "--output", str(out)]
    )
    assert rc == 0
    data = json.loads(out.read_text())
    assert data["frames"] == 2
    assert "decode_ms" in data["stages"]
