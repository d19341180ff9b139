"""CLI: benchmark the keypoint pipeline stages on synthetic frames.

This tool is intentionally print-oriented (human-readable) and also writes a JSON
report suitable for regression tracking. With `--mock` the model is replaced by
a random-output stand-in so encoder/decoder cost can be measured alone.
"""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

import numpy as np

from handpose.core.decoder import (
    ATTR_CONFIDENCE,
    ATTR_KEYPOINTS,
    VALUES_PER_KEYPOINT,
    DecoderConfig,
)
from handpose.core.pipeline import KeypointPipeline
from handpose.core.session import ModelSession
from handpose.core.types import InputTensor, OutputTensor

STAGES = ("encode_ms", "infer_ms", "decode_ms", "pipeline_ms")


class _RandomSession:
    """Returns a random (1, A, B) output shaped like a YOLO-pose export."""

    def __init__(self, keypoint_count: int, boxes: int = 8400, seed: int = 0):
        self.attributes = ATTR_KEYPOINTS + VALUES_PER_KEYPOINT * keypoint_count
        self.boxes = boxes
        self._rng = np.random.default_rng(seed)

    def infer(self, tensor: InputTensor) -> OutputTensor:
        out = self._rng.random((1, self.attributes, self.boxes), dtype=np.float32) * 640.0
        out[0, ATTR_CONFIDENCE] /= 640.0
        return OutputTensor.from_array(out)


def _percentiles(values: list[float]) -> dict[str, float]:
    """Compute a small set of percentiles for a list of timings."""

    if not values:
        return {"min": 0.0, "p50": 0.0, "p95": 0.0, "p99": 0.0, "max": 0.0, "mean": 0.0}
    arr = np.array(values, dtype=np.float64)
    return {
        "min": float(np.min(arr)),
        "p50": float(np.percentile(arr, 50)),
        "p95": float(np.percentile(arr, 95)),
        "p99": float(np.percentile(arr, 99)),
        "max": float(np.max(arr)),
        "mean": float(np.mean(arr)),
    }


def synthetic_frame(width: int, height: int, rng: np.random.Generator) -> np.ndarray:
    """Random opaque RGBA frame as a flat uint8 buffer."""

    frame = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    frame[..., 3] = 255
    return frame.reshape(-1)


def run_benchmark(
    pipeline: KeypointPipeline, frames: int = 100, warmup: int = 5, seed: int = 0
) -> dict[str, dict[str, float]]:
    """Run `frames` synthetic frames through `pipeline` and return stage percentiles."""

    rng = np.random.default_rng(seed)
    for _ in range(max(0, warmup)):
        pipeline.process(synthetic_frame(pipeline.width, pipeline.height, rng))

    samples: dict[str, list[float]] = {stage: [] for stage in STAGES}
    for _ in range(frames):
        _, timings = pipeline.process_with_profile(
            synthetic_frame(pipeline.width, pipeline.height, rng)
        )
        for stage in STAGES:
            samples[stage].append(timings.get(stage, 0.0))
    return {stage: _percentiles(values) for stage, values in samples.items()}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Benchmark the keypoint pipeline")
    parser.add_argument("--model", default="model.onnx")
    parser.add_argument("--size", type=int, default=640)
    parser.add_argument("--keypoints", type=int, default=21)
    parser.add_argument("--frames", type=int, default=100)
    parser.add_argument("--warmup", type=int, default=5)
    parser.add_argument("--output", default="bench_pipeline.json")
    parser.add_argument("--mock", action="store_true", help="Use random model outputs")
    args = parser.parse_args(argv)

    session = (
        _RandomSession(args.keypoints)
        if args.mock
        else ModelSession.load(args.model)
    )
    pipeline = KeypointPipeline(
        session,
        decoder_config=DecoderConfig(min_confidence=0.5, keypoint_count=args.keypoints),
        width=args.size,
        height=args.size,
    )

    t0 = time.perf_counter()
    report = run_benchmark(pipeline, frames=args.frames, warmup=args.warmup)
    total_s = time.perf_counter() - t0

    print(f"Frames: {args.frames} in {total_s:.2f}s")
    for stage, stats in report.items():
        print(f"  {stage:<12} p50={stats['p50']:.2f} p95={stats['p95']:.2f} max={stats['max']:.2f}")

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump({"frames": args.frames, "total_s": total_s, "stages": report}, f, indent=2)
    print(f"Saved report to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
