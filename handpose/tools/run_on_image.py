from __future__ import annotations

import argparse
import json
from pathlib import Path

import cv2
import numpy as np

from handpose.api.schemas.models import DetectionSchema
from handpose.core.config.settings import PipelineSettings, decoder_config_from_settings
from handpose.core.decoder import ATTR_KEYPOINTS, VALUES_PER_KEYPOINT
from handpose.core.overlay.draw import draw_detection
from handpose.core.pipeline import KeypointPipeline
from handpose.core.session import ModelSession
from handpose.core.types import InputTensor, OutputTensor


class _DummySession:
    """Stands in for a model: returns a well-formed output with no candidate boxes."""

    def __init__(self, keypoint_count: int):
        self.attributes = ATTR_KEYPOINTS + VALUES_PER_KEYPOINT * keypoint_count

    def infer(self, tensor: InputTensor) -> OutputTensor:  # pragma: no cover - trivial
        return OutputTensor(data=np.zeros(0, dtype=np.float32), dims=(1, self.attributes, 0))


def load_rgba(path: str, width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    """Read an image and return (resized BGR frame, RGBA bytes array)."""

    frame = cv2.imread(path, cv2.IMREAD_COLOR)
    if frame is None:
        raise SystemExit(f"Cannot open image {path}")
    if frame.shape[1] != width or frame.shape[0] != height:
        frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
    rgba = cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
    return frame, np.ascontiguousarray(rgba)


def run(args):
    settings = PipelineSettings(
        model_path=args.model,
        input_width=args.size,
        input_height=args.size,
        keypoint_count=args.keypoints,
        keypoint_layout=args.layout,
        min_confidence=args.conf,
    )
    session = (
        _DummySession(settings.keypoint_count)
        if args.mock
        else ModelSession.load(settings.model_path, settings.providers)
    )
    pipeline = KeypointPipeline(
        session,
        decoder_config=decoder_config_from_settings(settings),
        width=settings.input_width,
        height=settings.input_height,
    )

    frame, rgba = load_rgba(args.input, settings.input_width, settings.input_height)
    detection, timings = pipeline.process_with_profile(rgba)

    payload = {
        "input": args.input,
        "detection": (
            DetectionSchema.from_detection(detection).model_dump() if detection else None
        ),
        "timings": timings,
    }
    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    print(f"Wrote {'1 detection' if detection else 'no detection'} to {out_path}")

    if args.overlay:
        cv2.imwrite(args.overlay, draw_detection(frame, detection))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the keypoint pipeline on an image")
    parser.add_argument("--input", required=True, help="Path to image file")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--overlay", default=None, help="Optional path for an overlay image")
    parser.add_argument("--model", default="model.onnx")
    parser.add_argument("--conf", type=float, default=0.5)
    parser.add_argument("--size", type=int, default=640, help="Square model input size")
    parser.add_argument("--keypoints", type=int, default=21)
    parser.add_argument(
        "--layout", default="interleaved", help="interleaved|planar|single_slot"
    )
    parser.add_argument(
        "--mock", action="store_true", help="Use a dummy session (no model file needed)"
    )
    run(parser.parse_args())
