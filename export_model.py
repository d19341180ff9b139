"""Export a YOLO pose checkpoint to ONNX for the keypoint pipeline (CPU-only).

The exported graph takes a (1, 3, 640, 640) float input and returns a single
(1, 5 + 3 * K, boxes) output, which is what `handpose.core.decoder` expects.
This script is intentionally simple and print-oriented.
"""

from __future__ import annotations

import os


def main() -> int:
    """Run an ONNX export for the configured checkpoint."""

    # Keep the project CPU-only: do not let Ultralytics auto-install GPU runtimes
    # (e.g. onnxruntime-gpu) as part of export.
    os.environ.setdefault("ULTRALYTICS_AUTOUPDATE", "0")

    from ultralytics import YOLO

    try:
        model_name = os.getenv("HANDPOSE_EXPORT_WEIGHTS", "yolo11n-pose.pt")
        imgsz = int(os.getenv("HANDPOSE_INPUT_WIDTH", "640"))
        print(f"Loading model {model_name}...")
        model = YOLO(model_name, task="pose")
        print(f"Exporting to ONNX at {imgsz}x{imgsz}...")
        # nms=False keeps the raw (1, A, B) head output the decoder reads.
        path = model.export(format="onnx", imgsz=imgsz, device="cpu", nms=False)
        print(f"Success! Wrote {path}")
        return 0
    except Exception as e:
        print(f"Failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
