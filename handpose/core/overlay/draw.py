"""Overlay drawing helpers (OpenCV).

Used by the command-line tools to visualize a decoded detection; the browser
client draws its own overlays.
"""

from __future__ import annotations

import cv2
import numpy as np

from handpose.core.types import Detection

BOX_COLOR = (0, 170, 255)
KEYPOINT_COLOR = (57, 255, 20)  # bright green
TEXT_COLOR = (255, 255, 255)


def draw_detection(
    frame: np.ndarray, detection: Detection | None, min_visibility: float = 0.0
) -> np.ndarray:
    """Return a copy of `frame` with the detection box and keypoints drawn.

    The box is drawn from its top-left corner, i.e. at
    ``(x - width / 2, y - height / 2, width, height)``. Keypoints are drawn only
    when the decoded layout carries x/y pairs; keypoints whose visibility is
    below `min_visibility` are skipped.
    """

    if detection is None:
        return frame

    img = frame.copy()
    xyxy = detection.box.to_xyxy()
    # Corrupted outputs can carry NaN/inf; draw nothing that cannot be placed.
    if not np.all(np.isfinite(xyxy)):
        return img
    x1, y1, x2, y2 = map(int, xyxy)
    cv2.rectangle(img, (x1, y1), (x2, y2), BOX_COLOR, 2)
    cv2.putText(
        img,
        f"{detection.confidence:.2f}",
        (x1, max(y1 - 8, 0)),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        TEXT_COLOR,
        1,
        cv2.LINE_AA,
    )

    kpts = np.asarray(detection.keypoints)
    if kpts.ndim != 2 or kpts.shape[1] < 2:
        return img
    for row in kpts:
        if not np.all(np.isfinite(row[:2])):
            continue
        if kpts.shape[1] >= 3 and float(row[2]) < min_visibility:
            continue
        cv2.circle(img, (int(row[0]), int(row[1])), 3, KEYPOINT_COLOR, -1)
    return img
