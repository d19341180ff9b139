"""Detection decoder for YOLO-pose style single-class outputs.

The runtime returns a tensor of shape ``(1, A, B)``: ``A`` attributes for each of
``B`` candidate boxes, stored attribute-major. Attribute rows are:

- 0..3: box center x, center y, width, height
- 4: confidence
- 5..: keypoints (``K`` keypoints, three attribute slots each)

Only the single highest-scoring box is decoded; there is no NMS.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from handpose.core.errors import ShapeMismatch
from handpose.core.types import Detection, OutputTensor, PredictionBox

ATTR_X = 0
ATTR_Y = 1
ATTR_WIDTH = 2
ATTR_HEIGHT = 3
ATTR_CONFIDENCE = 4
ATTR_KEYPOINTS = 5
VALUES_PER_KEYPOINT = 3  # x, y, visibility

DEFAULT_KEYPOINT_COUNT = 21


class KeypointLayout(str, Enum):
    """How keypoint values are arranged along the attribute axis.

    - ``INTERLEAVED``: x, y, visibility of keypoint ``i`` at ``5 + 3*i + c``
      (ultralytics pose export).
    - ``PLANAR``: all x, then all y, then all visibility: ``5 + c*K + i``.
    - ``SINGLE_SLOT``: one value per keypoint at ``5 + i`` (K values, no
      triples), for web clients that read the keypoint rows this way.
    """

    INTERLEAVED = "interleaved"
    PLANAR = "planar"
    SINGLE_SLOT = "single_slot"

    @property
    def values_per_keypoint(self) -> int:
        return 1 if self is KeypointLayout.SINGLE_SLOT else VALUES_PER_KEYPOINT


@dataclass(frozen=True)
class DecoderConfig:
    """Decoder parameters; these are properties of the model being decoded."""

    min_confidence: float = 0.0
    keypoint_count: int = DEFAULT_KEYPOINT_COUNT
    layout: KeypointLayout = KeypointLayout.INTERLEAVED

    def __post_init__(self) -> None:
        if int(self.keypoint_count) < 0:
            raise ValueError("keypoint_count must be >= 0")
        # Accept plain strings (e.g. from settings) and normalize to the enum.
        object.__setattr__(self, "layout", KeypointLayout(self.layout))

    @property
    def min_attributes(self) -> int:
        return required_attributes(self.keypoint_count)


def required_attributes(keypoint_count: int) -> int:
    """Smallest attribute count A that can hold box, confidence and K keypoints."""

    return ATTR_KEYPOINTS + VALUES_PER_KEYPOINT * int(keypoint_count)


def flat_offset(attribute_index, box_index, boxes: int):
    """Flat offset of (attribute, box) in an attribute-major buffer.

    Works element-wise on integer numpy arrays as well as on plain ints.
    """

    return attribute_index * boxes + box_index


def validate_output(output: OutputTensor, keypoint_count: int = DEFAULT_KEYPOINT_COUNT) -> None:
    """Raise `ShapeMismatch` unless `output` is a consistent (1, A, B) tensor."""

    dims = tuple(output.dims)
    if len(dims) != 3 or dims[0] != 1:
        raise ShapeMismatch(f"output dims must be [1, A, B], got {list(dims)}")
    attrs, boxes = int(dims[1]), int(dims[2])
    if attrs < 0 or boxes < 0:
        raise ShapeMismatch(f"output dims must be non-negative, got {list(dims)}")
    min_attrs = required_attributes(keypoint_count)
    if attrs < min_attrs:
        raise ShapeMismatch(
            f"output has {attrs} attributes, need >= {min_attrs} for {keypoint_count} keypoints"
        )
    size = int(np.asarray(output.data).size)
    if size != attrs * boxes:
        raise ShapeMismatch(f"output length {size} does not match dims {list(dims)}")


def value_at(output: OutputTensor, attribute_index: int, box_index: int) -> float:
    """Read the value of one attribute for one candidate box."""

    attrs, boxes = output.attributes, output.boxes
    if not 0 <= attribute_index < attrs:
        raise IndexError(f"attribute index {attribute_index} out of range [0, {attrs})")
    if not 0 <= box_index < boxes:
        raise IndexError(f"box index {box_index} out of range [0, {boxes})")
    return float(output.data[flat_offset(attribute_index, box_index, boxes)])


def attribute_row(output: OutputTensor, attribute_index: int) -> np.ndarray:
    """Return all B values of one attribute (a view, not a copy)."""

    boxes = output.boxes
    start = flat_offset(attribute_index, 0, boxes)
    return output.data[start : start + boxes]


def select_best_index(scores: np.ndarray, min_confidence: float = 0.0) -> int | None:
    """Return the index of the highest eligible score, or None.

    A score is eligible when ``score >= min_confidence``; NaN never is. Ties keep
    the lowest index.
    """

    scores = np.asarray(scores)
    with np.errstate(invalid="ignore"):
        eligible = np.flatnonzero(scores >= min_confidence)
    if eligible.size == 0:
        return None
    # np.argmax returns the first occurrence of the maximum.
    return int(eligible[int(np.argmax(scores[eligible]))])


def keypoint_attribute_indices(
    keypoint_count: int, layout: KeypointLayout = KeypointLayout.INTERLEAVED
) -> np.ndarray:
    """Attribute indices of every keypoint value, shape (K, values_per_keypoint)."""

    layout = KeypointLayout(layout)
    k = np.arange(int(keypoint_count), dtype=np.intp)
    if layout is KeypointLayout.SINGLE_SLOT:
        return (ATTR_KEYPOINTS + k)[:, None]
    c = np.arange(VALUES_PER_KEYPOINT, dtype=np.intp)
    if layout is KeypointLayout.INTERLEAVED:
        return ATTR_KEYPOINTS + VALUES_PER_KEYPOINT * k[:, None] + c[None, :]
    return ATTR_KEYPOINTS + c[None, :] * int(keypoint_count) + k[:, None]


def decode_detection(
    output: OutputTensor,
    min_confidence: float = 0.0,
    keypoint_count: int = DEFAULT_KEYPOINT_COUNT,
    layout: KeypointLayout = KeypointLayout.INTERLEAVED,
) -> Detection | None:
    """Decode the single best detection from a (1, A, B) output tensor.

    Args:
        output: Runtime output tensor.
        min_confidence: Boxes scoring below this are never selected.
        keypoint_count: Number of keypoints the model predicts.
        layout: Keypoint arrangement along the attribute axis.

    Returns:
        The best `Detection`, or None when no box clears the threshold
        (including when there are no boxes at all).

    Raises:
        ShapeMismatch: If the tensor dims are not a consistent [1, A, B].
    """

    validate_output(output, keypoint_count)
    boxes = output.boxes
    if boxes == 0:
        return None

    best = select_best_index(attribute_row(output, ATTR_CONFIDENCE), min_confidence)
    if best is None:
        return None

    box = PredictionBox(
        x=value_at(output, ATTR_X, best),
        y=value_at(output, ATTR_Y, best),
        width=value_at(output, ATTR_WIDTH, best),
        height=value_at(output, ATTR_HEIGHT, best),
    )
    indices = keypoint_attribute_indices(keypoint_count, layout)
    keypoints = np.asarray(output.data[flat_offset(indices, best, boxes)], dtype=np.float32)
    return Detection(
        box=box,
        confidence=value_at(output, ATTR_CONFIDENCE, best),
        keypoint_count=int(keypoint_count),
        keypoints=keypoints,
        box_index=best,
    )


class Decoder:
    """`decode_detection` bound to a `DecoderConfig`."""

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self.config = config or DecoderConfig()

    def decode(self, output: OutputTensor) -> Detection | None:
        cfg = self.config
        return decode_detection(
            output,
            min_confidence=cfg.min_confidence,
            keypoint_count=cfg.keypoint_count,
            layout=cfg.layout,
        )
