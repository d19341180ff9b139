"""Shared type definitions used across the pipeline.

This module centralizes the small value types exchanged between the frame
encoder, the inference session and the detection decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

PixelBuffer = Union[bytes, bytearray, memoryview, np.ndarray]

BBox = tuple[float, float, float, float]


@dataclass(frozen=True)
class InputTensor:
    """Planar RGB network input, shape (1, 3, H, W), float32 in [0, 1]."""

    data: np.ndarray

    @property
    def dims(self) -> tuple[int, ...]:
        return tuple(int(d) for d in self.data.shape)

    def __len__(self) -> int:
        return int(self.data.size)


@dataclass(frozen=True)
class OutputTensor:
    """Flat model output with its (1, attributes, boxes) dimension descriptor."""

    data: np.ndarray
    dims: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", np.asarray(self.data, dtype=np.float32).reshape(-1))
        object.__setattr__(self, "dims", tuple(int(d) for d in self.dims))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> OutputTensor:
        """Wrap an array as returned by the runtime (e.g. shape (1, A, B))."""

        a = np.asarray(arr, dtype=np.float32)
        return cls(data=a, dims=a.shape)

    @property
    def attributes(self) -> int:
        return int(self.dims[1])

    @property
    def boxes(self) -> int:
        return int(self.dims[2])


@dataclass(frozen=True)
class PredictionBox:
    """Center-based box in model output coordinates."""

    x: float
    y: float
    width: float
    height: float

    def to_xywh(self) -> BBox:
        """Return (left, top, width, height) for drawing."""

        return (self.x - self.width / 2, self.y - self.height / 2, self.width, self.height)

    def to_xyxy(self) -> BBox:
        left, top, w, h = self.to_xywh()
        return (left, top, left + w, top + h)


@dataclass(frozen=True)
class Detection:
    """Best-scoring detection of a single frame."""

    box: PredictionBox
    confidence: float
    keypoint_count: int
    keypoints: np.ndarray  # shape: (K, C) -> C values per keypoint for the decoded layout
    box_index: int = -1

    def keypoint_features(self) -> np.ndarray:
        """Return the keypoints as a flat feature array (K * C values)."""

        return self.keypoints.reshape(-1)
