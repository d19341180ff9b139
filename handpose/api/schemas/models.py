"""Pydantic models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from handpose.core.config.settings import KEYPOINT_LAYOUTS
from handpose.core.types import Detection


class BoxSchema(BaseModel):
    """Center-based box payload."""

    x: float
    y: float
    width: float
    height: float


class DetectionSchema(BaseModel):
    """Decoded detection payload."""

    box: BoxSchema
    # Top-left rectangle (left, top, width, height) ready for canvas drawing.
    rect: tuple[float, float, float, float]
    confidence: float
    box_index: int
    keypoint_count: int
    keypoints: list[list[float]]

    @classmethod
    def from_detection(cls, detection: Detection) -> DetectionSchema:
        b = detection.box
        return cls(
            box=BoxSchema(x=b.x, y=b.y, width=b.width, height=b.height),
            rect=b.to_xywh(),
            confidence=detection.confidence,
            box_index=detection.box_index,
            keypoint_count=detection.keypoint_count,
            keypoints=detection.keypoints.tolist(),
        )


class InferenceSchema(BaseModel):
    """Per-frame inference result; `detection` is null when nothing was found."""

    detection: DetectionSchema | None = None
    timings: dict[str, float] = Field(default_factory=dict)


class ModelStatusSchema(BaseModel):
    """Model session status payload."""

    model_config = ConfigDict(protected_namespaces=())

    ready: bool
    model_path: str
    input_name: str | None = None
    output_name: str | None = None
    input_shape: list[int | str | None] | None = None
    error: str | None = None


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    model_config = ConfigDict(protected_namespaces=())

    model_path: str
    input_width: int = Field(default=640, gt=0)
    input_height: int = Field(default=640, gt=0)
    keypoint_count: int = Field(default=21, gt=0)
    keypoint_layout: str = "interleaved"
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    providers: list[str] = Field(default_factory=lambda: ["CPUExecutionProvider"], min_length=1)

    @field_validator("model_path")
    @classmethod
    def _validate_model_path(cls, v: str) -> str:
        if not str(v).strip():
            raise ValueError("model_path must not be empty")
        return v

    @field_validator("keypoint_layout")
    @classmethod
    def _validate_keypoint_layout(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in KEYPOINT_LAYOUTS:
            raise ValueError("keypoint_layout must be interleaved|planar|single_slot")
        return v2
