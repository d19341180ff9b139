"""Pipeline configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `HANDPOSE_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from handpose.core.decoder import DecoderConfig, KeypointLayout

KEYPOINT_LAYOUTS = tuple(layout.value for layout in KeypointLayout)


class PipelineSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `HANDPOSE_` env overrides."""

    model_path: str = Field("model.onnx", description="ONNX model exported at the input size")
    # The pipeline does not resize: frames must already be input_width x input_height.
    input_width: int = 640
    input_height: int = 640
    # Properties of the model being decoded; 21 for the hand keypoint model.
    keypoint_count: int = 21
    keypoint_layout: str = Field("interleaved", description="interleaved|planar|single_slot")
    min_confidence: float = 0.5
    providers: list[str] = Field(default_factory=lambda: ["CPUExecutionProvider"])

    model_config = SettingsConfigDict(
        env_prefix="HANDPOSE_", validate_assignment=True, protected_namespaces=()
    )

    @field_validator("model_path")
    @classmethod
    def _validate_model_path(cls, v: str) -> str:
        if not str(v).strip():
            raise ValueError("model_path must not be empty")
        return v

    @field_validator("input_width", "input_height")
    @classmethod
    def _validate_input_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("input size must be > 0")
        return v

    @field_validator("keypoint_count")
    @classmethod
    def _validate_keypoint_count(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("keypoint_count must be > 0")
        return v

    @field_validator("keypoint_layout")
    @classmethod
    def _validate_keypoint_layout(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in KEYPOINT_LAYOUTS:
            raise ValueError("keypoint_layout must be interleaved|planar|single_slot")
        return v2

    @field_validator("min_confidence")
    @classmethod
    def _validate_min_confidence(cls, v: float) -> float:
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("min_confidence must be in [0, 1]")
        return float(v)

    @field_validator("providers")
    @classmethod
    def _validate_providers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("providers must list at least one execution provider")
        return v


def settings_to_dict(settings: PipelineSettings) -> dict[str, Any]:
    """Convert settings to a plain dict."""

    return cast(dict[str, Any], settings.model_dump())


def _fields_set(obj: object) -> set[str]:
    """Return the set of fields explicitly provided/overridden on a Pydantic model."""

    return set(getattr(obj, "model_fields_set", set()))


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/handpose.config.yml)."""

    return Path(os.getenv("HANDPOSE_CONFIG", "config/handpose.config.yml"))


def load_settings() -> PipelineSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = PipelineSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in _fields_set(env_settings)
    }

    merged = {**data, **env_overrides}
    return PipelineSettings(**merged)


def decoder_config_from_settings(settings: PipelineSettings) -> DecoderConfig:
    """Build the decoder parameters from `settings`."""

    return DecoderConfig(
        min_confidence=settings.min_confidence,
        keypoint_count=settings.keypoint_count,
        layout=KeypointLayout(settings.keypoint_layout),
    )
