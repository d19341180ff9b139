"""In-process state for settings and the model pipeline.

FastAPI routes use this module to access (and hot-reload) the singleton
`KeypointPipeline`. The model session is loaded lazily on first use; a failed
load is remembered in `last_error` and no pipeline is built from it.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from handpose.core.config.settings import (
    PipelineSettings,
    decoder_config_from_settings,
    load_settings,
    settings_to_dict,
)
from handpose.core.errors import ModelLoadError
from handpose.core.pipeline import KeypointPipeline
from handpose.core.session import ModelSession

logger = logging.getLogger(__name__)

_settings: PipelineSettings | None = None
_pipeline: KeypointPipeline | None = None
_last_error: str | None = None
_lock = RLock()


def get_settings() -> PipelineSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def reload_settings(data: dict | None = None) -> PipelineSettings:
    """Reload settings and drop the current pipeline.

    Args:
        data: Optional patch dict merged into the loaded settings.
    """

    global _settings
    with _lock:
        base = load_settings()
        if data:
            _settings = PipelineSettings(**{**settings_to_dict(base), **data})
        else:
            _settings = base
        reset_pipeline()
    return _settings


def build_pipeline(settings: PipelineSettings) -> KeypointPipeline:
    """Load the model named by `settings` and wrap it in a pipeline."""

    session = ModelSession.load(settings.model_path, settings.providers)
    return KeypointPipeline(
        session,
        decoder_config=decoder_config_from_settings(settings),
        width=settings.input_width,
        height=settings.input_height,
    )


def get_pipeline() -> KeypointPipeline:
    """Return the singleton pipeline, loading the model if needed.

    Raises:
        ModelLoadError: If the model cannot be loaded. The error is kept in
            `last_error()` and the load is retried on the next call.
    """

    global _pipeline, _last_error
    with _lock:
        if _pipeline is None:
            try:
                _pipeline = build_pipeline(get_settings())
            except ModelLoadError as exc:
                _last_error = str(exc)
                logger.exception("Model load failed")
                raise
            _last_error = None
    return _pipeline


def last_error() -> str | None:
    return _last_error


def model_status() -> dict[str, Any]:
    """Return the readiness of the current model without triggering a load."""

    with _lock:
        settings = get_settings()
        status: dict[str, Any] = {
            "ready": _pipeline is not None,
            "model_path": settings.model_path,
            "error": _last_error,
        }
        if _pipeline is not None:
            describe = getattr(_pipeline.session, "describe", None)
            if callable(describe):
                status.update({k: v for k, v in describe().items() if k != "model_path"})
    return status


def reset_pipeline() -> None:
    """Discard the singleton pipeline (if present) and any remembered load error."""

    global _pipeline, _last_error
    with _lock:
        _pipeline = None
        _last_error = None
