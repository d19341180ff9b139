"""Exception types raised by the inference pipeline.

"No detection" is not an error: decoders return ``None`` for empty frames.
"""

from __future__ import annotations


class HandPoseError(Exception):
    """Base class for pipeline errors."""


class ShapeMismatch(HandPoseError, ValueError):
    """A buffer or tensor does not match its declared or expected dimensions."""


class ModelLoadError(HandPoseError, RuntimeError):
    """The model could not be loaded or declares no usable input/output."""


class InferenceError(HandPoseError, RuntimeError):
    """The inference operator failed or returned no usable output."""
