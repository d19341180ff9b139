"""Frame encoder: interleaved RGBA pixels -> planar normalized network input."""

from __future__ import annotations

import numpy as np

from handpose.core.errors import ShapeMismatch
from handpose.core.types import InputTensor, PixelBuffer

DEFAULT_INPUT_SIZE = 640
_CHANNELS_IN = 4  # R, G, B, A
_CHANNELS_OUT = 3  # R, G, B


def _as_bytes_array(pixels: PixelBuffer) -> np.ndarray:
    """Return a flat uint8 view of `pixels` without copying when possible."""

    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise ShapeMismatch(f"pixel buffer must be uint8, got {pixels.dtype}")
        return pixels.reshape(-1)
    return np.frombuffer(pixels, dtype=np.uint8)


def encode_frame(
    pixels: PixelBuffer,
    width: int = DEFAULT_INPUT_SIZE,
    height: int = DEFAULT_INPUT_SIZE,
) -> InputTensor:
    """Convert an RGBA pixel buffer to a (1, 3, H, W) float32 tensor.

    Args:
        pixels: Row-major RGBA bytes, 4 per pixel. Not modified.
        width: Expected frame width in pixels.
        height: Expected frame height in pixels.

    Returns:
        An `InputTensor` holding all red values, then all green, then all blue,
        each divided by 255. Alpha is discarded.

    Raises:
        ShapeMismatch: If the frame size is not positive, or the buffer length
            is not a multiple of 4 or does not equal ``4 * width * height``.
    """

    if int(width) <= 0 or int(height) <= 0:
        raise ShapeMismatch(f"frame size must be positive, got {width}x{height}")
    flat = _as_bytes_array(pixels)
    n = int(flat.size)
    if n % _CHANNELS_IN != 0:
        raise ShapeMismatch(f"pixel buffer length {n} is not a multiple of {_CHANNELS_IN}")
    expected = _CHANNELS_IN * int(width) * int(height)
    if n != expected:
        raise ShapeMismatch(
            f"pixel buffer length {n} does not match {width}x{height} RGBA ({expected})"
        )

    # (pixels, 4) -> (3, pixels): channel-planar, scan order preserved within each plane.
    planar = flat.reshape(-1, _CHANNELS_IN)[:, :_CHANNELS_OUT].T
    data = planar.astype(np.float32, order="C") / np.float32(255.0)
    return InputTensor(data=data.reshape(1, _CHANNELS_OUT, int(height), int(width)))
