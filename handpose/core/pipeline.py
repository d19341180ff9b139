"""Per-frame inference pipeline.

Ties together the frame encoder, a caller-owned inference session and the
detection decoder: RGBA pixels in, best detection (or None) out.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from handpose.core.decoder import Decoder, DecoderConfig
from handpose.core.encoder import DEFAULT_INPUT_SIZE, encode_frame
from handpose.core.types import Detection, InputTensor, OutputTensor, PixelBuffer

logger = logging.getLogger(__name__)


class InferenceBackend(Protocol):
    """Minimal session interface expected by `KeypointPipeline`."""

    def infer(self, tensor: InputTensor) -> OutputTensor:
        """Run the model on a (1, 3, H, W) tensor and return its (1, A, B) output."""


class KeypointPipeline:
    """Encode -> infer -> decode for one frame at a time.

    The pipeline keeps no per-frame state; the session is owned by the caller
    and must be ready (loaded) before the pipeline is built.
    """

    def __init__(
        self,
        session: InferenceBackend,
        decoder_config: DecoderConfig | None = None,
        width: int = DEFAULT_INPUT_SIZE,
        height: int = DEFAULT_INPUT_SIZE,
    ) -> None:
        self.session = session
        self.decoder = Decoder(decoder_config)
        self.width = int(width)
        self.height = int(height)

    @property
    def decoder_config(self) -> DecoderConfig:
        return self.decoder.config

    def _process_internal(
        self, pixels: PixelBuffer, profile: bool
    ) -> tuple[Detection | None, dict[str, float]]:
        timings: dict[str, float] = {}

        t0 = time.perf_counter() if profile else 0.0
        tensor = encode_frame(pixels, self.width, self.height)
        t1 = time.perf_counter() if profile else 0.0
        output = self.session.infer(tensor)
        t2 = time.perf_counter() if profile else 0.0
        detection = self.decoder.decode(output)
        t3 = time.perf_counter() if profile else 0.0

        if profile:
            timings["encode_ms"] = (t1 - t0) * 1000.0
            timings["infer_ms"] = (t2 - t1) * 1000.0
            timings["decode_ms"] = (t3 - t2) * 1000.0
            timings["pipeline_ms"] = (t3 - t0) * 1000.0

        if detection is None:
            logger.debug("No detection above %.2f", self.decoder.config.min_confidence)
        else:
            logger.debug(
                "Detection box=%d conf=%.3f", detection.box_index, detection.confidence
            )
        return detection, timings

    def process(self, pixels: PixelBuffer) -> Detection | None:
        """Return the best detection for one RGBA frame, or None."""

        detection, _ = self._process_internal(pixels, profile=False)
        return detection

    def process_with_profile(
        self, pixels: PixelBuffer
    ) -> tuple[Detection | None, dict[str, float]]:
        """Process a frame and return (detection, timings).

        The `timings` dict contains stage durations in milliseconds and is used by
        the benchmark tool and the HTTP API.
        """

        return self._process_internal(pixels, profile=True)
