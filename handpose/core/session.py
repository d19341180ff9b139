"""ONNX Runtime session handle.

The handle is created once per model and owned by the caller; input and output
names are resolved from the model signature at load time, not per frame.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import onnxruntime as ort

from handpose.core.errors import InferenceError, ModelLoadError
from handpose.core.types import InputTensor, OutputTensor

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS = ("CPUExecutionProvider",)


class ModelSession:
    """Wraps an inference session that maps named input tensors to named outputs.

    Any object exposing the ONNX Runtime surface (`get_inputs()`, `get_outputs()`
    and `run(output_names, feed)`) can be wrapped, which keeps tests free of real
    model files.
    """

    def __init__(
        self,
        session: Any,
        *,
        model_path: str | None = None,
        input_name: str | None = None,
        output_name: str | None = None,
    ) -> None:
        self._session = session
        self.model_path = model_path

        inputs = list(session.get_inputs() or [])
        outputs = list(session.get_outputs() or [])
        if input_name is None:
            if not inputs:
                raise ModelLoadError("model declares no inputs")
            input_name = inputs[0].name
        if output_name is None:
            if not outputs:
                raise ModelLoadError("model declares no outputs")
            output_name = outputs[0].name

        self.input_name: str = str(input_name)
        self.output_name: str = str(output_name)
        self.input_shape: tuple[Any, ...] | None = (
            tuple(getattr(inputs[0], "shape", ()) or ()) if inputs else None
        )

    @classmethod
    def load(
        cls, model_path: str | Path, providers: Sequence[str] | None = None
    ) -> ModelSession:
        """Create an ONNX Runtime session for `model_path`.

        Raises:
            ModelLoadError: If the file cannot be loaded or has no inputs/outputs.
        """

        path = str(model_path)
        try:
            session = ort.InferenceSession(path, providers=list(providers or DEFAULT_PROVIDERS))
        except Exception as exc:
            raise ModelLoadError(f"failed to load model {path}: {exc}") from exc
        handle = cls(session, model_path=path)
        logger.info(
            "Loaded model %s (input=%s shape=%s, output=%s)",
            path,
            handle.input_name,
            handle.input_shape,
            handle.output_name,
        )
        return handle

    def infer(self, tensor: InputTensor) -> OutputTensor:
        """Run the model on one input tensor and return its first declared output."""

        try:
            results = self._session.run([self.output_name], {self.input_name: tensor.data})
        except Exception as exc:
            raise InferenceError(f"inference failed: {exc}") from exc
        if not results or results[0] is None:
            raise InferenceError(f"model returned no tensor for output {self.output_name!r}")
        return OutputTensor.from_array(results[0])

    def describe(self) -> dict[str, Any]:
        """Return model metadata for status payloads."""

        return {
            "model_path": self.model_path,
            "input_name": self.input_name,
            "output_name": self.output_name,
            "input_shape": list(self.input_shape) if self.input_shape is not None else None,
        }
