"""Segmentation model output decoding and runtime adapters."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Protocol

import numpy as np
from loguru import logger

from src.utils.sherd_detect.errors import ModelLoadFailure, UnsupportedOutputShape


DEFAULT_INPUT_SIZE = (256, 256)


class Activation(str, Enum):
    """Mapping from raw model output to probabilities."""

    SIGMOID = "sigmoid"
    MIN_MAX = "min_max"


class InferenceRuntime(Protocol):
    """Anything that maps named input tensors to named output tensors."""

    def run(self, named_inputs: Mapping[str, np.ndarray]) -> Mapping[str, Any]:
        ...


def stable_sigmoid(values: np.ndarray) -> np.ndarray:
    """Apply an overflow-free logistic sigmoid element-wise.

    ``1 / (1 + exp(-x))`` for ``x >= 0`` and ``exp(x) / (1 + exp(x))``
    otherwise, so ``exp`` only ever sees non-positive arguments.

    Examples
    --------
    >>> stable_sigmoid(np.array([-50.0, 0.0, 50.0])).round(6)
    array([0. , 0.5, 1. ])
    """
    logits = np.asarray(values, dtype=np.float64)
    exp_neg_abs = np.exp(-np.abs(logits))
    return np.where(
        logits >= 0,
        1.0 / (1.0 + exp_neg_abs),
        exp_neg_abs / (1.0 + exp_neg_abs),
    )


def min_max_scale(values: np.ndarray) -> np.ndarray:
    """Rescale values to ``[0, 1]``; a constant surface maps to zero."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        return data
    low = float(np.min(data))
    value_range = float(np.max(data)) - low
    if value_range == 0:
        value_range = 1.0
    return np.clip((data - low) / value_range, 0.0, 1.0)


def _spatial_dims(dims: Sequence[int]) -> tuple[int, int, int]:
    """Return ``(channels, height, width)`` for a supported output rank."""
    if len(dims) == 4:
        return int(dims[1]), int(dims[2]), int(dims[3])
    if len(dims) == 3:
        return int(dims[0]), int(dims[1]), int(dims[2])
    if len(dims) == 2:
        return 1, 1, int(dims[1])
    raise UnsupportedOutputShape(f"Unsupported output shape: {list(dims)}")


def decode_output(
    dims: Sequence[int],
    data: Any,
    activation: Activation = Activation.SIGMOID,
) -> np.ndarray:
    """Decode a raw output tensor into a 2-D probability map.

    Parameters
    ----------
    dims : Sequence[int]
        Output dimensions: ``[n, c, h, w]``, ``[c, h, w]``, ``[n, h, w]``
        or ``[n, w]``.
    data : array-like
        Flat (or already shaped) output buffer.
    activation : Activation, optional
        ``SIGMOID`` for logits, ``MIN_MAX`` for unbounded scores.

    Returns
    -------
    numpy.ndarray
        ``float32`` probability map with shape ``(h, w)`` in ``[0, 1]``.

    Raises
    ------
    UnsupportedOutputShape
        For ranks other than 2, 3 or 4, channel counts other than 1 or 2,
        or a buffer shorter than the declared surface.
    """
    channels, height, width = _spatial_dims(dims)
    if channels not in (1, 2):
        raise UnsupportedOutputShape(
            f"Expected 1 or 2 output channels, got {channels} in dims {list(dims)}"
        )
    flat = np.asarray(data, dtype=np.float64).reshape(-1)
    plane_size = height * width
    # a leading dimension of 2 is read as a background/foreground logit pair
    plane_index = 1 if channels == 2 else 0
    start = plane_index * plane_size
    if plane_size <= 0 or flat.size < start + plane_size:
        raise UnsupportedOutputShape(
            f"Output buffer of {flat.size} values does not fit dims {list(dims)}"
        )
    surface = flat[start : start + plane_size].reshape(height, width)
    if activation == Activation.MIN_MAX:
        probs = min_max_scale(surface)
    else:
        probs = stable_sigmoid(surface)
    return probs.astype(np.float32)


def _static_input_size(shape: Sequence[Any]) -> tuple[int, int] | None:
    """Read ``(width, height)`` from a static NCHW input shape."""
    if len(shape) != 4:
        return None
    height, width = shape[2], shape[3]
    if isinstance(height, int) and isinstance(width, int) and height > 0 and width > 0:
        return width, height
    return None


class OnnxRuntimeSession:
    """ONNX Runtime session exposing the named-tensor ``run`` contract."""

    def __init__(self, session: Any) -> None:
        self._session = session
        self.input_names = [node.name for node in session.get_inputs()]
        self.output_names = [node.name for node in session.get_outputs()]
        self.input_shape = list(session.get_inputs()[0].shape)

    @classmethod
    def from_bytes(cls, model_blob: bytes) -> "OnnxRuntimeSession":
        """Create a CPU session from an in-memory model binary."""
        try:
            import onnxruntime as ort
        except Exception as exc:
            raise ModelLoadFailure("onnxruntime is required to load models") from exc
        try:
            session = ort.InferenceSession(
                bytes(model_blob), providers=["CPUExecutionProvider"]
            )
        except Exception as exc:
            raise ModelLoadFailure(f"Failed to create inference session: {exc}") from exc
        return cls(session)

    def run(self, named_inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        """Run the session and key the outputs by name."""
        outputs = self._session.run(None, dict(named_inputs))
        return dict(zip(self.output_names, outputs))


class InferenceAdapter:
    """Bind a runtime to tensor names and decode its output.

    Parameters
    ----------
    runtime : InferenceRuntime
        Object with a ``run(named_inputs) -> named_outputs`` method.
    input_name, output_name : str | None
        Tensor names; default to the runtime's first input/output.
    input_size : tuple[int, int] | None
        Model input ``(width, height)``. Static model shapes win over the
        fallback ``DEFAULT_INPUT_SIZE``.
    activation : Activation
        Output activation.
    """

    def __init__(
        self,
        runtime: InferenceRuntime,
        input_name: str | None = None,
        output_name: str | None = None,
        input_size: tuple[int, int] | None = None,
        activation: Activation = Activation.SIGMOID,
    ) -> None:
        self.runtime = runtime
        self.input_name = input_name or _first_name(runtime, "input_names", "input")
        self.output_name = output_name or _first_name(
            runtime, "output_names", "output"
        )
        model_size = _static_input_size(getattr(runtime, "input_shape", []))
        self.input_size = model_size or input_size or DEFAULT_INPUT_SIZE
        self.activation = activation

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        """Run one input tensor and return the decoded probability map."""
        outputs = self.runtime.run({self.input_name: tensor})
        if self.output_name in outputs:
            raw_output = outputs[self.output_name]
        else:
            raw_output = next(iter(outputs.values()))
        if isinstance(raw_output, np.ndarray):
            dims, raw_data = list(raw_output.shape), raw_output
        else:
            dims, raw_data = list(raw_output.dims), raw_output.data
        logger.debug(f"Model output {self.output_name} dims={dims}")
        return decode_output(dims, raw_data, activation=self.activation)


def _first_name(runtime: Any, attribute: str, default: str) -> str:
    """Return the first tensor name advertised by a runtime."""
    names = getattr(runtime, attribute, None) or []
    return str(names[0]) if names else default
