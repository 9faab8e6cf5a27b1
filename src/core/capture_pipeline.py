"""
Capture Session Core Module.

Orchestrates one capture action: aspect-locked framing, bounded GPS wait,
model inference, heatmap alignment and record persistence. Session state
(orientation filter, active model) lives on :class:`CaptureSession`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from urllib import request

import numpy as np
from loguru import logger

from src.utils.capture_io import encode_jpeg, encode_png
from src.utils.capture_records import (
    CaptureRecord,
    GpsFix,
    ModelRecord,
    assemble_capture_record,
    now_ms,
)
from src.utils.capture_store import STORE_CAPTURES, STORE_MODELS, RecordStore
from src.utils.geolocation import GPS_TIMEOUT_S, Geolocator, acquire_gps
from src.utils.sherd_detect.errors import (
    CaptureInProgress,
    InferenceFailure,
    ModelLoadFailure,
    UnsupportedOutputShape,
)
from src.utils.sherd_detect.frame import Frame, capture_frame
from src.utils.sherd_detect.heatmap import ColorScheme, build_color_ramp, composite
from src.utils.sherd_detect.inference import (
    Activation,
    InferenceAdapter,
    OnnxRuntimeSession,
)
from src.utils.sherd_detect.orientation import CapturePolicy, OrientationGate
from src.utils.sherd_detect.preprocess import GeometryMode, prepare


MODEL_DOWNLOAD_TIMEOUT_S = 60.0


@dataclass
class PipelineOptions:
    """Tunable pipeline settings.

    The defaults select the center-crop geometry with ImageNet
    normalization and the perceptual color ramp.
    """

    capture_policy: CapturePolicy = CapturePolicy.ALIGNED_OR_ALMOST
    input_size: tuple[int, int] = (256, 256)
    geometry_mode: GeometryMode = GeometryMode.CENTER_CROP
    normalize: bool = True
    activation: Activation = Activation.SIGMOID
    color_scheme: ColorScheme = ColorScheme.RAMP
    colormap: str = "viridis"
    ramp_stops: int = 256
    translucent: bool = False
    gps_timeout_s: float = GPS_TIMEOUT_S


@dataclass
class CaptureResult:
    """Stored record plus non-fatal warnings raised while building it."""

    record: CaptureRecord
    warnings: list[str] = field(default_factory=list)


class CaptureSession:
    """Session context owning the orientation gate and the active model.

    Parameters
    ----------
    store : RecordStore
        Persistent store for models and captures.
    options : PipelineOptions | None, optional
        Pipeline settings.
    geolocator : Geolocator | None, optional
        Location provider; ``None`` records captures without GPS.
    runtime_factory : Callable[[bytes], Any], optional
        Builds an inference runtime from a model binary.
    """

    def __init__(
        self,
        store: RecordStore,
        options: PipelineOptions | None = None,
        geolocator: Geolocator | None = None,
        runtime_factory: Callable[[bytes], Any] = OnnxRuntimeSession.from_bytes,
    ) -> None:
        self.store = store
        self.options = options or PipelineOptions()
        self.geolocator = geolocator
        self.gate = OrientationGate()
        self.active_model: ModelRecord | None = None
        self.adapter: InferenceAdapter | None = None
        self._runtime_factory = runtime_factory
        self._ramp = None
        if self.options.color_scheme == ColorScheme.RAMP:
            self._ramp = build_color_ramp(self.options.colormap, self.options.ramp_stops)
        self._busy = False

    # ----- models -----

    def add_model(self, name: str, blob: bytes, source_url: str | None = None) -> int:
        """Store a model binary and return its id."""
        model = ModelRecord(
            id=None,
            name=name,
            created_at=now_ms(),
            blob=bytes(blob),
            source_url=source_url,
        )
        model_id = self.store.put(STORE_MODELS, model.to_dict())
        logger.info(f"Stored model '{name}' as id={model_id}")
        return model_id

    def add_model_from_file(self, file_path: str | Path, name: str | None = None) -> int:
        """Import a local ``.onnx`` file."""
        path_obj = Path(file_path)
        if path_obj.suffix.lower() != ".onnx":
            raise ModelLoadFailure(f"Expected a .onnx file, got {path_obj.name}")
        return self.add_model(name or path_obj.stem, path_obj.read_bytes())

    def add_model_from_url(
        self,
        name: str,
        url: str,
        timeout_s: float = MODEL_DOWNLOAD_TIMEOUT_S,
    ) -> int:
        """Download a model binary and store it."""
        try:
            with request.urlopen(url, timeout=timeout_s) as resp:
                blob = resp.read()
        except Exception as exc:
            raise ModelLoadFailure(f"Failed to download model: {exc}") from exc
        return self.add_model(name, blob, source_url=url)

    def list_models(self) -> list[ModelRecord]:
        """Return stored models, oldest first."""
        models = [ModelRecord.from_dict(data) for data in self.store.list_all(STORE_MODELS)]
        return sorted(models, key=lambda model: model.created_at)

    def set_active_model(self, model_id: int | None) -> ModelRecord | None:
        """Load a stored model into an inference runtime.

        Raises
        ------
        ModelLoadFailure
            The binary could not be loaded; no model is left active.
        """
        self.active_model = None
        self.adapter = None
        if model_id is None:
            return None
        data = self.store.get(STORE_MODELS, model_id)
        if data is None:
            logger.warning(f"Model id={model_id} not found")
            return None
        model = ModelRecord.from_dict(data)
        try:
            runtime = self._runtime_factory(model.blob)
        except ModelLoadFailure:
            raise
        except Exception as exc:
            raise ModelLoadFailure(f"Failed to load model '{model.name}': {exc}") from exc
        self.adapter = InferenceAdapter(
            runtime,
            input_size=self.options.input_size,
            activation=self.options.activation,
        )
        self.active_model = model
        logger.info(
            f"Active model '{model.name}' input={self.adapter.input_name} "
            f"output={self.adapter.output_name} size={self.adapter.input_size}"
        )
        return model

    def delete_model(self, model_id: int) -> None:
        """Delete a model, deactivating it first when active."""
        if self.active_model is not None and self.active_model.id == model_id:
            self.active_model = None
            self.adapter = None
        self.store.delete(STORE_MODELS, model_id)

    # ----- captures -----

    def list_captures(self) -> list[CaptureRecord]:
        """Return stored captures, newest first."""
        records = [
            CaptureRecord.from_dict(data) for data in self.store.list_all(STORE_CAPTURES)
        ]
        return sorted(records, key=lambda record: record.timestamp, reverse=True)

    def get_capture(self, record_id: int) -> CaptureRecord | None:
        """Return one capture or ``None``."""
        data = self.store.get(STORE_CAPTURES, record_id)
        return None if data is None else CaptureRecord.from_dict(data)

    def can_capture(self) -> bool:
        """Check the orientation gate against the configured policy."""
        return self.gate.can_capture(self.options.capture_policy)

    def end_session(self) -> None:
        """Stop orientation sensing; in-flight captures still complete."""
        self.gate.reset()

    async def capture_and_analyze(
        self,
        live_frame: np.ndarray | None,
        nominal_width: int,
        nominal_height: int,
        timestamp_ms: int | None = None,
    ) -> CaptureResult:
        """Capture, analyze and persist one photo.

        Inference problems never drop the photo: the record is stored with
        ``heatmap_blob=None`` and the problem is returned as a warning.

        Raises
        ------
        CaptureInProgress
            Another capture on this session has not finished.
        """
        if self._busy:
            raise CaptureInProgress("A capture is already running")
        self._busy = True
        try:
            return await self._capture(
                live_frame, nominal_width, nominal_height, timestamp_ms
            )
        finally:
            self._busy = False

    async def _capture(
        self,
        live_frame: np.ndarray | None,
        nominal_width: int,
        nominal_height: int,
        timestamp_ms: int | None,
    ) -> CaptureResult:
        timestamp = now_ms() if timestamp_ms is None else int(timestamp_ms)
        model, adapter = self.active_model, self.adapter
        frame = capture_frame(live_frame, nominal_width, nominal_height)
        gps: GpsFix | None = await acquire_gps(self.geolocator, self.options.gps_timeout_s)
        image_blob = await asyncio.to_thread(encode_jpeg, frame.pixels)

        warnings: list[str] = []
        heatmap_blob = None
        if adapter is not None:
            try:
                heatmap_blob = await self._build_heatmap(frame, adapter)
            except Exception as exc:
                message = f"Inference failed; storing image only. ({type(exc).__name__}: {exc})"
                logger.warning(message)
                warnings.append(message)

        record = assemble_capture_record(
            image_blob=image_blob,
            heatmap_blob=heatmap_blob,
            gps=gps,
            active_model=model,
            timestamp_ms=timestamp,
        )
        record_id = self.store.put(STORE_CAPTURES, record.to_dict())
        logger.info(
            f"Stored capture {record.filename} id={record_id} "
            f"heatmap={heatmap_blob is not None} gps={gps is not None}"
        )
        return CaptureResult(record=record.with_id(record_id), warnings=warnings)

    async def _build_heatmap(self, frame: Frame, adapter: InferenceAdapter) -> bytes:
        """Run inference on a frame and return the encoded aligned heatmap."""
        options = self.options
        tensor, geometry = prepare(
            frame,
            adapter.input_size,
            geometry_mode=options.geometry_mode,
            normalize=options.normalize,
        )
        try:
            prob_map = await asyncio.to_thread(adapter.infer, tensor)
        except UnsupportedOutputShape:
            raise
        except Exception as exc:
            raise InferenceFailure(str(exc)) from exc
        logger.debug(
            f"Probability map {prob_map.shape} "
            f"min={float(prob_map.min()):.4f} max={float(prob_map.max()):.4f}"
        )
        aligned = composite(
            prob_map,
            geometry if options.geometry_mode == GeometryMode.CENTER_CROP else None,
            scheme=options.color_scheme,
            translucent=options.translucent,
            ramp=self._ramp,
        )
        return await asyncio.to_thread(encode_png, aligned)
