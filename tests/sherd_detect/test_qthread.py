"""Tests for the capture worker and its error formatting."""

import numpy as np

from src.core.capture_pipeline import CaptureSession
from src.utils.capture_records import CaptureRecord
from src.utils.capture_store import MemoryStore
from src.utils.sherd_detect.qthread import (
    CaptureInput,
    CaptureWorker,
    format_worker_exception,
)


class _ExplodingRuntime:
    input_names = ["input"]
    output_names = ["output"]
    input_shape = [1, 3, 8, 8]

    def run(self, named_inputs):
        _ = named_inputs
        raise RuntimeError("kernel crashed")


class _BrokenStore(MemoryStore):
    def put(self, collection, record):
        raise OSError("disk full")


def test_format_worker_exception_includes_traceback_lines() -> None:
    """Worker exception formatter should include exception type and traceback."""
    try:
        raise RuntimeError("capture boom")
    except RuntimeError as exc:
        message = format_worker_exception(exc)
    assert "RuntimeError" in message
    assert "capture boom" in message
    assert "Traceback" in message


def test_capture_worker_emits_record_and_inference_warning() -> None:
    """Worker should store the photo and surface inference failure as warning."""
    session = CaptureSession(
        MemoryStore(), runtime_factory=lambda blob: _ExplodingRuntime()
    )
    session.set_active_model(session.add_model("broken", b"\x00"))
    payload = CaptureInput(
        live_frame=np.zeros((30, 40, 3), dtype=np.uint8),
        nominal_width=40,
        nominal_height=30,
    )
    worker = CaptureWorker(session, payload)
    finished: list[CaptureRecord] = []
    warnings: list[str] = []
    failures: list[str] = []
    worker.sigFinished.connect(finished.append)
    worker.sigWarning.connect(warnings.append)
    worker.sigFailed.connect(failures.append)

    worker.run()

    assert not failures
    assert len(finished) == 1
    assert finished[0].id == 1
    assert finished[0].heatmap_blob is None
    assert finished[0].metadata.model_name == "broken"
    assert len(warnings) == 1
    assert warnings[0].startswith("Inference failed; storing image only.")


def test_capture_worker_emits_failure_when_store_rejects_record() -> None:
    """Persistence errors should be reported through sigFailed."""
    session = CaptureSession(_BrokenStore())
    worker = CaptureWorker(session, CaptureInput(None, 0, 0))
    finished: list[CaptureRecord] = []
    failures: list[str] = []
    worker.sigFinished.connect(finished.append)
    worker.sigFailed.connect(failures.append)

    worker.run()

    assert not finished
    assert len(failures) == 1
    assert "OSError" in failures[0]
    assert "disk full" in failures[0]
