"""QThread worker running one capture action off the UI thread."""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass

import numpy as np
from PySide6.QtCore import QObject, Signal, Slot
from loguru import logger

from src.core.capture_pipeline import CaptureSession


@dataclass
class CaptureInput:
    """Input payload for the capture worker."""

    live_frame: np.ndarray | None
    nominal_width: int
    nominal_height: int


class CaptureWorker(QObject):
    """Background worker capturing, analyzing and storing one photo.

    A capture, once started, is not cancellable.
    """

    sigFinished = Signal(object)
    sigWarning = Signal(str)
    sigFailed = Signal(str)

    def __init__(self, session: CaptureSession, payload: CaptureInput) -> None:
        super().__init__()
        self.session = session
        self.payload = payload

    @Slot()
    def run(self) -> None:
        """Execute the capture and emit the stored record."""
        try:
            result = asyncio.run(
                self.session.capture_and_analyze(
                    self.payload.live_frame,
                    self.payload.nominal_width,
                    self.payload.nominal_height,
                )
            )
        except Exception as exc:
            message = format_worker_exception(exc)
            logger.error(message)
            self.sigFailed.emit(message)
            return
        for warning in result.warnings:
            self.sigWarning.emit(warning)
        self.sigFinished.emit(result.record)


def format_worker_exception(exc: Exception) -> str:
    """Format exception into message with traceback details.

    Parameters
    ----------
    exc : Exception
        The exception to format.

    Returns
    -------
    str
        Formatted message with traceback text.
    """
    trace_text = traceback.format_exc()
    if not trace_text or trace_text == "NoneType: None\n":
        trace_text = "\n".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return f"{type(exc).__name__}: {exc}\n{trace_text.strip()}"
