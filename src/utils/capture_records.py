"""Capture and model record entities."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class GpsFix:
    """Single geolocation reading.

    Parameters
    ----------
    lat, lon : float
        WGS84 latitude and longitude in degrees.
    accuracy_m : float
        Reported horizontal accuracy in meters.
    """

    lat: float
    lon: float
    accuracy_m: float

    def describe(self) -> str:
        """Format the fix for display, e.g. ``35.712345, 139.761234 (±5 m)``."""
        return f"{self.lat:.6f}, {self.lon:.6f} (±{round(self.accuracy_m)} m)"


@dataclass(frozen=True)
class CaptureMetadata:
    """Metadata stored with each capture."""

    gps: GpsFix | None = None
    model_id: int | None = None
    model_name: str | None = None


@dataclass(frozen=True)
class CaptureRecord:
    """Persisted photo with optional aligned heatmap.

    Parameters
    ----------
    id : int | None
        Store id, ``None`` until persisted.
    timestamp : int
        Capture time in epoch milliseconds.
    filename : str
        ``YYYYMMDD_HHMMSS`` name derived from ``timestamp`` in local time.
    image_blob : bytes
        JPEG-encoded frame.
    heatmap_blob : bytes | None
        PNG-encoded aligned heatmap, ``None`` when inference was skipped or
        failed.
    metadata : CaptureMetadata
        GPS and model metadata.
    """

    id: int | None
    timestamp: int
    filename: str
    image_blob: bytes
    heatmap_blob: bytes | None = None
    metadata: CaptureMetadata = field(default_factory=CaptureMetadata)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary for storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CaptureRecord":
        """Rebuild a record from :meth:`to_dict` output."""
        meta = dict(data.get("metadata") or {})
        gps = meta.get("gps")
        metadata = CaptureMetadata(
            gps=GpsFix(**gps) if gps else None,
            model_id=meta.get("model_id"),
            model_name=meta.get("model_name"),
        )
        return cls(
            id=data.get("id"),
            timestamp=int(data["timestamp"]),
            filename=str(data["filename"]),
            image_blob=data["image_blob"],
            heatmap_blob=data.get("heatmap_blob"),
            metadata=metadata,
        )

    def with_id(self, record_id: int) -> "CaptureRecord":
        """Return a copy carrying the store id."""
        return replace(self, id=record_id)


@dataclass(frozen=True)
class ModelRecord:
    """Imported segmentation model binary."""

    id: int | None
    name: str
    created_at: int
    blob: bytes
    source_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary for storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelRecord":
        """Rebuild a record from :meth:`to_dict` output."""
        return cls(
            id=data.get("id"),
            name=str(data["name"]),
            created_at=int(data["created_at"]),
            blob=data["blob"],
            source_url=data.get("source_url"),
        )


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_capture_filename(timestamp_ms: int) -> str:
    """Format a capture timestamp as ``YYYYMMDD_HHMMSS`` in local time.

    Parameters
    ----------
    timestamp_ms : int
        Epoch milliseconds.

    Returns
    -------
    str
        Zero-padded local date and time.
    """
    local_dt = datetime.fromtimestamp(timestamp_ms / 1000.0)
    return local_dt.strftime("%Y%m%d_%H%M%S")


def assemble_capture_record(
    image_blob: bytes,
    heatmap_blob: bytes | None = None,
    gps: GpsFix | None = None,
    active_model: ModelRecord | None = None,
    timestamp_ms: int | None = None,
) -> CaptureRecord:
    """Bundle one capture action into an unsaved record.

    Parameters
    ----------
    image_blob : bytes
        Encoded photo.
    heatmap_blob : bytes | None, optional
        Encoded aligned heatmap.
    gps : GpsFix | None, optional
        Location fix.
    active_model : ModelRecord | None, optional
        Model active at capture time; its id and name go into metadata even
        when inference produced no heatmap.
    timestamp_ms : int | None, optional
        Capture time, defaults to now.
    """
    timestamp = now_ms() if timestamp_ms is None else int(timestamp_ms)
    metadata = CaptureMetadata(
        gps=gps,
        model_id=None if active_model is None else active_model.id,
        model_name=None if active_model is None else active_model.name,
    )
    return CaptureRecord(
        id=None,
        timestamp=timestamp,
        filename=format_capture_filename(timestamp),
        image_blob=image_blob,
        heatmap_blob=heatmap_blob,
        metadata=metadata,
    )
