"""Utility package exports for ArtifactSifter."""

from src.utils.capture_io import (
    captures_to_dataframe,
    decode_image,
    encode_jpeg,
    encode_png,
    export_capture_files,
    save_capture_points_shp,
)
from src.utils.capture_records import (
    CaptureMetadata,
    CaptureRecord,
    GpsFix,
    ModelRecord,
    assemble_capture_record,
    format_capture_filename,
)
from src.utils.capture_store import MemoryStore, PthStore
from src.utils.geolocation import StaticGeolocator, acquire_gps

__all__ = [
    "CaptureMetadata",
    "CaptureRecord",
    "GpsFix",
    "MemoryStore",
    "ModelRecord",
    "PthStore",
    "StaticGeolocator",
    "acquire_gps",
    "assemble_capture_record",
    "captures_to_dataframe",
    "decode_image",
    "encode_jpeg",
    "encode_png",
    "export_capture_files",
    "format_capture_filename",
    "save_capture_points_shp",
]
