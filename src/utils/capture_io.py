"""Image encoding and export helpers for capture records."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pandas as pd
import shapefile

from src.utils.capture_records import CaptureRecord


JPEG_QUALITY = 90
WGS84_WKT = (
    'GEOGCS["GCS_WGS_1984",DATUM["D_WGS_1984",'
    'SPHEROID["WGS_1984",6378137.0,298.257223563]],'
    'PRIMEM["Greenwich",0.0],UNIT["Degree",0.0174532925199433]]'
)


def encode_jpeg(rgba: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    """Encode RGBA or RGB pixels as JPEG bytes; alpha is dropped."""
    image_data = np.ascontiguousarray(rgba, dtype=np.uint8)
    code = cv2.COLOR_RGBA2BGR if image_data.shape[2] == 4 else cv2.COLOR_RGB2BGR
    ok, buffer = cv2.imencode(
        ".jpg", cv2.cvtColor(image_data, code), [cv2.IMWRITE_JPEG_QUALITY, quality]
    )
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buffer.tobytes()


def encode_png(rgba: np.ndarray) -> bytes:
    """Encode RGBA pixels as PNG bytes, keeping alpha."""
    image_data = np.ascontiguousarray(rgba, dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(image_data, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise ValueError("PNG encoding failed")
    return buffer.tobytes()


def decode_image(blob: bytes) -> np.ndarray:
    """Decode JPEG/PNG bytes into RGBA pixels."""
    raw = np.frombuffer(blob, dtype=np.uint8)
    image_data = cv2.imdecode(raw, cv2.IMREAD_UNCHANGED)
    if image_data is None:
        raise ValueError("Unable to decode image blob")
    if image_data.ndim == 2:
        return cv2.cvtColor(image_data, cv2.COLOR_GRAY2RGBA)
    if image_data.shape[2] == 4:
        return cv2.cvtColor(image_data, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image_data, cv2.COLOR_BGR2RGBA)


def captures_to_dataframe(records: list[CaptureRecord]) -> pd.DataFrame:
    """Tabulate capture metadata.

    Parameters
    ----------
    records : list[CaptureRecord]
        Capture records.

    Returns
    -------
    pandas.DataFrame
        Columns ``id, filename, timestamp, lat, lon, accuracy_m,
        model_name, has_heatmap`` sorted by timestamp descending.
    """
    columns = [
        "id",
        "filename",
        "timestamp",
        "lat",
        "lon",
        "accuracy_m",
        "model_name",
        "has_heatmap",
    ]
    rows = []
    for record in records:
        gps = record.metadata.gps
        rows.append(
            {
                "id": record.id,
                "filename": record.filename,
                "timestamp": record.timestamp,
                "lat": None if gps is None else gps.lat,
                "lon": None if gps is None else gps.lon,
                "accuracy_m": None if gps is None else gps.accuracy_m,
                "model_name": record.metadata.model_name,
                "has_heatmap": record.heatmap_blob is not None,
            }
        )
    if not rows:
        return pd.DataFrame(columns=columns)
    result_df = pd.DataFrame(rows)
    result_df = result_df.sort_values(by="timestamp", ascending=False)
    return result_df[columns].reset_index(drop=True)


def _normalize_shp_base_path(path: str | Path) -> Path:
    """Strip a ``.shp`` suffix from an output path."""
    path_obj = Path(path)
    if path_obj.suffix.lower() != ".shp":
        return path_obj
    return path_obj.with_suffix("")


def save_capture_points_shp(records: list[CaptureRecord], out_path: str | Path) -> int:
    """Write GPS-tagged captures as a WGS84 point shapefile.

    Parameters
    ----------
    records : list[CaptureRecord]
        Capture records; those without GPS are skipped.
    out_path : str | Path
        Output shapefile path or base path.

    Returns
    -------
    int
        Number of points written.
    """
    points_df = captures_to_dataframe(records).dropna(subset=["lat", "lon"])
    base_path = _normalize_shp_base_path(out_path)
    base_path.parent.mkdir(parents=True, exist_ok=True)
    with shapefile.Writer(str(base_path), shapeType=shapefile.POINT) as shp_writer:
        shp_writer.field("fid", "N", decimal=0)
        shp_writer.field("filename", "C")
        shp_writer.field("model", "C")
        shp_writer.field("acc_m", "F", decimal=2)
        shp_writer.field("heatmap", "L")
        for row in points_df.itertuples(index=False):
            shp_writer.point(float(row.lon), float(row.lat))
            shp_writer.record(
                int(row.id or 0),
                str(row.filename),
                str(row.model_name or ""),
                float(row.accuracy_m),
                bool(row.has_heatmap),
            )
    base_path.with_suffix(".prj").write_text(WGS84_WKT, encoding="utf-8")
    return int(len(points_df))


def export_capture_files(record: CaptureRecord, out_dir: str | Path) -> list[Path]:
    """Write a capture's photo and heatmap next to each other.

    Returns
    -------
    list[pathlib.Path]
        ``<filename>.jpg`` and, when present, ``<filename>_heatmap.png``.
    """
    target_dir = Path(out_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    written = [target_dir / f"{record.filename}.jpg"]
    written[0].write_bytes(record.image_blob)
    if record.heatmap_blob is not None:
        heatmap_path = target_dir / f"{record.filename}_heatmap.png"
        heatmap_path.write_bytes(record.heatmap_blob)
        written.append(heatmap_path)
    return written
