#!/usr/bin/env python
"""
ArtifactSifter - Field Capture with Segmentation Heatmaps.

Headless entry point: captures one photo from an image file or a camera,
runs the active model and stores the capture record.

Usage
-----
    uv run python main.py --image sherd.jpg --model sherd-detector.onnx

or:
    python main.py --camera 0 --lat 35.71 --lon 139.76 --export-dir out/
"""

import argparse
import asyncio
import sys
from pathlib import Path


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture and analyze one photo.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--image", help="Image file used as the live frame")
    source.add_argument("--camera", type=int, help="Camera index to grab a frame from")
    parser.add_argument("--model", help="Path or URL of an .onnx model to import")
    parser.add_argument("--model-id", type=int, help="Stored model id to activate")
    parser.add_argument("--pitch", type=float, help="Device pitch in degrees")
    parser.add_argument("--roll", type=float, help="Device roll in degrees")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lon", type=float)
    parser.add_argument("--acc", type=float, default=0.0, help="GPS accuracy in meters")
    parser.add_argument("--store", help="Record store directory")
    parser.add_argument("--export-dir", help="Write photo and heatmap files here")
    parser.add_argument("--export-shp", help="Write GPS-tagged captures as shapefile")
    parser.add_argument("--list", action="store_true", help="List stored captures")
    return parser.parse_args(argv)


def _read_live_frame(args: argparse.Namespace):
    """Return ``(rgb_pixels, width, height)`` from the chosen source."""
    import cv2

    if args.camera is not None:
        capture = cv2.VideoCapture(args.camera)
        try:
            ok, bgr = capture.read()
        finally:
            capture.release()
        if not ok:
            raise RuntimeError(f"Failed to read from camera {args.camera}")
    else:
        bgr = cv2.imread(str(args.image), cv2.IMREAD_COLOR)
        if bgr is None:
            raise RuntimeError(f"Failed to read image {args.image}")
    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
    return rgb, rgb.shape[1], rgb.shape[0]


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for ArtifactSifter.

    Returns
    -------
    int
        Exit code (0 for success, 2 when the device is misaligned, 1 on error).
    """
    from loguru import logger

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level="DEBUG"
    )

    args = _parse_args(argv)
    logger.info("Starting ArtifactSifter...")

    from src.core.capture_pipeline import CaptureSession
    from src.gui.config import cfg, pipeline_options_from_config
    from src.utils.capture_io import export_capture_files, save_capture_points_shp
    from src.utils.capture_records import GpsFix
    from src.utils.capture_store import PthStore
    from src.utils.geolocation import StaticGeolocator
    from src.utils.sherd_detect.errors import ModelLoadFailure
    from src.utils.sherd_detect.orientation import OrientationSample

    store = PthStore(args.store or cfg.get(cfg.storeDir))
    geolocator = None
    if args.lat is not None and args.lon is not None:
        geolocator = StaticGeolocator(GpsFix(lat=args.lat, lon=args.lon, accuracy_m=args.acc))
    session = CaptureSession(
        store,
        options=pipeline_options_from_config(cfg),
        geolocator=geolocator,
    )

    try:
        model_id = args.model_id
        if args.model:
            if args.model.startswith(("http://", "https://")):
                model_id = session.add_model_from_url(Path(args.model).stem, args.model)
            else:
                model_id = session.add_model_from_file(args.model)
        if model_id is not None:
            session.set_active_model(model_id)
    except ModelLoadFailure as exc:
        logger.error(f"Failed to load model: {exc}")
        return 1

    if args.image or args.camera is not None:
        session.gate.update(OrientationSample(pitch=args.pitch, roll=args.roll))
        logger.info(session.gate.status_text())
        if not session.can_capture():
            return 2
        live_frame, width, height = _read_live_frame(args)
        result = asyncio.run(session.capture_and_analyze(live_frame, width, height))
        for warning in result.warnings:
            logger.warning(warning)
        if args.export_dir:
            for path in export_capture_files(result.record, args.export_dir):
                logger.info(f"Wrote {path}")
        session.end_session()

    records = session.list_captures()
    if args.list:
        for record in records:
            gps_text = record.metadata.gps.describe() if record.metadata.gps else "Not recorded"
            print(
                f"{record.id}\t{record.filename}\t{record.metadata.model_name or 'None'}"
                f"\t{gps_text}"
            )
    if args.export_shp:
        count = save_capture_points_shp(records, args.export_shp)
        logger.info(f"Exported {count} capture points to {args.export_shp}")

    logger.info("ArtifactSifter finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
