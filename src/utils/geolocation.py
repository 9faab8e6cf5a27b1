"""Bounded geolocation acquisition."""

from __future__ import annotations

import asyncio
from typing import Protocol

from loguru import logger

from src.utils.capture_records import GpsFix
from src.utils.sherd_detect.errors import GeolocationUnavailable


GPS_TIMEOUT_S = 4.0


class Geolocator(Protocol):
    """Single-shot location provider."""

    async def locate(self) -> GpsFix | None:
        ...


class StaticGeolocator:
    """Geolocator returning a fixed reading, e.g. from command line flags."""

    def __init__(self, fix: GpsFix | None) -> None:
        self.fix = fix

    async def locate(self) -> GpsFix | None:
        return self.fix


async def acquire_gps(
    geolocator: Geolocator | None,
    timeout_s: float = GPS_TIMEOUT_S,
) -> GpsFix | None:
    """Request one fix, giving up after ``timeout_s`` seconds.

    The wait never exceeds ``GPS_TIMEOUT_S``. Timeouts, denials, provider
    errors and missing providers all yield ``None``.
    """
    if geolocator is None:
        return None
    wait_s = min(timeout_s, GPS_TIMEOUT_S)
    try:
        return await asyncio.wait_for(geolocator.locate(), timeout=wait_s)
    except asyncio.TimeoutError:
        logger.debug(f"Geolocation timed out after {wait_s:.1f}s")
    except (GeolocationUnavailable, PermissionError) as exc:
        logger.debug(f"Geolocation unavailable: {exc}")
    except Exception as exc:
        logger.debug(f"Geolocation failed: {type(exc).__name__}: {exc}")
    return None
