"""Pytest bootstrap helpers shared by all test domains."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()


@pytest.fixture
def gradient_rgb() -> np.ndarray:
    """Return a 54x96 RGB frame whose red channel encodes the column."""
    height, width = 54, 96
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 0] = np.arange(width, dtype=np.uint8)[np.newaxis, :]
    image[:, :, 1] = np.arange(height, dtype=np.uint8)[:, np.newaxis]
    image[:, :, 2] = 200
    return image
