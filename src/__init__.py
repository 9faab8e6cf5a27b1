# ArtifactSifter - Source Package
"""
ArtifactSifter: field capture of sherds with segmentation heatmaps.

This package provides:
- Orientation-gated, aspect-locked frame capture
- Geometry-preserving preprocessing for segmentation models
- Model output decoding and heatmap realignment
- Capture record storage and export
"""

__version__ = "0.1.0"
