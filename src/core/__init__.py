# ArtifactSifter Core Module
"""
Core capture workflow for ArtifactSifter.

Contains:
- Capture session context (orientation gate, active model)
- Model import and activation
- Capture-to-overlay orchestration
"""
