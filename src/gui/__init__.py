"""Configuration for ArtifactSifter."""
