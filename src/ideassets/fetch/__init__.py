"""Integrity-checked artifact retrieval."""

from .http import ArtifactFetcher

__all__ = ["ArtifactFetcher"]
