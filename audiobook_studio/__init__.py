"""Audiobook Studio: orchestration backend for the EPUB-to-audiobook pipeline."""

from .environment import load_environment

# Load environment variables from .env-style files as soon as the package is
# imported so the FastAPI app and ad-hoc scripts see the same settings.
load_environment()

__all__ = ["load_environment"]
