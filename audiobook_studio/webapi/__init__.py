"""FastAPI application exposing the Audiobook Studio services."""

from .application import create_app

__all__ = ["create_app"]
