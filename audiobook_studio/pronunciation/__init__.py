"""Pronunciation lexicon helpers."""

from .pls import build_pls, validate_pls

__all__ = ["build_pls", "validate_pls"]
