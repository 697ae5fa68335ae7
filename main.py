"""Convenience bootstrap that forwards to the web API runner."""

from __future__ import annotations

from audiobook_studio.webapi.__main__ import main

if __name__ == "__main__":  # pragma: no cover - CLI integration
    main()
