"""Top-level package for the HiDock mic trigger."""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("hidock-trigger")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = ["__version__"]
