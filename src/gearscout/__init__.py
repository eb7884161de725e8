"""Used audio gear listing matcher and catalog maintenance tools."""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("gearscout")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
