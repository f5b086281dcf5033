"""citool - CI actions executed as steps of a build pipeline."""

from citool.__about__ import __version__

__all__ = ["__version__"]
