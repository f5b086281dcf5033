"""Package metadata, formatted as name@version."""

__version__ = "citool@0.1.0"
