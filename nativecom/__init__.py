"""Build-time generator for in-process COM server activation glue."""

__version__ = "0.3.0"
