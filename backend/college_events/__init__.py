"""College event booking service."""

__version__ = "1.0.0"
