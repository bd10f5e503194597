"""Provider documentation registry and version lifecycle manager."""

__version__ = "0.1.0"
