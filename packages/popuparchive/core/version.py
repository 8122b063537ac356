"""Package version for the Pop Up Archive SDK."""

__version__ = "0.1.0"
