"""GitHub Release Stats - release history fetching, caching and analytics."""

__version__ = "0.1.0"
