"""Concurrent Beatport and Beatsource downloader."""

__version__ = "0.3.0"
