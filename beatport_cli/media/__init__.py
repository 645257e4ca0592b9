"""
Media Processing Layer.

This package is responsible for media file operations: streaming downloads
and metadata tagging.
"""

from .downloader import Downloader
from .tagger import Tagger

__all__ = ["Downloader", "Tagger"]
