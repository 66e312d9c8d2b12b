"""
nextep.downloader - Download management module

Handles HTTP retrieval of episode tables with conditional requests,
a politeness delay and cache fallback.
"""

from .base import OptimizedDownloader
from .episodes import EpisodeDownloader

__all__ = [
    "OptimizedDownloader",
    "EpisodeDownloader",
]
