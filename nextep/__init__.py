"""
nextep - Next episode tracker

Tracks the last watched episode of each show against epguides episode
tables and reports shows with a newly aired episode.
"""

__version__ = "1.0.0"
__license__ = "GPL-3.0"

from .config import ConfigManager
from .downloader import EpisodeDownloader, OptimizedDownloader
from .parser import EpisodeParser, EpisodeResolver, ResolveMode, ShowProber
from .reconcile import ReconciliationEngine, compute_delta, reconcile_one
from .schedule import ScheduleStore
from .utils import CacheManager, TimeUtils
from .watchlist import WatchedConfig

__all__ = [
    "ConfigManager",
    "EpisodeDownloader",
    "OptimizedDownloader",
    "EpisodeParser",
    "EpisodeResolver",
    "ResolveMode",
    "ShowProber",
    "ReconciliationEngine",
    "compute_delta",
    "reconcile_one",
    "ScheduleStore",
    "CacheManager",
    "TimeUtils",
    "WatchedConfig",
]
