"""
nextep.parser - Episode table parsing module

Pure parsing and resolution logic; ShowProber ties them to the downloader.
"""

from .core import ShowProber
from .episodes import EpisodeParser
from .resolver import EpisodeResolver, ResolveMode

__all__ = [
    "ShowProber",       # Fetch -> parse -> resolve
    "EpisodeParser",    # Pure table parsing
    "EpisodeResolver",  # Episode selection
    "ResolveMode",
]
