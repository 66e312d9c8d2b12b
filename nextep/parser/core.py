"""
Core that orchestrates downloading, parsing and resolving one show
"""

import logging
from typing import List, Optional, Tuple

from .episodes import EpisodeParser
from .resolver import EpisodeResolver, ResolveMode
from ..downloader.episodes import EpisodeDownloader
from ..models import EpisodeRecord, Resolution, ShowEntry


class ShowProber:
    """Fetch -> Parse -> Resolve for a single show"""

    def __init__(
        self,
        downloader: EpisodeDownloader,
        parser: Optional[EpisodeParser] = None,
        resolver: Optional[EpisodeResolver] = None,
    ):
        self.downloader = downloader
        self.parser = parser or EpisodeParser()
        self.resolver = resolver or EpisodeResolver()

    def episodes(self, key: str) -> Tuple[List[EpisodeRecord], bool]:
        """
        Parsed episode records of a show

        Returns:
            (records, from_cache)

        Raises:
            FetchError, CacheReadError: propagated from the downloader
        """
        result = self.downloader.fetch(key)
        records = self.parser.parse(result.lines)
        logging.debug("  %s: %d episode(s) parsed", key, len(records))
        return records, result.from_cache

    def resolve(self, show: ShowEntry, mode: ResolveMode, today: int) -> Optional[Resolution]:
        records, from_cache = self.episodes(show.key)
        return self.resolver.resolve(records, show.watched, mode, today, from_cache)

    def next_unseen(self, show: ShowEntry, today: int) -> Optional[Resolution]:
        return self.resolve(show, ResolveMode.NEXT_UNSEEN, today)

    def confirm_watched(self, show: ShowEntry, today: int) -> Optional[Resolution]:
        return self.resolve(show, ResolveMode.CONFIRM_WATCHED, today)

    def single_target(self):
        """Called when a run queries exactly one show"""
        self.downloader.http_engine.use_minimal_delay()
