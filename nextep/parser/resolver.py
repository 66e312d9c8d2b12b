"""
nextep.parser.resolver - Episode resolver

Picks the relevant episode of a parsed table: the latest aired one
(next-unseen mode) or the one following the last watched episode
(confirm-watched mode).
"""

from enum import Enum
from typing import Iterable, Optional

from ..models import EpisodeRecord, Resolution, code_ordinal


class ResolveMode(Enum):
    NEXT_UNSEEN = "next_unseen"
    CONFIRM_WATCHED = "confirm_watched"


class EpisodeResolver:
    """Resolves a target episode from ordered episode records"""

    def resolve(
        self,
        records: Iterable[EpisodeRecord],
        last_watched: str,
        mode: ResolveMode,
        today: int,
        from_cache: bool = False,
    ) -> Optional[Resolution]:
        if mode is ResolveMode.NEXT_UNSEEN:
            return self.next_unseen(records, today, from_cache)
        return self.confirm_watched(records, last_watched, from_cache)

    def next_unseen(
        self, records: Iterable[EpisodeRecord], today: int, from_cache: bool = False
    ) -> Optional[Resolution]:
        """
        Latest episode aired on or before today

        Returns None when nothing has aired yet. When no episode lies in the
        future the final episode is returned flagged as concluded.
        """
        previous: Optional[EpisodeRecord] = None
        for record in records:
            if record.air_epoch > today:
                if previous is None:
                    return None
                return Resolution(previous.code, previous.air_epoch, from_cache)
            previous = record

        if previous is None:
            return None
        return Resolution(previous.code, previous.air_epoch, from_cache, concluded=True)

    def confirm_watched(
        self, records: Iterable[EpisodeRecord], last_watched: str, from_cache: bool = False
    ) -> Optional[Resolution]:
        """Episode immediately after last_watched (an empty code means before the first)"""
        target = code_ordinal(last_watched)
        if not target and (last_watched or "").strip():
            return None

        previous = 0
        for record in records:
            if previous == target:
                return Resolution(record.code, record.air_epoch, from_cache)
            previous = code_ordinal(record.code)
        return None
