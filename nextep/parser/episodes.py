"""
nextep.parser.episodes - Episode table parser

Pure parsing of an epguides-style episode list: season headers followed
by rows such as

      1.     1-1        101      22 Sep 94   <a href='...'>Pilot</a>

The scan is a two-state machine folded over the lines; no HTTP or
caching responsibilities.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List

from ..models import EpisodeRecord
from ..utils import TimeUtils


class ScanState(Enum):
    AWAITING_SEASON = "awaiting_season"
    IN_SEASON = "in_season"


@dataclass
class Scan:
    """Accumulator threaded through the lines"""

    state: ScanState = ScanState.AWAITING_SEASON
    season: int = 0
    records: List[EpisodeRecord] = field(default_factory=list)
    skipped: int = 0


class EpisodeParser:
    """Extracts (season, episode, air date) records from raw episode tables"""

    SEASON_HEADER = re.compile(r"\bSeason\s+(\d+)")

    # ordinal, season-episode pair and a DD Mon YY date, markup allowed
    ROW_HINT = re.compile(
        r"\d+\s*-\s*\d+.*?\d{1,2}(?:\s|&nbsp;|/)+[A-Za-z]{3}(?:\s|&nbsp;|/)+\d{2}\b",
        re.IGNORECASE,
    )

    ROW = re.compile(
        r"^\s*(?P<ordinal>\S+?)\.?\s+"
        r"(?P<season>\d+)\s*-\s*(?P<episode>\d+)\b"
        r".*?\b(?P<day>\d{1,2})[ /]+(?P<month>[A-Za-z]{3})[ /]+(?P<year>\d{2})\b"
    )

    # ordinal and season-episode pair without a usable date
    UNDATED_ROW = re.compile(r"^\s*\S*\d\.?\s+\d+\s*-\s*\d+\b")

    NBSP = re.compile(r"&nbsp;?|\xa0", re.IGNORECASE)
    TAG = re.compile(r"<[^>]*>")

    def parse(self, lines: Iterable[str]) -> List[EpisodeRecord]:
        """Parse raw lines into episode records, in file order"""
        scan = Scan()
        for line in lines:
            scan = self.step(scan, line)

        if scan.skipped:
            logging.debug("  %d episode row(s) skipped", scan.skipped)
        if not scan.records:
            logging.debug("  No episode records found")
        return scan.records

    def step(self, scan: Scan, line: str) -> Scan:
        """Advance the scan by one line"""
        if self.ROW_HINT.search(line):
            return self._episode_row(scan, line)

        if self.UNDATED_ROW.match(self.normalize(line)):
            scan.skipped += 1
            return scan

        header = self.SEASON_HEADER.search(line)
        if header:
            season = int(header.group(1))
            if season < 1:
                return Scan(ScanState.AWAITING_SEASON, 0, scan.records, scan.skipped)
            return Scan(ScanState.IN_SEASON, season, scan.records, scan.skipped)

        return scan

    def normalize(self, line: str) -> str:
        """Collapse non-breaking spaces and strip markup"""
        return self.TAG.sub(" ", self.NBSP.sub(" ", line))

    def _episode_row(self, scan: Scan, line: str) -> Scan:
        if scan.state is not ScanState.IN_SEASON:
            scan.skipped += 1
            return scan

        match = self.ROW.match(self.normalize(line))
        if not match:
            scan.skipped += 1
            return scan

        # Specials carry a non-numeric ordinal
        if not match.group("ordinal")[0].isdigit():
            scan.skipped += 1
            return scan

        episode = int(match.group("episode"))
        if episode < 1:
            scan.skipped += 1
            return scan

        air_epoch = TimeUtils.air_epoch(
            int(match.group("day")), match.group("month"), int(match.group("year"))
        )
        scan.records.append(EpisodeRecord(scan.season, episode, air_epoch))
        return scan
