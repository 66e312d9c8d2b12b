"""
nextep.models - Data records shared across modules
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

CODE_PATTERN = re.compile(r"^S(\d+)E(\d+)$", re.IGNORECASE)


def episode_code(season: int, episode: int) -> str:
    """Format a season/episode pair as S01E02"""
    return f"S{season:02d}E{episode:02d}"


def code_ordinal(code: Optional[str]) -> int:
    """season*100+episode for a code, 0 when the code is empty or unparsable"""
    if not code:
        return 0
    match = CODE_PATTERN.match(code.strip())
    if not match:
        return 0
    return int(match.group(1)) * 100 + int(match.group(2))


@dataclass
class ShowEntry:
    """One show line of the watched configuration"""

    name: str
    key: str
    watched: str = ""
    line_number: int = 0

    def __post_init__(self):
        self.key = self.key.strip().lower()
        self.watched = self.watched.strip()


@dataclass(frozen=True)
class EpisodeRecord:
    season: int
    episode: int
    air_epoch: int

    @property
    def code(self) -> str:
        return episode_code(self.season, self.episode)


@dataclass
class ScheduleEntry:
    """Persisted next/last aired episode of one show"""

    key: str
    name: str
    code: str
    air_epoch: int

    def __post_init__(self):
        self.key = self.key.strip().lower()

    def to_line(self) -> str:
        return f"{self.key}:{self.name}:{self.code}:{self.air_epoch}"


@dataclass
class CachePayload:
    key: str
    raw_lines: List[str]
    fetched_at: float


@dataclass
class FetchResult:
    key: str
    lines: List[str]
    from_cache: bool = False


@dataclass
class Resolution:
    """Episode picked by the resolver"""

    code: str
    air_epoch: int
    from_cache: bool = False
    # every known episode has aired; code is the final one
    concluded: bool = False


@dataclass
class Candidate:
    """Probe result for one show, before it is persisted"""

    key: str
    name: str
    code: str
    air_epoch: int
    watched: str = ""
    from_cache: bool = False
    changed: bool = False
    concluded: bool = False

    def to_schedule_entry(self) -> ScheduleEntry:
        return ScheduleEntry(self.key, self.name, self.code, self.air_epoch)


class ActionKind(Enum):
    KEEP = "keep"
    REMOVE = "remove"
    UPDATE = "update"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    code: Optional[str] = None
    air_epoch: Optional[int] = None

    @classmethod
    def keep(cls) -> "Action":
        return cls(ActionKind.KEEP)

    @classmethod
    def remove(cls) -> "Action":
        return cls(ActionKind.REMOVE)

    @classmethod
    def update(cls, code: str, air_epoch: int) -> "Action":
        return cls(ActionKind.UPDATE, code, air_epoch)


@dataclass
class ShowFailure:
    key: str
    name: str
    reason: str


@dataclass
class ProbeReport:
    """Outcome of a schedule build"""

    candidates: List[Candidate] = field(default_factory=list)
    failures: List[ShowFailure] = field(default_factory=list)
    persisted: bool = False

    @property
    def changed(self) -> List[Candidate]:
        return [candidate for candidate in self.candidates if candidate.changed]


@dataclass
class CatchUpResult:
    updated: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)
    changes: int = 0
