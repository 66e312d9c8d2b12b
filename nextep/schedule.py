"""
nextep.schedule - Persisted schedule

One 'key:name:code:epoch' line per show with a determined episode,
kept sorted by air date then display name.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import ScheduleEntry
from .utils import atomic_write


def sort_key(entry) -> tuple:
    """Air epoch ascending, then display name (ordinal string compare)"""
    return (entry.air_epoch, entry.name)


class ScheduleStore:
    """Reads and atomically replaces the schedule file"""

    def __init__(self, path: Path):
        self.path = Path(path)

    @staticmethod
    def parse_line(line: str) -> Optional[ScheduleEntry]:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None
        try:
            key, rest = stripped.split(":", 1)
            name, code, epoch = rest.rsplit(":", 2)
            return ScheduleEntry(key, name, code, int(epoch))
        except ValueError:
            logging.warning("Ignoring malformed schedule line: %s", line)
            return None

    def load(self) -> Dict[str, ScheduleEntry]:
        """Schedule entries by lowercase key, in file order"""
        entries: Dict[str, ScheduleEntry] = {}
        if not self.path.exists():
            logging.debug("No schedule file yet: %s", self.path)
            return entries

        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                entry = self.parse_line(line)
                if entry is not None:
                    entries[entry.key] = entry
        return entries

    def save(self, entries: Iterable[ScheduleEntry]):
        """Sort and replace the whole schedule file"""
        ordered: List[ScheduleEntry] = sorted(entries, key=sort_key)
        atomic_write(self.path, [entry.to_line() for entry in ordered])
        logging.info("Schedule saved: %d show(s) in %s", len(ordered), self.path)
