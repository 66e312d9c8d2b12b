"""
nextep.watchlist - Watched configuration file

Line-oriented file edited by the user:

    # comment
    Display Name:showkey:S01E02

Blank and '#' lines are preserved verbatim on rewrite; so are lines that
cannot be parsed.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .models import ShowEntry, code_ordinal
from .utils import atomic_write


class WatchedConfig:
    """Reads and rewrites the list of shows and their last watched episode"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_lines(self) -> List[str]:
        if not self.path.exists():
            logging.warning("Watched configuration not found: %s", self.path)
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read().splitlines()

    @staticmethod
    def parse_line(line: str, line_number: int = 0) -> Optional[ShowEntry]:
        """ShowEntry for a show line, None for comments, blanks and malformed lines"""
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None

        fields = line.rsplit(":", 2)
        if len(fields) != 3 or not fields[1].strip():
            logging.warning("Ignoring malformed watched line %d: %s", line_number, line)
            return None

        name, key, watched = fields
        return ShowEntry(name.strip(), key, watched, line_number)

    def load(self) -> List[ShowEntry]:
        """Show entries in file order; the first line of a duplicated key wins"""
        shows: List[ShowEntry] = []
        seen = set()
        for line_number, line in enumerate(self.read_lines(), 1):
            show = self.parse_line(line, line_number)
            if show is None:
                continue
            if show.key in seen:
                logging.warning("Duplicate show key %s on line %d ignored", show.key, line_number)
                continue
            seen.add(show.key)
            shows.append(show)

        logging.debug("Loaded %d show(s) from %s", len(shows), self.path)
        return shows

    def by_key(self) -> Dict[str, ShowEntry]:
        return {show.key: show for show in self.load()}

    def rewrite(self, updates: Dict[str, str]) -> List[str]:
        """
        Replace the watched code of the given keys

        Codes never move backward: an update behind the current watched code
        is ignored. Everything else on every line is preserved.

        Returns:
            keys actually rewritten

        Raises:
            ConfigWriteError: the file was left untouched
        """
        updates = {key.lower(): code for key, code in updates.items()}
        lines = self.read_lines()
        changed: List[str] = []
        output: List[str] = []

        for line_number, line in enumerate(lines, 1):
            show = self.parse_line(line, line_number)
            if show is None or show.key not in updates or show.key in changed:
                output.append(line)
                continue

            new_code = updates[show.key]
            if show.watched and code_ordinal(new_code) < code_ordinal(show.watched):
                logging.warning("%s: keeping %s, refusing to move back to %s",
                                show.key, show.watched, new_code)
                output.append(line)
                continue

            name_field, key_field, _ = line.rsplit(":", 2)
            output.append(f"{name_field}:{key_field}:{new_code}")
            if new_code != show.watched:
                logging.info("%s: watched %s -> %s", show.name, show.watched or "(none)", new_code)
            changed.append(show.key)

        if changed:
            atomic_write(self.path, output)
        return changed
