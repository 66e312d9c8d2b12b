"""
nextep.utils - Utilities and cache management

Provides the per-show episode table cache, date normalization for the
epguides date format, and the atomic file replacement used for every
durable write.
"""

import logging
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .errors import ConfigWriteError
from .models import CachePayload


class TimeUtils:
    """Time and date utilities"""

    # Two-digit years below this belong to the 2000s
    CENTURY_PIVOT = 46

    MONTHS = ["jan", "feb", "mar", "apr", "may", "jun",
              "jul", "aug", "sep", "oct", "nov", "dec"]

    @staticmethod
    def local_midnight(year: int, month: int, day: int) -> int:
        """Epoch of local midnight for a calendar date (month is 1-12)"""
        return int(time.mktime((year, month, day, 0, 0, 0, 0, 0, -1)))

    @staticmethod
    def today(now: Optional[float] = None) -> int:
        """Epoch of local midnight for the current day"""
        current = datetime.fromtimestamp(time.time() if now is None else now)
        return TimeUtils.local_midnight(current.year, current.month, current.day)

    @staticmethod
    def full_year(two_digit_year: int) -> int:
        if two_digit_year < TimeUtils.CENTURY_PIVOT:
            return 2000 + two_digit_year
        return 1900 + two_digit_year

    @staticmethod
    def month_index(abbreviation: str) -> int:
        """0-11 month ordinal; unknown abbreviations fall back to January"""
        try:
            return TimeUtils.MONTHS.index(abbreviation.strip().lower()[:3])
        except ValueError:
            logging.debug("Unknown month abbreviation %r, using January", abbreviation)
            return 0

    @staticmethod
    def air_epoch(day: int, month_abbreviation: str, two_digit_year: int) -> int:
        """Convert an epguides 'DD Mon YY' date to local midnight epoch"""
        return TimeUtils.local_midnight(
            TimeUtils.full_year(two_digit_year),
            TimeUtils.month_index(month_abbreviation) + 1,
            day,
        )

    @staticmethod
    def conv_date(timestamp: float) -> str:
        return time.strftime("%Y-%m-%d", time.localtime(int(timestamp)))


def atomic_write(path: Path, lines: Iterable[str], reference: Optional[Path] = None):
    """
    Replace a file with the given lines through a temp file and os.replace

    Mode and ownership are copied from reference (default: the file being
    replaced) when it exists. Raises ConfigWriteError and leaves the
    original untouched on failure.
    """
    path = Path(path)
    reference = Path(reference) if reference else path
    temp_name = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line)
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())

        if reference.exists():
            stat = reference.stat()
            os.chmod(temp_name, stat.st_mode & 0o7777)
            try:
                os.chown(temp_name, stat.st_uid, stat.st_gid)
            except PermissionError:
                logging.debug("Cannot preserve ownership of %s", path)

        os.replace(temp_name, path)
        temp_name = None
        logging.debug("Wrote %s", path)

    except OSError as e:
        logging.error("Error writing %s: %s", path, str(e))
        raise ConfigWriteError(path, str(e)) from e

    finally:
        if temp_name and os.path.exists(temp_name):
            try:
                os.unlink(temp_name)
            except OSError as e:
                logging.warning("Cannot remove temporary file %s: %s", temp_name, str(e))


class CacheManager:
    """Stores the last fetched episode table of each show"""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        # 755 permissions (rwxr-xr-x), umask permitting
        self.cache_dir.mkdir(parents=True, exist_ok=True, mode=0o755)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / key.lower()

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        """
        Return the cached raw payload and whether an entry exists

        An entry that exists but cannot be read raises OSError so callers
        can tell it apart from a missing one.
        """
        file_path = self.path_for(key)
        if not file_path.exists():
            return None, False
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            return f.read(), True

    def put(self, key: str, raw_content: str) -> bool:
        """Save a raw payload; failures are logged, never raised"""
        try:
            file_path = self.path_for(key)
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(raw_content)
            return True
        except OSError as e:
            logging.warning("Error saving episode table %s: %s", key, str(e))
            return False

    def mtime(self, key: str) -> Optional[float]:
        try:
            return self.path_for(key).stat().st_mtime
        except OSError:
            return None

    def load_payload(self, key: str) -> Optional[CachePayload]:
        content, exists = self.get(key)
        if not exists:
            return None
        return CachePayload(key.lower(), content.splitlines(), self.mtime(key) or 0.0)

    def clean_show_cache(self, active_keys: Optional[List[str]] = None):
        """Remove cached tables of shows no longer in the watched configuration"""
        if not active_keys:
            logging.warning(
                "No active shows found - skipping show cache cleanup to preserve existing cache"
            )
            return

        active = {key.lower() for key in active_keys}
        cleaned_count = 0
        kept_count = 0

        for cache_file in self.cache_dir.iterdir():
            if not cache_file.is_file() or cache_file.name.startswith("."):
                continue
            if cache_file.name in active:
                kept_count += 1
                continue
            try:
                cache_file.unlink()
                logging.debug("Show cache removed: %s", cache_file.name)
                cleaned_count += 1
            except OSError as e:
                logging.warning("Error removing show cache %s: %s", cache_file.name, str(e))

        if cleaned_count > 0 or kept_count > 0:
            logging.info("Show cache cleanup: %d removed, %d kept", cleaned_count, kept_count)
