"""
nextep.logrotate - Built-in log rotation

Copytruncate rotation so that 'tail -f' on the log keeps working across
cron runs. The log is copied to a dated backup and truncated in place.
"""

import logging
import logging.handlers
import shutil
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional


class CopyTruncateTimedRotatingFileHandler(logging.handlers.BaseRotatingHandler):
    """
    Timed rotation handler using the copytruncate strategy.

    A rollover that was due while the program was not running happens at
    startup, based on the modification time of the existing log.
    """

    SUFFIXES = {"DAILY": "%Y-%m-%d", "WEEKLY": "%Y-W%U", "MONTHLY": "%Y-%m"}

    def __init__(
        self,
        filename: str,
        when: str = "daily",
        backup_count: int = 7,
        encoding: Optional[str] = None,
    ):
        super().__init__(filename, "a", encoding=encoding)

        self.when = "DAILY" if when.upper() == "MIDNIGHT" else when.upper()
        if self.when not in self.SUFFIXES:
            raise ValueError(f"Invalid rotation interval: {when}")

        self.suffix = self.SUFFIXES[self.when]
        self.backup_count = backup_count

        log_file = Path(self.baseFilename)
        started = log_file.stat().st_mtime if log_file.exists() else time.time()
        self.rollover_at = self._compute_next_rollover(started)

    def _compute_next_rollover(self, now: float) -> float:
        """Next midnight, Sunday midnight or first of month after now"""
        current = datetime.fromtimestamp(now).replace(hour=0, minute=0, second=0, microsecond=0)

        if self.when == "DAILY":
            return (current + timedelta(days=1)).timestamp()

        if self.when == "WEEKLY":
            # weekday(): 0=Monday, 6=Sunday
            days_until_sunday = (6 - current.weekday()) % 7 or 7
            return (current + timedelta(days=days_until_sunday)).timestamp()

        if current.month == 12:
            return current.replace(year=current.year + 1, month=1, day=1).timestamp()
        return current.replace(month=current.month + 1, day=1).timestamp()

    def shouldRollover(self, record) -> bool:
        return time.time() >= self.rollover_at

    def doRollover(self):
        """Copy the current log to a dated backup, then truncate it"""
        if self.stream:
            self.stream.close()
            self.stream = None

        log_file = Path(self.baseFilename)
        try:
            backup_stamp = datetime.fromtimestamp(self.rollover_at - 1).strftime(self.suffix)
            backup_file = Path(f"{self.baseFilename}.{backup_stamp}")

            counter = 1
            original_backup = backup_file
            while backup_file.exists():
                backup_file = Path(f"{original_backup}.{counter}")
                counter += 1

            if log_file.exists() and log_file.stat().st_size > 0:
                shutil.copy2(log_file, backup_file)
                with open(log_file, "w"):
                    pass

            if self.backup_count > 0:
                self._cleanup_old_backups()

        except OSError as e:
            logging.error("Error during log rotation: %s", str(e))

        self.rollover_at = self._compute_next_rollover(time.time())
        if not self.stream:
            self.stream = self._open()

    def _cleanup_old_backups(self):
        """Remove backup files beyond backup_count, oldest first"""
        log_file = Path(self.baseFilename)
        backups = sorted(
            (path for path in log_file.parent.glob(f"{log_file.name}.*") if path != log_file),
            key=lambda path: path.stat().st_mtime,
            reverse=True,
        )
        for path in backups[self.backup_count:]:
            try:
                path.unlink()
            except OSError as e:
                logging.warning("Could not remove old log backup %s: %s", path.name, str(e))


class LogRotationManager:
    """Builds the log handler from the retention configuration"""

    @staticmethod
    def create_rotating_handler(log_file: Path, retention_config: dict) -> logging.Handler:
        """
        Create appropriate log handler based on retention configuration.

        Args:
            log_file: Path to log file
            retention_config: ConfigManager.get_retention_config() output

        Returns:
            Configured logging handler
        """
        if not retention_config.get("enabled", False):
            return logging.FileHandler(log_file, mode="a", encoding="utf-8")

        return CopyTruncateTimedRotatingFileHandler(
            filename=str(log_file),
            when=retention_config.get("interval", "daily"),
            backup_count=retention_config.get("keep_files", 7),
            encoding="utf-8",
        )
