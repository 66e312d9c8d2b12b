"""
nextep.errors - Error taxonomy

Exceptions raised by the fetch, persistence and reconciliation layers.
A per-show error never aborts a batch on its own; callers decide.
"""

from pathlib import Path
from typing import Iterable, Optional


class NextepError(Exception):
    """Base class for all nextep errors"""


class ConfigError(NextepError):
    """Settings file cannot be read or parsed"""


class FetchError(NextepError):
    """Transport or status failure after all retry attempts were used"""

    def __init__(self, key: str, attempts: int, status_code: Optional[int] = None,
                 reason: str = ""):
        self.key = key
        self.attempts = attempts
        self.status_code = status_code
        self.reason = reason
        message = f"{key}: fetch failed after {attempts} attempt(s)"
        if status_code is not None:
            message += f" (last HTTP {status_code})"
        elif reason:
            message += f" ({reason})"
        super().__init__(message)


class CacheReadError(NextepError):
    """Remote reported 'not modified' but the cached payload is unavailable"""

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        self.reason = reason
        super().__init__(f"{key}: cached episode table unreadable {reason}".rstrip())


class ConfigWriteError(NextepError):
    """Temp file or atomic rename failure while persisting a file"""

    def __init__(self, path: Path, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot write {self.path}: {reason}")


class InvalidKey(NextepError):
    """None of the requested show keys has a schedule entry"""

    def __init__(self, keys: Iterable[str]):
        self.keys = list(keys)
        super().__init__("No schedule entry for: %s" % ", ".join(self.keys))
