"""
nextep.downloader.episodes - Episode table downloader

Conditional fetch of a show's epguides page with cache fallback on
304 Not Modified and linear backoff between failed attempts.
"""

import logging
import time
from email.utils import formatdate
from typing import Dict, List, Optional

import requests

from .base import OptimizedDownloader
from ..errors import CacheReadError, FetchError
from ..models import FetchResult
from ..utils import CacheManager


class EpisodeDownloader:
    """Downloads raw episode tables with intelligent caching"""

    DEFAULT_BASE_URL = "http://epguides.com"
    MAX_ATTEMPTS = 15

    def __init__(
        self,
        http_engine: OptimizedDownloader,
        cache_manager: CacheManager,
        base_url: str = DEFAULT_BASE_URL,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.http_engine = http_engine
        self.cache_manager = cache_manager
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)

        # Statistics
        self.downloaded_count = 0
        self.cached_count = 0
        self.failed_count = 0
        self.failed_shows: List[str] = []

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key.lower()}/"

    def _conditional_headers(self, key: str) -> Dict[str, str]:
        mtime = self.cache_manager.mtime(key)
        if mtime is None:
            return {}
        return {"If-Modified-Since": formatdate(mtime, usegmt=True)}

    def fetch(self, key: str) -> FetchResult:
        """
        Fetch the episode table of one show

        Args:
            key: Show key (epguides directory name)

        Returns:
            FetchResult with the payload split into lines

        Raises:
            FetchError: every attempt failed
            CacheReadError: 304 received but no usable cached payload
        """
        key = key.lower()
        url = self.url_for(key)
        last_status: Optional[int] = None
        last_reason = ""

        for attempt in range(1, self.max_attempts + 1):
            headers = self._conditional_headers(key)
            logging.debug("  Attempt %d/%d: %s%s", attempt, self.max_attempts, url,
                          " (conditional)" if headers else "")

            try:
                response = self.http_engine.get(url, headers=headers)

                if response.status_code == 304:
                    return self._from_cache(key)

                if response.status_code == 200:
                    return self._from_response(key, response.text)

                last_status = response.status_code
                last_reason = response.reason or ""
                logging.warning("  %s: HTTP %d on attempt %d/%d",
                                key, response.status_code, attempt, self.max_attempts)

            except requests.exceptions.Timeout:
                last_status, last_reason = None, "timeout"
                logging.warning("  %s: timeout (%ds) on attempt %d/%d",
                                key, self.http_engine.timeout, attempt, self.max_attempts)

            except requests.exceptions.ConnectionError as e:
                last_status, last_reason = None, "connection error"
                logging.warning("  %s: connection error on attempt %d/%d: %s",
                                key, attempt, self.max_attempts, str(e))
                # Force reconnection on connection errors
                self.http_engine.init_session()

            except requests.exceptions.RequestException as e:
                last_status, last_reason = None, str(e)
                logging.warning("  %s: request error on attempt %d/%d: %s",
                                key, attempt, self.max_attempts, str(e))

            if attempt < self.max_attempts:
                wait = self.http_engine.retry_wait(attempt)
                logging.info("  %s: waiting %.0fs before retry", key, wait)
                time.sleep(wait)

        self.failed_count += 1
        self.failed_shows.append(key)
        logging.error("  %s: all %d attempts failed", key, self.max_attempts)
        raise FetchError(key, self.max_attempts, last_status, last_reason)

    def _from_cache(self, key: str) -> FetchResult:
        try:
            content, exists = self.cache_manager.get(key)
        except OSError as e:
            raise CacheReadError(key, str(e)) from e
        if not exists:
            raise CacheReadError(key, "(no cache entry)")

        self.cached_count += 1
        logging.info("  %s: not modified, using cached table", key)
        return FetchResult(key, content.splitlines(), from_cache=True)

    def _from_response(self, key: str, text: str) -> FetchResult:
        self.downloaded_count += 1
        if not self.cache_manager.put(key, text):
            logging.warning("  %s: cache not refreshed, continuing with downloaded table", key)
        logging.info("  %s: downloaded (%d bytes)", key, len(text))
        return FetchResult(key, text.splitlines(), from_cache=False)

    def get_downloader_statistics(self) -> Dict[str, int]:
        return {
            "downloaded": self.downloaded_count,
            "cached": self.cached_count,
            "failed": self.failed_count,
            "total": self.downloaded_count + self.cached_count + self.failed_count,
        }
