"""
nextep.downloader.base - HTTP engine

Single persistent requests session with a politeness delay between
requests. Never issues concurrent requests to the episode guide.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


class OptimizedDownloader:
    """Sequential HTTP engine with a fixed politeness interval"""

    USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"

    def __init__(self, base_delay: float = 120.0, min_delay: float = 1.0, timeout: int = 60):
        self.session: Optional[requests.Session] = None
        self.base_delay = base_delay
        self.min_delay = min(min_delay, base_delay)
        self.current_delay = base_delay
        self.timeout = timeout
        self.last_request_time = 0.0
        self.total_requests = 0
        self.not_modified = 0
        self.failures = 0

        self.init_session()

    def init_session(self):
        """Initialize session with connection reuse"""
        if self.session:
            self.session.close()

        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": self.USER_AGENT,
                "Accept": "text/html, application/xhtml+xml, text/plain, */*",
                "Accept-Language": "en-US,en;q=0.9",
                "Connection": "keep-alive",
            }
        )

        # Retries are driven by the episode downloader, never by urllib3
        retry_strategy = Retry(total=0, backoff_factor=0, status_forcelist=[])
        adapter = HTTPAdapter(
            pool_connections=1,
            pool_maxsize=1,
            max_retries=retry_strategy,
            pool_block=True,
        )
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        logging.debug("HTTP session initialized (delay %.1fs, timeout %ds)",
                      self.current_delay, self.timeout)

    def use_minimal_delay(self):
        """Single-show runs only need a token pause"""
        if self.current_delay != self.min_delay:
            logging.debug("Single target - politeness delay reduced to %.1fs", self.min_delay)
        self.current_delay = self.min_delay

    def polite_delay(self):
        """Wait until current_delay has elapsed since the previous request"""
        if self.last_request_time:
            elapsed = time.time() - self.last_request_time
            if elapsed < self.current_delay:
                sleep_time = self.current_delay - elapsed
                logging.debug("  Politeness delay: %.1fs", sleep_time)
                time.sleep(sleep_time)
        self.last_request_time = time.time()

    def retry_wait(self, attempt: int) -> float:
        """Pause after failed attempt number `attempt` (1-based), growing linearly"""
        increment = self.current_delay + 1
        return self.current_delay + (attempt - 1) * increment

    def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """One GET request after the politeness delay; requests exceptions propagate"""
        self.polite_delay()
        self.total_requests += 1
        logging.debug("  GET %s", url)
        response = self.session.get(
            url, headers=headers or {}, timeout=self.timeout, allow_redirects=True
        )
        if response.status_code == 304:
            self.not_modified += 1
        elif response.status_code != 200:
            self.failures += 1
        return response

    def close(self):
        if self.session:
            self.session.close()
            self.session = None

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "not_modified": self.not_modified,
            "failures": self.failures,
            "current_delay": self.current_delay,
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
