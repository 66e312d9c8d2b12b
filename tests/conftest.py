import logging

import pytest

from nextep.models import Resolution
from nextep.utils import TimeUtils

SAMPLE_TABLE = """<html><body><pre>
<li><a href="#">Doctor Who</a> episode list</li>

&bull; Season 1

  1.     1-1        101      22 Sep 19   <a href='/ep/1'>Pilot</a>
  2.     1-2        102      29&nbsp;Sep&nbsp;19   <a href='/ep/2'>Second</a>
S01.     1-0                 01 Oct 19   <a href='/sp/1'>Christmas Special</a>

&bull; Season 2

  3.     2-1        201      05 Jan 20   <a href='/ep/3'>Back</a>
  4.     2-2        202      12 Jan 20   <a href='/ep/4'>Season 3 teaser</a>
  5.     2-3        203      10 Aug 20   <a href='/ep/5'>Future</a>
</pre></body></html>
"""


def midnight(year, month, day):
    return TimeUtils.local_midnight(year, month, day)


TODAY = midnight(2020, 6, 1)


@pytest.fixture
def sample_lines():
    return SAMPLE_TABLE.splitlines()


class FakeResponse:
    def __init__(self, status_code, text="", reason=""):
        self.status_code = status_code
        self.text = text
        self.reason = reason


class FakeEngine:
    """Stands in for OptimizedDownloader with scripted responses"""

    def __init__(self, responses, delay=0.0):
        self.responses = list(responses)
        self.requests = []
        self.timeout = 60
        self.current_delay = delay
        self.sessions = 1
        self.minimal = False

    def get(self, url, headers=None):
        self.requests.append((url, dict(headers or {})))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def retry_wait(self, attempt):
        return self.current_delay + (attempt - 1) * (self.current_delay + 1)

    def init_session(self):
        self.sessions += 1

    def use_minimal_delay(self):
        self.minimal = True


class FakeProber:
    """Scripted next-unseen resolutions keyed by show key"""

    def __init__(self, resolutions=None, confirmations=None):
        self.resolutions = dict(resolutions or {})
        self.confirmations = dict(confirmations or {})
        self.calls = []
        self.single = 0

    def next_unseen(self, show, today):
        self.calls.append(show.key)
        result = self.resolutions.get(show.key)
        if isinstance(result, Exception):
            raise result
        return result

    def confirm_watched(self, show, today):
        return self.confirmations.get(show.key)

    def single_target(self):
        self.single += 1


def resolution(code, epoch, concluded=False):
    return Resolution(code, epoch, concluded=concluded)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr("time.sleep", recorded.append)
    return recorded


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
