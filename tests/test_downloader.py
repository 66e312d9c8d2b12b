import os

import pytest
import requests
from conftest import SAMPLE_TABLE, FakeEngine, FakeResponse

from nextep.downloader.base import OptimizedDownloader
from nextep.downloader.episodes import EpisodeDownloader
from nextep.errors import CacheReadError, FetchError
from nextep.utils import CacheManager


@pytest.fixture
def cache(tmp_path):
    return CacheManager(tmp_path / "cache")


def test_ok_response_refreshes_cache(cache, sleeps):
    engine = FakeEngine([FakeResponse(200, SAMPLE_TABLE)])
    downloader = EpisodeDownloader(engine, cache, base_url="http://guide.test/")

    result = downloader.fetch("DoctorWho")

    assert result.from_cache is False
    assert result.lines == SAMPLE_TABLE.splitlines()
    assert engine.requests[0] == ("http://guide.test/doctorwho/", {})
    assert cache.get("doctorwho") == (SAMPLE_TABLE, True)
    assert sleeps == []


def test_not_modified_uses_cache(cache, sleeps):
    cache.put("doctorwho", SAMPLE_TABLE)
    engine = FakeEngine([FakeResponse(304)])
    downloader = EpisodeDownloader(engine, cache)

    result = downloader.fetch("doctorwho")

    assert result.from_cache is True
    assert result.lines == SAMPLE_TABLE.splitlines()
    assert "If-Modified-Since" in engine.requests[0][1]
    assert engine.requests[0][1]["If-Modified-Since"].endswith("GMT")
    assert downloader.get_downloader_statistics()["cached"] == 1


def test_not_modified_without_cache_is_an_error(cache, sleeps):
    engine = FakeEngine([FakeResponse(304)])
    with pytest.raises(CacheReadError):
        EpisodeDownloader(engine, cache).fetch("doctorwho")


def test_unreadable_cache_on_not_modified(cache, sleeps, monkeypatch):
    cache.put("doctorwho", SAMPLE_TABLE)

    def broken(key):
        raise OSError("disk error")

    monkeypatch.setattr(cache, "get", broken)
    engine = FakeEngine([FakeResponse(304)])
    with pytest.raises(CacheReadError):
        EpisodeDownloader(engine, cache).fetch("doctorwho")


def test_retries_with_linear_backoff(cache, sleeps):
    engine = FakeEngine(
        [
            FakeResponse(500, reason="Server Error"),
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.Timeout("slow"),
            FakeResponse(200, SAMPLE_TABLE),
        ],
        delay=2.0,
    )
    downloader = EpisodeDownloader(engine, cache)

    result = downloader.fetch("doctorwho")

    assert result.from_cache is False
    assert len(engine.requests) == 4
    assert sleeps == [2.0, 5.0, 8.0]
    # connection errors reset the session
    assert engine.sessions == 2


def test_exhausted_attempts_raise_fetch_error(cache, sleeps):
    engine = FakeEngine([FakeResponse(503)] * 3)
    downloader = EpisodeDownloader(engine, cache, max_attempts=3)

    with pytest.raises(FetchError) as excinfo:
        downloader.fetch("doctorwho")

    assert excinfo.value.attempts == 3
    assert excinfo.value.status_code == 503
    assert len(sleeps) == 2
    assert downloader.failed_shows == ["doctorwho"]


def test_default_attempt_count(cache, sleeps):
    engine = FakeEngine([FakeResponse(404)] * 15)
    with pytest.raises(FetchError):
        EpisodeDownloader(engine, cache).fetch("gone")
    assert len(engine.requests) == 15
    assert len(sleeps) == 14


def test_cache_write_failure_does_not_abort(cache, sleeps, monkeypatch):
    monkeypatch.setattr(cache, "put", lambda key, raw: False)
    engine = FakeEngine([FakeResponse(200, SAMPLE_TABLE)])

    result = EpisodeDownloader(engine, cache).fetch("doctorwho")

    assert result.lines == SAMPLE_TABLE.splitlines()


def test_cache_store_round_trip(cache):
    assert cache.get("lost") == (None, False)
    assert cache.mtime("lost") is None

    assert cache.put("Lost", "line one\nline two\n")
    assert cache.get("lost") == ("line one\nline two\n", True)
    assert cache.mtime("lost") == os.stat(cache.path_for("lost")).st_mtime

    payload = cache.load_payload("lost")
    assert payload.raw_lines == ["line one", "line two"]


def test_clean_show_cache_keeps_active_keys(cache):
    cache.put("lost", "a")
    cache.put("fringe", "b")

    cache.clean_show_cache(["Lost"])

    assert cache.get("lost")[1] is True
    assert cache.get("fringe")[1] is False


def test_clean_show_cache_without_active_keys_keeps_everything(cache):
    cache.put("lost", "a")
    cache.clean_show_cache([])
    assert cache.get("lost")[1] is True


class FakeSession:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.calls = []

    def get(self, url, headers=None, timeout=None, allow_redirects=True):
        self.calls.append((url, headers, timeout))
        return FakeResponse(self.status_code, "body")

    def close(self):
        pass


def test_http_engine_politeness_delay(monkeypatch, sleeps):
    monkeypatch.setattr("nextep.downloader.base.time.time", lambda: 1010.0)

    engine = OptimizedDownloader(base_delay=30, timeout=5)
    engine.session = FakeSession()
    engine.last_request_time = 1000.0

    engine.get("http://guide.test/a/")
    engine.get("http://guide.test/b/", headers={"X": "1"})

    assert sleeps == [20.0, 30.0]
    assert engine.session.calls[1] == ("http://guide.test/b/", {"X": "1"}, 5)
    assert engine.get_statistics()["total_requests"] == 2


def test_http_engine_retry_wait_and_minimal_delay():
    engine = OptimizedDownloader(base_delay=120, min_delay=1)
    assert engine.retry_wait(1) == 120
    assert engine.retry_wait(2) == 120 + 121
    assert engine.retry_wait(15) == 120 + 14 * 121

    engine.use_minimal_delay()
    assert engine.current_delay == 1
    assert engine.retry_wait(3) == 1 + 2 * 2
    engine.close()


def test_http_engine_counts_status(sleeps):
    engine = OptimizedDownloader(base_delay=0)
    engine.session = FakeSession(status_code=304)
    engine.get("http://guide.test/a/")
    engine.session = FakeSession(status_code=500)
    engine.get("http://guide.test/a/")

    stats = engine.get_statistics()
    assert stats["not_modified"] == 1
    assert stats["failures"] == 1
