from conftest import TODAY, midnight

from nextep.models import EpisodeRecord, Resolution
from nextep.parser.resolver import EpisodeResolver, ResolveMode

RECORDS = [
    EpisodeRecord(1, 1, midnight(2020, 1, 5)),
    EpisodeRecord(1, 2, midnight(2020, 1, 12)),
    EpisodeRecord(1, 3, midnight(2020, 6, 1)),
    EpisodeRecord(1, 4, midnight(2020, 6, 8)),
]


def test_next_unseen_returns_last_aired_before_first_future():
    result = EpisodeResolver().resolve(RECORDS, "", ResolveMode.NEXT_UNSEEN, TODAY)
    # an episode airing today counts as aired
    assert result == Resolution("S01E03", midnight(2020, 6, 1))


def test_next_unseen_nothing_aired_yet():
    future = [EpisodeRecord(1, 1, TODAY + 86400)]
    assert EpisodeResolver().next_unseen(future, TODAY) is None


def test_next_unseen_empty_table():
    assert EpisodeResolver().next_unseen([], TODAY) is None


def test_next_unseen_all_aired_is_concluded():
    result = EpisodeResolver().next_unseen(RECORDS[:2], TODAY, from_cache=True)
    assert result == Resolution("S01E02", midnight(2020, 1, 12), True, concluded=True)


def test_next_unseen_carries_cache_flag():
    result = EpisodeResolver().next_unseen(RECORDS, TODAY, from_cache=True)
    assert result.from_cache is True
    assert result.concluded is False


def test_confirm_watched_returns_following_episode():
    result = EpisodeResolver().resolve(RECORDS, "S01E02", ResolveMode.CONFIRM_WATCHED, TODAY)
    assert result == Resolution("S01E03", midnight(2020, 6, 1))


def test_confirm_watched_ignores_air_dates():
    result = EpisodeResolver().confirm_watched(RECORDS, "S01E03")
    assert result.code == "S01E04"


def test_confirm_watched_unknown_or_last_code():
    resolver = EpisodeResolver()
    assert resolver.confirm_watched(RECORDS, "S05E01") is None
    assert resolver.confirm_watched(RECORDS, "S01E04") is None


def test_confirm_watched_empty_code_gives_first_episode():
    assert EpisodeResolver().confirm_watched(RECORDS, "").code == "S01E01"


def test_confirm_watched_is_case_insensitive():
    assert EpisodeResolver().confirm_watched(RECORDS, "s01e01").code == "S01E02"


def test_confirm_watched_accepts_unpadded_code():
    assert EpisodeResolver().confirm_watched(RECORDS, "S1E2").code == "S01E03"


def test_confirm_watched_unparsable_code():
    assert EpisodeResolver().confirm_watched(RECORDS, "pilot") is None
