from nextep.models import ScheduleEntry
from nextep.schedule import ScheduleStore


def test_save_sorts_by_air_date_then_name(tmp_path):
    store = ScheduleStore(tmp_path / "schedule")
    store.save(
        [
            ScheduleEntry("lost", "Lost", "S01E02", 200),
            ScheduleEntry("fringe", "Fringe", "S01E05", 100),
            ScheduleEntry("alias", "Alias", "S03E01", 200),
        ]
    )

    assert store.path.read_text(encoding="utf-8").splitlines() == [
        "fringe:Fringe:S01E05:100",
        "alias:Alias:S03E01:200",
        "lost:Lost:S01E02:200",
    ]


def test_load_round_trip_with_colon_in_name(tmp_path):
    store = ScheduleStore(tmp_path / "schedule")
    entry = ScheduleEntry("startrek", "Star Trek: Discovery", "S02E03", 1550000000)
    store.save([entry])

    assert store.load() == {"startrek": entry}


def test_load_missing_file(tmp_path):
    assert ScheduleStore(tmp_path / "schedule").load() == {}


def test_malformed_lines_are_ignored(tmp_path):
    path = tmp_path / "schedule"
    path.write_text("garbage\nlost:Lost:S01E01:notanumber\nlost:Lost:S01E02:5\n", encoding="utf-8")

    entries = ScheduleStore(path).load()

    assert list(entries) == ["lost"]
    assert entries["lost"].air_epoch == 5


def test_save_empty_schedule(tmp_path):
    store = ScheduleStore(tmp_path / "schedule")
    store.save([])
    assert store.path.read_text(encoding="utf-8") == ""
