import pytest

from nextep.config import ConfigManager
from nextep.errors import ConfigError


def test_default_config_is_created(tmp_path):
    config_file = tmp_path / "conf" / "nextep.xml"
    manager = ConfigManager(config_file)

    settings = manager.load_config()

    assert config_file.exists()
    assert settings == ConfigManager.DEFAULTS
    assert manager.get_fetch_config() == {
        "base_url": "http://epguides.com",
        "delay": 120.0,
        "retries": 15,
        "timeout": 60,
        "strict": False,
    }


def test_values_are_typed_and_overridable(tmp_path):
    config_file = tmp_path / "nextep.xml"
    config_file.write_text(
        """<?xml version="1.0" encoding="utf-8"?>
<settings version="1">
  <setting id="delay">5</setting>
  <setting id="retries" value="3"/>
  <setting id="strict">yes</setting>
</settings>""",
        encoding="utf-8",
    )
    manager = ConfigManager(config_file)

    settings = manager.load_config(delay=0.5)

    assert settings["delay"] == 0.5
    assert settings["retries"] == 3
    assert settings["strict"] is True
    assert "delay" in manager.config_changes


def test_invalid_values_fall_back_to_defaults(tmp_path):
    config_file = tmp_path / "nextep.xml"
    config_file.write_text(
        '<settings><setting id="retries">many</setting>'
        '<setting id="timeout">-4</setting></settings>',
        encoding="utf-8",
    )

    settings = ConfigManager(config_file).load_config()

    assert settings["retries"] == 15
    assert settings["timeout"] == 60


def test_unknown_settings_are_removed(tmp_path):
    config_file = tmp_path / "nextep.xml"
    config_file.write_text(
        '<settings version="1"><setting id="delay">7</setting>'
        '<setting id="colour">blue</setting></settings>',
        encoding="utf-8",
    )

    ConfigManager(config_file).load_config()

    content = config_file.read_text(encoding="utf-8")
    assert "colour" not in content
    assert '<setting id="delay">7.0</setting>' in content


def test_unparsable_config_raises(tmp_path):
    config_file = tmp_path / "nextep.xml"
    config_file.write_text("<settings><setting", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigManager(config_file).load_config()


@pytest.mark.parametrize(
    "logrotate, relogs, expected",
    [
        ("true", "30", (True, "daily", 30, 30)),
        ("false", "30", (False, "daily", 30, 30)),
        ("weekly", "monthly", (True, "weekly", 4, 30)),
        ("monthly", "unlimited", (True, "monthly", 0, 0)),
        ("daily", "bogus", (True, "daily", 30, 30)),
    ],
)
def test_retention_config(tmp_path, logrotate, relogs, expected):
    manager = ConfigManager(tmp_path / "nextep.xml")
    manager.load_config()
    manager.settings["logrotate"] = logrotate
    manager.settings["relogs"] = relogs

    retention = manager.get_retention_config()

    assert (
        retention["enabled"],
        retention["interval"],
        retention["keep_files"],
        retention["log_retention_days"],
    ) == expected
