"""
nextep.config - Configuration management

Handles the XML settings file: creation from a default template,
validation, removal of unknown settings and typed accessors for the
fetch and log retention policies.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError, ConfigWriteError
from .utils import atomic_write


class ConfigManager:
    """Manages the nextep settings file"""

    DEFAULT_CONFIG = """<?xml version="1.0" encoding="utf-8"?>
<settings version="1">
  <!-- Episode guide -->
  <setting id="baseurl">http://epguides.com</setting>

  <!-- Fetch policy -->
  <setting id="delay">120</setting>
  <setting id="retries">15</setting>
  <setting id="timeout">60</setting>
  <setting id="strict">false</setting>

  <!-- Log retention -->
  <setting id="logrotate">true</setting>
  <setting id="relogs">30</setting>
</settings>"""

    VALID_SETTINGS = {
        "baseurl": str,
        "delay": float,
        "retries": int,
        "timeout": int,
        "strict": bool,
        "logrotate": str,
        "relogs": str,
    }

    DEFAULTS = {
        "baseurl": "http://epguides.com",
        "delay": 120.0,
        "retries": 15,
        "timeout": 60,
        "strict": False,
        "logrotate": "true",
        "relogs": "30",
    }

    SETTINGS_ORDER = ["baseurl", "delay", "retries", "timeout", "strict", "logrotate", "relogs"]

    def __init__(self, config_file: Path):
        self.config_file = Path(config_file)
        self.settings: Dict[str, Any] = {}
        self.version: str = "1"
        self.config_changes: Dict[str, str] = {}

    def load_config(
        self,
        delay: Optional[float] = None,
        strict: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Load and validate configuration file; arguments override for this run only"""
        if not self.config_file.exists():
            self._create_default_config()

        self._parse_config_file()

        self.config_changes = {}
        if delay is not None:
            if self.settings["delay"] != delay:
                self.config_changes["delay"] = f"{self.settings['delay']} → {delay}"
            self.settings["delay"] = delay

        if strict is not None and strict != self.settings["strict"]:
            self.config_changes["strict"] = f"{self.settings['strict']} → {strict}"
            self.settings["strict"] = strict

        return self.settings

    def _create_default_config(self):
        """Create default configuration file"""
        logging.info("Creating default configuration: %s", self.config_file)
        self.config_file.parent.mkdir(parents=True, exist_ok=True, mode=0o755)
        with open(self.config_file, "w", encoding="utf-8") as f:
            f.write(self.DEFAULT_CONFIG)

    def _parse_config_file(self):
        """Parse XML configuration file and drop unknown settings"""
        try:
            tree = ET.parse(self.config_file)
        except ET.ParseError as e:
            logging.error("Cannot parse configuration file %s: %s", self.config_file, e)
            raise ConfigError(f"Cannot parse {self.config_file}: {e}") from e

        root = tree.getroot()
        self.version = root.attrib.get("version", "1")
        logging.info("Reading configuration from: %s (version %s)", self.config_file,
                     self.version)

        raw_settings: Dict[str, Optional[str]] = {}
        unknown_settings: List[str] = []

        for setting in root.findall("setting"):
            setting_id = setting.get("id")
            setting_value = setting.get("value")
            if setting_value is None:
                setting_value = setting.text
            logging.debug("Config setting: %s = %s", setting_id, setting_value)

            if setting_id in self.VALID_SETTINGS:
                raw_settings[setting_id] = setting_value
            else:
                unknown_settings.append(setting_id)
                logging.warning("Unknown configuration setting: %s = %s (will be removed)",
                                setting_id, setting_value)

        self._process_settings(raw_settings)

        if unknown_settings:
            self._write_clean_config()
            logging.info("Configuration cleanup: removed %d unknown settings: %s",
                         len(unknown_settings), ", ".join(str(s) for s in unknown_settings))

    def _process_settings(self, settings_dict: Dict[str, Optional[str]]):
        """Type-convert settings, falling back to defaults on bad values"""
        self.settings = dict(self.DEFAULTS)
        for setting_id, setting_value in settings_dict.items():
            expected_type = self.VALID_SETTINGS[setting_id]
            if setting_value is None or not setting_value.strip():
                continue

            value = setting_value.strip()
            try:
                if expected_type == bool:
                    self.settings[setting_id] = self._parse_boolean(value)
                elif expected_type == str:
                    self.settings[setting_id] = value
                else:
                    converted = expected_type(value)
                    if converted < 0:
                        raise ValueError("negative value")
                    self.settings[setting_id] = converted
            except ValueError:
                logging.warning('Invalid %s value "%s", using default "%s"',
                                setting_id, value, self.DEFAULTS[setting_id])

    def _parse_boolean(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "1", "yes", "on")

    def _write_clean_config(self):
        """Write configuration file in proper order"""
        lines = ['<?xml version="1.0" encoding="utf-8"?>', f'<settings version="{self.version}">']
        for setting_id in self.SETTINGS_ORDER:
            value = self.settings[setting_id]
            if isinstance(value, bool):
                value = str(value).lower()
            lines.append(f'  <setting id="{setting_id}">{value}</setting>')
        lines.append("</settings>")
        try:
            atomic_write(self.config_file, lines)
        except ConfigWriteError as e:
            logging.error("Error updating configuration file: %s", str(e))
            logging.error("Continuing with existing configuration...")

    def get_fetch_config(self) -> Dict[str, Any]:
        return {
            "base_url": self.settings["baseurl"],
            "delay": float(self.settings["delay"]),
            "retries": max(1, int(self.settings["retries"])),
            "timeout": max(1, int(self.settings["timeout"])),
            "strict": bool(self.settings["strict"]),
        }

    def get_retention_config(self) -> Dict[str, Any]:
        """Log rotation configuration"""
        logrotate = str(self.settings.get("logrotate", "true")).lower()

        if logrotate == "false":
            rotation_enabled, rotation_interval = False, "daily"
        elif logrotate in ("daily", "weekly", "monthly"):
            rotation_enabled, rotation_interval = True, logrotate
        else:
            rotation_enabled, rotation_interval = True, "daily"

        log_retention_days = self._parse_retention_to_days(
            str(self.settings.get("relogs", "30")), rotation_interval
        )

        return {
            "enabled": rotation_enabled,
            "interval": rotation_interval,
            "keep_files": self._days_to_keep_files(log_retention_days, rotation_interval),
            "log_retention_days": log_retention_days,
        }

    def _parse_retention_to_days(self, retention_value: str, interval: str) -> int:
        """Convert retention setting to number of days (0 = unlimited)"""
        retention_value = retention_value.strip().lower()
        try:
            return int(retention_value)
        except ValueError:
            pass

        named = {"weekly": 7, "monthly": 30, "quarterly": 90, "unlimited": 0}
        if retention_value in named:
            return named[retention_value]
        return {"daily": 30, "weekly": 90, "monthly": 365}.get(interval, 30)

    def _days_to_keep_files(self, retention_days: int, interval: str) -> int:
        if retention_days == 0:
            return 0
        if interval == "weekly":
            return max(1, retention_days // 7)
        if interval == "monthly":
            return max(1, retention_days // 30)
        return retention_days

    def log_config_summary(self):
        logging.info("Configuration values processed:")
        for setting_id in self.SETTINGS_ORDER:
            if setting_id in self.config_changes:
                logging.info("  %s: %s", setting_id, self.config_changes[setting_id])
            else:
                logging.info("  %s: %s", setting_id, self.settings[setting_id])
