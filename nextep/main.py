#!/usr/bin/env python3
"""
nextep - Next episode tracker

Entry point wiring settings, logging, the episode downloader and the
reconciliation engine together.
"""

import logging
import sys
import time
from pathlib import Path

from . import __version__
from .args import ArgumentParser
from .config import ConfigManager
from .downloader import EpisodeDownloader, OptimizedDownloader
from .errors import NextepError
from .logrotate import LogRotationManager
from .parser import ShowProber
from .reconcile import ReconciliationEngine
from .schedule import ScheduleStore
from .utils import CacheManager, TimeUtils
from .watchlist import WatchedConfig


def setup_logging(logging_config: dict, log_file: Path, retention_config: dict):
    """Setup logging configuration with retention policy"""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    if logging_config["level"] == "warning":
        file_level = logging.WARNING
    elif logging_config["level"] == "debug":
        file_level = logging.DEBUG
    else:
        file_level = logging.INFO

    file_handler = LogRotationManager.create_rotating_handler(log_file, retention_config)
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(message)s", datefmt="%Y/%m/%d %H:%M:%S")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(file_level)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)

    # stdout carries the report, the log goes to stderr
    if logging_config["console"] and not logging_config["quiet"]:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(file_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root_logger.addHandler(console_handler)

    return file_handler


def format_episode(name: str, code: str, air_epoch: int, marker: str = "") -> str:
    line = f"{TimeUtils.conv_date(air_epoch)}  {code}  {name}"
    return f"{line}  {marker}" if marker else line


def run_action(args, engine: ReconciliationEngine) -> int:
    """Execute the selected action and print its report on stdout"""
    if args.action == "probe":
        report = engine.probe(args.probe or None)
        for candidate in report.candidates:
            marker = "*" if candidate.changed else ""
            if candidate.concluded:
                marker = (marker + " (concluded)").strip()
            print(format_episode(candidate.name, candidate.code, candidate.air_epoch, marker))
        for failure in report.failures:
            print(f"ERROR  {failure.name}: {failure.reason}")
        return 1 if report.failures and not report.candidates else 0

    if args.action == "caught_up":
        result = engine.catch_up(args.caught_up)
        for key in result.invalid:
            print(f"ERROR  {key}: no schedule entry")
        print(f"{len(result.updated)} show(s) updated, {result.changes} schedule change(s)")
        return 0

    if args.action == "integrate":
        print(f"{engine.integrate()} schedule change(s)")
        return 0

    if args.action == "list":
        for entry in engine.available():
            print(format_episode(entry.name, entry.code, entry.air_epoch))
        return 0

    if args.action == "next":
        resolution = engine.next_after(args.next_key)
        if resolution is None:
            print(f"{args.next_key}: no episode after the last watched one")
            return 1
        print(format_episode(args.next_key, resolution.code, resolution.air_epoch))
        return 0

    for candidate in engine.status(args.status or None):
        print(format_episode(candidate.name, candidate.code, candidate.air_epoch))
    return 0


def main(argv=None):
    """Main application entry point"""
    start_time = time.time()

    try:
        arg_parser = ArgumentParser()
        args = arg_parser.parse_args(argv)

        defaults = arg_parser.get_system_defaults(args.basedir)
        config_file = args.config_file or defaults["config_file"]

        config_manager = ConfigManager(config_file)
        config_manager.load_config(delay=args.delay, strict=args.strict)
        fetch_config = config_manager.get_fetch_config()

        setup_logging(
            arg_parser.get_logging_config(args),
            defaults["log_file"],
            config_manager.get_retention_config(),
        )

        logging.info("=" * 60)
        logging.info("nextep session started - Version %s", __version__)
        config_manager.log_config_summary()

        cache_manager = CacheManager(defaults["cache_dir"])
        http_engine = OptimizedDownloader(
            base_delay=fetch_config["delay"], timeout=fetch_config["timeout"]
        )

        with http_engine:
            downloader = EpisodeDownloader(
                http_engine,
                cache_manager,
                base_url=fetch_config["base_url"],
                max_attempts=fetch_config["retries"],
            )
            engine = ReconciliationEngine(
                WatchedConfig(defaults["shows_file"]),
                ScheduleStore(defaults["schedule_file"]),
                ShowProber(downloader),
                strict=fetch_config["strict"],
                cache_manager=cache_manager,
            )
            exit_code = run_action(args, engine)

            stats = downloader.get_downloader_statistics()
            logging.info("Network statistics: %d downloaded, %d from cache, %d failed",
                         stats["downloaded"], stats["cached"], stats["failed"])

        logging.info("nextep session ended in %.1f seconds", time.time() - start_time)
        logging.info("=" * 60)
        return exit_code

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 1
    except NextepError as e:
        logging.error("%s", str(e))
        print(f"ERROR  {e}", file=sys.stderr)
        logging.info("nextep session ended with error")
        return 1
    except Exception as e:
        logging.exception("Critical error: %s", str(e))
        logging.info("nextep session ended with error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
