"""
nextep.args - Command line argument parsing
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional


class ArgumentParser:
    """Command line argument parser"""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        parser = argparse.ArgumentParser(
            prog="nextep",
            description="Track the last watched episode of your shows against epguides",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  nextep                            Report shows whose latest episode changed (nothing saved)
  nextep --probe                    Rebuild the schedule of latest aired episodes
  nextep --probe "doctor who"       Probe matching shows only (schedule not saved)
  nextep --list                     Aired episodes not yet watched
  nextep --caught-up doctorwho      Mark doctorwho as watched up to its scheduled episode
  nextep --integrate                Refresh the schedule after editing the shows file
  nextep --next doctorwho           Episode following the last watched one

Files (under --basedir, default ~/nextep):
  conf/nextep.xml   settings
  conf/shows        watched shows, one 'Name:key:S01E01' per line
  cache/            last fetched episode tables
  schedule          latest aired episode per show
  log/nextep.log

Environment:
  NEXTEP_DELAY=120  Seconds between requests to the episode guide
""",
        )

        parser.add_argument("--version", "-v", action="store_true", help="Show version and exit")

        actions = parser.add_mutually_exclusive_group()
        actions.add_argument("--probe", nargs="*", metavar="NAME",
                             help="Rebuild the schedule, optionally for matching shows only")
        actions.add_argument("--status", nargs="*", metavar="NAME",
                             help="Report schedule changes without saving (default action)")
        actions.add_argument("--caught-up", nargs="+", metavar="KEY", dest="caught_up",
                             help="Mark shows as watched up to their scheduled episode")
        actions.add_argument("--integrate", action="store_true",
                             help="Reconcile the schedule with the shows file")
        actions.add_argument("--list", action="store_true", dest="list_available",
                             help="List aired episodes not yet watched")
        actions.add_argument("--next", metavar="KEY", dest="next_key",
                             help="Show the episode following the last watched one")

        parser.add_argument("--strict", action="store_true", default=None,
                            help="Abort on the first show that cannot be fetched")
        parser.add_argument("--delay", type=float,
                            help="Seconds between requests to the episode guide")
        parser.add_argument("--basedir", type=Path, help="Base directory for all files")
        parser.add_argument("--config-file", type=Path, help="Configuration file path")

        level_group = parser.add_mutually_exclusive_group()
        level_group.add_argument("--debug", action="store_true", help="Log debug information")
        level_group.add_argument("--warning", action="store_true",
                                 help="Log warnings and errors only")

        console_group = parser.add_mutually_exclusive_group()
        console_group.add_argument("--console", action="store_true",
                                   help="Display the log on stderr")
        console_group.add_argument("--quiet", action="store_true",
                                   help="No log output on the console")
        return parser

    def parse_args(self, args: Optional[List[str]] = None):
        args = self.parser.parse_args(args)

        if args.version:
            from . import __version__
            print(__version__)
            sys.exit(0)

        if args.delay is None and os.environ.get("NEXTEP_DELAY"):
            try:
                args.delay = float(os.environ["NEXTEP_DELAY"])
            except ValueError:
                self.parser.error(
                    f"NEXTEP_DELAY must be a number, got: {os.environ['NEXTEP_DELAY']}"
                )

        if args.delay is not None and args.delay < 0:
            self.parser.error(f"Parameter [--delay] must be >= 0, got: {args.delay}")

        args.action = self._action(args)
        return args

    @staticmethod
    def _action(args) -> str:
        if args.probe is not None:
            return "probe"
        if args.caught_up:
            return "caught_up"
        if args.integrate:
            return "integrate"
        if args.list_available:
            return "list"
        if args.next_key:
            return "next"
        return "status"

    def get_logging_config(self, args) -> Dict[str, object]:
        """Determine logging configuration from arguments"""
        config = {"level": "default", "console": False, "quiet": False}

        if args.debug:
            config["level"] = "debug"
        elif args.warning:
            config["level"] = "warning"

        if args.console:
            config["console"] = True
        elif args.quiet:
            config["quiet"] = True

        return config

    def get_system_defaults(self, basedir: Optional[Path] = None) -> Dict[str, Path]:
        base_dir = Path(basedir) if basedir else Path.home() / "nextep"
        return {
            "base_dir": base_dir,
            "cache_dir": base_dir / "cache",
            "conf_dir": base_dir / "conf",
            "log_dir": base_dir / "log",
            "config_file": base_dir / "conf" / "nextep.xml",
            "shows_file": base_dir / "conf" / "shows",
            "schedule_file": base_dir / "schedule",
            "log_file": base_dir / "log" / "nextep.log",
        }
