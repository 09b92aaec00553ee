"""
Command-line entry point.

Usage:
    alblogs my-alb                      # one file from ~5 minutes ago
    alblogs -n 3 --time 14:30 my-alb    # three files from 14:30 local time
    alblogs --time 2024-03-01T09:15 --utc --db ./alb.db my-alb
    alblogs --clean                     # remove cache and temp directories
"""

import argparse
import logging
import shutil
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import FIELD_DOCS_URL, Settings, get_settings
from .exceptions import AlbLogsError, UsageError
from .handoff import hand_off_to_shell
from .pipeline import RunOptions, run, setup_logging
from .utils import parse_reference_time

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def positive_int(value: str) -> int:
    """Parse a strictly positive integer option."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(
            f"number of candidate log files must be a positive number, got {number}"
        )
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alblogs",
        description=(
            "Fetch AWS Application Load Balancer access logs around a "
            "point in time and load them into a local SQLite database."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Log field descriptions: {FIELD_DOCS_URL}",
    )
    parser.add_argument(
        "load_balancer",
        nargs="?",
        metavar="load-balancer-name",
        help="Name of the load balancer",
    )
    parser.add_argument(
        "-n",
        dest="max_files",
        type=positive_int,
        help="Number of candidate log files to load (default: 1)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        type=Path,
        help="SQLite database path (default: <temp dir>/alblogs/<name>.db)",
    )
    parser.add_argument(
        "--time",
        dest="time",
        default="",
        help="Reference time as hh:mm (today) or yyyy-mm-ddThh:mm "
        "(default: 5 minutes ago)",
    )
    parser.add_argument(
        "--utc",
        action="store_true",
        help="Interpret --time in UTC instead of the local time zone",
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Remove the temp and cache directories and exit",
    )
    parser.add_argument(
        "--config",
        help="YAML settings file (default: $ALBLOGS_CONFIG or ./alblogs.yaml)",
    )
    parser.add_argument(
        "--fields",
        help="Field list file overriding the bundled one",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def clean(settings: Settings) -> None:
    """Remove the temp and cache directories, ignoring missing ones."""
    for directory in (settings.temp_dir, settings.cache_dir):
        path = Path(directory)
        if not path.exists():
            continue
        logger.debug(f"Removing {path}")
        shutil.rmtree(path)


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings(args.config)
    if args.fields:
        settings = replace(settings, fields_file=args.fields)
    if args.max_files is not None:
        settings = replace(settings, max_files=args.max_files)
    return settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run alblogs.

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = resolve_settings(args)

        if args.clean:
            clean(settings)
            return EXIT_OK

        if not args.load_balancer:
            parser.print_usage(sys.stderr)
            print(f"{parser.prog}: error: load balancer name is required", file=sys.stderr)
            return EXIT_USAGE

        problems = settings.validate()
        if problems:
            for problem in problems:
                print(f"{parser.prog}: invalid settings: {problem}", file=sys.stderr)
            return EXIT_USAGE

        options = RunOptions(
            load_balancer=args.load_balancer,
            reference_time=parse_reference_time(args.time, utc=args.utc),
            max_files=settings.max_files,
            db_path=args.db_path,
        )
        result = run(options, settings)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except AlbLogsError as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    logger.debug(f"Run summary: {result.to_dict()}")
    print(f"Log field descriptions: {FIELD_DOCS_URL}")
    print(f"Database: {result.db_path}")

    try:
        hand_off_to_shell(result.db_path)
    except OSError as e:
        logger.warning(f"Could not start sqlite3 shell: {e}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
