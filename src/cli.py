"""
Command-line interface for the mailing-list mirror.
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path

# Add src to path for imports
PROJ_ROOT = Path(__file__).resolve().parent
if str(PROJ_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJ_ROOT))

from inbox_mirror.logging import logger
from inbox_mirror.pipeline.run import main as run_scan
from inbox_mirror.service import main as run_service


def cmd_run(args):
    """Run one scan."""
    try:
        run_scan(pull_request_url=args.pr)
    except Exception as e:
        logger.exception(f"Scan failed: {e}")
        sys.exit(1)


def cmd_service(args):
    """Run periodic scans."""
    try:
        run_service()
    except Exception as e:
        logger.exception(f"Service execution failed: {e}")
        sys.exit(1)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Mirror mailing-list replies onto GitHub pull requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run                                   Scan once
  %(prog)s run --pr https://github.com/o/r/pull/5  Scan once, deliver only to one PR
  %(prog)s service                               Scan periodically (SCHEDULER_ENABLED)
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Scan the archive once")
    run_parser.add_argument(
        "--pr",
        metavar="URL",
        default=None,
        help="Only deliver messages belonging to this pull request",
    )
    run_parser.set_defaults(func=cmd_run)

    service_parser = subparsers.add_parser("service", help="Run periodic scans")
    service_parser.set_defaults(func=cmd_service)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
