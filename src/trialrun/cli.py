"""
CLI for trialrun.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .core.runner import Runner
from .handlers.error_handler import ErrorHandler, TrialRunError
from .handlers.logging_handler import LoggingHandler
from .utils.config_manager import ConfigManager, ConfigurationError
from .utils.coverage_recorder import CoverageRecorder
from .utils.reporter import Reporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='trialrun',
        description="A lightweight unit-testing framework",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Run every suite in .trialrun.yml
  %(prog)s tests/unit               # Run the tests below tests/unit
  %(prog)s -s integration -r        # Run one suite in random order
  %(prog)s -c                       # Show coverage data
        """
    )

    parser.add_argument(
        'paths',
        nargs='*',
        help='Files or directories to run instead of the configured suites'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'Trialrun\nVersion {__version__}',
        help='Show version information and exit'
    )

    parser.add_argument(
        '--coverage', '-c',
        action='store_true',
        help='Show coverage data'
    )

    parser.add_argument(
        '--suite', '-s',
        metavar='SUITE',
        help='Run a predefined test suite'
    )

    parser.add_argument(
        '--random', '-r',
        action='store_true',
        help='Run tests within each suite in random order'
    )

    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Configuration file (default: .trialrun.yml if present)'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (default: WARNING)'
    )

    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Also write log records to this file'
    )

    return parser


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    console = console or Console(highlight=False)
    root = Path.cwd()

    try:
        options = ConfigManager(root).load(config_source=args.config, cli_args=args)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", markup=True)
        return 1

    log_handler = LoggingHandler.from_options(options)
    logger = log_handler.install()

    coverage = None
    if options.get('coverage.enable'):
        coverage = CoverageRecorder(root, options.get('coverage.include'), options.get('coverage.exclude'))

    runner = Runner(
        options,
        reporter=Reporter(console),
        coverage=coverage,
        root_directory=root,
    )

    try:
        return runner.run()

    except KeyboardInterrupt:
        console.print("\nRun interrupted by user")
        return 1
    except TrialRunError as e:
        logger.error(ErrorHandler.describe(e))
        console.print(f"\n[red]Error:[/red] {escape(str(e))}", markup=True)
        return 1
    except Exception as e:
        ErrorHandler(logger).log_error(e)
        console.print(f"\n[red]Unexpected error:[/red] {escape(str(e))}", markup=True)
        return 1
    finally:
        log_handler.uninstall()


if __name__ == "__main__":
    sys.exit(main())
