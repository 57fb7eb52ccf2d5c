"""Main CLI entry point for actrunner."""

import argparse
import sys
from typing import Optional

from actrunner import __version__
from .commands import run_workflow, validate_workflow


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help='Set log level'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the actrun CLI."""
    parser = argparse.ArgumentParser(
        prog='actrun',
        description='Run a GitHub Actions workflow locally'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Run command
    run_parser = subparsers.add_parser('run', help='Run a workflow')
    run_parser.add_argument(
        'workflow',
        type=str,
        help='Path to the workflow YAML file'
    )
    run_parser.add_argument(
        '-d', '--dry-run',
        action='store_true',
        help='Show what would be executed without running anything'
    )
    run_parser.add_argument(
        '-f', '--full',
        action='store_true',
        help='Show full command output without truncation'
    )
    run_parser.add_argument(
        '-l', '--lines',
        type=int,
        default=10,
        help='Number of lines to show at the start and end of truncated output'
    )
    run_parser.add_argument(
        '--repo-root',
        type=str,
        help='Repository root (default: detected from the workflow location)'
    )
    run_parser.add_argument(
        '--yes-all',
        action='store_true',
        help='Run every job and command without asking'
    )
    run_parser.add_argument(
        '--no-job-prompts',
        action='store_true',
        help='Only ask before commands, not before jobs'
    )
    _add_logging_arguments(run_parser)

    # Validate command
    validate_parser = subparsers.add_parser('validate', help='Validate a workflow without running it')
    validate_parser.add_argument(
        'workflow',
        type=str,
        help='Path to the workflow YAML file'
    )
    _add_logging_arguments(validate_parser)

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return run_workflow(parsed_args)
    elif parsed_args.command == 'validate':
        return validate_workflow(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
