"""Command-line interface argument parsing."""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from reelfeed.config.settings import DEFAULT_CACHE_DIR

COMMANDS = ('simulate', 'warm', 'prune', 'clear')


@dataclass
class CLIArgs:
    """
    Parsed command-line arguments.

    Attributes:
        command: Subcommand to run (simulate, warm, prune or clear).
        source: JSON file of feed documents or base URL of the feed API.
        cache_dir: Directory backing the disk cache (None for default).
        steps: Number of videos to scroll through in simulate mode.
        start_index: Index the simulation settles on first.
        prefetch_bytes: Bytes of each video written to the disk cache.
        debug: If True, enable debug logging.
    """

    command: str = 'simulate'
    source: str = ''
    cache_dir: Optional[Path] = None
    steps: int = 10
    start_index: int = 0
    prefetch_bytes: Optional[int] = None
    debug: bool = False

    @property
    def source_is_url(self) -> bool:
        """Check if the source points at an HTTP feed API."""
        return self.source.startswith(('http://', 'https://'))


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog='reelfeed',
        description="""
        Drives a video feed session against a document store and keeps a
        bounded cache of media assets around the playing video.
        """
    )

    parser.add_argument(
        '--cache-dir',
        default=None,
        help=f"disk cache directory (default: {DEFAULT_CACHE_DIR})"
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help="enable debug logging"
    )

    subparsers = parser.add_subparsers(dest='command')

    simulate = subparsers.add_parser('simulate', help='scroll through the feed and show cache state')
    simulate.add_argument('source', help='feed JSON file or feed API base URL')
    simulate.add_argument(
        '-n', '--steps',
        type=int,
        default=10,
        help='number of videos to scroll through (default: 10)'
    )
    simulate.add_argument(
        '--start',
        type=int,
        default=0,
        help='index of the first video to settle on (default: 0)'
    )

    warm = subparsers.add_parser('warm', help='prefetch the first page of the feed')
    warm.add_argument('source', help='feed JSON file or feed API base URL')
    warm.add_argument(
        '--bytes',
        type=int,
        default=None,
        help='bytes of each video written to the disk cache'
    )

    subparsers.add_parser('prune', help='prune the disk cache down to its ceiling')
    subparsers.add_parser('clear', help='drop every cached asset from memory and disk')

    return parser


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: List of argument strings (None for sys.argv).

    Returns:
        Parsed Namespace object.
    """
    parser = create_parser()
    namespace = parser.parse_args(args)
    if namespace.command is None:
        parser.error(f"a command is required ({', '.join(COMMANDS)})")
    return namespace


def args_to_cli_args(namespace: argparse.Namespace) -> CLIArgs:
    """
    Convert argparse Namespace to CLIArgs dataclass.

    Args:
        namespace: Parsed argparse Namespace.

    Returns:
        CLIArgs instance.
    """
    return CLIArgs(
        command=namespace.command,
        source=getattr(namespace, 'source', '') or '',
        cache_dir=Path(namespace.cache_dir).expanduser() if namespace.cache_dir else None,
        steps=getattr(namespace, 'steps', 10),
        start_index=getattr(namespace, 'start', 0),
        prefetch_bytes=getattr(namespace, 'bytes', None),
        debug=namespace.debug,
    )
