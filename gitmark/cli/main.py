# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for gitmark.

Every operation is a subcommand of `gitmark`. The global options (--config,
--log-level) are inherited by every subcommand through argparse's parent
parser mechanism.

Usage:
    gitmark mark [location] [--last] [--verbose] [--output DIR]
    gitmark mark ~/repos/assignment --config marking.yaml
    gitmark info
"""

import argparse
import sys
from typing import Optional

from gitmark.cli.commands import handle_info, handle_mark
from gitmark.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    A separate parent parser (with add_help=False) keeps help text from
    colliding between the root parser and the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides the config).",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    mark_parser = subparsers.add_parser(
        "mark",
        parents=[parent],
        help="Mark the commits of a git repository.",
    )
    mark_parser.add_argument(
        "location",
        nargs="?",
        default=".",
        help="Path to the repository to mark (default: current directory).",
    )
    mark_parser.add_argument(
        "--last",
        action="store_true",
        default=False,
        help="Only calculate the mark for the last commit.",
    )
    mark_parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Include all output from test processes, regardless of pass/fail.",
    )
    mark_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Directory to write marks.json, report.txt and config_snapshot.yaml to.",
    )
    mark_parser.set_defaults(func=handle_mark)

    info_parser = subparsers.add_parser(
        "info",
        parents=[parent],
        help="Display environment and config info.",
    )
    info_parser.set_defaults(func=handle_info)


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()
    root_parser = argparse.ArgumentParser(
        prog="gitmark",
        description="gitmark: mark each commit of a repository by building and testing it.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main(argv: Optional[list[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args(argv)

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
