# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the gitmark CLI.

Each handler takes the parsed argparse namespace and returns an exit code.
Nothing escapes a handler: configuration problems map to CONFIG_ERROR, a
location that isn't a repository to VALIDATION_ERROR, and anything that goes
wrong while reading history or marking to RUNTIME_ERROR.

The report itself goes to stdout. Everything else goes through the
structured logger on stderr.
"""

import argparse
import logging
import platform
import sys
from pathlib import Path

from gitmark.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, VALIDATION_ERROR
from gitmark.config.exceptions import ConfigError
from gitmark.config.loader import load_config
from gitmark.config.schema import GitmarkConfig
from gitmark.core.exceptions import GitError
from gitmark.logging.logger import configure_logging, get_logger
from gitmark.marking.report import evaluate_all, evaluate_last, total_marks
from gitmark.marking.scheme import default_scheme
from gitmark.reporting.writer import print_report, write_report
from gitmark.vcs.history import is_repository, load_commits


def _effective_log_level(args: argparse.Namespace, config: GitmarkConfig) -> str:
    """--log-level wins over the config; --verbose never makes logging quieter than INFO."""
    level = args.log_level or config.global_config.log_level
    if getattr(args, "verbose", False) and logging.getLevelName(level) > logging.INFO:
        level = "INFO"
    return level


def _load_and_configure(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, GitmarkConfig | None, logging.Logger]:
    """
    The shared setup every command needs: load config, configure logging.

    Returns (exit_code, config, logger). Anything but SUCCESS means the
    caller should return the code immediately.
    """
    logger = get_logger(f"gitmark.cli.{command_name}", log_level=args.log_level or "WARNING")

    try:
        config = load_config(Path(args.config) if args.config is not None else None)
    except ConfigError as err:
        logger.error(
            "Configuration error",
            extra={"command": command_name, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    level = _effective_log_level(args, config)
    log_file = config.global_config.log_file
    configure_logging(level, Path(log_file) if log_file else None)

    if args.config is None:
        logger.debug(
            "No config provided, running with defaults",
            extra={"command": command_name},
        )
    return SUCCESS, config, logger


def handle_mark(args: argparse.Namespace) -> int:
    """Mark every commit (or only the last one) of the repository at `location`."""
    exit_code, config, logger = _load_and_configure(args, "mark")
    if exit_code != SUCCESS or config is None:
        return exit_code

    location = Path(args.location).resolve()
    if not is_repository(location):
        logger.error(
            "Not a git repository",
            extra={"command": "mark", "location": str(location)},
        )
        return VALIDATION_ERROR

    try:
        logger.info("Loading repository", extra={"location": str(location)})
        commits = load_commits(location)

        task = default_scheme(config, verbose=args.verbose)
        logger.info(
            "Marking started",
            extra={"commits": len(commits), "last_only": args.last, "scheme": task.name},
        )
        reports = evaluate_last(commits, task) if args.last else evaluate_all(commits, task)

        width = config.global_config.text_width
        print_report(reports, width=width)

        if args.output is not None:
            write_report(
                reports,
                Path(args.output),
                config_snapshot=config.model_dump(mode="json", by_alias=True),
                width=width,
            )

        logger.info(
            "Marking finished",
            extra={"commits": len(reports), "total": total_marks(reports)},
        )
        return SUCCESS

    except GitError as err:
        logger.error("Could not read history", extra={"error": str(err)})
        return RUNTIME_ERROR
    except Exception as err:
        logger.error("Marking failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_info(args: argparse.Namespace) -> int:
    """Display version, environment and effective configuration."""
    logger = get_logger("gitmark.cli.info", log_level=args.log_level or "INFO")

    from gitmark import __version__

    try:
        config = load_config(Path(args.config) if args.config is not None else None)
    except ConfigError as err:
        logger.error("Configuration error", extra={"command": "info", "error": str(err)})
        return CONFIG_ERROR

    logger.info(
        "System information",
        extra={
            "gitmark_version": __version__,
            "python_version": platform.python_version(),
            "python_executable": sys.executable,
            "platform": platform.platform(),
            "config": args.config,
            "build_command": config.build.command,
            "test_suites": config.test.suites,
        },
    )
    return SUCCESS
