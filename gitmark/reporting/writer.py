# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Marking report output.

The console report (and report.txt, which is the same text) has one block
per commit followed by a summary:

    ================================================================
    COMMIT#0: 3f2a...                                          0 marks
    ================================================================
    "Initial import"

    <summary>

    <provenance>

    ----------------------------------------------------------------
    Summary
    ----------------------------------------------------------------
    3f2a9c01b7e4 ..............................................[0 marks]
    ----------------------------------------------------------------
    gitmark total: 0

When an output directory is given, write_report also produces:

    <output>/
    ├── marks.json            machine-readable per-commit marks
    ├── report.txt            the console report
    └── config_snapshot.yaml  the config used for this run
"""

import json
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

import yaml

from gitmark.logging.logger import get_logger
from gitmark.marking.report import Report, total_marks
from gitmark.utils.text import line_string, rule

logger = get_logger(__name__)


def format_commit_block(index: int, report: Report, width: int) -> str:
    lines = [
        "",
        "",
        rule("=", width),
        line_string(f"COMMIT#{index}: {report.commit.id}", " ", f"{report.mark} marks", width),
        rule("=", width),
        f'"{report.commit.title}"',
        "",
    ]
    if report.result is None:
        lines.append(f"Evaluation aborted: {report.error}")
        lines.append("")
    else:
        lines.append(report.result.to_summary_string(width))
        lines.append("")
        lines.append(report.result.to_provenance_string(width))
    return "\n".join(lines) + "\n"


def format_summary(reports: Sequence[Report], width: int) -> str:
    lines = [rule("-", width), "Summary", rule("-", width)]
    for report in reports:
        lines.append(line_string(report.commit.short_id, ".", f"[{report.mark} marks]", width))
    lines.append(rule("-", width))
    lines.append(f"gitmark total: {total_marks(reports)}")
    return "\n".join(lines) + "\n"


def format_report_text(reports: Sequence[Report], width: int = 80) -> str:
    """The full human-readable report: every commit block, then the summary."""
    blocks = [format_commit_block(i, report, width) for i, report in enumerate(reports)]
    return "".join(blocks) + format_summary(reports, width)


def print_report(reports: Sequence[Report], stream: Optional[TextIO] = None, width: int = 80) -> None:
    """Write the report to `stream` (stdout by default)."""
    out = stream if stream is not None else sys.stdout
    out.write(format_report_text(reports, width))
    out.flush()


def report_to_dict(reports: Sequence[Report]) -> dict[str, object]:
    return {
        "total": total_marks(reports),
        "commits": [
            {
                "index": index,
                "id": report.commit.id,
                "title": report.commit.title,
                "parent": report.commit.parent,
                "size": report.commit.size,
                "mark": report.mark,
                "aborted": report.aborted,
                "error": report.error,
            }
            for index, report in enumerate(reports)
        ],
    }


def write_report(
    reports: Sequence[Report],
    output_dir: Path,
    config_snapshot: dict[str, object] | None = None,
    width: int = 80,
) -> Path:
    """
    Write marks.json, report.txt and (optionally) config_snapshot.yaml.

    Creates the output directory if needed and returns it.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    marks_path = output_dir / "marks.json"
    marks_path.write_text(
        json.dumps(report_to_dict(reports), indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )

    report_path = output_dir / "report.txt"
    report_path.write_text(format_report_text(reports, width), encoding="utf-8")

    if config_snapshot is not None:
        config_path = output_dir / "config_snapshot.yaml"
        config_path.write_text(
            yaml.dump(config_snapshot, default_flow_style=False, sort_keys=True),
            encoding="utf-8",
        )

    logger.info(
        "Marking report written",
        extra={"output_dir": str(output_dir), "commits": len(reports)},
    )
    return output_dir
