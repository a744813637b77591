# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for gitmark.

Every config section gets its own frozen pydantic model:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

Unlike a training run, marking a repository is perfectly reasonable with no
config file at all, so every section (and every field but the schema
version) has a default. `GitmarkConfig()` is the configuration used when the
CLI is not given --config.
"""

import sys
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GlobalConfig(BaseModel):
    """Cross-cutting settings: observability and report layout."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        default="1.0.0",
        description="Schema version for compatibility tracking, e.g. '1.0.0'",
    )
    log_level: str = Field(
        default="WARNING",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )
    text_width: int = Field(
        default=80,
        ge=20,
        le=400,
        description="Column width of the console report and all provenance text",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level '{value}'")
        return upper


class BuildConfig(BaseModel):
    """
    How a commit gets compiled.

    The compiler invocation is assembled as
    `command + flags + [source_flag workdir] + [output_flag out] + [path_flag path] + files`.
    The flag strings are passed through untouched; gitmark does not know or
    care what a "-cp" means.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    name: str = Field(default="Build", description="Label used in summaries and provenance")
    command: list[str] = Field(
        default_factory=lambda: [sys.executable, "-m", "py_compile"],
        min_length=1,
        description="Executable plus any fixed leading arguments",
    )
    flags: list[str] = Field(
        default_factory=list,
        description="Extra flags inserted after the command",
    )
    include_suffixes: list[str] = Field(
        default_factory=lambda: [".py"],
        min_length=1,
        description="Only entries whose path ends with one of these get checked out and compiled",
    )
    source_flag: Optional[str] = Field(
        default=None,
        description="Flag that introduces the source root (e.g. '-sourcepath'); omitted when None",
    )
    output_flag: Optional[str] = Field(
        default=None,
        description="Flag that introduces the output directory (e.g. '-d'); omitted when None",
    )
    output_directory: str = Field(
        default="build",
        description="Output directory relative to the workspace, used with output_flag",
    )
    path_flag: Optional[str] = Field(
        default=None,
        description="Flag that introduces the dependency path (e.g. '-cp'); omitted when None",
    )
    path: list[str] = Field(
        default_factory=list,
        description="Dependency path entries, joined with os.pathsep after path_flag",
    )
    timeout_ms: int = Field(
        default=10_000,
        ge=1,
        description="Wall-clock budget for one compiler run, in milliseconds",
    )
    skip_when_empty: bool = Field(
        default=True,
        description="Count the build as passing without running the compiler when no entry matches",
    )


class TestConfig(BaseModel):
    """
    How a commit's test suites get run.

    Each suite identifier is a dotted module path (optionally `module:attr`)
    that exposes TEST_CASES. Every suite runs in its own interpreter process
    with `<workspace>/<source_directory>` and `search_path` on its module
    path; nothing is inherited from the marking process's own sys.path.
    """

    __test__ = False

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    name: str = Field(default="Test", description="Label used in summaries and provenance")
    suites: list[str] = Field(
        default_factory=list,
        description="Test suite identifiers; an empty list disables testing",
    )
    timeout_ms: int = Field(
        default=60_000,
        ge=1,
        description="Wall-clock budget for one suite process, in milliseconds",
    )
    source_directory: str = Field(
        default="src",
        description="Directory inside the workspace that holds importable sources",
    )
    search_path: list[str] = Field(
        default_factory=list,
        description="Additional module search path entries for the suite process",
    )
    python_executable: str = Field(
        default_factory=lambda: sys.executable,
        description="Interpreter used to host suite processes",
    )
    empty_suite_passes: bool = Field(
        default=True,
        description="Whether a suite that declares zero test cases counts as passing",
    )


class MarkingConfig(BaseModel):
    """Thresholds of the default commit-size marking scheme."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    small_limit: int = Field(
        default=500,
        ge=0,
        description="Commits strictly smaller than this (in bytes) earn one mark",
    )
    large_limit: int = Field(
        default=1000,
        ge=0,
        description="Commits strictly larger than this (in bytes) lose marks",
    )
    large_divisor: int = Field(
        default=1000,
        ge=1,
        description="Marks lost for a large commit = size / large_divisor",
    )
    fallback_mark: int = Field(
        default=-1,
        description="Mark given to a commit that does not build or pass its tests",
    )


class GitmarkConfig(BaseModel):
    """Top-level config container. Every section falls back to its defaults."""

    model_config = ConfigDict(
        frozen=True, extra="forbid", validate_default=True, populate_by_name=True,
    )

    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    build: BuildConfig = Field(default_factory=BuildConfig)
    test: TestConfig = Field(default_factory=TestConfig)
    marking: MarkingConfig = Field(default_factory=MarkingConfig)
