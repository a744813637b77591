# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Child-process entrypoint that runs one test suite.

Usage (spawned by TestTask, not by people):
    python -m gitmark.tasks.worker <module[:attribute]>

Test cases are declared, not discovered by scanning names. A suite is a
module (or a class / object inside one) with a TEST_CASES sequence whose
items are one of:

  - a callable, named by its __name__
  - a (name, callable) pair
  - a string naming an attribute of the suite (a method, for class suites)

Class suites are instantiated once and string or function entries are bound
to that instance. Cases run sorted by name. An AssertionError marks a case as
failed; any other exception marks it as an error. Neither stops the
remaining cases.

Results leave on stdout as a single JSON line behind RESULT_MARKER, written
last, so anything the tests themselves print can't be mistaken for it.
"""

import importlib
import inspect
import json
import sys
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

RESULT_MARKER = "@@gitmark-results@@ "

PASSED = "passed"
FAILED = "failed"
ERROR = "error"

EXIT_OK = 0
EXIT_SUITE_ERROR = 2
EXIT_USAGE = 64


@dataclass(frozen=True)
class TestCaseDescriptor:
    """A named, invocable test case."""

    __test__ = False

    name: str
    func: Callable[[], Any]


def load_suite(identifier: str) -> Any:
    """Import `module[:attr.path]` and return the object it names."""
    module_name, _, attribute = identifier.partition(":")
    suite: Any = importlib.import_module(module_name)
    if attribute:
        for part in attribute.split("."):
            suite = getattr(suite, part)
    return suite


def _attribute_name(cls: type, func: Callable[..., Any]) -> Optional[str]:
    """The name under which `cls` (or a base class) holds `func`, if any."""
    for klass in inspect.getmro(cls):
        for attr, value in vars(klass).items():
            if value is func:
                return attr
    return None


def collect_test_cases(suite: Any) -> list[TestCaseDescriptor]:
    """Resolve a suite's TEST_CASES into descriptors, sorted by name."""
    declared = getattr(suite, "TEST_CASES", None) or ()
    owner = suite() if inspect.isclass(suite) else suite

    cases: list[TestCaseDescriptor] = []
    for item in declared:
        if isinstance(item, str):
            name, func = item, getattr(owner, item)
        elif isinstance(item, tuple):
            name, func = item
        elif callable(item):
            name, func = item.__name__, item
        else:
            raise TypeError(f"Unsupported TEST_CASES entry: {item!r}")

        if owner is not suite and inspect.isfunction(func):
            attr = _attribute_name(suite, func)
            if attr is not None:
                func = getattr(owner, attr)
        cases.append(TestCaseDescriptor(name=name, func=func))

    return sorted(cases, key=lambda case: case.name)


def run_case(case: TestCaseDescriptor) -> dict[str, Optional[str]]:
    try:
        case.func()
    except AssertionError as err:
        return {"name": case.name, "status": FAILED, "message": str(err) or "assertion failed"}
    except Exception as err:  # noqa: BLE001
        return {"name": case.name, "status": ERROR, "message": f"{type(err).__name__}: {err}"}
    return {"name": case.name, "status": PASSED, "message": None}


@dataclass
class SuiteReport:
    suite: str
    cases: list[dict[str, Optional[str]]]
    error: Optional[str] = None


def _emit(report: SuiteReport) -> None:
    sys.stdout.flush()
    sys.stdout.write("\n" + RESULT_MARKER + json.dumps(asdict(report)) + "\n")
    sys.stdout.flush()


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        sys.stderr.write("usage: python -m gitmark.tasks.worker <module[:attribute]>\n")
        return EXIT_USAGE

    identifier = args[0]
    try:
        cases = collect_test_cases(load_suite(identifier))
    except Exception as err:  # noqa: BLE001
        _emit(SuiteReport(suite=identifier, cases=[], error=f"{type(err).__name__}: {err}"))
        return EXIT_SUITE_ERROR

    _emit(SuiteReport(suite=identifier, cases=[run_case(case) for case in cases]))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
