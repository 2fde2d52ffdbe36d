# tracebridge/harness/__init__.py
# Remote test harness: expectation routing, case runner, storage and CLI.
#
# ENTRY POINT:
#   python -m tracebridge.harness.run_harness --manifest-path [path]
#       --capture-path [path] --runs-dir [path]
#
# CI GATE:
#   python -m tracebridge.harness.ci_gate

from .harness_version import (
    DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS,
    HARNESS_VERSION,
    MAX_CAUSE_DEPTH,
    STORAGE_FORMAT_VERSION,
    WIRE_FORMAT_VERSION,
)
from .expectations import (
    ChainAsserter,
    ExceptionAsserter,
    ExpectationRegistry,
    ExpectedFailure,
    ExpectedFrame,
    ExpectedLink,
    assert_frame,
    find_frame,
)
from .case_runner import CaseRunner, HarnessCase
from .failure_handler import FailureHandler
from .data_models import CaseOutcome, FailureRecord, FAILURE_TYPES

__all__ = [
    "DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS",
    "HARNESS_VERSION",
    "MAX_CAUSE_DEPTH",
    "STORAGE_FORMAT_VERSION",
    "WIRE_FORMAT_VERSION",
    "ChainAsserter",
    "ExceptionAsserter",
    "ExpectationRegistry",
    "ExpectedFailure",
    "ExpectedFrame",
    "ExpectedLink",
    "assert_frame",
    "find_frame",
    "CaseRunner",
    "HarnessCase",
    "FailureHandler",
    "CaseOutcome",
    "FailureRecord",
    "FAILURE_TYPES",
]
