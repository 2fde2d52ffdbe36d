# =============================================================================
# tracebridge -- ASSERTION / EXPECTATION BRIDGE
# File:   tracebridge/harness/expectations.py
# =============================================================================
#
# SCOPE
# -----
# Declarations that a case is expected to throw, the asserter contract that
# inspects the reconstructed record, and frame helpers for asserters.
#
# Expectations are bound explicitly: case id -> ExpectedFailure, populated
# when the suite is assembled. There is no discovery by reflection.
#
# ASSERTER CONTRACT
# -----------------
#   assert_exception(expectation, actual) returns None to accept and raises
#   AssertionError to fail the case. Any other exception escaping an
#   asserter is a harness bug and propagates.
# =============================================================================

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Protocol, Tuple, runtime_checkable

from tracebridge.symbols.domain import ResolvedFrame
from tracebridge.transport.exception_record import ExceptionRecord


@runtime_checkable
class ExceptionAsserter(Protocol):
    """Inspects the record of an expected failure."""

    def assert_exception(self, expectation: "ExpectedFailure", actual: ExceptionRecord) -> None:
        ...


@dataclass(frozen=True)
class ExpectedFailure:
    """
    Declaration attached to a case.

    expected -- the case must throw.
    asserter -- optional inspector of the thrown record; None accepts any
                throw.
    """
    expected: bool = True
    asserter: Optional[ExceptionAsserter] = None

    def __post_init__(self) -> None:
        if not isinstance(self.expected, bool):
            raise TypeError("expected must be a bool; got: " + type(self.expected).__name__)
        if self.asserter is not None and not isinstance(self.asserter, ExceptionAsserter):
            raise TypeError(
                "asserter must implement assert_exception(expectation, actual); got: "
                + type(self.asserter).__name__
            )


class ExpectationRegistry:
    """
    Case id -> ExpectedFailure.

    Populated while the suite is assembled; read concurrently while cases
    run. A case absent from the registry is not expected to throw.
    """

    def __init__(self, expectations: Optional[Mapping[str, ExpectedFailure]] = None) -> None:
        self._lock = threading.Lock()
        self._expectations: Dict[str, ExpectedFailure] = {}
        for case_id, expectation in (expectations or {}).items():
            self.declare(case_id, expectation)

    def declare(self, case_id: str, expectation: ExpectedFailure) -> None:
        if not isinstance(case_id, str) or not case_id:
            raise ValueError("case_id must be a non-empty string; got: " + repr(case_id))
        if not isinstance(expectation, ExpectedFailure):
            raise TypeError(
                "expectation must be an ExpectedFailure; got: " + type(expectation).__name__
            )
        with self._lock:
            if case_id in self._expectations:
                raise ValueError("expectation already declared for case " + repr(case_id))
            self._expectations[case_id] = expectation

    def expectation_for(self, case_id: str) -> Optional[ExpectedFailure]:
        declared = self._expectations.get(case_id)
        if declared is None or not declared.expected:
            return None
        return declared

    def as_mapping(self) -> Mapping[str, ExpectedFailure]:
        with self._lock:
            return MappingProxyType(dict(self._expectations))

    def __len__(self) -> int:
        return len(self._expectations)

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._expectations


# =============================================================================
# FRAME HELPERS
# =============================================================================

def find_frame(
    frames:         Iterable[ResolvedFrame],
    declaring_type: str,
    method_name:    str,
) -> Optional[ResolvedFrame]:
    """
    First frame matching (declaring_type, method_name), or None.

    Recursion can put the same method in a trace more than once; the
    innermost occurrence is the one returned.
    """
    for frame in frames:
        if frame.declaring_type == declaring_type and frame.method_name == method_name:
            return frame
    return None


def assert_frame(
    frames:         Iterable[ResolvedFrame],
    declaring_type: str,
    method_name:    str,
    source_file:    str,
    source_line:    int,
) -> ResolvedFrame:
    """
    Assert that the first (declaring_type, method_name) frame sits at
    source_file:source_line. Returns the matched frame.
    """
    frames = tuple(frames)
    frame = find_frame(frames, declaring_type, method_name)
    if frame is None:
        raise AssertionError(
            "No frame for " + declaring_type + "." + method_name + " in trace:\n"
            + _render(frames)
        )
    expected: Tuple[str, int] = (source_file, source_line)
    actual = (frame.source_file, frame.source_line)
    if actual != expected:
        raise AssertionError(
            declaring_type + "." + method_name + ": expected "
            + source_file + ":" + str(source_line) + ", got "
            + str(frame.source_file) + ":" + str(frame.source_line)
        )
    return frame


def _render(frames: Tuple[ResolvedFrame, ...]) -> str:
    if not frames:
        return "\t(empty)"
    return "\n".join("\tat " + str(f) for f in frames)


# =============================================================================
# DECLARATIVE CHAIN ASSERTER
# =============================================================================

@dataclass(frozen=True)
class ExpectedFrame:
    """A frame that must appear at the given source coordinates."""
    declaring_type: str
    method_name:    str
    source_file:    str
    source_line:    int


@dataclass(frozen=True)
class ExpectedLink:
    """
    Expectation for one record of the cause chain.

    message_prefix None skips the message check.
    """
    designated_type: str
    message_prefix:  Optional[str] = None
    frames:          Tuple[ExpectedFrame, ...] = ()


class ChainAsserter:
    """
    Checks a record chain link by link: links[0] against the thrown
    record, links[1] against its cause, and so on.

    exact_depth -- the chain must have exactly len(links) records.
    """

    def __init__(self, links: Iterable[ExpectedLink], exact_depth: bool = False) -> None:
        self.links: Tuple[ExpectedLink, ...] = tuple(links)
        self.exact_depth = exact_depth

    def assert_exception(self, expectation: ExpectedFailure, actual: ExceptionRecord) -> None:
        chain = list(actual.chain())
        if len(chain) < len(self.links) or (self.exact_depth and len(chain) != len(self.links)):
            raise AssertionError(
                "expected a cause chain of " + ("exactly " if self.exact_depth else "at least ")
                + str(len(self.links)) + " record(s), got " + str(len(chain))
            )
        for depth, (link, record) in enumerate(zip(self.links, chain)):
            if record.designated_type != link.designated_type:
                raise AssertionError(
                    "depth " + str(depth) + ": expected type " + link.designated_type
                    + ", got " + record.designated_type
                )
            if link.message_prefix is not None and not (record.message or "").startswith(link.message_prefix):
                raise AssertionError(
                    "depth " + str(depth) + ": message " + repr(record.message)
                    + " does not start with " + repr(link.message_prefix)
                )
            for frame in link.frames:
                assert_frame(
                    record.frames,
                    frame.declaring_type,
                    frame.method_name,
                    frame.source_file,
                    frame.source_line,
                )
