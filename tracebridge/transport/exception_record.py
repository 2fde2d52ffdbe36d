# tracebridge/transport/exception_record.py
# Transport data classes: RemoteThrowable (as observed), ExceptionRecord
# (as transported), SerializableThrowable (generic carrier on the receiving
# side) and Anomaly (data problems found while encoding).
#
# ExceptionRecord chains are acyclic by construction: a record is frozen
# and its cause must already exist when it is built.

from __future__ import annotations

import os
import traceback
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from tracebridge.symbols.domain import RawFrame, ResolvedFrame


# ---------------------------------------------------------------------------
# ANOMALY KINDS
# ---------------------------------------------------------------------------

UNKNOWN_PERMUTATION:  str = "UNKNOWN_PERMUTATION"
UNRESOLVED_FRAME:     str = "UNRESOLVED_FRAME"
CYCLIC_CAUSE:         str = "CYCLIC_CAUSE"
CAUSE_DEPTH_EXCEEDED: str = "CAUSE_DEPTH_EXCEEDED"

# Seen on the receiving side, where the truncation reason is not carried.
TRUNCATED_CAUSE:      str = "TRUNCATED_CAUSE"

ANOMALY_KINDS = frozenset({
    UNKNOWN_PERMUTATION,
    UNRESOLVED_FRAME,
    CYCLIC_CAUSE,
    CAUSE_DEPTH_EXCEEDED,
    TRUNCATED_CAUSE,
})


@dataclass(frozen=True)
class Anomaly:
    """
    A data anomaly detected while encoding. Reported, never raised.

    Fields:
      kind   -- One of ANOMALY_KINDS.
      detail -- Human-readable description.
      depth  -- Cause depth of the affected record (0 = thrown error).
    """
    kind:   str
    detail: str
    depth:  int = 0


# ---------------------------------------------------------------------------
# REMOTE THROWABLE
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class RemoteThrowable:
    """
    An error as observed in the executing permutation, before resolution.

    Mutable so that a captured cause graph can be linked after its nodes
    are created; cause links may form cycles. Identity equality only.

    Fields:
      type_name -- Fully qualified original type name.
      message   -- Message as raised; None when the error had none.
      frames    -- Raw frames, innermost first.
      cause     -- Originating cause, or None.
    """
    type_name: str
    message:   Optional[str] = None
    frames:    List[RawFrame] = field(default_factory=list)
    cause:     Optional["RemoteThrowable"] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "RemoteThrowable":
        """
        Capture a local Python exception.

        Python frames already carry source coordinates, so they are captured
        as verbatim (native) frames and bypass symbol lookup. The cause is
        __cause__, or __context__ unless suppressed. Cycles in the exception
        graph are preserved; the codec truncates them.
        """
        nodes: Dict[int, RemoteThrowable] = {}
        order: List[BaseException] = []
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in nodes:
            nodes[id(current)] = cls(
                type_name=_qualified_name(type(current)),
                message=_exception_message(current),
                frames=_python_frames(current),
            )
            order.append(current)
            current = _python_cause(current)

        for item in order:
            nxt = _python_cause(item)
            nodes[id(item)].cause = nodes[id(nxt)] if nxt is not None else None
        return nodes[id(exc)]


def _qualified_name(exc_type: type) -> str:
    module = exc_type.__module__
    if module in ("builtins", "__main__"):
        return exc_type.__qualname__
    return module + "." + exc_type.__qualname__


def _exception_message(exc: BaseException) -> Optional[str]:
    if not exc.args:
        return None
    return str(exc)


def _python_cause(exc: BaseException) -> Optional[BaseException]:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def _python_frames(exc: BaseException) -> List[RawFrame]:
    frames: List[RawFrame] = []
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        frames.append(
            RawFrame(
                emitted_symbol=frame.f_code.co_name,
                is_native_fragment=True,
                declaring_type=frame.f_globals.get("__name__") or "Unknown",
                source_file=os.path.basename(frame.f_code.co_filename),
                source_line=lineno if lineno is not None else -1,
            )
        )
    frames.reverse()
    return frames


# ---------------------------------------------------------------------------
# EXCEPTION RECORD
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExceptionRecord:
    """
    Transport representation of a throwable.

    Fields:
      designated_type -- Name of the original exception type, carried as
                         data; the receiving side may have no such type.
      message         -- Message copied verbatim; None if the error had none.
      frames          -- Resolved frames, innermost first.
      cause           -- Nested record or None (terminal).
      truncated       -- True when the chain below this record was cut
                         (cycle detected or depth bound reached).
    """
    designated_type: str
    message:         Optional[str]
    frames:          Tuple[ResolvedFrame, ...] = ()
    cause:           Optional["ExceptionRecord"] = None
    truncated:       bool = False

    def chain(self) -> Iterator["ExceptionRecord"]:
        """Yield this record and every cause below it."""
        current: Optional[ExceptionRecord] = self
        while current is not None:
            yield current
            current = current.cause

    def depth(self) -> int:
        """Number of records in the chain, including this one."""
        return sum(1 for _ in self.chain())

    def root_cause(self) -> "ExceptionRecord":
        *_, last = self.chain()
        return last

    def is_truncated(self) -> bool:
        return any(r.truncated for r in self.chain())

    def unresolved_frames(self) -> Tuple[ResolvedFrame, ...]:
        return tuple(f for r in self.chain() for f in r.frames if not f.resolved)

    def observed_anomalies(self) -> Tuple[Anomaly, ...]:
        """
        Anomalies recoverable from a decoded record alone: unresolved
        frames and truncated chains.
        """
        found: List[Anomaly] = []
        for depth, record in enumerate(self.chain()):
            for index, frame in enumerate(record.frames):
                if not frame.resolved:
                    found.append(Anomaly(
                        kind=UNRESOLVED_FRAME,
                        detail="Frame " + str(index) + " (" + frame.method_name
                               + ") has no symbol map entry.",
                        depth=depth,
                    ))
            if record.truncated:
                found.append(Anomaly(
                    kind=TRUNCATED_CAUSE,
                    detail="Cause chain truncated below " + record.designated_type + ".",
                    depth=depth,
                ))
        return tuple(found)

    def to_throwable(self) -> "SerializableThrowable":
        """
        Rebuild a raisable carrier chain. The carrier never tries to
        instantiate the original type; it keeps its name in designated_type.
        """
        records = list(self.chain())
        carrier: Optional[SerializableThrowable] = None
        for record in reversed(records):
            outer = SerializableThrowable(
                designated_type=record.designated_type,
                message=record.message,
                frames=record.frames,
            )
            outer.__cause__ = carrier
            carrier = outer
        return carrier

    def format(self) -> str:
        """Java-style multi-line rendering for reports."""
        lines: List[str] = []
        for index, record in enumerate(self.chain()):
            head = record.designated_type
            if record.message is not None:
                head += ": " + record.message
            lines.append(head if index == 0 else "Caused by: " + head)
            lines.extend("\tat " + str(frame) for frame in record.frames)
            if record.truncated:
                lines.append("\t... cause chain truncated")
        return "\n".join(lines)


class SerializableThrowable(Exception):
    """
    Generic carrier for a transported exception whose concrete type is not
    available on this side.

    Attributes:
      designated_type -- Original type name.
      message         -- Original message (None if absent).
      frames          -- Resolved frames, innermost first.
    """

    def __init__(
        self,
        designated_type: str,
        message:         Optional[str],
        frames:          Tuple[ResolvedFrame, ...] = (),
    ) -> None:
        super().__init__(message if message is not None else designated_type)
        self.designated_type: str = designated_type
        self.message: Optional[str] = message
        self.frames: Tuple[ResolvedFrame, ...] = tuple(frames)

    def __repr__(self) -> str:
        return (
            "SerializableThrowable(designated_type=" + repr(self.designated_type)
            + ", message=" + repr(self.message) + ")"
        )
