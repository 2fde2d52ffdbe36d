# tracebridge/transport/codec.py
# ExceptionCodec -- encodes observed throwables into ExceptionRecords and
# moves records across the process boundary as UTF-8 JSON.
#
# ENC-01: designated_type is the original type name as a string.
# ENC-02: message is copied verbatim. No truncation, no rewriting.
# ENC-03: every raw frame goes through the Deobfuscator, order preserved.
# ENC-04: the cause chain is walked top-down with an identity visited-set
#         and a depth bound; a revisit or overflow truncates the chain and
#         marks the last kept record truncated.
# DEC-01: decode() is pure deserialization. No resolution is re-run.
# DEC-02: malformed input raises RecordDecodeError; the depth bound also
#         applies on decode.
#
# Wire envelope:
#   {"format_version": "1.0.0",
#    "record": {"designatedType", "message", "frames": [...],
#               "cause": <record or null>, "truncated": bool}}
#   Non-ASCII text is written as \u escapes, so unpaired surrogates survive.

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from tracebridge.symbols.deobfuscator import Deobfuscator, resolve_frame
from tracebridge.symbols.domain import ResolvedFrame
from tracebridge.symbols.exceptions import FrameValidationError, RecordDecodeError
from tracebridge.transport.exception_record import (
    CAUSE_DEPTH_EXCEEDED,
    CYCLIC_CAUSE,
    UNKNOWN_PERMUTATION,
    UNRESOLVED_FRAME,
    Anomaly,
    ExceptionRecord,
    RemoteThrowable,
)


WIRE_FORMAT_VERSION: str = "1.0.0"

# Maximum number of records in one cause chain, including the thrown error.
MAX_CAUSE_DEPTH: int = 32


@dataclass(frozen=True)
class EncodeResult:
    """Record plus the anomalies found while building it."""
    record:    ExceptionRecord
    anomalies: Tuple[Anomaly, ...]


# ---------------------------------------------------------------------------
# WIRE DICT CONVERSION
# ---------------------------------------------------------------------------

def _frame_to_wire(frame: ResolvedFrame) -> Dict[str, Any]:
    return {
        "declaringType": frame.declaring_type,
        "methodName":    frame.method_name,
        "sourceFile":    frame.source_file,
        "sourceLine":    frame.source_line,
        "resolved":      frame.resolved,
        "native":        frame.native,
    }


def record_to_wire(record: ExceptionRecord) -> Dict[str, Any]:
    """Convert a record chain to nested wire dicts (bottom-up, no recursion)."""
    wire: Optional[Dict[str, Any]] = None
    for current in reversed(list(record.chain())):
        wire = {
            "designatedType": current.designated_type,
            "message":        current.message,
            "frames":         [_frame_to_wire(f) for f in current.frames],
            "cause":          wire,
            "truncated":      current.truncated,
        }
    return wire


def _require(d: Dict[str, Any], key: str, types, depth: int, allow_none: bool = False) -> Any:
    if key not in d:
        raise RecordDecodeError(key, "is missing at cause depth " + str(depth))
    value = d[key]
    if value is None and allow_none:
        return None
    if not isinstance(value, types) or (isinstance(value, bool) and bool not in _as_tuple(types)):
        raise RecordDecodeError(
            key, "has invalid type " + type(value).__name__ + " at cause depth " + str(depth), value
        )
    return value


def _as_tuple(types) -> tuple:
    return types if isinstance(types, tuple) else (types,)


def _frame_from_wire(d: Any, depth: int) -> ResolvedFrame:
    if not isinstance(d, dict):
        raise RecordDecodeError("frames", "entries must be objects at cause depth " + str(depth), d)
    try:
        return ResolvedFrame(
            declaring_type=_require(d, "declaringType", str, depth),
            method_name=_require(d, "methodName", str, depth),
            source_file=_require(d, "sourceFile", str, depth, allow_none=True),
            source_line=_require(d, "sourceLine", int, depth),
            resolved=_require(d, "resolved", bool, depth),
            native=_require(d, "native", bool, depth),
        )
    except FrameValidationError as exc:
        raise RecordDecodeError(exc.field_name, exc.message, exc.value) from exc


def record_from_wire(wire: Any, max_depth: int = MAX_CAUSE_DEPTH) -> ExceptionRecord:
    """
    Rebuild a record chain from nested wire dicts.

    Raises RecordDecodeError on any structural problem, including a chain
    deeper than max_depth.
    """
    flat: List[Dict[str, Any]] = []
    current = wire
    while current is not None:
        depth = len(flat)
        if depth >= max_depth:
            raise RecordDecodeError(
                "cause", "chain exceeds the maximum depth of " + str(max_depth)
            )
        if not isinstance(current, dict):
            raise RecordDecodeError("record", "must be an object at cause depth " + str(depth), current)
        flat.append(current)
        current = current.get("cause")

    record: Optional[ExceptionRecord] = None
    for depth in range(len(flat) - 1, -1, -1):
        d = flat[depth]
        designated_type = _require(d, "designatedType", str, depth)
        if not designated_type:
            raise RecordDecodeError("designatedType", "must be non-empty at cause depth " + str(depth))
        frames = _require(d, "frames", list, depth)
        truncated = d.get("truncated", False)
        if not isinstance(truncated, bool):
            raise RecordDecodeError("truncated", "must be a bool at cause depth " + str(depth), truncated)
        record = ExceptionRecord(
            designated_type=designated_type,
            message=_require(d, "message", str, depth, allow_none=True),
            frames=tuple(_frame_from_wire(f, depth) for f in frames),
            cause=record,
            truncated=truncated,
        )
    if record is None:
        raise RecordDecodeError("record", "is null")
    return record


# ---------------------------------------------------------------------------
# CODEC
# ---------------------------------------------------------------------------

class ExceptionCodec:
    """
    Encodes throwables against a permutation registry and moves records
    across the boundary.

    encode() and decode() are pure: no IO, no blocking, no shared state
    beyond the read-only registry behind the Deobfuscator.
    """

    def __init__(self, deobfuscator: Deobfuscator, max_depth: int = MAX_CAUSE_DEPTH) -> None:
        if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 1:
            raise ValueError("max_depth must be an integer >= 1; got: " + repr(max_depth))
        self._deobfuscator = deobfuscator
        self._max_depth = max_depth

    @property
    def max_depth(self) -> int:
        return self._max_depth

    # -----------------------------------------------------------------------
    # Encode side
    # -----------------------------------------------------------------------

    def encode(
        self,
        throwable:   Union[RemoteThrowable, BaseException],
        fingerprint: Optional[str],
    ) -> ExceptionRecord:
        """Encode throwable as produced by the permutation named fingerprint."""
        return self.encode_with_report(throwable, fingerprint).record

    def encode_with_report(
        self,
        throwable:   Union[RemoteThrowable, BaseException],
        fingerprint: Optional[str],
    ) -> EncodeResult:
        """Encode and also return the anomalies detected on the way."""
        if isinstance(throwable, BaseException):
            throwable = RemoteThrowable.from_exception(throwable)
        if not isinstance(throwable, RemoteThrowable):
            raise TypeError(
                "throwable must be a RemoteThrowable or an exception; got: "
                + type(throwable).__name__
            )

        anomalies: List[Anomaly] = []
        permutation = self._deobfuscator.permutation_for(fingerprint)
        if permutation is None:
            anomalies.append(Anomaly(
                kind=UNKNOWN_PERMUTATION,
                detail="No symbol map registered for permutation " + repr(fingerprint)
                       + "; all frames left unresolved.",
            ))

        # ENC-04: top-down walk with visited set and depth bound.
        chain: List[RemoteThrowable] = []
        visited = set()
        truncated = False
        current: Optional[RemoteThrowable] = throwable
        while current is not None:
            if id(current) in visited:
                anomalies.append(Anomaly(
                    kind=CYCLIC_CAUSE,
                    detail="Cause chain revisits " + current.type_name
                           + "; truncated after depth " + str(len(chain) - 1) + ".",
                    depth=len(chain) - 1,
                ))
                truncated = True
                break
            if len(chain) >= self._max_depth:
                anomalies.append(Anomaly(
                    kind=CAUSE_DEPTH_EXCEEDED,
                    detail="Cause chain longer than " + str(self._max_depth)
                           + " records; truncated.",
                    depth=len(chain) - 1,
                ))
                truncated = True
                break
            visited.add(id(current))
            chain.append(current)
            current = current.cause

        resolved: List[Tuple[ResolvedFrame, ...]] = []
        for depth, item in enumerate(chain):
            frames = tuple(resolve_frame(raw, permutation) for raw in item.frames)
            if permutation is not None:
                for index, frame in enumerate(frames):
                    if not frame.resolved:
                        anomalies.append(Anomaly(
                            kind=UNRESOLVED_FRAME,
                            detail="Frame " + str(index) + " (" + frame.method_name
                                   + ") has no symbol map entry.",
                            depth=depth,
                        ))
            resolved.append(frames)

        record: Optional[ExceptionRecord] = None
        last = len(chain) - 1
        for depth in range(last, -1, -1):
            item = chain[depth]
            record = ExceptionRecord(
                designated_type=item.type_name,
                message=item.message,
                frames=resolved[depth],
                cause=record,
                truncated=truncated and depth == last,
            )
        return EncodeResult(record=record, anomalies=tuple(anomalies))

    # -----------------------------------------------------------------------
    # Wire
    # -----------------------------------------------------------------------

    def serialize(self, record: ExceptionRecord) -> bytes:
        """Wire envelope as ASCII-escaped JSON bytes."""
        payload = {
            "format_version": WIRE_FORMAT_VERSION,
            "record":         record_to_wire(record),
        }
        return json.dumps(payload, ensure_ascii=True).encode("utf-8")

    def decode(self, data: bytes) -> ExceptionRecord:
        """
        Pure deserialization of serialize() output. No resolution.

        Raises
        ------
        RecordDecodeError
            On invalid UTF-8, invalid JSON, a format version mismatch or
            any structural problem in the record.
        """
        if not isinstance(data, (bytes, bytearray)):
            raise RecordDecodeError("data", "must be bytes; got " + type(data).__name__)
        try:
            payload = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RecordDecodeError("data", "is not valid UTF-8 JSON: " + str(exc)) from exc
        if not isinstance(payload, dict):
            raise RecordDecodeError("data", "envelope must be a JSON object")
        version = payload.get("format_version")
        if version != WIRE_FORMAT_VERSION:
            raise RecordDecodeError(
                "format_version",
                "mismatch: expected " + WIRE_FORMAT_VERSION + ", got " + repr(version),
                version,
            )
        return record_from_wire(payload.get("record"), self._max_depth)
