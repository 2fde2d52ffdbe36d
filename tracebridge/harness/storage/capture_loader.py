# tracebridge/harness/storage/capture_loader.py
# CaptureLoader -- loads what the remote side reported for one case: the
# executing permutation, the raw thrown error graph and the declared
# expectation.
#
# CAP-01: File missing or unparsable -> INTEGRITY_FAILURE.
# CAP-02: format_version mismatch -> CONTRACT_VIOLATION.
# CAP-03: Malformed throwable, frame or expectation -> DATA_CORRUPTION.
# CAP-04: "cause" is an index into "throwables"; cycles are allowed and are
#         handed to the codec as-is.
#
# Capture:
#   {"format_version": "1.0.0", "case_id": "...", "fingerprint": "...",
#    "throwables": [{"type_name", "message", "frames": [...], "cause": int|null}],
#    "expect": null | {"expected": bool, "exact_depth": bool,
#                      "chain": [{"designated_type", "message_prefix",
#                                 "frames": [{"declaring_type", "method_name",
#                                             "source_file", "source_line"}]}]}}
#
# "throwables" empty means the case completed without throwing; index 0 is
# the thrown error otherwise.

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from tracebridge.harness.expectations import (
    ChainAsserter,
    ExpectedFailure,
    ExpectedFrame,
    ExpectedLink,
)
from tracebridge.harness.harness_version import STORAGE_FORMAT_VERSION
from tracebridge.symbols.domain import LINE_NUMBER_UNKNOWN, UNKNOWN_DECLARING_TYPE, RawFrame
from tracebridge.symbols.exceptions import FrameValidationError
from tracebridge.transport.exception_record import RemoteThrowable


@dataclass(frozen=True)
class Capture:
    """
    One captured case.

    Fields:
      case_id     -- Case identifier.
      fingerprint -- Permutation the case ran in.
      throwable   -- Raw thrown error graph, or None if nothing was thrown.
      expectation -- Declared expectation, or None (not expected to throw).
    """
    case_id:     str
    fingerprint: str
    throwable:   Optional[RemoteThrowable]
    expectation: Optional[ExpectedFailure]


def _load_frame(d: Any, where: str) -> RawFrame:
    if not isinstance(d, dict) or "emitted_symbol" not in d:
        raise RuntimeError(f"DATA_CORRUPTION: {where} must be an object with 'emitted_symbol'.")
    try:
        return RawFrame(
            emitted_symbol=d["emitted_symbol"],
            position=d.get("position"),
            is_native_fragment=d.get("is_native_fragment", False),
            declaring_type=d.get("declaring_type", UNKNOWN_DECLARING_TYPE),
            source_file=d.get("source_file"),
            source_line=d.get("source_line", LINE_NUMBER_UNKNOWN),
        )
    except FrameValidationError as exc:
        raise RuntimeError(f"DATA_CORRUPTION: {where}: {exc.message}") from exc


def _load_throwables(raw: Any) -> Optional[RemoteThrowable]:
    if not isinstance(raw, list):
        raise RuntimeError("DATA_CORRUPTION: 'throwables' must be a list.")
    if not raw:
        return None

    nodes: List[RemoteThrowable] = []
    for i, d in enumerate(raw):
        if not isinstance(d, dict):
            raise RuntimeError(f"DATA_CORRUPTION: throwables[{i}] is not an object.")
        type_name = d.get("type_name")
        if not isinstance(type_name, str) or not type_name:
            raise RuntimeError(
                f"DATA_CORRUPTION: throwables[{i}].type_name must be a non-empty string."
            )
        message = d.get("message")
        if message is not None and not isinstance(message, str):
            raise RuntimeError(f"DATA_CORRUPTION: throwables[{i}].message must be a string or null.")
        frames = d.get("frames", [])
        if not isinstance(frames, list):
            raise RuntimeError(f"DATA_CORRUPTION: throwables[{i}].frames must be a list.")
        nodes.append(RemoteThrowable(
            type_name=type_name,
            message=message,
            frames=[_load_frame(f, f"throwables[{i}].frames[{j}]") for j, f in enumerate(frames)],
        ))

    # CAP-04
    for i, d in enumerate(raw):
        cause = d.get("cause")
        if cause is None:
            continue
        if isinstance(cause, bool) or not isinstance(cause, int) or not 0 <= cause < len(nodes):
            raise RuntimeError(
                f"DATA_CORRUPTION: throwables[{i}].cause must be null or an index "
                f"in [0, {len(nodes) - 1}]; got {cause!r}."
            )
        nodes[i].cause = nodes[cause]
    return nodes[0]


def _load_expectation(raw: Any) -> Optional[ExpectedFailure]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RuntimeError("DATA_CORRUPTION: 'expect' must be an object or null.")
    expected = raw.get("expected", True)
    if not isinstance(expected, bool):
        raise RuntimeError("DATA_CORRUPTION: 'expect.expected' must be a bool.")
    chain = raw.get("chain")
    if chain is None:
        return ExpectedFailure(expected=expected)
    if not isinstance(chain, list):
        raise RuntimeError("DATA_CORRUPTION: 'expect.chain' must be a list.")

    links: List[ExpectedLink] = []
    for i, link in enumerate(chain):
        try:
            links.append(ExpectedLink(
                designated_type=link["designated_type"],
                message_prefix=link.get("message_prefix"),
                frames=tuple(
                    ExpectedFrame(
                        declaring_type=f["declaring_type"],
                        method_name=f["method_name"],
                        source_file=f["source_file"],
                        source_line=f["source_line"],
                    )
                    for f in link.get("frames", [])
                ),
            ))
        except (KeyError, TypeError, AttributeError) as exc:
            raise RuntimeError(
                f"DATA_CORRUPTION: 'expect.chain[{i}]' is malformed: {exc!r}"
            ) from exc
    return ExpectedFailure(
        expected=expected,
        asserter=ChainAsserter(links, exact_depth=bool(raw.get("exact_depth", False))),
    )


class CaptureLoader:
    """
    Loads a capture file.

    On any failure: raises RuntimeError with failure_type_id as the first
    word of the message.
    """

    def load(self, filepath: Path) -> Capture:
        if not filepath.exists():
            raise RuntimeError(f"INTEGRITY_FAILURE: Capture file not found: {filepath}")
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as exc:
            raise RuntimeError(
                f"INTEGRITY_FAILURE: Failed to load capture file {filepath}: {exc}"
            ) from exc

        if not isinstance(payload, dict):
            raise RuntimeError(f"DATA_CORRUPTION: Capture {filepath} is not a JSON object.")
        if payload.get("format_version") != STORAGE_FORMAT_VERSION:
            raise RuntimeError(
                f"CONTRACT_VIOLATION: Capture format_version mismatch. "
                f"File: {payload.get('format_version')}, "
                f"Expected: {STORAGE_FORMAT_VERSION}."
            )
        case_id = payload.get("case_id")
        fingerprint = payload.get("fingerprint")
        if not isinstance(case_id, str) or not case_id:
            raise RuntimeError("DATA_CORRUPTION: 'case_id' must be a non-empty string.")
        if not isinstance(fingerprint, str) or not fingerprint:
            raise RuntimeError("DATA_CORRUPTION: 'fingerprint' must be a non-empty string.")

        return Capture(
            case_id=case_id,
            fingerprint=fingerprint,
            throwable=_load_throwables(payload.get("throwables")),
            expectation=_load_expectation(payload.get("expect")),
        )
