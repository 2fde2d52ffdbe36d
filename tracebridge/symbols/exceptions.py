# =============================================================================
# tracebridge -- SYMBOL RESOLUTION & TRANSPORT
# File:   tracebridge/symbols/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Exception hierarchy shared by the symbol, transport and harness layers.
# All exceptions are pure value objects: no side effects, no logging,
# no I/O of any kind.
#
# EXCEPTION HIERARCHY
# -------------------
#   TraceBridgeError(Exception)                  -- base; never raised directly
#     SymbolMapError(TraceBridgeError)           -- malformed symbol map data
#     FrameValidationError(TraceBridgeError)     -- malformed frame coordinates
#     RegistryFrozenError(TraceBridgeError)      -- registration after load
#     RecordDecodeError(TraceBridgeError)        -- malformed wire record
#     TransportFailure(TraceBridgeError)         -- record could not be delivered
#
# Unresolved frames, unknown permutations and cyclic causes are NOT
# exceptions. They are reported as flags and anomalies; the trace is still
# produced.
#
# MESSAGE CONTRACT
# ----------------
# Every exception message is:
#   - Deterministic: identical inputs -> identical message string.
#   - Explicit: field name and violating value included where applicable.
#   - Non-empty.
#
# =============================================================================

from __future__ import annotations

from typing import Any


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class TraceBridgeError(Exception):
    """
    Base class for all tracebridge exceptions.

    Never raised directly. Use a concrete subclass.

    Attributes:
        field_name:  Name of the offending field, or empty string if not
                     applicable.
        value:       The offending value, or None.
        message:     Human-readable description. Always non-empty.
    """

    def __init__(
        self,
        message:    str,
        field_name: str = "",
        value:      Any = None,
    ) -> None:
        if not isinstance(message, str) or not message:
            raise ValueError(
                "TraceBridgeError: message must be a non-empty string"
            )
        if not isinstance(field_name, str):
            raise ValueError(
                "TraceBridgeError: field_name must be a string"
            )
        super().__init__(message)
        self.field_name: str = field_name
        self.value:      Any = value
        self.message:    str = message

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(field_name=" + repr(self.field_name)
            + ", value=" + repr(self.value)
            + ", message=" + repr(self.message)
            + ")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TraceBridgeError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.field_name == other.field_name
            and self.value == other.value
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((type(self), self.field_name, self.message))


# =============================================================================
# CONCRETE EXCEPTIONS
# =============================================================================

class SymbolMapError(TraceBridgeError):
    """
    Raised when symbol map data violates its contract: empty emitted
    symbol, negative position, missing coordinate, duplicate key.

    Message format:
        "SymbolMapError: field '<field_name>' <constraint>. Got: <value>."
    """

    def __init__(self, field_name: str, value: Any, constraint: str) -> None:
        if not field_name:
            raise ValueError(
                "SymbolMapError: field_name must be a non-empty string"
            )
        if not constraint:
            raise ValueError(
                "SymbolMapError: constraint must be a non-empty string"
            )
        message = (
            "SymbolMapError: field '"
            + field_name
            + "' "
            + constraint
            + ". Got: "
            + repr(value)
            + "."
        )
        super().__init__(message=message, field_name=field_name, value=value)
        self.constraint: str = constraint


class FrameValidationError(TraceBridgeError):
    """
    Raised when a raw or resolved frame is constructed with invalid
    coordinates (empty method identifier, non-integer line, ...).

    Message format:
        "FrameValidationError: field '<field_name>' <constraint>. Got: <value>."
    """

    def __init__(self, field_name: str, value: Any, constraint: str) -> None:
        if not field_name:
            raise ValueError(
                "FrameValidationError: field_name must be a non-empty string"
            )
        if not constraint:
            raise ValueError(
                "FrameValidationError: constraint must be a non-empty string"
            )
        message = (
            "FrameValidationError: field '"
            + field_name
            + "' "
            + constraint
            + ". Got: "
            + repr(value)
            + "."
        )
        super().__init__(message=message, field_name=field_name, value=value)
        self.constraint: str = constraint


class RegistryFrozenError(TraceBridgeError):
    """
    Raised when a permutation is registered after the registry finished
    loading. The registry is populated once and never mutated afterwards.
    """

    def __init__(self, fingerprint: str) -> None:
        message = (
            "RegistryFrozenError: cannot register permutation '"
            + str(fingerprint)
            + "'; the registry is frozen after load."
        )
        super().__init__(message=message, field_name="fingerprint", value=fingerprint)


class RecordDecodeError(TraceBridgeError):
    """
    Raised when a serialized exception record cannot be decoded.
    Decoding never performs resolution; this is a pure data failure.
    """

    def __init__(self, field_name: str, detail: str, value: Any = None) -> None:
        if not detail:
            raise ValueError(
                "RecordDecodeError: detail must be a non-empty string"
            )
        message = (
            "RecordDecodeError: "
            + (("field '" + field_name + "' ") if field_name else "")
            + detail
        )
        super().__init__(message=message, field_name=field_name, value=value)


class TransportFailure(TraceBridgeError):
    """
    Raised when an encoded record cannot be delivered across the boundary
    (connection lost, round trip timed out). Infrastructure trouble, not a
    test assertion outcome.

    Attributes:
        case_id: Identifier of the test case whose round trip failed.
        reason:  Short machine-friendly code (TIMEOUT, CONNECTION_LOST,
                 CANCELLED).
    """

    def __init__(self, case_id: str, reason: str, detail: str = "") -> None:
        if not reason:
            raise ValueError(
                "TransportFailure: reason must be a non-empty string"
            )
        message = (
            "TransportFailure: case '"
            + str(case_id)
            + "' "
            + reason
            + ((": " + detail) if detail else "")
        )
        super().__init__(message=message, field_name="case_id", value=case_id)
        self.case_id: str = case_id
        self.reason:  str = reason
