# tracebridge/core/logging_layer.py
# Layer: C02 -- Logging Layer
#
# Scope: Event-sourced logging for harness-side observations (case outcomes,
# deobfuscation anomalies, transport failures). Zero tolerance for lost
# events. No file IO. No global mutable state. All timestamps are
# caller-supplied. All hashes are deterministic.
#
# Canonical import:
#   from tracebridge.core.logging_layer import EventLogger, Event, EventFilter
#
# Dependencies: C01 (tracebridge.core.integrity_layer)
# Prohibited: datetime.now(), uuid, random, file IO, global mutable state

# ===========================================================================
# SECTION 1 -- STDLIB IMPORTS
# ===========================================================================

import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

# ===========================================================================
# SECTION 2 -- C01 DEPENDENCY
# ===========================================================================

from tracebridge.core.integrity_layer import _sha256_hex

# ===========================================================================
# SECTION 3 -- CONSTANTS
# ===========================================================================

# Sentinel strings used when numeric sanitization detects invalid values.
# The event is never silently dropped.
_NAN_SENTINEL: str = "NaN_DETECTED"
_INF_SENTINEL: str = "Inf_DETECTED"

# Field separator used inside hash preimage.
_HASH_SEP: str = "|"

# Event types emitted by tracebridge components.
EVENT_CASE_OUTCOME: str = "CASE_OUTCOME"
EVENT_ANOMALY: str = "ANOMALY"
EVENT_TRANSPORT_FAILURE: str = "TRANSPORT_FAILURE"
EVENT_REGISTRY_LOADED: str = "REGISTRY_LOADED"

# ===========================================================================
# SECTION 4 -- DATACLASSES: Event, EventFilter
# ===========================================================================

@dataclass(frozen=True)
class Event:
    """
    Immutable record of a single harness event.

    Fields
    ------
    id        : Deterministic string identifier derived from instance counter.
    type      : Category string (CASE_OUTCOME, ANOMALY, TRANSPORT_FAILURE, ...).
    timestamp : Caller-supplied datetime. Never generated internally.
    data      : Sanitized key-value payload.
    hash      : SHA-256 hex digest over (id, type, timestamp, data).
    """
    id: str
    type: str
    timestamp: datetime
    data: Dict[str, Any]
    hash: str


@dataclass
class EventFilter:
    """
    Filter specification for EventLogger.query_events().

    All fields are optional. Omitted fields apply no constraint.
    limit keeps the oldest matching events.
    """
    event_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    limit: Optional[int] = None


# ===========================================================================
# SECTION 5 -- INTERNAL HELPERS
# ===========================================================================

def _sanitize_numeric(value: Any) -> Any:
    """Replace float NaN or Inf with the appropriate sentinel string."""
    if isinstance(value, float):
        if math.isnan(value):
            return _NAN_SENTINEL
        if math.isinf(value):
            return _INF_SENTINEL
    return value


def _sanitize_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict with all float values sanitized. Input is not mutated."""
    return {k: _sanitize_numeric(v) for k, v in data.items()}


def _compute_hash(
    event_id: str,
    event_type: str,
    timestamp: datetime,
    data: Dict[str, Any],
) -> str:
    """
    Compute a deterministic SHA-256 hex digest for an event.

    Preimage: event_id | event_type | timestamp.isoformat() | repr(sorted(data))
    """
    sorted_items: str = repr(sorted(data.items()))
    preimage: str = (
        event_id
        + _HASH_SEP
        + event_type
        + _HASH_SEP
        + timestamp.isoformat()
        + _HASH_SEP
        + sorted_items
    )
    return _sha256_hex(preimage.encode("utf-8", errors="replace"))


def _make_event_id(counter: int) -> str:
    """Format: "EVT-{counter:016d}". Zero-padded for sort stability."""
    return "EVT-{:016d}".format(counter)


# ===========================================================================
# SECTION 6 -- EventLogger
# ===========================================================================

class EventLogger:
    """
    Event-sourced logger for harness observations.

    Storage
    -------
    Events are held in an instance-level list. No file IO. No global
    state. Each EventLogger instance is fully independent.

    Concurrency
    -----------
    Cases run concurrently may log into one shared logger; appends are
    serialized by an instance lock so ids stay gap-free and ordered.

    Zero lost events
    ----------------
    log_event() raises LoggingError on any invalid input instead of
    silently discarding the event.
    """

    def __init__(self) -> None:
        self._store: List[Event] = []
        self._counter: int = 0
        self._lock = threading.Lock()

    def log_event(self, event_type: str, data: Dict[str, Any], timestamp: datetime) -> str:
        """
        Record one event atomically. Return the assigned event ID.

        Raises
        ------
        LoggingError : If event_type is empty or timestamp is not a datetime.
        """
        if not event_type:
            raise LoggingError("event_type must be a non-empty string")
        if timestamp is None:
            raise LoggingError("timestamp must be caller-supplied; None is not permitted")
        if not isinstance(timestamp, datetime):
            raise LoggingError(
                "timestamp must be a datetime instance; got: {}".format(type(timestamp))
            )
        if data is None:
            raise LoggingError("data must be a dict; None is not permitted")

        sanitized: Dict[str, Any] = _sanitize_data(data)
        with self._lock:
            self._counter += 1
            event_id: str = _make_event_id(self._counter)
            event = Event(
                id=event_id,
                type=event_type,
                timestamp=timestamp,
                data=sanitized,
                hash=_compute_hash(event_id, event_type, timestamp, sanitized),
            )
            self._store.append(event)
        return event_id

    def log_anomaly(self, kind: str, detail: str, timestamp: datetime, **context: Any) -> str:
        """
        Log a data anomaly (unresolved frame, unknown permutation, cyclic
        cause, ...). Anomalies are reported, never raised.
        """
        if not kind:
            raise LoggingError("anomaly kind must be a non-empty string")
        data: Dict[str, Any] = {"kind": kind, "detail": detail}
        data.update(context)
        return self.log_event(EVENT_ANOMALY, data, timestamp)

    def query_events(self, filter: EventFilter) -> List[Event]:
        """
        Return events matching the filter, in insertion order.

        Raises
        ------
        LoggingError : If filter is None.
        """
        if filter is None:
            raise LoggingError("filter must not be None")

        with self._lock:
            snapshot: List[Event] = list(self._store)

        results: List[Event] = []
        for event in snapshot:
            if filter.event_type is not None and event.type != filter.event_type:
                continue
            if filter.start_time is not None and event.timestamp < filter.start_time:
                continue
            if filter.end_time is not None and event.timestamp > filter.end_time:
                continue
            results.append(event)

        if filter.limit is not None:
            results = results[: filter.limit]

        return results

    def get_event_stream(self, start_time: datetime) -> Iterator[Event]:
        """Yield events in insertion order starting from start_time (inclusive)."""
        if not isinstance(start_time, datetime):
            raise LoggingError(
                "start_time must be a datetime instance; got: {}".format(type(start_time))
            )
        with self._lock:
            snapshot: List[Event] = list(self._store)
        for event in snapshot:
            if event.timestamp >= start_time:
                yield event

    def event_count(self) -> int:
        with self._lock:
            return len(self._store)


# ===========================================================================
# SECTION 7 -- EXCEPTIONS
# ===========================================================================

class LoggingError(Exception):
    """
    Raised by EventLogger when an invariant is violated.

    Never silently swallowed. Silent failure is prohibited
    (zero lost events invariant).
    """
