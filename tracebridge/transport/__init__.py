# tracebridge/transport/__init__.py
# Exception transport: records, codec, remote channel.

from tracebridge.transport.exception_record import (
    ANOMALY_KINDS,
    CAUSE_DEPTH_EXCEEDED,
    CYCLIC_CAUSE,
    UNKNOWN_PERMUTATION,
    TRUNCATED_CAUSE,
    UNRESOLVED_FRAME,
    Anomaly,
    ExceptionRecord,
    RemoteThrowable,
    SerializableThrowable,
)
from tracebridge.transport.codec import (
    MAX_CAUSE_DEPTH,
    WIRE_FORMAT_VERSION,
    EncodeResult,
    ExceptionCodec,
    record_from_wire,
    record_to_wire,
)
from tracebridge.transport.channel import (
    REASON_CONNECTION_LOST,
    REASON_TIMEOUT,
    CallableChannel,
    ReplayChannel,
    RemoteChannel,
    round_trip,
)

__all__ = [
    "ANOMALY_KINDS",
    "CAUSE_DEPTH_EXCEEDED",
    "CYCLIC_CAUSE",
    "UNKNOWN_PERMUTATION",
    "TRUNCATED_CAUSE",
    "UNRESOLVED_FRAME",
    "Anomaly",
    "ExceptionRecord",
    "RemoteThrowable",
    "SerializableThrowable",
    "MAX_CAUSE_DEPTH",
    "WIRE_FORMAT_VERSION",
    "EncodeResult",
    "ExceptionCodec",
    "record_from_wire",
    "record_to_wire",
    "REASON_CONNECTION_LOST",
    "REASON_TIMEOUT",
    "CallableChannel",
    "ReplayChannel",
    "RemoteChannel",
    "round_trip",
]
