# tracebridge/harness/harness_version.py
# Harness version constants. Single authoritative definition.
# Referenced by run_harness.py, the storage loaders, record_serializer.py
# and failure_handler.py for version stamping.
# A change to a format version requires a harness version increment.

from tracebridge.transport.codec import MAX_CAUSE_DEPTH, WIRE_FORMAT_VERSION

HARNESS_VERSION: str = "1.0.0"

# Storage format version for manifests, symbol maps, captures and run records.
STORAGE_FORMAT_VERSION: str = "1.0.0"

# Upper bound for one remote round trip, in seconds.
DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS: float = 30.0

__all__ = [
    "HARNESS_VERSION",
    "STORAGE_FORMAT_VERSION",
    "WIRE_FORMAT_VERSION",
    "MAX_CAUSE_DEPTH",
    "DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS",
]
