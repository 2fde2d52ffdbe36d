# tracebridge/core/__init__.py
# Core layers: fingerprints, artifact integrity, event logging.
# Standard library only.

from tracebridge.core.integrity_layer import (
    ArtifactVerification,
    HashResult,
    IntegrityLayer,
    compute_fingerprint,
)
from tracebridge.core.logging_layer import (
    Event,
    EventFilter,
    EventLogger,
    LoggingError,
)

__all__ = [
    "ArtifactVerification",
    "HashResult",
    "IntegrityLayer",
    "compute_fingerprint",
    "Event",
    "EventFilter",
    "EventLogger",
    "LoggingError",
]
