from .case_outcome import (
    STATUS_FAILED,
    STATUS_INFRASTRUCTURE_ERROR,
    STATUS_PASSED,
    CaseOutcome,
)
from .failure_record import FAILURE_TYPES, FailureRecord

__all__ = [
    "STATUS_FAILED",
    "STATUS_INFRASTRUCTURE_ERROR",
    "STATUS_PASSED",
    "CaseOutcome",
    "FAILURE_TYPES",
    "FailureRecord",
]
