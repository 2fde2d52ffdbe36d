# tracebridge/harness/data_models/failure_record.py
# FailureRecord data class and failure type registry.

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# FAILURE TYPE REGISTRY
# ---------------------------------------------------------------------------
# Exit code mapping:
#   Code 1 -- test outcome failures (expectation routing)
#   Code 2 -- INTEGRITY_FAILURE, FINGERPRINT_MISMATCH (artifact problems)
#   Code 3 -- DATA_CORRUPTION, CONTRACT_VIOLATION
#   Code 4 -- Internal harness errors and transport failures

FAILURE_TYPES = {
    # Exit Code 1
    "UNEXPECTED_FAILURE":        1,    # raised, no expectation declared
    "MISSING_EXPECTED_FAILURE":  1,    # expectation declared, nothing raised
    "ASSERTER_FAILURE":          1,    # custom asserter rejected the record
    # Exit Code 2
    "INTEGRITY_FAILURE":         2,    # missing or modified artifact
    "FINGERPRINT_MISMATCH":      2,    # listed fingerprint != computed
    # Exit Code 3
    "DATA_CORRUPTION":           3,    # malformed JSON / record
    "CONTRACT_VIOLATION":        3,    # bad CLI arguments, version mismatch
    # Exit Code 4
    "HARNESS_INTERNAL_ERROR":    4,
    "TRANSPORT_FAILURE":         4,    # round trip timed out / connection lost
}


@dataclass
class FailureRecord:
    """
    Failure record written to disk by the Failure Handler on any hard failure.

    All fields are mandatory. Written as JSON to the runs directory.
    The record is write-once and immutable after the run completes.

    Fields:
      failure_type_id  -- Key from FAILURE_TYPES registry.
      exit_code        -- Integer exit code (1-4).
      case_id          -- Case that triggered the failure. Empty if not applicable.
      field_name       -- Field involved in the failure. Empty if not applicable.
      detected_at_iso  -- UTC ISO-8601 timestamp of failure detection.
      run_id           -- Run identifier for this harness invocation.
      harness_version  -- HARNESS_VERSION at time of failure.
      fingerprint      -- Permutation fingerprint of the capture, if known.
      manifest_hash    -- Manifest hash observed at run start.
      detail           -- Human-readable failure description.
    """
    failure_type_id: str
    exit_code:       int
    case_id:         str
    field_name:      str
    detected_at_iso: str
    run_id:          str
    harness_version: str
    fingerprint:     str
    manifest_hash:   str
    detail:          str
