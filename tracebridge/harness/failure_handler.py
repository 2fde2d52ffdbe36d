# tracebridge/harness/failure_handler.py
# FailureHandler -- hard failure policy enforcement for the harness.
#
# HFP-01: Exit with non-zero exit code on any hard failure.
# HFP-02: sys.exit is the last operation.
# HFP-03: No catch-and-continue. No retry. No fallback.
# HFP-04: Stdout contains only the pass/fail summary.
# HFP-05: If FailureHandler itself fails, write partial record to stderr and exit 4.

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from tracebridge.harness.data_models.failure_record import FailureRecord, FAILURE_TYPES
from tracebridge.harness.harness_version import HARNESS_VERSION


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _printable(text: str) -> str:
    return text.encode("utf-8", errors="backslashreplace").decode("utf-8")


def failure_type_of(exc: BaseException) -> str:
    """
    Parse the failure_type_id prefix of a harness RuntimeError message.

    Convention: "FAILURE_TYPE_ID: detail". Unknown prefixes map to
    HARNESS_INTERNAL_ERROR.
    """
    msg = str(exc)
    for known_type in FAILURE_TYPES:
        if msg.startswith(known_type + ":") or msg.startswith(known_type + " "):
            return known_type
    return "HARNESS_INTERNAL_ERROR"


class FailureHandler:
    """
    On any hard failure:
      1. Construct FailureRecord.
      2. Write FailureRecord JSON to runs directory.
      3. Print failure summary to stdout.
      4. Call sys.exit(exit_code).
    """

    def __init__(
        self,
        runs_dir:      Path,
        run_id:        str,
        fingerprint:   str = "",
        manifest_hash: str = "",
    ):
        self._runs_dir      = runs_dir
        self._run_id        = run_id
        self.fingerprint    = fingerprint
        self.manifest_hash  = manifest_hash

    def build_record(
        self,
        failure_type_id: str,
        detail:          str,
        case_id:         str = "",
        field_name:      str = "",
    ) -> FailureRecord:
        return FailureRecord(
            failure_type_id=failure_type_id,
            exit_code=FAILURE_TYPES.get(failure_type_id, 4),
            case_id=case_id,
            field_name=field_name,
            detected_at_iso=_now_iso(),
            run_id=self._run_id,
            harness_version=HARNESS_VERSION,
            fingerprint=self.fingerprint,
            manifest_hash=self.manifest_hash,
            detail=detail,
        )

    def handle(
        self,
        failure_type_id: str,
        detail:          str,
        case_id:         str = "",
        field_name:      str = "",
    ) -> None:
        """Execute the hard failure policy. This method does not return."""
        record = self.build_record(failure_type_id, detail, case_id, field_name)

        record_dict = {
            "failure_type_id": record.failure_type_id,
            "exit_code":       record.exit_code,
            "case_id":         record.case_id,
            "field_name":      record.field_name,
            "detected_at_iso": record.detected_at_iso,
            "run_id":          record.run_id,
            "harness_version": record.harness_version,
            "fingerprint":     record.fingerprint,
            "manifest_hash":   record.manifest_hash,
            "detail":          record.detail,
        }

        try:
            self._runs_dir.mkdir(parents=True, exist_ok=True)
            ts_compact = record.detected_at_iso.replace(":", "").replace("-", "").replace("+", "Z")[:16]
            filepath   = self._runs_dir / f"{self._run_id}_FAIL_{ts_compact}.json"

            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(record_dict, f, indent=4, ensure_ascii=True)

            print(
                f"HARNESS RESULT: FAIL\n"
                f"Failure type:   {failure_type_id}\n"
                f"Exit code:      {record.exit_code}\n"
                f"Case:           {case_id or '(not applicable)'}\n"
                f"Detail:         {_printable(detail[:200])}\n"
                f"Record written: {filepath}"
            )

        except OSError as exc:
            # HFP-05
            sys.stderr.write(
                f"HARNESS_INTERNAL_ERROR: FailureHandler failed to write record: {exc}\n"
                f"Original failure: {failure_type_id} -- {_printable(detail)}\n"
            )
            sys.exit(4)

        sys.exit(record.exit_code)

    def handle_from_exception(self, exc: BaseException, case_id: str = "") -> None:
        """Parse failure_type_id from a harness RuntimeError and invoke handle()."""
        self.handle(
            failure_type_id=failure_type_of(exc),
            detail=str(exc),
            case_id=case_id,
        )
