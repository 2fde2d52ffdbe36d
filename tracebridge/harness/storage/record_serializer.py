# tracebridge/harness/storage/record_serializer.py
# RecordSerializer -- writes reconstructed ExceptionRecords to the runs
# directory and reads them back.
#
# RSF-01: The record is stored in its wire form (record_to_wire), so a
#         stored record and a transported record are the same document.
# RSF-02: File name format: {run_id}_RECORD_{case_id}_{timestamp}.json
# RSF-03: runs directory created if it does not exist.
# RSF-04: load() validates format_version and harness_version and never
#         re-runs resolution.

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Tuple

from tracebridge.harness.harness_version import HARNESS_VERSION, STORAGE_FORMAT_VERSION
from tracebridge.symbols.exceptions import RecordDecodeError
from tracebridge.transport.codec import MAX_CAUSE_DEPTH, record_from_wire, record_to_wire
from tracebridge.transport.exception_record import Anomaly, ExceptionRecord


_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def _anomaly_dict(a: Anomaly) -> dict:
    return {"kind": a.kind, "detail": a.detail, "depth": a.depth}


class RecordSerializer:
    """
    Stores one record per file together with the case metadata and the
    anomalies reported while it was built.
    """

    def serialize(
        self,
        record:      ExceptionRecord,
        runs_dir:    Path,
        run_id:      str,
        case_id:     str,
        fingerprint: str,
        anomalies:   Iterable[Anomaly] = (),
    ) -> Path:
        """Write record to a JSON file in runs_dir. Returns its path."""
        runs_dir.mkdir(parents=True, exist_ok=True)

        ts       = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        filename = f"{run_id}_RECORD_{_UNSAFE.sub('_', case_id)}_{ts}.json"
        filepath = runs_dir / filename

        payload = {
            "format_version":  STORAGE_FORMAT_VERSION,
            "harness_version": HARNESS_VERSION,
            "run_id":          run_id,
            "case_id":         case_id,
            "fingerprint":     fingerprint,
            "anomalies":       [_anomaly_dict(a) for a in anomalies],
            "record":          record_to_wire(record),
        }

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=True)

        return filepath

    def load(self, filepath: Path, max_depth: int = MAX_CAUSE_DEPTH) -> Tuple[str, ExceptionRecord]:
        """
        Load a stored record. Returns (case_id, record).

        Raises RuntimeError with a failure_type_id prefix on any problem.
        """
        if not filepath.exists():
            raise RuntimeError(f"INTEGRITY_FAILURE: Record file not found: {filepath}")
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as exc:
            raise RuntimeError(
                f"DATA_CORRUPTION: Failed to load record file {filepath}: {exc}"
            ) from exc

        if not isinstance(payload, dict):
            raise RuntimeError(f"DATA_CORRUPTION: Record file {filepath} is not a JSON object.")
        if payload.get("format_version") != STORAGE_FORMAT_VERSION:
            raise RuntimeError(
                f"DATA_CORRUPTION: format_version mismatch. "
                f"File: {payload.get('format_version')}, "
                f"Expected: {STORAGE_FORMAT_VERSION}."
            )
        if payload.get("harness_version") != HARNESS_VERSION:
            raise RuntimeError(
                f"DATA_CORRUPTION: harness_version mismatch. "
                f"File: {payload.get('harness_version')}, "
                f"Expected: {HARNESS_VERSION}."
            )
        try:
            record = record_from_wire(payload.get("record"), max_depth)
        except RecordDecodeError as exc:
            raise RuntimeError(f"DATA_CORRUPTION: {exc.message}") from exc
        return str(payload.get("case_id", "")), record
