# tracebridge/harness/run_harness.py
# Trace Resolution Harness -- Entry Point.
#
# Resolves one captured remote failure against the permutation symbol maps,
# transports it through the exception codec and routes the reconstructed
# record against the case's declared expectation.
#
# Standard invocation:
#   python -m tracebridge.harness.run_harness \
#       --manifest-path tracebridge/harness/samples/manifest.json \
#       --capture-path tracebridge/harness/samples/capture_stack_trace.json \
#       --runs-dir runs
#
# EXIT CODES (HFP-01):
#   0  -- Case outcome PASSED.
#   1  -- UNEXPECTED_FAILURE, MISSING_EXPECTED_FAILURE or ASSERTER_FAILURE.
#   2  -- INTEGRITY_FAILURE or FINGERPRINT_MISMATCH (symbol map artifacts).
#   3  -- DATA_CORRUPTION or CONTRACT_VIOLATION.
#   4  -- Internal harness error or TRANSPORT_FAILURE.
#
# Pipeline:
#   SML (SymbolMapLoader) -> CAP (CaptureLoader) -> ENC (ExceptionCodec)
#   -> RS (RecordSerializer) -> CR (CaseRunner over a ReplayChannel)
#   FH (FailureHandler) -- invoked only on failure

import argparse
import asyncio
import json
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from tracebridge.core.logging_layer import EVENT_REGISTRY_LOADED, EventLogger
from tracebridge.harness.case_runner import CaseRunner, HarnessCase
from tracebridge.harness.expectations import ExpectationRegistry
from tracebridge.harness.failure_handler import FailureHandler
from tracebridge.harness.harness_version import HARNESS_VERSION, MAX_CAUSE_DEPTH
from tracebridge.harness.storage.capture_loader import CaptureLoader
from tracebridge.harness.storage.record_serializer import RecordSerializer
from tracebridge.harness.storage.symbol_map_loader import SymbolMapLoader
from tracebridge.symbols.deobfuscator import Deobfuscator
from tracebridge.symbols.registry import PermutationRegistry
from tracebridge.transport.channel import ReplayChannel
from tracebridge.transport.codec import ExceptionCodec


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="tracebridge Trace Resolution Harness v" + HARNESS_VERSION,
        prog="python -m tracebridge.harness.run_harness",
    )
    parser.add_argument(
        "--manifest-path",
        required=True,
        help="Path to the permutation manifest JSON.",
    )
    parser.add_argument(
        "--capture-path",
        required=True,
        help="Path to the raw capture JSON reported by the remote side.",
    )
    parser.add_argument(
        "--runs-dir",
        required=True,
        help="Directory for output run records.",
    )
    parser.add_argument(
        "--max-cause-depth",
        type=int,
        default=MAX_CAUSE_DEPTH,
        help="Maximum number of records in one cause chain (default: %(default)s).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main harness pipeline.

    On pass: writes a pass record, prints summary and exits 0.
    On any failure: FailureHandler invokes sys.exit(non-zero).
    """
    args     = _parse_args(argv)
    run_id   = "RUN-" + _now().strftime("%Y%m%d") + "-" + str(uuid.uuid4())[:8].upper()
    runs_dir = Path(args.runs_dir)
    logger   = EventLogger()

    # Verify runs directory write access before pipeline begins.
    try:
        runs_dir.mkdir(parents=True, exist_ok=True)
        test_file = runs_dir / f".write_test_{run_id}"
        test_file.touch()
        test_file.unlink()
    except OSError as exc:
        sys.stderr.write(
            f"INTEGRITY_FAILURE: Cannot write to runs directory {runs_dir}: {exc}\n"
        )
        sys.exit(2)

    fh = FailureHandler(runs_dir=runs_dir, run_id=run_id)

    if args.max_cause_depth < 1:
        fh.handle(
            failure_type_id="CONTRACT_VIOLATION",
            detail=f"--max-cause-depth must be >= 1. Received: {args.max_cause_depth}.",
            field_name="max_cause_depth",
        )

    # -----------------------------------------------------------------------
    # STAGE 1: SYMBOL MAP LOADER (SML) -- must complete before any other stage.
    # -----------------------------------------------------------------------
    registry = PermutationRegistry()
    try:
        manifest_hash = SymbolMapLoader(Path(args.manifest_path)).load(registry)
    except RuntimeError as exc:
        fh.handle_from_exception(exc)
    fh.manifest_hash = manifest_hash
    logger.log_event(
        EVENT_REGISTRY_LOADED,
        {"manifest_hash": manifest_hash, "permutations": len(registry)},
        _now(),
    )

    # -----------------------------------------------------------------------
    # STAGE 2: CAPTURE LOADER (CAP)
    # -----------------------------------------------------------------------
    try:
        capture = CaptureLoader().load(Path(args.capture_path))
    except RuntimeError as exc:
        fh.handle_from_exception(exc)
    fh.fingerprint = capture.fingerprint

    # -----------------------------------------------------------------------
    # STAGE 3: ENCODE (ENC) and STAGE 4: RECORD SERIALIZER (RS)
    # -----------------------------------------------------------------------
    codec       = ExceptionCodec(Deobfuscator(registry), max_depth=args.max_cause_depth)
    payload     = None
    record_path = None
    anomalies   = ()
    if capture.throwable is not None:
        result    = codec.encode_with_report(capture.throwable, capture.fingerprint)
        anomalies = result.anomalies
        for anomaly in anomalies:
            logger.log_anomaly(
                anomaly.kind, anomaly.detail, _now(),
                case_id=capture.case_id, depth=anomaly.depth,
            )
        payload = codec.serialize(result.record)
        try:
            record_path = RecordSerializer().serialize(
                result.record, runs_dir, run_id,
                capture.case_id, capture.fingerprint, anomalies,
            )
        except OSError as exc:
            fh.handle("HARNESS_INTERNAL_ERROR", f"Failed to write exception record: {exc}",
                      case_id=capture.case_id)

    # -----------------------------------------------------------------------
    # STAGE 5: CASE RUNNER (CR) -- decode and expectation routing.
    # -----------------------------------------------------------------------
    expectations = ExpectationRegistry()
    if capture.expectation is not None:
        expectations.declare(capture.case_id, capture.expectation)
    runner = CaseRunner(
        channel=ReplayChannel({capture.case_id: payload}),
        codec=codec,
        expectations=expectations,
        logger=logger,
    )
    outcome = asyncio.run(runner.run(HarnessCase(capture.case_id, capture.fingerprint)))

    if not outcome.passed:
        fh.handle(
            failure_type_id=outcome.failure_type_id,
            detail=outcome.detail,
            case_id=outcome.case_id,
        )

    # -----------------------------------------------------------------------
    # PASS: Write pass record and exit 0.
    # -----------------------------------------------------------------------
    ts = _now().isoformat()
    pass_record = {
        "result":          "PASS",
        "run_id":          run_id,
        "harness_version": HARNESS_VERSION,
        "manifest_hash":   manifest_hash,
        "case_id":         capture.case_id,
        "fingerprint":     capture.fingerprint,
        "threw":           outcome.record is not None,
        "designated_type": outcome.record.designated_type if outcome.record else None,
        "cause_depth":     outcome.record.depth() if outcome.record else 0,
        "anomaly_count":   len(anomalies),
        "anomaly_kinds":   sorted({a.kind for a in anomalies}),
        "event_count":     logger.event_count(),
        "record_path":     str(record_path) if record_path else None,
        "timestamp_iso":   ts,
    }

    ts_compact = ts.replace(":", "").replace("-", "")[:16]
    pass_filepath = runs_dir / f"{run_id}_PASS_{ts_compact}.json"
    try:
        with open(pass_filepath, "w", encoding="utf-8") as f:
            json.dump(pass_record, f, indent=4)
    except OSError as exc:
        fh.handle("HARNESS_INTERNAL_ERROR", f"Failed to write pass record: {exc}")

    # Stdout contains only the pass/fail summary.
    print(
        f"HARNESS RESULT: PASS\n"
        f"Run ID:          {run_id}\n"
        f"Harness version: {HARNESS_VERSION}\n"
        f"Case:            {capture.case_id}\n"
        f"Permutation:     {capture.fingerprint}\n"
        f"Anomalies:       {len(anomalies)}\n"
        f"Manifest hash:   {manifest_hash[:16]}...\n"
        f"Pass record:     {pass_filepath}\n"
        f"Timestamp:       {ts}"
    )
    sys.exit(0)


def run_harness(
    manifest_path:   str,
    capture_path:    str,
    runs_dir:        str,
    max_cause_depth: Optional[int] = None,
) -> int:
    """
    Programmatic entry point.

    Executes the harness exactly as if invoked via:
        python -m tracebridge.harness.run_harness \
            --manifest-path <manifest_path> \
            --capture-path <capture_path> \
            --runs-dir <runs_dir>

    Runs the module in a child process, preserving all exit-code semantics.

    Returns:
        int: Process exit code from the harness subprocess (0-4).
    """
    import subprocess

    cmd = [
        sys.executable,
        "-m", "tracebridge.harness.run_harness",
        "--manifest-path", manifest_path,
        "--capture-path",  capture_path,
        "--runs-dir",      runs_dir,
    ]
    if max_cause_depth is not None:
        cmd += ["--max-cause-depth", str(max_cause_depth)]
    proc = subprocess.run(cmd)
    return proc.returncode


if __name__ == "__main__":
    main()
