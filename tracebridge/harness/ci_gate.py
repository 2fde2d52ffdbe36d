#!/usr/bin/env python3
# =============================================================================
# tracebridge -- HARNESS CI GATE
# File:   tracebridge/harness/ci_gate.py
# =============================================================================
#
# PURPOSE
# -------
# CI enforcement script. Runs the trace resolution harness over every
# bundled sample capture and exits with code 0 (PASS) or 1 (FAIL / ERROR).
#
# Intended for CI integration:
#   python -m tracebridge.harness.ci_gate
#
# Exit codes:
#   0 -- every sample capture resolved and met its expectation.
#   1 -- at least one harness run failed: CI must block merge.
#
# No I/O beyond stdout/stderr and the runs/ directory (via run_harness).
# =============================================================================

from __future__ import annotations

import pathlib
import sys
from typing import Optional, Sequence

from tracebridge.harness.run_harness import run_harness


_SAMPLES_DIR   = pathlib.Path(__file__).parent / "samples"
_MANIFEST_PATH = _SAMPLES_DIR / "manifest.json"
_RUNS_DIR      = pathlib.Path(__file__).parent / "runs"


def sample_captures() -> list:
    """Bundled capture files, sorted by name."""
    return sorted(_SAMPLES_DIR.glob("capture_*.json"))


def main(
    captures: Optional[Sequence[pathlib.Path]] = None,
    runs_dir: Optional[pathlib.Path] = None,
) -> int:
    """
    Run the harness once per capture and return the gate exit code.

    Returns:
        0 if every run exited 0.
        1 if any run failed, no capture was found, or an exception occurs.
    """
    try:
        captures = list(captures) if captures is not None else sample_captures()
        if not captures:
            print("CI-GATE ERROR: no capture files found.", file=sys.stderr)
            return 1

        failed = []
        for capture in captures:
            result = run_harness(
                manifest_path=str(_MANIFEST_PATH),
                capture_path=str(capture),
                runs_dir=str(runs_dir if runs_dir is not None else _RUNS_DIR),
            )
            if result != 0:
                failed.append((capture.name, result))

        if not failed:
            print(f"CI-GATE: {len(captures)} capture(s) result=PASS. Merge permitted.")
            return 0
        for name, result in failed:
            print(f"CI-GATE: {name} result={result}.", file=sys.stderr)
        print("CI-GATE: Merge BLOCKED.", file=sys.stderr)
        return 1

    except Exception as exc:  # noqa: BLE001
        print(f"CI-GATE EXCEPTION: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
