# tests/unit/harness/test_run_harness.py
# Target: tracebridge/harness/run_harness.py, tracebridge/harness/ci_gate.py
#
# main() is called in-process; every run ends in SystemExit.

import json
from pathlib import Path

import pytest

from tracebridge.harness import ci_gate
from tracebridge.harness.run_harness import _parse_args, main


SAMPLES_DIR = Path(__file__).resolve().parents[3] / "tracebridge" / "harness" / "samples"
MANIFEST = SAMPLES_DIR / "manifest.json"


def _exit_code(capture: Path, runs_dir: Path, *extra: str) -> int:
    argv = [
        "--manifest-path", str(MANIFEST),
        "--capture-path",  str(capture),
        "--runs-dir",      str(runs_dir),
        *extra,
    ]
    with pytest.raises(SystemExit) as info:
        main(argv)
    return info.value.code


def _write_capture(path: Path, throwables, expect) -> Path:
    path.write_text(json.dumps({
        "format_version": "1.0.0",
        "case_id": "adhoc",
        "fingerprint": "39624D3B90AC224BAE742DC182199323",
        "throwables": throwables,
        "expect": expect,
    }), encoding="utf-8")
    return path


class TestParseArgs:
    def test_defaults(self):
        args = _parse_args(["--manifest-path", "m", "--capture-path", "c", "--runs-dir", "r"])
        assert args.max_cause_depth == 32

    def test_required(self):
        with pytest.raises(SystemExit):
            _parse_args(["--manifest-path", "m"])


class TestSampleCaptures:
    @pytest.mark.parametrize("name", [
        "capture_stack_trace.json",
        "capture_stack_trace_with_cause.json",
        "capture_different_module.json",
        "capture_native_fragment.json",
    ])
    def test_sample_passes(self, tmp_path, capsys, name):
        assert _exit_code(SAMPLES_DIR / name, tmp_path) == 0
        assert "HARNESS RESULT: PASS" in capsys.readouterr().out

        pass_record = json.loads(next(tmp_path.glob("RUN-*_PASS_*.json")).read_text(encoding="utf-8"))
        assert pass_record["threw"] is True
        assert list(tmp_path.glob("RUN-*_RECORD_*.json"))

    def test_with_cause_pass_record(self, tmp_path):
        _exit_code(SAMPLES_DIR / "capture_stack_trace_with_cause.json", tmp_path)
        pass_record = json.loads(next(tmp_path.glob("RUN-*_PASS_*.json")).read_text(encoding="utf-8"))
        assert pass_record["cause_depth"] == 2
        assert pass_record["designated_type"] == "junit.framework.AssertionFailedError"
        assert pass_record["anomaly_count"] == 2
        assert pass_record["anomaly_kinds"] == ["UNRESOLVED_FRAME"]


class TestFailures:
    def test_missing_capture(self, tmp_path):
        assert _exit_code(tmp_path / "absent.json", tmp_path / "runs") == 2

    def test_invalid_max_depth(self, tmp_path):
        code = _exit_code(SAMPLES_DIR / "capture_stack_trace.json", tmp_path, "--max-cause-depth", "0")
        assert code == 3

    def test_truncated_chain_fails_asserter(self, tmp_path):
        code = _exit_code(
            SAMPLES_DIR / "capture_stack_trace_with_cause.json", tmp_path, "--max-cause-depth", "1",
        )
        assert code == 1
        record = json.loads(next(tmp_path.glob("RUN-*_FAIL_*.json")).read_text(encoding="utf-8"))
        assert record["failure_type_id"] == "ASSERTER_FAILURE"
        assert record["manifest_hash"]

    def test_unexpected_failure(self, tmp_path):
        capture = _write_capture(
            tmp_path / "capture.json",
            [{"type_name": "E", "message": "m", "frames": [{"emitted_symbol": "Zb", "position": 131}]}],
            None,
        )
        assert _exit_code(capture, tmp_path / "runs") == 1

    def test_missing_expected_failure(self, tmp_path):
        capture = _write_capture(tmp_path / "capture.json", [], {"expected": True})
        assert _exit_code(capture, tmp_path / "runs") == 1

    def test_no_throw_no_expectation_passes(self, tmp_path):
        capture = _write_capture(tmp_path / "capture.json", [], None)
        runs_dir = tmp_path / "runs"
        assert _exit_code(capture, runs_dir) == 0
        pass_record = json.loads(next(runs_dir.glob("RUN-*_PASS_*.json")).read_text(encoding="utf-8"))
        assert pass_record["threw"] is False
        assert pass_record["record_path"] is None

    def test_cyclic_capture_reports_anomaly(self, tmp_path):
        capture = _write_capture(
            tmp_path / "capture.json",
            [{"type_name": "A", "cause": 1}, {"type_name": "B", "cause": 0}],
            {"expected": True},
        )
        runs_dir = tmp_path / "runs"
        assert _exit_code(capture, runs_dir) == 0
        pass_record = json.loads(next(runs_dir.glob("RUN-*_PASS_*.json")).read_text(encoding="utf-8"))
        assert pass_record["cause_depth"] == 2
        assert pass_record["anomaly_kinds"] == ["CYCLIC_CAUSE"]

    def test_lone_surrogate_message_passes(self, tmp_path):
        message = json.loads('"x\\ud800"')
        capture = _write_capture(
            tmp_path / "capture.json",
            [{"type_name": "E", "message": message, "frames": [{"emitted_symbol": "Zb", "position": 131}]}],
            {"expected": True},
        )
        runs_dir = tmp_path / "runs"
        assert _exit_code(capture, runs_dir) == 0
        stored = json.loads(next(runs_dir.glob("RUN-*_RECORD_*.json")).read_text(encoding="utf-8"))
        assert stored["record"]["message"] == message

    def test_unwritable_runs_dir(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert _exit_code(SAMPLES_DIR / "capture_stack_trace.json", blocker / "runs") == 2


class TestCiGate:
    def test_sample_captures_found(self):
        names = [p.name for p in ci_gate.sample_captures()]
        assert "capture_stack_trace.json" in names
        assert all(n.startswith("capture_") for n in names)

    def test_all_pass(self, monkeypatch, capsys):
        calls = []

        def _fake(**kwargs):
            calls.append(kwargs["capture_path"])
            return 0

        monkeypatch.setattr("tracebridge.harness.ci_gate.run_harness", _fake)
        assert ci_gate.main() == 0
        assert len(calls) == len(ci_gate.sample_captures())
        assert "Merge permitted" in capsys.readouterr().out

    def test_any_failure_blocks(self, monkeypatch, capsys):
        monkeypatch.setattr(
            "tracebridge.harness.ci_gate.run_harness",
            lambda **kwargs: 1 if kwargs["capture_path"].endswith("capture_native_fragment.json") else 0,
        )
        assert ci_gate.main() == 1
        assert "capture_native_fragment.json result=1" in capsys.readouterr().err

    def test_no_captures(self):
        assert ci_gate.main(captures=[]) == 1
