# tests/unit/harness/test_failure_handler.py
# Target: tracebridge/harness/failure_handler.py

import json

import pytest

from tracebridge.harness import FAILURE_TYPES, FailureHandler
from tracebridge.harness.failure_handler import failure_type_of


class TestFailureTypeOf:
    @pytest.mark.parametrize("failure_type", sorted(FAILURE_TYPES))
    def test_known_prefixes(self, failure_type):
        assert failure_type_of(RuntimeError(failure_type + ": detail")) == failure_type

    def test_unknown_prefix(self):
        assert failure_type_of(RuntimeError("something odd")) == "HARNESS_INTERNAL_ERROR"

    def test_prefix_must_be_whole_word(self):
        assert failure_type_of(RuntimeError("DATA_CORRUPTIONX: x")) == "HARNESS_INTERNAL_ERROR"


class TestHandle:
    def test_exit_code_and_record(self, tmp_path, capsys):
        fh = FailureHandler(tmp_path, "RUN-1", fingerprint="FP", manifest_hash="abc")
        with pytest.raises(SystemExit) as info:
            fh.handle("ASSERTER_FAILURE", "wrong line", case_id="c1")
        assert info.value.code == 1

        files = list(tmp_path.glob("RUN-1_FAIL_*.json"))
        assert len(files) == 1
        record = json.loads(files[0].read_text(encoding="utf-8"))
        assert record["failure_type_id"] == "ASSERTER_FAILURE"
        assert record["exit_code"] == 1
        assert record["case_id"] == "c1"
        assert record["fingerprint"] == "FP"
        assert record["manifest_hash"] == "abc"
        assert record["detail"] == "wrong line"

        out = capsys.readouterr().out
        assert "HARNESS RESULT: FAIL" in out
        assert "ASSERTER_FAILURE" in out

    @pytest.mark.parametrize("failure_type, code", [
        ("INTEGRITY_FAILURE", 2),
        ("FINGERPRINT_MISMATCH", 2),
        ("DATA_CORRUPTION", 3),
        ("TRANSPORT_FAILURE", 4),
        ("NOT_A_KNOWN_TYPE", 4),
    ])
    def test_exit_codes(self, tmp_path, failure_type, code):
        with pytest.raises(SystemExit) as info:
            FailureHandler(tmp_path, "RUN-2").handle(failure_type, "x")
        assert info.value.code == code

    def test_creates_runs_dir(self, tmp_path):
        runs_dir = tmp_path / "nested" / "runs"
        with pytest.raises(SystemExit):
            FailureHandler(runs_dir, "RUN-3").handle("DATA_CORRUPTION", "x")
        assert list(runs_dir.glob("*.json"))

    def test_unwritable_dir_exits_4(self, tmp_path, capsys):
        blocker = tmp_path / "file"
        blocker.write_text("not a dir")
        with pytest.raises(SystemExit) as info:
            FailureHandler(blocker / "runs", "RUN-4").handle("DATA_CORRUPTION", "boom")
        assert info.value.code == 4
        assert "Original failure: DATA_CORRUPTION -- boom" in capsys.readouterr().err

    def test_lone_surrogate_detail(self, tmp_path, capsys):
        detail = json.loads('"message x\\ud800"')
        with pytest.raises(SystemExit) as info:
            FailureHandler(tmp_path, "RUN-7").handle("ASSERTER_FAILURE", detail)
        assert info.value.code == 1
        record = json.loads(next(tmp_path.glob("RUN-7_FAIL_*.json")).read_text(encoding="utf-8"))
        assert record["detail"] == detail
        assert "message x\\ud800" in capsys.readouterr().out

    def test_handle_from_exception(self, tmp_path):
        fh = FailureHandler(tmp_path, "RUN-5")
        with pytest.raises(SystemExit) as info:
            fh.handle_from_exception(RuntimeError("FINGERPRINT_MISMATCH: listed X, computed Y"))
        assert info.value.code == 2
        record = json.loads(next(tmp_path.glob("RUN-5_FAIL_*.json")).read_text(encoding="utf-8"))
        assert record["detail"].startswith("FINGERPRINT_MISMATCH")

    def test_build_record(self, tmp_path):
        record = FailureHandler(tmp_path, "RUN-6").build_record("CONTRACT_VIOLATION", "bad", field_name="f")
        assert record.exit_code == 3
        assert record.field_name == "f"
        assert record.run_id == "RUN-6"
