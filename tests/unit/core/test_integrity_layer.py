# tests/unit/core/test_integrity_layer.py
# Target: tracebridge/core/integrity_layer.py
# No mocks, deterministic. Files only under tmp_path.

from __future__ import annotations

from hashlib import sha256
from pathlib import Path

import pytest

from tracebridge.core.integrity_layer import (
    FINGERPRINT_LENGTH,
    HashResult,
    IntegrityLayer,
    _canonical_json,
    _sha256_hex,
    compute_fingerprint,
)


def _write(path: Path, content: bytes) -> Path:
    path.write_bytes(content)
    return path


# =============================================================================
# Internal pure helpers
# =============================================================================

class TestSha256Hex:
    def test_empty_bytes(self):
        assert _sha256_hex(b"") == sha256(b"").hexdigest()

    def test_lowercase_64_chars(self):
        digest = _sha256_hex(b"symbols")
        assert len(digest) == 64
        assert digest == digest.lower()


class TestCanonicalJson:
    def test_keys_sorted_and_compact(self):
        assert _canonical_json({"b": "2", "a": "1"}) == '{"a":"1","b":"2"}'

    def test_insertion_order_irrelevant(self):
        assert _canonical_json({"x": "1", "y": "2"}) == _canonical_json({"y": "2", "x": "1"})


# =============================================================================
# Fingerprints
# =============================================================================

class TestComputeFingerprint:
    def test_known_value(self):
        # sha256('{"locale":"tr","user.agent":"gecko1_8"}')[:32], uppercased
        fp = compute_fingerprint({"locale": "tr", "user.agent": "gecko1_8"})
        assert fp == "527D86CF9D04D4742FDC1FB1C9F55DD8"

    def test_length_and_case(self):
        fp = compute_fingerprint({"locale": "default"})
        assert len(fp) == FINGERPRINT_LENGTH
        assert fp == fp.upper()

    def test_order_independent(self):
        a = compute_fingerprint({"locale": "tr", "user.agent": "gecko1_8"})
        b = compute_fingerprint({"user.agent": "gecko1_8", "locale": "tr"})
        assert a == b

    def test_different_properties_differ(self):
        assert compute_fingerprint({"locale": "tr"}) != compute_fingerprint({"locale": "de"})

    def test_values_coerced_to_str(self):
        assert compute_fingerprint({"debug": True}) == compute_fingerprint({"debug": "True"})

    def test_empty_mapping_is_valid(self):
        assert len(compute_fingerprint({})) == FINGERPRINT_LENGTH

    def test_non_mapping_raises(self):
        with pytest.raises(TypeError, match="mapping"):
            compute_fingerprint([("locale", "tr")])  # type: ignore[arg-type]

    def test_non_string_key_raises(self):
        with pytest.raises(TypeError, match="strings"):
            compute_fingerprint({1: "tr"})  # type: ignore[dict-item]


# =============================================================================
# IntegrityLayer
# =============================================================================

class TestHashFile:
    def test_hash_matches_sha256(self, tmp_path):
        content = b'{"entries": []}'
        path = _write(tmp_path / "map.json", content)
        result = IntegrityLayer().hash_file(path)
        assert isinstance(result, HashResult)
        assert result.hash_value == sha256(content).hexdigest()
        assert result.file_size == len(content)
        assert result.file_path == str(path)

    def test_large_file_chunked(self, tmp_path):
        content = b"x" * (8192 * 3 + 17)
        path = _write(tmp_path / "big.bin", content)
        assert IntegrityLayer().hash_file(path).hash_value == sha256(content).hexdigest()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            IntegrityLayer().hash_file(tmp_path / "absent.json")


class TestVerifyFile:
    def test_match(self, tmp_path):
        path = _write(tmp_path / "a.json", b"abc")
        assert IntegrityLayer().verify_file(path, sha256(b"abc").hexdigest())

    def test_match_is_case_insensitive(self, tmp_path):
        path = _write(tmp_path / "a.json", b"abc")
        assert IntegrityLayer().verify_file(path, sha256(b"abc").hexdigest().upper())

    def test_mismatch(self, tmp_path):
        path = _write(tmp_path / "a.json", b"abc")
        assert not IntegrityLayer().verify_file(path, sha256(b"abd").hexdigest())

    def test_missing(self, tmp_path):
        assert not IntegrityLayer().verify_file(tmp_path / "none", "00")


class TestVerifyArtifacts:
    def test_all_valid(self, tmp_path):
        a = _write(tmp_path / "a.json", b"a")
        b = _write(tmp_path / "b.json", b"b")
        result = IntegrityLayer().verify_artifacts({
            a: sha256(b"a").hexdigest(),
            b: sha256(b"b").hexdigest(),
        })
        assert result.valid
        assert result.errors == []

    def test_reports_every_failure(self, tmp_path):
        a = _write(tmp_path / "a.json", b"a")
        missing = tmp_path / "missing.json"
        result = IntegrityLayer().verify_artifacts({
            a: sha256(b"changed").hexdigest(),
            missing: "00",
        })
        assert not result.valid
        assert len(result.errors) == 2
        assert result.modified_files == [str(a)]
        assert result.missing_files == [str(missing)]
