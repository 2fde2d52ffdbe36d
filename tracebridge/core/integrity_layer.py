# tracebridge/core/integrity_layer.py
# Version: 1.0.0
# Layer: C01 -- Integrity / Fingerprint Layer
#
# =============================================================================
# SCOPE
# =============================================================================
#
# Permutation fingerprints and symbol map artifact hashing.
#
#   compute_fingerprint(properties)
#       Strong-name style identifier of a compiled permutation, derived only
#       from its build configuration (e.g. {"locale": "tr"}).
#   IntegrityLayer.hash_file / verify_file
#       SHA-256 over symbol map artifacts listed in a permutation manifest.
#
# IMPORT RULES:
#   tracebridge/core/ is permitted to import from standard library only.
#
# DETERMINISM GUARANTEES:
#   DET-01  No stochastic operations. No uuid, no os.urandom, no random.
#   DET-02  All inputs passed explicitly. No module-level mutable reads.
#   DET-03  hash_file() reads a file -- this is the sole permitted IO in
#           this module. All other functions are pure.
#   DET-04  All hashing is deterministic SHA-256 over canonical byte sequences.
#
# =============================================================================

from __future__ import annotations

import json
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Dict, List, Mapping


# Number of hex digits kept from the SHA-256 digest for a fingerprint.
# 32 hex digits = 128 bits, the width of a compiler strong name.
FINGERPRINT_LENGTH: int = 32


# =============================================================================
# SECTION 1: RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class HashResult:
    """
    Result of a single file hash computation.

    Attributes
    ----------
    file_path : str
        Absolute or relative path string of the hashed file.
    hash_value : str
        Lowercase 64-character hexadecimal SHA-256 digest.
    file_size : int
        Total bytes read from the file.
    """

    file_path: str
    hash_value: str
    file_size: int


@dataclass(frozen=True)
class ArtifactVerification:
    """
    Result of verifying a batch of symbol map artifacts.

    Attributes
    ----------
    valid : bool
        True only when zero errors are detected.
    errors : List[str]
        Human-readable error descriptions (one per failing artifact).
    modified_files : List[str]
        Paths whose current hash differs from the expected hash.
    missing_files : List[str]
        Paths that do not exist on disk.
    """

    valid: bool
    errors: List[str]
    modified_files: List[str]
    missing_files: List[str]


# =============================================================================
# SECTION 2: INTERNAL PURE HELPERS
# =============================================================================

def _sha256_hex(data: bytes) -> str:
    """
    Return the lowercase hex SHA-256 digest of the given bytes.

    Pure function. No IO. No side effects.
    """
    return sha256(data).hexdigest()


def _canonical_json(obj: Mapping) -> str:
    """
    Serialize a mapping to a canonical JSON string.

    Keys are sorted recursively. ensure_ascii=True (default) guarantees
    ASCII-only output. Separators are compact to eliminate whitespace
    variation.
    """
    return json.dumps(dict(obj), sort_keys=True, separators=(",", ":"))


# =============================================================================
# SECTION 3: FINGERPRINTS
# =============================================================================

def compute_fingerprint(properties: Mapping[str, str]) -> str:
    """
    Derive the permutation fingerprint for a build configuration.

    Computation:
        fingerprint = upper(SHA-256(canonical_json(properties))[:32])

    Insertion order of the mapping does not matter. Values are coerced to
    str so that {"debug": True} and {"debug": "True"} name the same
    permutation, matching how deferred-binding properties are declared.

    Parameters
    ----------
    properties : Mapping[str, str]
        Named build options, e.g. {"locale": "tr", "user.agent": "gecko1_8"}.
        An empty mapping is valid and names the default permutation.

    Returns
    -------
    str
        32-character uppercase hexadecimal fingerprint.

    Raises
    ------
    TypeError
        If properties is not a mapping or a key is not a string.
    """
    if not isinstance(properties, Mapping):
        raise TypeError(
            "properties must be a mapping; got: " + type(properties).__name__
        )
    normalized: Dict[str, str] = {}
    for key, value in properties.items():
        if not isinstance(key, str):
            raise TypeError("property names must be strings; got: " + repr(key))
        normalized[key] = str(value)
    digest: str = _sha256_hex(_canonical_json(normalized).encode("utf-8"))
    return digest[:FINGERPRINT_LENGTH].upper()


# =============================================================================
# SECTION 4: INTEGRITY LAYER
# =============================================================================

class IntegrityLayer:
    """
    Artifact hashing for symbol map files.

    This class is stateless. A new instance may be created freely at any
    call site without side effects.

    Methods
    -------
    hash_file(path)
        Compute SHA-256 of a file. Only method in this module that
        performs file IO.
    verify_file(path, expected_hash)
        Check a single file against an expected hash.
    verify_artifacts(expected)
        Verify a mapping of path -> expected hash.
    """

    def hash_file(self, path: Path) -> HashResult:
        """
        Compute the SHA-256 hash of a file.

        Reads in 8 KB chunks to bound memory usage on large symbol maps.

        Raises
        ------
        FileNotFoundError
            If the path does not exist.
        """
        if not path.exists():
            raise FileNotFoundError(
                "File not found: " + str(path)
            )

        hasher = sha256()
        file_size: int = 0

        with open(path, "rb") as fh:
            while True:
                chunk: bytes = fh.read(8192)
                if not chunk:
                    break
                hasher.update(chunk)
                file_size += len(chunk)

        return HashResult(
            file_path=str(path),
            hash_value=hasher.hexdigest(),
            file_size=file_size,
        )

    def verify_file(self, path: Path, expected_hash: str) -> bool:
        """
        Verify a single file against an expected SHA-256 hex digest.

        Returns False if the file is missing or the hash differs.
        Comparison is case-insensitive.
        """
        if not path.exists():
            return False
        result: HashResult = self.hash_file(path)
        return result.hash_value == expected_hash.lower()

    def verify_artifacts(self, expected: Mapping[Path, str]) -> ArtifactVerification:
        """
        Verify every artifact in expected (path -> SHA-256 hex digest).

        All artifacts are checked; the result lists every failure rather
        than stopping at the first one.
        """
        errors: List[str] = []
        modified: List[str] = []
        missing: List[str] = []

        for path, expected_hash in expected.items():
            if not path.exists():
                missing.append(str(path))
                errors.append("Missing artifact: " + str(path))
                continue
            actual: str = self.hash_file(path).hash_value
            if actual != expected_hash.lower():
                modified.append(str(path))
                errors.append(
                    "Hash mismatch for " + str(path)
                    + ": expected " + expected_hash.lower()
                    + ", got " + actual
                )

        return ArtifactVerification(
            valid=not errors,
            errors=errors,
            modified_files=modified,
            missing_files=missing,
        )
