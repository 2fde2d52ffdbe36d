# tracebridge/harness/storage/symbol_map_loader.py
# SymbolMapLoader -- loads the permutation manifest and every symbol map it
# lists into a PermutationRegistry. First stage of the harness pipeline.
#
# SML-01: Manifest missing or unparsable -> INTEGRITY_FAILURE.
# SML-02: format_version mismatch -> CONTRACT_VIOLATION.
# SML-03: Every listed symbol map must exist and match its sha256 ->
#         INTEGRITY_FAILURE listing every bad file.
# SML-04: Listed fingerprint must equal compute_fingerprint(properties) and
#         the fingerprint recorded inside the symbol map -> FINGERPRINT_MISMATCH.
# SML-05: Malformed entries -> DATA_CORRUPTION.
# SML-06: The registry is populated through load_once(); it is frozen when
#         this loader returns.
#
# Manifest:
#   {"format_version": "1.0.0",
#    "permutations": [{"fingerprint": "...", "properties": {...},
#                      "symbol_map": "relative/path.json", "sha256": "..."}]}
#
# Symbol map:
#   {"format_version": "1.0.0", "fingerprint": "...",
#    "entries": [{"emitted_symbol", "position", "declaring_type",
#                 "method_name", "source_file", "source_line"}]}

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from tracebridge.core.integrity_layer import IntegrityLayer, compute_fingerprint
from tracebridge.harness.harness_version import STORAGE_FORMAT_VERSION
from tracebridge.symbols.domain import SymbolMapEntry
from tracebridge.symbols.exceptions import SymbolMapError
from tracebridge.symbols.registry import Permutation, PermutationRegistry
from tracebridge.symbols.symbol_map import SymbolMap


_ENTRY_FIELDS = (
    "emitted_symbol",
    "position",
    "declaring_type",
    "method_name",
    "source_file",
    "source_line",
)


def _read_json(path: Path, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        raise RuntimeError(
            f"INTEGRITY_FAILURE: Failed to load or parse {what} {path}: {exc}"
        ) from exc


def _load_entry(d: Any, path: Path, index: int) -> SymbolMapEntry:
    if not isinstance(d, dict):
        raise RuntimeError(
            f"DATA_CORRUPTION: Entry {index} in {path} is not an object."
        )
    missing = [name for name in _ENTRY_FIELDS if name not in d]
    if missing:
        raise RuntimeError(
            f"DATA_CORRUPTION: Entry {index} in {path} is missing fields {missing}."
        )
    try:
        return SymbolMapEntry(**{name: d[name] for name in _ENTRY_FIELDS})
    except SymbolMapError as exc:
        raise RuntimeError(
            f"DATA_CORRUPTION: Entry {index} in {path}: {exc.message}"
        ) from exc


def load_symbol_map(path: Path, expected_fingerprint: str) -> SymbolMap:
    """
    Load one symbol map file.

    Raises RuntimeError with a failure_type_id prefix on any problem.
    """
    payload = _read_json(path, "symbol map")
    if not isinstance(payload, dict):
        raise RuntimeError(f"DATA_CORRUPTION: Symbol map {path} is not a JSON object.")
    if payload.get("format_version") != STORAGE_FORMAT_VERSION:
        raise RuntimeError(
            f"CONTRACT_VIOLATION: format_version mismatch in {path}. "
            f"File: {payload.get('format_version')}, "
            f"Expected: {STORAGE_FORMAT_VERSION}."
        )
    if payload.get("fingerprint") != expected_fingerprint:
        raise RuntimeError(
            f"FINGERPRINT_MISMATCH: Symbol map {path} records fingerprint "
            f"{payload.get('fingerprint')!r}; manifest lists {expected_fingerprint!r}."
        )
    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list):
        raise RuntimeError(f"DATA_CORRUPTION: 'entries' in {path} must be a list.")

    entries = [_load_entry(d, path, i) for i, d in enumerate(raw_entries)]
    try:
        return SymbolMap(entries)
    except SymbolMapError as exc:
        raise RuntimeError(f"DATA_CORRUPTION: Symbol map {path}: {exc.message}") from exc


class SymbolMapLoader:
    """
    Loads the manifest at manifest_path. Symbol map paths inside the
    manifest are resolved relative to the manifest's directory.

    On any failure: raises RuntimeError with failure_type_id as the first
    word of the message. The caller converts it into a FailureRecord.
    """

    def __init__(self, manifest_path: Path):
        self.manifest_path = manifest_path
        self._integrity = IntegrityLayer()

    def read_manifest(self) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Load and check the manifest header.

        Returns (manifest_hash, permutation_specs).
        """
        if not self.manifest_path.exists():
            raise RuntimeError(
                f"INTEGRITY_FAILURE: Permutation manifest not found at {self.manifest_path}."
            )
        manifest_hash = self._integrity.hash_file(self.manifest_path).hash_value
        payload = _read_json(self.manifest_path, "permutation manifest")
        if not isinstance(payload, dict):
            raise RuntimeError(
                f"DATA_CORRUPTION: Manifest {self.manifest_path} is not a JSON object."
            )
        if payload.get("format_version") != STORAGE_FORMAT_VERSION:
            raise RuntimeError(
                f"CONTRACT_VIOLATION: Manifest format_version mismatch. "
                f"File: {payload.get('format_version')}, "
                f"Expected: {STORAGE_FORMAT_VERSION}."
            )
        specs = payload.get("permutations")
        if not isinstance(specs, list) or not specs:
            raise RuntimeError(
                "DATA_CORRUPTION: Manifest 'permutations' must be a non-empty list."
            )
        for index, spec in enumerate(specs):
            if not isinstance(spec, dict):
                raise RuntimeError(f"DATA_CORRUPTION: Manifest permutation {index} is not an object.")
            for key in ("fingerprint", "properties", "symbol_map", "sha256"):
                if key not in spec:
                    raise RuntimeError(
                        f"DATA_CORRUPTION: Manifest permutation {index} is missing '{key}'."
                    )
            if not isinstance(spec["properties"], dict):
                raise RuntimeError(
                    f"DATA_CORRUPTION: Manifest permutation {index} 'properties' must be an object."
                )
            if not isinstance(spec["fingerprint"], str):
                raise RuntimeError(
                    f"DATA_CORRUPTION: Manifest permutation {index} 'fingerprint' must be a string."
                )
            for key in ("symbol_map", "sha256"):
                if not isinstance(spec[key], str) or not spec[key]:
                    raise RuntimeError(
                        f"DATA_CORRUPTION: Manifest permutation {index} '{key}' must be a non-empty string."
                    )
        return manifest_hash, specs

    def load(self, registry: PermutationRegistry) -> str:
        """
        Populate registry from the manifest and freeze it.

        Returns the manifest SHA-256. If registry was already loaded, the
        files are still verified but the registry is left untouched.
        """
        manifest_hash, specs = self.read_manifest()
        base_dir = self.manifest_path.parent

        # SML-03: verify all artifacts first, report every failure.
        expected = {base_dir / spec["symbol_map"]: str(spec["sha256"]) for spec in specs}
        verification = self._integrity.verify_artifacts(expected)
        if not verification.valid:
            raise RuntimeError(
                "INTEGRITY_FAILURE: " + "; ".join(verification.errors)
            )

        # SML-04
        for spec in specs:
            computed = compute_fingerprint(spec["properties"])
            if computed != spec["fingerprint"]:
                raise RuntimeError(
                    f"FINGERPRINT_MISMATCH: Manifest lists {spec['fingerprint']!r} for "
                    f"properties {spec['properties']!r}; computed {computed!r}."
                )

        def _populate(target: PermutationRegistry) -> None:
            for spec in specs:
                symbol_map = load_symbol_map(base_dir / spec["symbol_map"], spec["fingerprint"])
                try:
                    target.register(Permutation(
                        fingerprint=spec["fingerprint"],
                        properties=spec["properties"],
                        symbol_map=symbol_map,
                    ))
                except SymbolMapError as exc:
                    raise RuntimeError(f"DATA_CORRUPTION: Manifest: {exc.message}") from exc

        registry.load_once(_populate)
        return manifest_hash
