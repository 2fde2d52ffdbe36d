# =============================================================================
# tracebridge -- SYMBOL RESOLUTION
# File:   tracebridge/symbols/deobfuscator.py
# =============================================================================
#
# SCOPE
# -----
# Resolves raw frames observed in a compiled permutation back to source
# coordinates.
#
# POLICY (per frame, in this fixed order)
# ---------------------------------------
#   P1  Native fragment: no lookup. The fragment's emitted method identifier,
#       file and line are returned as-is, flagged native. The symbol map is
#       not consulted even when it has an entry for the identifier.
#   P2  Symbol map hit on a positioned entry: entry coordinates exactly.
#   P3  Symbol map hit on a wildcard entry: entry type, method and file; the
#       line is the raw frame's recorded line when known, otherwise the
#       entry's declaration line.
#   P4  Miss or unknown permutation: raw identifiers passed through,
#       flagged unresolved. Never raised.
#
# A trace keeps its original order (innermost first). No reordering,
# deduplication or truncation.
#
# Pure and stateless apart from the read-only registry reference.
# =============================================================================

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .domain import RawFrame, ResolvedFrame
from .registry import Permutation, PermutationRegistry


def resolve_frame(raw: RawFrame, permutation: Optional[Permutation]) -> ResolvedFrame:
    """
    Resolve one raw frame against one permutation (P1-P4).

    permutation None means the executing permutation is unknown; every
    non-native frame is then returned unresolved.
    """
    # P1
    if raw.is_native_fragment:
        return ResolvedFrame(
            declaring_type=raw.declaring_type,
            method_name=raw.emitted_symbol,
            source_file=raw.source_file,
            source_line=raw.source_line,
            resolved=True,
            native=True,
        )

    if permutation is None:
        return ResolvedFrame.unresolved(raw)

    entry = permutation.symbol_map.find_entry(raw.emitted_symbol, raw.position)

    # P4
    if entry is None:
        return ResolvedFrame.unresolved(raw)

    # P2
    if entry.position is not None:
        return ResolvedFrame.from_entry(entry)

    # P3
    line = raw.source_line if raw.source_line > 0 else entry.source_line
    return ResolvedFrame.from_entry(entry, source_line=line)


class Deobfuscator:
    """
    Frame resolver bound to a permutation registry.

    The registry must be loaded before the first concurrent call; after
    that, any number of threads may share one Deobfuscator.
    """

    def __init__(self, registry: PermutationRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> PermutationRegistry:
        return self._registry

    def permutation_for(self, fingerprint: Optional[str]) -> Optional[Permutation]:
        if not fingerprint:
            return None
        return self._registry.resolve_permutation(fingerprint)

    def deobfuscate(self, raw_frame: RawFrame, fingerprint: Optional[str]) -> ResolvedFrame:
        """Resolve a single frame produced by the permutation named fingerprint."""
        return resolve_frame(raw_frame, self.permutation_for(fingerprint))

    def deobfuscate_trace(
        self,
        raw_frames:  Iterable[RawFrame],
        fingerprint: Optional[str],
    ) -> Tuple[ResolvedFrame, ...]:
        """Resolve every frame of a trace, preserving order."""
        permutation = self.permutation_for(fingerprint)
        return tuple(resolve_frame(raw, permutation) for raw in raw_frames)
