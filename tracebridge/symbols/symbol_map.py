# =============================================================================
# tracebridge -- SYMBOL RESOLUTION
# File:   tracebridge/symbols/symbol_map.py
# =============================================================================
#
# SCOPE
# -----
# SymbolMap: the immutable per-permutation table from emitted symbols and
# positions to original source coordinates. This module owns lookup only;
# producing the table from compiler output is the build's job.
#
# LOOKUP ORDER
# ------------
#   L1  Positioned entries of the symbol. The entry with the greatest
#       position <= the requested position wins (range semantics: an entry
#       covers its position up to the next entry of the same symbol).
#   L2  The symbol's wildcard entry (position None).
#   L3  Unresolved (None).
#
# Positioned entries are held per symbol in a sorted, read-only int64 array
# built once at construction; L1 is a single np.searchsorted call.
#
# CONCURRENCY
# -----------
# A SymbolMap is never mutated after __init__ returns. lookup() is a pure
# function of its inputs and safe for unbounded concurrent readers.
# =============================================================================

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from .domain import ResolvedFrame, SymbolMapEntry
from .exceptions import SymbolMapError


class _SymbolTable:
    """Entries of one emitted symbol. Read-only after construction."""

    __slots__ = ("positions", "entries", "wildcard")

    def __init__(
        self,
        positioned: List[SymbolMapEntry],
        wildcard:   Optional[SymbolMapEntry],
    ) -> None:
        ordered = sorted(positioned, key=lambda e: e.position)
        positions = np.array([e.position for e in ordered], dtype=np.int64)
        positions.flags.writeable = False
        self.positions: np.ndarray = positions
        self.entries: Tuple[SymbolMapEntry, ...] = tuple(ordered)
        self.wildcard: Optional[SymbolMapEntry] = wildcard

    def find(self, position: Optional[int]) -> Optional[SymbolMapEntry]:
        if position is not None and self.positions.size:
            idx = int(np.searchsorted(self.positions, position, side="right")) - 1
            if idx >= 0:
                return self.entries[idx]
        return self.wildcard


class SymbolMap:
    """
    Immutable symbol table of one compiled permutation.

    Parameters
    ----------
    entries : Iterable[SymbolMapEntry]
        Table rows. (emitted_symbol, position) keys must be unique.

    Raises
    ------
    SymbolMapError
        On a duplicate key or a non-SymbolMapEntry row.
    """

    def __init__(self, entries: Iterable[SymbolMapEntry]) -> None:
        positioned: Dict[str, List[SymbolMapEntry]] = {}
        wildcards: Dict[str, SymbolMapEntry] = {}
        seen: set = set()
        count = 0

        for entry in entries:
            if not isinstance(entry, SymbolMapEntry):
                raise SymbolMapError(
                    field_name="entries",
                    value=entry,
                    constraint="must contain only SymbolMapEntry instances",
                )
            if entry.key in seen:
                raise SymbolMapError(
                    field_name="emitted_symbol",
                    value=entry.key,
                    constraint="(emitted_symbol, position) must be unique",
                )
            seen.add(entry.key)
            count += 1
            if entry.position is None:
                wildcards[entry.emitted_symbol] = entry
            else:
                positioned.setdefault(entry.emitted_symbol, []).append(entry)

        tables: Dict[str, _SymbolTable] = {}
        for symbol in set(positioned) | set(wildcards):
            tables[symbol] = _SymbolTable(
                positioned.get(symbol, []),
                wildcards.get(symbol),
            )

        self._tables: Mapping[str, _SymbolTable] = MappingProxyType(tables)
        self._size: int = count

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find_entry(self, emitted_symbol: str, position: Optional[int]) -> Optional[SymbolMapEntry]:
        """Return the matching entry (L1, then L2), or None."""
        table = self._tables.get(emitted_symbol)
        if table is None:
            return None
        return table.find(position)

    def lookup(self, emitted_symbol: str, position: Optional[int]) -> Optional[ResolvedFrame]:
        """
        Resolve (emitted_symbol, position) to original source coordinates.

        Returns None when the symbol is not in this table (Unresolved).
        Pure. No mutation.
        """
        entry = self.find_entry(emitted_symbol, position)
        if entry is None:
            return None
        return ResolvedFrame.from_entry(entry)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return self._size

    def __contains__(self, emitted_symbol: object) -> bool:
        return emitted_symbol in self._tables

    def symbols(self) -> Tuple[str, ...]:
        return tuple(sorted(self._tables))

    def entries(self) -> Iterator[SymbolMapEntry]:
        """Yield all entries, grouped by symbol, wildcard first."""
        for symbol in self.symbols():
            table = self._tables[symbol]
            if table.wildcard is not None:
                yield table.wildcard
            yield from table.entries

    def __repr__(self) -> str:
        return "SymbolMap(symbols=" + str(len(self._tables)) + ", entries=" + str(self._size) + ")"
