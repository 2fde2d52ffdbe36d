# =============================================================================
# tracebridge -- SYMBOL RESOLUTION
# File:   tracebridge/symbols/registry.py
# =============================================================================
#
# SCOPE
# -----
# Permutation and PermutationRegistry: an arena of immutable symbol maps
# indexed by permutation fingerprint.
#
# LIFECYCLE
# ---------
#   LOADING  register() accepted. Happens once per process, normally inside
#            load_once(), which holds the initialization guard.
#   FROZEN   register() raises RegistryFrozenError. resolve_permutation()
#            reads an immutable mapping and takes no lock.
#
# The only shared mutable state in the resolution core is the loading-phase
# dict; it is replaced by a MappingProxyType snapshot at freeze time.
# =============================================================================

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from tracebridge.core.integrity_layer import compute_fingerprint
from .exceptions import RegistryFrozenError, SymbolMapError
from .symbol_map import SymbolMap


@dataclass(frozen=True)
class Permutation:
    """
    One compiled variant of the program.

    fingerprint -- stable identifier derived from the build configuration.
    properties  -- the configuration itself (read-only view).
    symbol_map  -- the variant's symbol table.
    """

    fingerprint: str
    properties:  Mapping[str, str] = field(compare=False)
    symbol_map:  SymbolMap = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.fingerprint, str) or not self.fingerprint:
            raise SymbolMapError(
                field_name="fingerprint",
                value=self.fingerprint,
                constraint="must be a non-empty string",
            )
        if not isinstance(self.symbol_map, SymbolMap):
            raise SymbolMapError(
                field_name="symbol_map",
                value=self.symbol_map,
                constraint="must be a SymbolMap instance",
            )
        object.__setattr__(
            self, "properties", MappingProxyType(dict(self.properties))
        )

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], symbol_map: SymbolMap) -> "Permutation":
        """Build a permutation whose fingerprint is derived from properties."""
        return cls(
            fingerprint=compute_fingerprint(properties),
            properties=properties,
            symbol_map=symbol_map,
        )


class PermutationRegistry:
    """
    Fingerprint -> Permutation arena, populated once, then frozen.

    Usage
    -----
        registry = PermutationRegistry()
        registry.load_once(lambda reg: reg.register(permutation))
        permutation = registry.resolve_permutation(fingerprint)
    """

    def __init__(self, permutations: Iterable[Permutation] = ()) -> None:
        self._guard = threading.RLock()
        self._loading: Dict[str, Permutation] = {}
        self._frozen: Optional[Mapping[str, Permutation]] = None
        initial = tuple(permutations)
        if initial:
            for permutation in initial:
                self.register(permutation)
            self.freeze()

    # -------------------------------------------------------------------------
    # Loading phase
    # -------------------------------------------------------------------------

    def register(self, permutation: Permutation) -> None:
        """
        Add a permutation. Only valid before freeze().

        Raises
        ------
        RegistryFrozenError
            If the registry has already been frozen.
        SymbolMapError
            If a different permutation with the same fingerprint exists.
        """
        with self._guard:
            if self._frozen is not None:
                raise RegistryFrozenError(permutation.fingerprint)
            existing = self._loading.get(permutation.fingerprint)
            if existing is not None and existing is not permutation:
                raise SymbolMapError(
                    field_name="fingerprint",
                    value=permutation.fingerprint,
                    constraint="must be registered at most once",
                )
            self._loading[permutation.fingerprint] = permutation

    def freeze(self) -> None:
        """End the loading phase. Idempotent."""
        with self._guard:
            if self._frozen is None:
                self._frozen = MappingProxyType(dict(self._loading))
                self._loading = {}

    def load_once(self, loader: Callable[["PermutationRegistry"], None]) -> bool:
        """
        Run loader under the initialization guard, then freeze.

        Concurrent callers block until the first load completes; only the
        first caller's loader runs. Returns True if this call performed the
        load. If the loader raises, the registry stays in the loading phase
        and the exception propagates.
        """
        if self._frozen is not None:
            return False
        with self._guard:
            if self._frozen is not None:
                return False
            loader(self)
            self.freeze()
            return True

    # -------------------------------------------------------------------------
    # Frozen phase
    # -------------------------------------------------------------------------

    @property
    def is_frozen(self) -> bool:
        return self._frozen is not None

    def resolve_permutation(self, fingerprint: str) -> Optional[Permutation]:
        """
        Return the permutation registered under fingerprint, or None
        (NotFound). Lock-free once frozen.
        """
        frozen = self._frozen
        if frozen is None:
            with self._guard:
                frozen = self._frozen
                if frozen is None:
                    return self._loading.get(fingerprint)
        return frozen.get(fingerprint)

    def resolve_properties(self, properties: Mapping[str, str]) -> Optional[Permutation]:
        """Resolve by build configuration instead of fingerprint."""
        return self.resolve_permutation(compute_fingerprint(properties))

    def fingerprints(self) -> Tuple[str, ...]:
        frozen = self._frozen
        source = frozen if frozen is not None else self._loading
        return tuple(sorted(source))

    def __len__(self) -> int:
        return len(self.fingerprints())

    def __contains__(self, fingerprint: object) -> bool:
        return isinstance(fingerprint, str) and self.resolve_permutation(fingerprint) is not None
