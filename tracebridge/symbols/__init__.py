from .exceptions import (
    FrameValidationError,
    RecordDecodeError,
    RegistryFrozenError,
    SymbolMapError,
    TraceBridgeError,
    TransportFailure,
)
from .domain import (
    LINE_NUMBER_UNKNOWN,
    UNKNOWN_DECLARING_TYPE,
    RawFrame,
    ResolvedFrame,
    SymbolMapEntry,
)
from .symbol_map import SymbolMap
from .registry import (
    Permutation,
    PermutationRegistry,
)
from .deobfuscator import (
    Deobfuscator,
    resolve_frame,
)

__all__ = [
    # Exceptions
    "TraceBridgeError",
    "SymbolMapError",
    "FrameValidationError",
    "RegistryFrozenError",
    "RecordDecodeError",
    "TransportFailure",
    # Constants
    "LINE_NUMBER_UNKNOWN",
    "UNKNOWN_DECLARING_TYPE",
    # Domain dataclasses
    "RawFrame",
    "ResolvedFrame",
    "SymbolMapEntry",
    # Tables
    "SymbolMap",
    "Permutation",
    "PermutationRegistry",
    # Resolution
    "Deobfuscator",
    "resolve_frame",
]
