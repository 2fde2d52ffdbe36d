# =============================================================================
# tracebridge -- SYMBOL RESOLUTION
# File:   tracebridge/symbols/domain.py
# =============================================================================
#
# SCOPE
# -----
# Frozen domain dataclasses for stack frame resolution:
#   SymbolMapEntry -- one row of a permutation's symbol table.
#   RawFrame       -- a frame as observed at the throw site.
#   ResolvedFrame  -- a frame expressed in original source coordinates.
#
# No lookup logic here. No IO.
#
# VALIDATION PHILOSOPHY
# ---------------------
# Validation is fail-fast in __post_init__, in declaration order:
#   V1  Type     -- str / int / bool / None where declared.
#   V2  Range    -- non-empty identifiers, position >= 0, line >= -1.
# There is NO silent coercion anywhere in this module.
#
# LINE NUMBERS
# ------------
# LINE_NUMBER_UNKNOWN (-1) marks a frame whose line was not recorded at the
# throw site (line recording disabled in the compiled permutation).
#
# INVARIANTS ENFORCED
# -------------------
# SymbolMapEntry
#   INV-SE-01  emitted_symbol, declaring_type, method_name non-empty strings.
#   INV-SE-02  position is None or an int >= 0.
#   INV-SE-03  source_file is a non-empty string.
#   INV-SE-04  source_line is an int >= 1 (entries always carry a real line).
# RawFrame
#   INV-RF-01  emitted_symbol non-empty string.
#   INV-RF-02  position is None or an int >= 0.
#   INV-RF-03  is_native_fragment is a bool.
#   INV-RF-04  source_file is None or a string; source_line int >= -1.
# ResolvedFrame
#   INV-RS-01  declaring_type, method_name non-empty strings.
#   INV-RS-02  source_file None or string; source_line int >= -1.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .exceptions import FrameValidationError, SymbolMapError


LINE_NUMBER_UNKNOWN: int = -1
UNKNOWN_DECLARING_TYPE: str = "Unknown"


# =============================================================================
# SECTION 1 -- INTERNAL VALIDATION HELPERS
# =============================================================================

def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_identifier(error_cls, field_name: str, value: object) -> None:
    """V1 + V2: value must be a non-empty string."""
    if not isinstance(value, str) or not value:
        raise error_cls(
            field_name=field_name,
            value=value,
            constraint="must be a non-empty string",
        )


def _check_position(error_cls, field_name: str, value: object) -> None:
    """V1 + V2: value must be None or an int >= 0."""
    if value is None:
        return
    if not _is_int(value) or value < 0:
        raise error_cls(
            field_name=field_name,
            value=value,
            constraint="must be None or an integer >= 0",
        )


def _check_optional_file(error_cls, field_name: str, value: object) -> None:
    if value is not None and not isinstance(value, str):
        raise error_cls(
            field_name=field_name,
            value=value,
            constraint="must be None or a string",
        )


def _check_line(error_cls, field_name: str, value: object, minimum: int) -> None:
    if not _is_int(value) or value < minimum:
        raise error_cls(
            field_name=field_name,
            value=value,
            constraint="must be an integer >= " + str(minimum),
        )


# =============================================================================
# SECTION 2 -- SYMBOL MAP ENTRY
# =============================================================================

@dataclass(frozen=True)
class SymbolMapEntry:
    """
    One row of a permutation's symbol table.

    (emitted_symbol, position) -> (declaring_type, method_name,
                                   source_file, source_line)

    position None means the entry applies to every position of the symbol;
    its source_line is then the method declaration line.
    """

    emitted_symbol: str
    position:       Optional[int]
    declaring_type: str
    method_name:    str
    source_file:    str
    source_line:    int

    def __post_init__(self) -> None:
        _check_identifier(SymbolMapError, "emitted_symbol", self.emitted_symbol)
        _check_position(SymbolMapError, "position", self.position)
        _check_identifier(SymbolMapError, "declaring_type", self.declaring_type)
        _check_identifier(SymbolMapError, "method_name", self.method_name)
        _check_identifier(SymbolMapError, "source_file", self.source_file)
        _check_line(SymbolMapError, "source_line", self.source_line, 1)

    @property
    def key(self) -> Tuple[str, Optional[int]]:
        return (self.emitted_symbol, self.position)


# =============================================================================
# SECTION 3 -- RAW FRAME
# =============================================================================

@dataclass(frozen=True)
class RawFrame:
    """
    A stack frame as observed at the throw site in the executing permutation.

    emitted_symbol is the compiled (possibly obfuscated) function name.
    For native fragment frames it is the method identifier the compiler
    emitted for the fragment, and source_file/source_line are the
    fragment's own synthetic coordinates, which are trusted verbatim.
    """

    emitted_symbol:     str
    position:           Optional[int] = None
    is_native_fragment: bool = False
    declaring_type:     str = UNKNOWN_DECLARING_TYPE
    source_file:        Optional[str] = None
    source_line:        int = LINE_NUMBER_UNKNOWN

    def __post_init__(self) -> None:
        _check_identifier(FrameValidationError, "emitted_symbol", self.emitted_symbol)
        _check_position(FrameValidationError, "position", self.position)
        if not isinstance(self.is_native_fragment, bool):
            raise FrameValidationError(
                field_name="is_native_fragment",
                value=self.is_native_fragment,
                constraint="must be a bool",
            )
        _check_identifier(FrameValidationError, "declaring_type", self.declaring_type)
        _check_optional_file(FrameValidationError, "source_file", self.source_file)
        _check_line(FrameValidationError, "source_line", self.source_line, LINE_NUMBER_UNKNOWN)


# =============================================================================
# SECTION 4 -- RESOLVED FRAME
# =============================================================================

@dataclass(frozen=True)
class ResolvedFrame:
    """
    A frame in original source coordinates.

    resolved -- False when no symbol map entry matched; the frame then
                carries the raw emitted identifiers unchanged.
    native   -- True for native fragment frames passed through verbatim.
    """

    declaring_type: str
    method_name:    str
    source_file:    Optional[str]
    source_line:    int
    resolved:       bool = True
    native:         bool = False

    def __post_init__(self) -> None:
        _check_identifier(FrameValidationError, "declaring_type", self.declaring_type)
        _check_identifier(FrameValidationError, "method_name", self.method_name)
        _check_optional_file(FrameValidationError, "source_file", self.source_file)
        _check_line(FrameValidationError, "source_line", self.source_line, LINE_NUMBER_UNKNOWN)

    @classmethod
    def from_entry(cls, entry: SymbolMapEntry, source_line: Optional[int] = None) -> "ResolvedFrame":
        return cls(
            declaring_type=entry.declaring_type,
            method_name=entry.method_name,
            source_file=entry.source_file,
            source_line=entry.source_line if source_line is None else source_line,
        )

    @classmethod
    def unresolved(cls, raw: RawFrame) -> "ResolvedFrame":
        """Pass the raw emitted identifiers through, flagged as unresolved."""
        return cls(
            declaring_type=raw.declaring_type,
            method_name=raw.emitted_symbol,
            source_file=raw.source_file,
            source_line=raw.source_line,
            resolved=False,
        )

    def coordinates(self) -> Tuple[str, str, Optional[str], int]:
        return (self.declaring_type, self.method_name, self.source_file, self.source_line)

    def __str__(self) -> str:
        location = (
            "Unknown Source" if self.source_file is None
            else self.source_file if self.source_line < 0
            else self.source_file + ":" + str(self.source_line)
        )
        return self.declaring_type + "." + self.method_name + "(" + location + ")"
