# tests/conftest.py
# Shared fixtures: two permutations of one program (default locale and
# locale "tr") whose symbol maps use different emitted symbols for the
# same source methods.

import pytest

from tracebridge.symbols import (
    Deobfuscator,
    Permutation,
    PermutationRegistry,
    RawFrame,
    SymbolMap,
    SymbolMapEntry,
)
from tracebridge.transport import ExceptionCodec, RemoteThrowable


CLASS_NAME = "com.example.client.StackTraceCase"
FILE_NAME = "StackTraceCase.java"
FAILURE_TYPE = "junit.framework.AssertionFailedError"
CAUSE_TYPE = "java.lang.RuntimeException"

DEFAULT_PROPERTIES = {"locale": "default", "user.agent": "gecko1_8"}
TR_PROPERTIES = {"locale": "tr", "user.agent": "gecko1_8"}


def _entry(symbol, position, method, line, declaring_type=CLASS_NAME, source_file=FILE_NAME):
    return SymbolMapEntry(
        emitted_symbol=symbol,
        position=position,
        declaring_type=declaring_type,
        method_name=method,
        source_file=source_file,
        source_line=line,
    )


@pytest.fixture
def default_entries():
    return [
        _entry("Zb", 0, "throwException", 39),
        _entry("Zb", 120, "throwException", 41),
        _entry("Zb", 188, "throwException", 43),
        _entry("Qc", None, "testStackTrace", 99),
        _entry("Rc", 40, "testStackTrace_withCause", 113),
        _entry("setUp", None, "setUp", 57,
               declaring_type="com.example.junit.HarnessTestCase",
               source_file="HarnessTestCase.java"),
    ]


@pytest.fixture
def default_map(default_entries) -> SymbolMap:
    return SymbolMap(default_entries)


@pytest.fixture
def tr_map() -> SymbolMap:
    return SymbolMap([
        _entry("xY", 0, "throwException", 39),
        _entry("xY", 300, "throwException", 41),
        _entry("xY", 368, "throwException", 43),
        _entry("kB", None, "testStackTrace", 99),
        _entry("pQ", None, "testStackTrace_fromDifferentModule", 127),
    ])


@pytest.fixture
def default_permutation(default_map) -> Permutation:
    return Permutation.from_properties(DEFAULT_PROPERTIES, default_map)


@pytest.fixture
def tr_permutation(tr_map) -> Permutation:
    return Permutation.from_properties(TR_PROPERTIES, tr_map)


@pytest.fixture
def registry(default_permutation, tr_permutation) -> PermutationRegistry:
    return PermutationRegistry([default_permutation, tr_permutation])


@pytest.fixture
def deobfuscator(registry) -> Deobfuscator:
    return Deobfuscator(registry)


@pytest.fixture
def codec(deobfuscator) -> ExceptionCodec:
    return ExceptionCodec(deobfuscator)


@pytest.fixture
def thrown_with_cause() -> RemoteThrowable:
    """Outer failure thrown at line 41, cause created at line 43."""
    cause = RemoteThrowable(
        type_name=CAUSE_TYPE,
        message="the_cause",
        frames=[RawFrame("Zb", 195), RawFrame("Rc", 52)],
    )
    return RemoteThrowable(
        type_name=FAILURE_TYPE,
        message="stack_trace_msg",
        frames=[RawFrame("Zb", 131), RawFrame("Rc", 52)],
        cause=cause,
    )
