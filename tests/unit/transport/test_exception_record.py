# tests/unit/transport/test_exception_record.py
# Target: tracebridge/transport/exception_record.py

import dataclasses

import pytest

from tracebridge.symbols import ResolvedFrame
from tracebridge.transport import (
    TRUNCATED_CAUSE,
    UNRESOLVED_FRAME,
    ExceptionRecord,
    RemoteThrowable,
    SerializableThrowable,
)


class DomainError(Exception):
    pass


def _record() -> ExceptionRecord:
    cause = ExceptionRecord(
        designated_type="java.lang.RuntimeException",
        message="the_cause",
        frames=(ResolvedFrame("T", "throwException", "F.java", 43),),
    )
    return ExceptionRecord(
        designated_type="junit.framework.AssertionFailedError",
        message="stack_trace_msg",
        frames=(
            ResolvedFrame("T", "throwException", "F.java", 41),
            ResolvedFrame("Unknown", "Hd", None, -1, resolved=False),
        ),
        cause=cause,
    )


class TestExceptionRecord:
    def test_chain_and_depth(self):
        record = _record()
        assert [r.designated_type for r in record.chain()] == [
            "junit.framework.AssertionFailedError", "java.lang.RuntimeException",
        ]
        assert record.depth() == 2
        assert record.root_cause().message == "the_cause"

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _record().message = "x"  # type: ignore[misc]

    def test_unresolved_frames(self):
        assert [f.method_name for f in _record().unresolved_frames()] == ["Hd"]

    def test_is_truncated(self):
        assert not _record().is_truncated()
        cut = ExceptionRecord("A", None, cause=ExceptionRecord("B", None, truncated=True))
        assert cut.is_truncated()

    def test_observed_anomalies(self):
        record = ExceptionRecord("A", None, frames=_record().frames, truncated=True)
        kinds = [a.kind for a in record.observed_anomalies()]
        assert kinds == [UNRESOLVED_FRAME, TRUNCATED_CAUSE]

    def test_format(self):
        text = _record().format()
        assert text.splitlines() == [
            "junit.framework.AssertionFailedError: stack_trace_msg",
            "\tat T.throwException(F.java:41)",
            "\tat Unknown.Hd(Unknown Source)",
            "Caused by: java.lang.RuntimeException: the_cause",
            "\tat T.throwException(F.java:43)",
        ]

    def test_format_without_message_and_truncated(self):
        text = ExceptionRecord("A", None, truncated=True).format()
        assert text == "A\n\t... cause chain truncated"


class TestToThrowable:
    def test_carrier_chain(self):
        carrier = _record().to_throwable()
        assert isinstance(carrier, SerializableThrowable)
        assert carrier.designated_type == "junit.framework.AssertionFailedError"
        assert carrier.message == "stack_trace_msg"
        assert carrier.frames[0].source_line == 41
        cause = carrier.__cause__
        assert isinstance(cause, SerializableThrowable)
        assert cause.designated_type == "java.lang.RuntimeException"
        assert cause.__cause__ is None

    def test_carrier_is_raisable(self):
        with pytest.raises(SerializableThrowable) as info:
            raise _record().to_throwable()
        assert str(info.value) == "stack_trace_msg"

    def test_carrier_without_message_uses_type(self):
        carrier = ExceptionRecord("A", None).to_throwable()
        assert carrier.message is None
        assert str(carrier) == "A"
        assert "designated_type='A'" in repr(carrier)


class TestFromException:
    def test_type_message_and_frames(self):
        try:
            raise DomainError("boom")
        except DomainError as exc:
            captured = RemoteThrowable.from_exception(exc)

        assert captured.type_name.endswith("DomainError")
        assert "." in captured.type_name
        assert captured.message == "boom"
        assert captured.cause is None
        assert captured.frames
        frame = captured.frames[0]
        assert frame.is_native_fragment
        assert frame.emitted_symbol == "test_type_message_and_frames"
        assert frame.source_file == "test_exception_record.py"
        assert frame.source_line > 0

    def test_builtin_type_is_unqualified(self):
        captured = RemoteThrowable.from_exception(ValueError())
        assert captured.type_name == "ValueError"
        assert captured.message is None
        assert captured.frames == []

    def test_explicit_cause(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError as inner:
                raise DomainError("outer") from inner
        except DomainError as exc:
            captured = RemoteThrowable.from_exception(exc)
        assert captured.cause.type_name == "KeyError"
        assert captured.cause.cause is None

    def test_implicit_context(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise DomainError("outer")
        except DomainError as exc:
            captured = RemoteThrowable.from_exception(exc)
        assert captured.cause.type_name == "KeyError"

    def test_suppressed_context(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise DomainError("outer") from None
        except DomainError as exc:
            captured = RemoteThrowable.from_exception(exc)
        assert captured.cause is None

    def test_cycle_is_preserved(self):
        a, b = DomainError("a"), DomainError("b")
        a.__cause__ = b
        b.__cause__ = a
        captured = RemoteThrowable.from_exception(a)
        assert captured.cause.cause is captured
