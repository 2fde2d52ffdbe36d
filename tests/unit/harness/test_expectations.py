# tests/unit/harness/test_expectations.py
# Target: tracebridge/harness/expectations.py

import pytest

from tracebridge.harness import (
    ChainAsserter,
    ExceptionAsserter,
    ExpectationRegistry,
    ExpectedFailure,
    ExpectedFrame,
    ExpectedLink,
    assert_frame,
    find_frame,
)
from tracebridge.symbols import ResolvedFrame
from tracebridge.transport import ExceptionRecord


T = "com.example.client.StackTraceCase"
F = "StackTraceCase.java"


def _frames():
    return (
        ResolvedFrame(T, "throwException", F, 41),
        ResolvedFrame(T, "recurse", F, 70),
        ResolvedFrame(T, "recurse", F, 72),
        ResolvedFrame(T, "testStackTrace", F, 100),
    )


def _record():
    return ExceptionRecord(
        "junit.framework.AssertionFailedError",
        "stack_trace_msg",
        frames=_frames(),
        cause=ExceptionRecord(
            "java.lang.RuntimeException",
            "the_cause: detail",
            frames=(ResolvedFrame(T, "throwException", F, 43),),
        ),
    )


class _Accepting:
    def __init__(self):
        self.seen = []

    def assert_exception(self, expectation, actual):
        self.seen.append((expectation, actual))


class TestExpectedFailure:
    def test_defaults(self):
        expectation = ExpectedFailure()
        assert expectation.expected is True
        assert expectation.asserter is None

    def test_asserter_must_follow_protocol(self):
        with pytest.raises(TypeError, match="assert_exception"):
            ExpectedFailure(asserter=object())  # type: ignore[arg-type]

    def test_expected_must_be_bool(self):
        with pytest.raises(TypeError):
            ExpectedFailure(expected="yes")  # type: ignore[arg-type]

    def test_custom_asserter_is_protocol_instance(self):
        assert isinstance(_Accepting(), ExceptionAsserter)
        assert isinstance(ChainAsserter([]), ExceptionAsserter)


class TestExpectationRegistry:
    def test_declared_case(self):
        expectation = ExpectedFailure()
        registry = ExpectationRegistry({"a": expectation})
        assert registry.expectation_for("a") is expectation
        assert "a" in registry
        assert len(registry) == 1

    def test_undeclared_case_not_expected(self):
        assert ExpectationRegistry().expectation_for("missing") is None

    def test_expected_false_is_not_expected(self):
        registry = ExpectationRegistry({"a": ExpectedFailure(expected=False)})
        assert registry.expectation_for("a") is None

    def test_duplicate_declaration_rejected(self):
        registry = ExpectationRegistry({"a": ExpectedFailure()})
        with pytest.raises(ValueError, match="already declared"):
            registry.declare("a", ExpectedFailure())

    @pytest.mark.parametrize("case_id", ["", None, 3])
    def test_invalid_case_id(self, case_id):
        with pytest.raises(ValueError):
            ExpectationRegistry().declare(case_id, ExpectedFailure())  # type: ignore[arg-type]

    def test_non_expectation_rejected(self):
        with pytest.raises(TypeError):
            ExpectationRegistry().declare("a", True)  # type: ignore[arg-type]

    def test_mapping_is_read_only_snapshot(self):
        registry = ExpectationRegistry({"a": ExpectedFailure()})
        view = registry.as_mapping()
        with pytest.raises(TypeError):
            view["b"] = ExpectedFailure()  # type: ignore[index]
        registry.declare("b", ExpectedFailure())
        assert "b" not in view


class TestFrameHelpers:
    def test_find_frame_first_match(self):
        assert find_frame(_frames(), T, "recurse").source_line == 70

    def test_find_frame_missing(self):
        assert find_frame(_frames(), T, "absent") is None
        assert find_frame(_frames(), "other.Type", "recurse") is None

    def test_assert_frame_passes(self):
        frame = assert_frame(_frames(), T, "testStackTrace", F, 100)
        assert frame.method_name == "testStackTrace"

    def test_assert_frame_wrong_line(self):
        with pytest.raises(AssertionError, match="expected StackTraceCase.java:42, got StackTraceCase.java:41"):
            assert_frame(_frames(), T, "throwException", F, 42)

    def test_assert_frame_missing_lists_trace(self):
        with pytest.raises(AssertionError) as info:
            assert_frame(_frames(), T, "absent", F, 1)
        assert "throwException(StackTraceCase.java:41)" in str(info.value)

    def test_assert_frame_empty_trace(self):
        with pytest.raises(AssertionError, match="empty"):
            assert_frame([], T, "m", F, 1)

    def test_accepts_iterator(self):
        assert_frame(iter(_frames()), T, "recurse", F, 70)


class TestChainAsserter:
    def _asserter(self, **kwargs):
        return ChainAsserter(
            [
                ExpectedLink(
                    "junit.framework.AssertionFailedError",
                    "stack_trace_msg",
                    (ExpectedFrame(T, "throwException", F, 41),),
                ),
                ExpectedLink(
                    "java.lang.RuntimeException",
                    "the_cause",
                    (ExpectedFrame(T, "throwException", F, 43),),
                ),
            ],
            **kwargs,
        )

    def test_matching_chain(self):
        self._asserter(exact_depth=True).assert_exception(ExpectedFailure(), _record())

    def test_prefix_of_chain_is_enough(self):
        ChainAsserter([ExpectedLink("junit.framework.AssertionFailedError")]).assert_exception(
            ExpectedFailure(), _record(),
        )

    def test_exact_depth_rejects_longer_chain(self):
        asserter = ChainAsserter(
            [ExpectedLink("junit.framework.AssertionFailedError")], exact_depth=True,
        )
        with pytest.raises(AssertionError, match="exactly 1"):
            asserter.assert_exception(ExpectedFailure(), _record())

    def test_chain_too_short(self):
        record = ExceptionRecord("junit.framework.AssertionFailedError", "stack_trace_msg")
        with pytest.raises(AssertionError, match="at least 2"):
            self._asserter().assert_exception(ExpectedFailure(), record)

    def test_wrong_type(self):
        asserter = ChainAsserter([ExpectedLink("java.lang.Error")])
        with pytest.raises(AssertionError, match="depth 0: expected type java.lang.Error"):
            asserter.assert_exception(ExpectedFailure(), _record())

    def test_wrong_message(self):
        asserter = ChainAsserter([
            ExpectedLink("junit.framework.AssertionFailedError"),
            ExpectedLink("java.lang.RuntimeException", "other"),
        ])
        with pytest.raises(AssertionError, match="depth 1"):
            asserter.assert_exception(ExpectedFailure(), _record())

    def test_none_message_fails_prefix(self):
        record = ExceptionRecord("E", None)
        with pytest.raises(AssertionError):
            ChainAsserter([ExpectedLink("E", "x")]).assert_exception(ExpectedFailure(), record)

    def test_wrong_cause_line(self):
        asserter = ChainAsserter([
            ExpectedLink("junit.framework.AssertionFailedError"),
            ExpectedLink("java.lang.RuntimeException", frames=(ExpectedFrame(T, "throwException", F, 41),)),
        ])
        with pytest.raises(AssertionError, match="got StackTraceCase.java:43"):
            asserter.assert_exception(ExpectedFailure(), _record())
