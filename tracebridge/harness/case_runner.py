# =============================================================================
# tracebridge -- ASSERTION / EXPECTATION BRIDGE
# File:   tracebridge/harness/case_runner.py
# =============================================================================
#
# SCOPE
# -----
# Runs cases through a RemoteChannel and routes each result against the
# case's declared expectation.
#
# ROUTING
# -------
#   threw    + expected      -> asserter (pass when none); AssertionError
#                               from the asserter -> ASSERTER_FAILURE
#   threw    + not expected  -> UNEXPECTED_FAILURE
#   no throw + expected      -> MISSING_EXPECTED_FAILURE
#   no throw + not expected  -> PASSED
#   TransportFailure         -> INFRASTRUCTURE_ERROR / TRANSPORT_FAILURE
#   undecodable record       -> INFRASTRUCTURE_ERROR / DATA_CORRUPTION
#
# Infrastructure errors are never reported as test failures.
#
# LOGGING
# -------
# One CASE_OUTCOME event per case and one ANOMALY event per anomaly
# observed on the decoded record, into the shared EventLogger.
# =============================================================================

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from tracebridge.core.logging_layer import (
    EVENT_CASE_OUTCOME,
    EVENT_TRANSPORT_FAILURE,
    EventLogger,
)
from tracebridge.harness.data_models.case_outcome import (
    STATUS_FAILED,
    STATUS_INFRASTRUCTURE_ERROR,
    STATUS_PASSED,
    CaseOutcome,
)
from tracebridge.harness.expectations import ExpectationRegistry
from tracebridge.harness.harness_version import DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS
from tracebridge.symbols.exceptions import RecordDecodeError, TransportFailure
from tracebridge.transport.channel import RemoteChannel, round_trip
from tracebridge.transport.codec import ExceptionCodec
from tracebridge.transport.exception_record import ExceptionRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HarnessCase:
    """
    One remotely executed case.

    case_id     -- stable identifier, also the expectation key.
    fingerprint -- permutation the case runs in.
    timeout     -- round trip bound in seconds.
    """
    case_id:     str
    fingerprint: str
    timeout:     float = DEFAULT_ROUND_TRIP_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not isinstance(self.case_id, str) or not self.case_id:
            raise ValueError("case_id must be a non-empty string; got: " + repr(self.case_id))
        if not isinstance(self.fingerprint, str) or not self.fingerprint:
            raise ValueError("fingerprint must be a non-empty string; got: " + repr(self.fingerprint))
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise ValueError("timeout must be a positive number; got: " + repr(self.timeout))


class CaseRunner:
    """
    Dispatches cases and applies expectation routing.

    Usage
    -----
        runner = CaseRunner(channel, codec, expectations, EventLogger())
        outcomes = asyncio.run(runner.run_all(cases))
    """

    def __init__(
        self,
        channel:      RemoteChannel,
        codec:        ExceptionCodec,
        expectations: ExpectationRegistry,
        logger:       EventLogger,
        clock:        Callable[[], datetime] = _utc_now,
    ) -> None:
        self._channel = channel
        self._codec = codec
        self._expectations = expectations
        self._logger = logger
        self._clock = clock

    async def run(self, case: HarnessCase) -> CaseOutcome:
        """Run one case. Never raises for test or transport failures."""
        try:
            payload = await round_trip(self._channel, case.case_id, case.fingerprint, case.timeout)
        except TransportFailure as exc:
            self._logger.log_event(
                EVENT_TRANSPORT_FAILURE,
                {"case_id": case.case_id, "reason": exc.reason, "detail": exc.message},
                self._clock(),
            )
            return self._finish(CaseOutcome(
                case_id=case.case_id,
                status=STATUS_INFRASTRUCTURE_ERROR,
                failure_type_id="TRANSPORT_FAILURE",
                detail=exc.message,
            ))

        record: Optional[ExceptionRecord] = None
        if payload is not None:
            try:
                record = self._codec.decode(payload)
            except RecordDecodeError as exc:
                return self._finish(CaseOutcome(
                    case_id=case.case_id,
                    status=STATUS_INFRASTRUCTURE_ERROR,
                    failure_type_id="DATA_CORRUPTION",
                    detail=exc.message,
                ))

        anomalies = ()
        if record is not None:
            observed = record.observed_anomalies()
            now = self._clock()
            for anomaly in observed:
                self._logger.log_anomaly(
                    anomaly.kind, anomaly.detail, now,
                    case_id=case.case_id, depth=anomaly.depth,
                )
            anomalies = tuple(a.kind for a in observed)

        return self._finish(self._route(case, record, anomalies))

    async def run_all(self, cases: Iterable[HarnessCase]) -> List[CaseOutcome]:
        """Run cases concurrently. Outcomes come back in input order."""
        return list(await asyncio.gather(*(self.run(case) for case in cases)))

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    def _route(
        self,
        case:      HarnessCase,
        record:    Optional[ExceptionRecord],
        anomalies: tuple,
    ) -> CaseOutcome:
        expectation = self._expectations.expectation_for(case.case_id)

        if record is None:
            if expectation is None:
                return CaseOutcome(case_id=case.case_id, status=STATUS_PASSED)
            return CaseOutcome(
                case_id=case.case_id,
                status=STATUS_FAILED,
                failure_type_id="MISSING_EXPECTED_FAILURE",
                detail="Case completed normally but a failure was expected.",
            )

        if expectation is None:
            return CaseOutcome(
                case_id=case.case_id,
                status=STATUS_FAILED,
                failure_type_id="UNEXPECTED_FAILURE",
                detail=record.format(),
                record=record,
                anomalies=anomalies,
            )

        if expectation.asserter is not None:
            try:
                expectation.asserter.assert_exception(expectation, record)
            except AssertionError as exc:
                return CaseOutcome(
                    case_id=case.case_id,
                    status=STATUS_FAILED,
                    failure_type_id="ASSERTER_FAILURE",
                    detail=str(exc) or "asserter rejected the record",
                    record=record,
                    anomalies=anomalies,
                )

        return CaseOutcome(
            case_id=case.case_id,
            status=STATUS_PASSED,
            record=record,
            anomalies=anomalies,
        )

    def _finish(self, outcome: CaseOutcome) -> CaseOutcome:
        self._logger.log_event(
            EVENT_CASE_OUTCOME,
            {
                "case_id":         outcome.case_id,
                "status":          outcome.status,
                "failure_type_id": outcome.failure_type_id,
                "designated_type": outcome.record.designated_type if outcome.record else None,
                "anomaly_count":   len(outcome.anomalies),
            },
            self._clock(),
        )
        return outcome
