# tracebridge/transport/channel.py
# Remote round trip: dispatch a case to the executing permutation and wait
# for its serialized ExceptionRecord.
#
# A channel returns None when the case completed without throwing, or the
# wire bytes produced by ExceptionCodec.serialize() when it threw.
#
# Timeouts and connection errors become TransportFailure. Cancellation of
# the awaiting task is not swallowed: CancelledError propagates to the
# caller after the channel call is abandoned.

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional, Protocol, runtime_checkable

from tracebridge.symbols.exceptions import TransportFailure
from tracebridge.transport.codec import ExceptionCodec
from tracebridge.transport.exception_record import RemoteThrowable


REASON_TIMEOUT:         str = "TIMEOUT"
REASON_CONNECTION_LOST: str = "CONNECTION_LOST"


@runtime_checkable
class RemoteChannel(Protocol):
    """Port to the runtime that executes compiled permutations."""

    async def execute(self, case_id: str, fingerprint: str) -> Optional[bytes]:
        ...


async def round_trip(
    channel:     RemoteChannel,
    case_id:     str,
    fingerprint: str,
    timeout:     float,
) -> Optional[bytes]:
    """
    Run one case remotely, bounded by timeout seconds.

    Raises
    ------
    TransportFailure
        reason TIMEOUT when the deadline passes, CONNECTION_LOST when the
        channel reports a connection or OS level error.
    """
    if timeout <= 0:
        raise ValueError("timeout must be > 0; got: " + repr(timeout))
    try:
        return await asyncio.wait_for(channel.execute(case_id, fingerprint), timeout)
    except asyncio.TimeoutError as exc:
        raise TransportFailure(
            case_id, REASON_TIMEOUT, "no record within " + str(timeout) + "s"
        ) from exc
    except (ConnectionError, OSError) as exc:
        raise TransportFailure(
            case_id, REASON_CONNECTION_LOST, type(exc).__name__ + ": " + str(exc)
        ) from exc


class CallableChannel:
    """
    In-process channel. Runs a case body and encodes what it throws.

    bodies maps case id -> callable returning a RemoteThrowable (the case
    threw) or None (it completed normally). A body raising a Python
    exception is captured through RemoteThrowable.from_exception.
    """

    def __init__(
        self,
        codec:  ExceptionCodec,
        bodies: Dict[str, Callable[[], Optional[RemoteThrowable]]],
    ) -> None:
        self._codec = codec
        self._bodies = dict(bodies)

    async def execute(self, case_id: str, fingerprint: str) -> Optional[bytes]:
        body = self._bodies.get(case_id)
        if body is None:
            raise ConnectionError("no remote body registered for case " + repr(case_id))
        try:
            thrown = body()
        except Exception as exc:  # the thrown error is the payload
            thrown = RemoteThrowable.from_exception(exc)
        if thrown is None:
            return None
        record = self._codec.encode(thrown, fingerprint)
        return self._codec.serialize(record)


class ReplayChannel:
    """
    Channel over payloads captured earlier: case id -> wire bytes, or
    None for a case that completed without throwing.
    """

    def __init__(self, payloads: Dict[str, Optional[bytes]]) -> None:
        self._payloads = dict(payloads)

    async def execute(self, case_id: str, fingerprint: str) -> Optional[bytes]:
        if case_id not in self._payloads:
            raise ConnectionError("no captured payload for case " + repr(case_id))
        return self._payloads[case_id]
