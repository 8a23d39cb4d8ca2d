"""
Two-process pipe ping-pong used to force context switches.

The initiator writes one byte on the request channel and blocks reading the
response channel; the responder does the opposite. Only one of the two
processes is ever runnable, so each round trip costs two context switches.

Each process keeps an explicit protocol state so an out-of-order send or
receive is detected instead of silently corrupting the alternation.
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from multiprocessing import get_context
from typing import Optional, Tuple

from oscost.config import PIN_CPU, RunConfig
from oscost.errors import MeasurementError, ProtocolError, ResourceError
from oscost.utils.affinity import AffinityManager, Logger
from oscost.utils.timer import HighPrecisionTimer, now

REQUEST_BYTE = b"\xcd"


class ProtocolState(Enum):
    IDLE = "idle"
    WAITING_FOR_REQUEST = "waiting_for_request"
    PROCESSING = "processing"
    WAITING_FOR_RESPONSE = "waiting_for_response"


class Role(Enum):
    INITIATOR = "initiator"
    RESPONDER = "responder"


class Channel:
    """One end of a unidirectional single-byte pipe."""

    def __init__(self, fd: int, name: str) -> None:
        self.fd = fd
        self.name = name

    def write_byte(self, byte: bytes = REQUEST_BYTE) -> None:
        while True:
            try:
                written = os.write(self.fd, byte)
            except InterruptedError:
                continue
            except OSError as exc:
                raise ProtocolError(f"protocol desync: write on {self.name} failed: {exc}")
            if written != 1:
                raise ProtocolError(f"protocol desync: short write on {self.name}")
            return

    def read_byte(self) -> bytes:
        while True:
            try:
                data = os.read(self.fd, 1)
            except InterruptedError:
                continue
            except OSError as exc:
                raise ProtocolError(f"protocol desync: read on {self.name} failed: {exc}")
            if not data:
                raise ProtocolError(f"protocol desync: unexpected end-of-data on {self.name}")
            return data

    @property
    def closed(self) -> bool:
        return self.fd < 0

    def close(self) -> None:
        if not self.closed:
            fd, self.fd = self.fd, -1
            os.close(fd)


def open_channel(name: str) -> Tuple[Channel, Channel]:
    """Create a pipe; return its (reader, writer) ends."""
    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        raise ResourceError(f"pipe {name}: {exc}")
    return Channel(read_fd, f"{name} (read end)"), Channel(write_fd, f"{name} (write end)")


# (role, state before) -> state once the byte has moved
_SEND = {
    (Role.INITIATOR, ProtocolState.IDLE): ProtocolState.WAITING_FOR_RESPONSE,
    (Role.RESPONDER, ProtocolState.PROCESSING): ProtocolState.IDLE,
}
_RECEIVE = {
    (Role.INITIATOR, ProtocolState.WAITING_FOR_RESPONSE): ProtocolState.IDLE,
    (Role.RESPONDER, ProtocolState.WAITING_FOR_REQUEST): ProtocolState.PROCESSING,
}


class Endpoint:
    """
    One side of the ping-pong protocol.

    The initiator cycles IDLE -> WAITING_FOR_RESPONSE -> IDLE, the responder
    IDLE -> WAITING_FOR_REQUEST -> PROCESSING -> IDLE. Sends and receives
    outside those transitions raise ProtocolError.
    """

    def __init__(self, role: Role, inbound: Channel, outbound: Channel) -> None:
        self.role = role
        self.inbound = inbound
        self.outbound = outbound
        self.state = ProtocolState.IDLE
        self.round_trips = 0

    def _next_state(self, table, operation: str) -> ProtocolState:
        try:
            return table[(self.role, self.state)]
        except KeyError:
            raise ProtocolError(
                f"protocol desync: {self.role.value} cannot {operation} while {self.state.value}"
            )

    def _enter(self, state: ProtocolState) -> None:
        self.state = state
        if state is ProtocolState.IDLE:
            self.round_trips += 1

    def send(self) -> None:
        nxt = self._next_state(_SEND, "send")
        self.outbound.write_byte()
        self._enter(nxt)

    def receive(self) -> None:
        if self.role is Role.RESPONDER and self.state is ProtocolState.IDLE:
            self.state = ProtocolState.WAITING_FOR_REQUEST
        nxt = self._next_state(_RECEIVE, "receive")
        self.inbound.read_byte()
        self._enter(nxt)

    def round_trip(self) -> None:
        self.send()
        self.receive()

    def serve(self) -> None:
        self.receive()
        self.send()

    def close(self) -> None:
        self.inbound.close()
        self.outbound.close()


def measure_channel_pair(config: RunConfig, clock=now) -> int:
    """
    Single-process baseline: one write+read pair per iteration on one pipe.

    The pair goes through an initiator endpoint looped back onto itself, so
    it carries the same per-byte bookkeeping as the ping-pong path but no
    context switch. Returns the total ns for ``config.iters`` pairs.
    """
    reader, writer = open_channel("baseline")
    endpoint = Endpoint(Role.INITIATOR, inbound=reader, outbound=writer)
    try:
        for _ in range(config.warmup):
            endpoint.round_trip()
        timer = HighPrecisionTimer(clock)
        timer.start()
        for _ in range(config.iters):
            endpoint.round_trip()
        return timer.stop()
    finally:
        endpoint.close()


def _responder_main(request: Channel, response: Channel, unused: Tuple[Channel, Channel],
                    rounds: int, pin: bool, logger: Logger) -> None:
    """Child process body: perpetuate the protocol for ``rounds`` exchanges."""
    for channel in unused:
        channel.close()
    if pin:
        AffinityManager(enabled=True, cpu=PIN_CPU, logger=lambda msg: logger(f"child {msg}")).apply()

    endpoint = Endpoint(Role.RESPONDER, inbound=request, outbound=response)
    try:
        for _ in range(rounds):
            endpoint.serve()
    except ProtocolError as exc:
        print(f"responder: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        endpoint.close()


class PingPong:
    """
    Times ``config.iters`` ping-pong round trips between this process and a
    forked responder.

    ``responder_rounds`` caps how many exchanges the responder serves before
    closing its ends; left as None it serves warm-up plus measurement.
    """

    def __init__(
        self,
        config: RunConfig,
        clock=now,
        logger: Optional[Logger] = None,
        responder_rounds: Optional[int] = None,
    ) -> None:
        self.config = config
        self.clock = clock
        self.logger = logger or (lambda msg: None)
        self.responder_rounds = responder_rounds
        self.ctx = get_context("fork")
        self.responder_exitcode: Optional[int] = None

    def run(self) -> int:
        config = self.config
        rounds = self.responder_rounds
        if rounds is None:
            rounds = config.warmup + config.iters

        request_r, request_w = open_channel("request")
        try:
            response_r, response_w = open_channel("response")
        except ResourceError:
            request_r.close()
            request_w.close()
            raise

        process = self.ctx.Process(
            target=_responder_main,
            args=(request_r, response_w, (request_w, response_r), rounds, config.pin, self.logger),
            name="oscost-responder",
        )
        try:
            process.start()
        except OSError as exc:
            for channel in (request_r, request_w, response_r, response_w):
                channel.close()
            raise ResourceError(f"fork: {exc}")

        # The child's ends must be closed here or a dead responder never shows up as EOF.
        request_r.close()
        response_w.close()

        endpoint = Endpoint(Role.INITIATOR, inbound=response_r, outbound=request_w)
        try:
            for _ in range(config.warmup):
                endpoint.round_trip()
            timer = HighPrecisionTimer(self.clock)
            timer.start()
            for _ in range(config.iters):
                endpoint.round_trip()
            total = timer.stop()
        finally:
            endpoint.close()
            process.join()
            self.responder_exitcode = process.exitcode

        if process.exitcode != 0:
            raise MeasurementError(f"responder exited with status {process.exitcode}")
        return total
