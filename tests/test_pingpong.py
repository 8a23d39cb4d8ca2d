import os

import pytest

from oscost.benchmarks import pingpong
from oscost.benchmarks.pingpong import (
    Channel,
    Endpoint,
    PingPong,
    ProtocolState,
    Role,
    measure_channel_pair,
    open_channel,
)
from oscost.config import RunConfig
from oscost.errors import ProtocolError, ResourceError

requires_fork = pytest.mark.skipif(not hasattr(os, "fork"), reason="needs os.fork")


class RecordingChannel:
    """Channel stand-in that logs operations into a shared list."""

    def __init__(self, log, name):
        self.log = log
        self.name = name

    def write_byte(self, byte=b"x"):
        self.log.append(("write", self.name))

    def read_byte(self):
        self.log.append(("read", self.name))
        return b"x"

    def close(self):
        self.log.append(("close", self.name))


def _endpoint(role):
    log = []
    return Endpoint(role, inbound=RecordingChannel(log, "in"), outbound=RecordingChannel(log, "out")), log


def test_initiator_alternates_write_then_read():
    endpoint, log = _endpoint(Role.INITIATOR)
    for _ in range(3):
        endpoint.round_trip()
    assert log == [("write", "out"), ("read", "in")] * 3
    assert endpoint.state is ProtocolState.IDLE
    assert endpoint.round_trips == 3


def test_responder_alternates_read_then_write():
    endpoint, log = _endpoint(Role.RESPONDER)
    endpoint.receive()
    assert endpoint.state is ProtocolState.PROCESSING
    endpoint.send()
    endpoint.serve()
    assert log == [("read", "in"), ("write", "out")] * 2
    assert endpoint.state is ProtocolState.IDLE
    assert endpoint.round_trips == 2


def test_initiator_waits_for_response_after_send():
    endpoint, _ = _endpoint(Role.INITIATOR)
    endpoint.send()
    assert endpoint.state is ProtocolState.WAITING_FOR_RESPONSE


def test_two_consecutive_sends_are_rejected():
    endpoint, log = _endpoint(Role.INITIATOR)
    endpoint.send()
    with pytest.raises(ProtocolError, match="protocol desync"):
        endpoint.send()
    assert log == [("write", "out")]


def test_responder_cannot_send_before_request():
    endpoint, log = _endpoint(Role.RESPONDER)
    with pytest.raises(ProtocolError):
        endpoint.send()
    assert log == []


def test_responder_is_waiting_while_read_blocks():
    seen = []
    endpoint, _ = _endpoint(Role.RESPONDER)
    endpoint.inbound.read_byte = lambda: seen.append(endpoint.state) or b"x"
    endpoint.receive()
    assert seen == [ProtocolState.WAITING_FOR_REQUEST]


def test_channel_round_trip_over_pipe():
    reader, writer = open_channel("test")
    try:
        writer.write_byte(b"\x01")
        assert reader.read_byte() == b"\x01"
    finally:
        reader.close()
        writer.close()
    assert reader.closed and writer.closed
    reader.close()


def test_channel_eof_is_protocol_desync():
    reader, writer = open_channel("test")
    writer.close()
    try:
        with pytest.raises(ProtocolError, match="unexpected end-of-data"):
            reader.read_byte()
    finally:
        reader.close()


def test_channel_write_to_closed_reader_is_protocol_desync():
    reader, writer = open_channel("test")
    reader.close()
    try:
        with pytest.raises(ProtocolError, match="protocol desync"):
            writer.write_byte()
    finally:
        writer.close()


def test_channel_retries_interrupted_read(monkeypatch):
    results = [InterruptedError(), b"\x07"]

    def fake_read(fd, n):
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(pingpong.os, "read", fake_read)
    assert Channel(99, "fake").read_byte() == b"\x07"
    assert results == []


def test_channel_retries_interrupted_write(monkeypatch):
    results = [InterruptedError(), 1]

    def fake_write(fd, data):
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(pingpong.os, "write", fake_write)
    Channel(99, "fake").write_byte()
    assert results == []


def test_channel_other_io_error_is_fatal(monkeypatch):
    def fake_read(fd, n):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(pingpong.os, "read", fake_read)
    with pytest.raises(ProtocolError):
        Channel(99, "fake").read_byte()


def test_pipe_creation_failure_is_resource_error(monkeypatch):
    def fake_pipe():
        raise OSError(24, "Too many open files")

    monkeypatch.setattr(pingpong.os, "pipe", fake_pipe)
    with pytest.raises(ResourceError):
        open_channel("request")


def test_measure_channel_pair(scripted_clock):
    config = RunConfig(iters=50, warmup=5)
    assert measure_channel_pair(config, clock=scripted_clock([1_000, 6_000])) == 5_000


@requires_fork
def test_ping_pong_completes_and_reaps_responder():
    bench = PingPong(RunConfig(iters=200, warmup=20))
    total = bench.run()
    assert total > 0
    assert bench.responder_exitcode == 0


@requires_fork
def test_ping_pong_early_close_fails_instead_of_hanging():
    bench = PingPong(RunConfig(iters=200, warmup=20), responder_rounds=5)
    with pytest.raises(ProtocolError, match="protocol desync"):
        bench.run()
    assert bench.responder_exitcode == 0


def test_responder_failed_read_can_be_retried():
    endpoint, log = _endpoint(Role.RESPONDER)
    results = [ProtocolError("protocol desync: read interrupted"), b"x"]

    def flaky_read():
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    endpoint.inbound.read_byte = flaky_read
    with pytest.raises(ProtocolError):
        endpoint.receive()
    assert endpoint.state is ProtocolState.WAITING_FOR_REQUEST
    endpoint.receive()
    assert endpoint.state is ProtocolState.PROCESSING


class _UnstartableProcess:
    def __init__(self, *args, **kwargs):
        pass

    def start(self):
        raise OSError(11, "Resource temporarily unavailable")


class _NoForkContext:
    Process = _UnstartableProcess


def test_process_creation_failure_closes_every_channel(monkeypatch):
    opened = []

    def tracking_open_channel(name):
        ends = open_channel(name)
        opened.extend(ends)
        return ends

    monkeypatch.setattr(pingpong, "open_channel", tracking_open_channel)
    bench = PingPong(RunConfig(iters=10, warmup=1))
    bench.ctx = _NoForkContext()
    with pytest.raises(ResourceError, match="fork"):
        bench.run()
    assert len(opened) == 4
    assert all(channel.closed for channel in opened)
