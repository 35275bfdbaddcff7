from types import SimpleNamespace

import pytest

from rtpinterceptor.errors import MultiError
from rtpinterceptor.interceptor import (
    Chain,
    Interceptor,
    NoOp,
    RTCPReaderFunc,
    RTCPWriterFunc,
    RTPReaderFunc,
    RTPWriterFunc,
)
from rtpinterceptor.rtp import Header


class Tagging(NoOp):
    def __init__(self, name, log, error=None):
        self.name = name
        self.log = log
        self.error = error

    def bind_local_stream(self, info, writer):
        def write(header, payload, attributes):
            self.log.append(self.name)
            return writer.write(header, payload, attributes)

        return RTPWriterFunc(write)

    def bind_rtcp_reader(self, reader):
        def read(data, attributes):
            self.log.append(self.name)
            return reader.read(data, attributes)

        return RTCPReaderFunc(read)

    def unbind_local_stream(self, info):
        self.log.append((self.name, info))

    def unbind_remote_stream(self, info):
        self.log.append((self.name, "remote", info))

    def close(self):
        if self.error is not None:
            raise self.error


def test_interceptor_is_abstract():
    with pytest.raises(TypeError):
        Interceptor()


def test_noop_returns_same_objects():
    noop = NoOp()
    writer = RTPWriterFunc(lambda h, p, a: len(p))
    reader = RTPReaderFunc(lambda d, a: (len(d), a))
    rtcp_writer = RTCPWriterFunc(lambda pkts, a: len(pkts))
    rtcp_reader = RTCPReaderFunc(lambda d, a: (len(d), a))
    info = SimpleNamespace(ssrc=1)
    assert noop.bind_local_stream(info, writer) is writer
    assert noop.bind_remote_stream(info, reader) is reader
    assert noop.bind_rtcp_writer(rtcp_writer) is rtcp_writer
    assert noop.bind_rtcp_reader(rtcp_reader) is rtcp_reader
    assert noop.close() is None


def test_func_adapters_forward_calls():
    header = Header(ssrc=5)
    writer = RTPWriterFunc(lambda h, p, a: h.ssrc + len(p))
    assert writer.write(header, b"abc", None) == 8
    reader = RTPReaderFunc(lambda d, a: (len(d), {"seen": True}))
    assert reader.read(b"abcd", None) == (4, {"seen": True})
    rtcp_writer = RTCPWriterFunc(lambda pkts, a: len(pkts))
    assert rtcp_writer.write([1, 2, 3], None) == 3


def test_chain_wraps_writers_in_order():
    log = []
    chain = Chain([Tagging("a", log), Tagging("b", log)])

    def base(header, payload, attributes):
        log.append("base")
        return len(payload)

    writer = chain.bind_local_stream(SimpleNamespace(), RTPWriterFunc(base))
    assert writer.write(Header(), b"xy", None) == 2
    assert log == ["b", "a", "base"]


def test_chain_wraps_rtcp_reader_in_order():
    log = []
    chain = Chain([Tagging("first", log), Tagging("second", log)])
    reader = chain.bind_rtcp_reader(RTCPReaderFunc(lambda d, a: (len(d), a)))
    assert reader.read(b"12345", None) == (5, None)
    assert log == ["second", "first"]


def test_chain_unbind_reaches_every_interceptor():
    log = []
    chain = Chain([Tagging("a", log), Tagging("b", log)])
    chain.unbind_local_stream("info")
    chain.unbind_remote_stream("other")
    assert log == [("a", "info"), ("b", "info"), ("a", "remote", "other"), ("b", "remote", "other")]


def test_chain_close_without_errors():
    chain = Chain([NoOp(), NoOp()])
    assert chain.close() is None


def test_chain_close_collects_errors():
    first = RuntimeError("e1")
    second = RuntimeError("e2")
    chain = Chain([Tagging("a", [], first), NoOp(), Tagging("b", [], second)])
    with pytest.raises(MultiError) as exc:
        chain.close()
    assert exc.value.contains(first)
    assert exc.value.contains(second)
    assert str(exc.value) == "e1\ne2"


def test_empty_chain_passes_through():
    chain = Chain([])
    writer = RTPWriterFunc(lambda h, p, a: 0)
    assert chain.bind_local_stream(None, writer) is writer