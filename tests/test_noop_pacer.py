import pytest

from rtpinterceptor.gcc.noop_pacer import NoOpPacer, UnknownStreamError
from rtpinterceptor.interceptor import RTPWriterFunc
from rtpinterceptor.rtp import Header


def recording_writer(sink):
    def write(header, payload, attributes):
        sink.append((header.ssrc, payload))
        return len(payload)

    return RTPWriterFunc(write)


def test_write_forwards_to_stream_writer():
    sink = []
    pacer = NoOpPacer()
    pacer.add_stream(5, recording_writer(sink))
    assert pacer.write(Header(ssrc=5), b"abc", None) == 3
    assert sink == [(5, b"abc")]


def test_unknown_ssrc_raises():
    pacer = NoOpPacer()
    with pytest.raises(UnknownStreamError) as info:
        pacer.write(Header(ssrc=42), b"x", None)
    assert info.value.ssrc == 42
    assert "unknown ssrc" in str(info.value)
    assert "42" in str(info.value)


def test_add_stream_replaces_writer():
    first, second = [], []
    pacer = NoOpPacer()
    pacer.add_stream(1, recording_writer(first))
    pacer.add_stream(1, recording_writer(second))
    pacer.write(Header(ssrc=1), b"p", None)
    assert first == []
    assert second == [(1, b"p")]


def test_streams_are_routed_by_ssrc():
    sink_a, sink_b = [], []
    pacer = NoOpPacer()
    pacer.add_stream(1, recording_writer(sink_a))
    pacer.add_stream(2, recording_writer(sink_b))
    pacer.write(Header(ssrc=2), b"b", None)
    assert sink_a == []
    assert sink_b == [(2, b"b")]


def test_target_bitrate_and_close_do_not_affect_sending():
    sink = []
    pacer = NoOpPacer()
    pacer.add_stream(7, recording_writer(sink))
    pacer.set_target_bitrate(1)
    pacer.close()
    assert pacer.write(Header(ssrc=7), b"zz", None) == 2
    assert sink == [(7, b"zz")]