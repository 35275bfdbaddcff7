import pytest

from rtpinterceptor.attributes import Attributes, InvalidTypeError, _Key
from rtpinterceptor.rtcp import SenderReport, TransportLayerCC
from rtpinterceptor.rtp import Header, Packet


def test_rtp_header_nil():
    with pytest.raises(ValueError):
        Attributes().get_rtp_header(None)


def test_rtp_header_present():
    header = Header()
    attributes = Attributes({_Key.RTP_HEADER: header})
    assert attributes.get_rtp_header(None) is header


def test_rtp_header_not_present():
    attributes = Attributes()
    header = Header()
    parsed = attributes.get_rtp_header(header.marshal())
    assert parsed == header
    assert attributes.get_rtp_header(None) is parsed


def test_rtp_header_from_full_packet():
    packet = Packet(header=Header(), payload=bytes(1000))
    assert Attributes().get_rtp_header(packet.marshal()) == packet.header


def test_rtp_header_invalid_type():
    with pytest.raises(InvalidTypeError):
        Attributes({_Key.RTP_HEADER: "not a header"}).get_rtp_header(None)


def test_rtcp_packets_nil():
    with pytest.raises(ValueError):
        Attributes().get_rtcp_packets(None)


def test_rtcp_packets_present():
    packets = [TransportLayerCC()]
    attributes = Attributes({_Key.RTCP_PACKETS: packets})
    assert attributes.get_rtcp_packets(None) is packets


def test_rtcp_packets_not_present():
    sr = SenderReport()
    attributes = Attributes()
    assert attributes.get_rtcp_packets(sr.marshal()) == [sr]


def test_rtcp_packets_invalid_type():
    with pytest.raises(InvalidTypeError):
        Attributes({_Key.RTCP_PACKETS: 5}).get_rtcp_packets(None)


def test_plain_get_and_set():
    attributes = Attributes()
    attributes["k"] = 1
    assert attributes.get("k") == 1
    assert attributes.get("missing") is None