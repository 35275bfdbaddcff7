import pytest

from rtpinterceptor import rtcp
from rtpinterceptor.rtcp import (
    CCFeedbackReport,
    MetricBlock,
    RawPacket,
    ReceptionReport,
    RecvDelta,
    ReportBlock,
    RunLengthChunk,
    SenderReport,
    StatusVectorChunk,
    TransportLayerCC,
)


def _twcc():
    return TransportLayerCC(
        sender_ssrc=1,
        media_ssrc=2,
        base_sequence_number=65534,
        packet_status_count=3,
        reference_time=278,
        fb_pkt_count=170,
        packet_chunks=[
            RunLengthChunk(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 2),
            StatusVectorChunk(
                rtcp.TYPE_TCC_SYMBOL_SIZE_TWO_BIT,
                [rtcp.TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA] + [rtcp.TYPE_TCC_PACKET_NOT_RECEIVED] * 6,
            ),
        ],
        recv_deltas=[
            RecvDelta(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 250),
            RecvDelta(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 500),
            RecvDelta(rtcp.TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA, -1000),
        ],
    )


def test_sender_report_header_bytes():
    data = SenderReport().marshal()
    assert data[0] == 0x80
    assert data[1] == rtcp.TYPE_SENDER_REPORT


def test_sender_report_round_trip():
    sr = SenderReport(ssrc=9, ntp_time=123456789, rtp_time=5, packet_count=4, octet_count=100,
                      reports=[ReceptionReport(ssrc=3, fraction_lost=1, total_lost=20,
                                               last_sequence_number=77, jitter=2)])
    assert rtcp.unmarshal(sr.marshal()) == [sr]


def test_twcc_round_trip_and_alignment():
    packet = _twcc()
    data = packet.marshal()
    assert len(data) % 4 == 0
    assert TransportLayerCC.unmarshal(data) == packet


def test_twcc_one_bit_vector_round_trip():
    packet = TransportLayerCC(
        packet_status_count=14,
        packet_chunks=[StatusVectorChunk(rtcp.TYPE_TCC_SYMBOL_SIZE_ONE_BIT, [1, 0] * 7)],
        recv_deltas=[RecvDelta(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 1000)] * 7,
    )
    assert rtcp.unmarshal(packet.marshal()) == [packet]


def test_twcc_delta_out_of_range():
    packet = TransportLayerCC(
        packet_status_count=1,
        packet_chunks=[RunLengthChunk(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 1)],
        recv_deltas=[RecvDelta(rtcp.TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA, 250 * 256)],
    )
    with pytest.raises(ValueError):
        packet.marshal()


def test_twcc_truncated_deltas():
    data = _twcc().marshal()
    corrupted = data[:20] + data[20:24]
    with pytest.raises(ValueError):
        TransportLayerCC.unmarshal(corrupted)


def test_ccfb_round_trip():
    report = CCFeedbackReport(
        sender_ssrc=1,
        report_blocks=[
            ReportBlock(5000, 10, [MetricBlock(True, 1, 1024), MetricBlock(False, 0, 0),
                                   MetricBlock(True, 0, 12)]),
            ReportBlock(6000, 0, [MetricBlock(True, 3, 8191), MetricBlock(True, 2, 1)]),
        ],
        report_timestamp=0xABCDEF01,
    )
    data = report.marshal()
    assert len(data) % 4 == 0
    assert rtcp.unmarshal(data) == [report]


def test_compound_round_trip_with_raw_packet():
    raw = RawPacket(bytes([0x81, 203, 0, 1, 0, 0, 0, 7]))
    packets = [SenderReport(ssrc=1), raw, _twcc()]
    assert rtcp.unmarshal(rtcp.marshal(packets)) == packets


@pytest.mark.parametrize("data", [None, b"", b"\x80"])
def test_unmarshal_invalid(data):
    with pytest.raises(ValueError):
        rtcp.unmarshal(data)


def test_unmarshal_length_exceeds_buffer():
    data = SenderReport().marshal()
    with pytest.raises(ValueError):
        rtcp.unmarshal(data[:-4])