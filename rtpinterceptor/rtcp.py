"""RTCP packet encoding for sender reports and congestion-control feedback."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Union

HEADER_LENGTH = 4
TYPE_SENDER_REPORT = 200
TYPE_TRANSPORT_SPECIFIC_FEEDBACK = 205
FORMAT_TCC = 15
FORMAT_CCFB = 11

TYPE_TCC_RUN_LENGTH_CHUNK = 0
TYPE_TCC_STATUS_VECTOR_CHUNK = 1
TYPE_TCC_SYMBOL_SIZE_ONE_BIT = 0
TYPE_TCC_SYMBOL_SIZE_TWO_BIT = 1
TYPE_TCC_PACKET_NOT_RECEIVED = 0
TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA = 1
TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA = 2
TYPE_TCC_PACKET_RECEIVED_WITHOUT_DELTA = 3
TYPE_TCC_DELTA_SCALE_FACTOR = 250


def _header(count: int, packet_type: int, total_length: int, padding: bool = False) -> bytes:
    b0 = 0x80 | int(padding) << 5 | (count & 0x1F)
    return struct.pack(">BBH", b0, packet_type, total_length // 4 - 1)


def _parse_header(data: bytes) -> tuple[bool, int, int, int]:
    if len(data) < HEADER_LENGTH:
        raise ValueError("RTCP header too short")
    b0, packet_type, length = struct.unpack_from(">BBH", data)
    if b0 >> 6 != 2:
        raise ValueError("RTCP header has wrong version")
    return bool(b0 & 0x20), b0 & 0x1F, packet_type, (length + 1) * 4


def _content_end(data: bytes, padding: bool, start: int) -> int:
    end = len(data)
    if padding:
        pad = data[-1]
        if pad == 0 or pad > end - start:
            raise ValueError("invalid RTCP padding")
        end -= pad
    return end


@dataclass
class RecvDelta:
    type: int = TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA
    delta: int = 0  # microseconds

    def _marshal(self) -> bytes:
        scaled = abs(self.delta) // TYPE_TCC_DELTA_SCALE_FACTOR
        if self.delta < 0:
            scaled = -scaled
        if self.type == TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA and 0 <= scaled <= 255:
            return bytes([scaled])
        if self.type == TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA and -32768 <= scaled <= 32767:
            return struct.pack(">h", scaled)
        raise ValueError("receive delta exceeds limit")


@dataclass
class RunLengthChunk:
    packet_status_symbol: int = TYPE_TCC_PACKET_NOT_RECEIVED
    run_length: int = 0

    def _marshal(self) -> int:
        return (self.packet_status_symbol & 0x3) << 13 | (self.run_length & 0x1FFF)


@dataclass
class StatusVectorChunk:
    symbol_size: int = TYPE_TCC_SYMBOL_SIZE_ONE_BIT
    symbol_list: list[int] = field(default_factory=list)

    def _marshal(self) -> int:
        value = 0x8000 | (self.symbol_size & 1) << 14
        if self.symbol_size == TYPE_TCC_SYMBOL_SIZE_ONE_BIT:
            for i, symbol in enumerate(self.symbol_list[:14]):
                value |= (symbol & 1) << (13 - i)
        else:
            for i, symbol in enumerate(self.symbol_list[:7]):
                value |= (symbol & 3) << (12 - 2 * i)
        return value


def _parse_chunk(value: int) -> RunLengthChunk | StatusVectorChunk:
    if value >> 15 == TYPE_TCC_RUN_LENGTH_CHUNK:
        return RunLengthChunk((value >> 13) & 0x3, value & 0x1FFF)
    size = (value >> 14) & 1
    if size == TYPE_TCC_SYMBOL_SIZE_ONE_BIT:
        symbols = [(value >> (13 - i)) & 1 for i in range(14)]
    else:
        symbols = [(value >> (12 - 2 * i)) & 3 for i in range(7)]
    return StatusVectorChunk(size, symbols)


@dataclass
class TransportLayerCC:
    sender_ssrc: int = 0
    media_ssrc: int = 0
    base_sequence_number: int = 0
    packet_status_count: int = 0
    reference_time: int = 0
    fb_pkt_count: int = 0
    packet_chunks: list[RunLengthChunk | StatusVectorChunk] = field(default_factory=list)
    recv_deltas: list[RecvDelta] = field(default_factory=list)

    def marshal(self) -> bytes:
        body = bytearray(struct.pack(
            ">IIHHI", self.sender_ssrc, self.media_ssrc, self.base_sequence_number,
            self.packet_status_count,
            (self.reference_time & 0xFFFFFF) << 8 | (self.fb_pkt_count & 0xFF),
        ))
        for chunk in self.packet_chunks:
            body += struct.pack(">H", chunk._marshal())
        for delta in self.recv_deltas:
            body += delta._marshal()
        pad = -(HEADER_LENGTH + len(body)) % 4
        if pad:
            body += bytes(pad - 1) + bytes([pad])
        total = HEADER_LENGTH + len(body)
        return _header(FORMAT_TCC, TYPE_TRANSPORT_SPECIFIC_FEEDBACK, total, pad > 0) + bytes(body)

    @classmethod
    def unmarshal(cls, data: bytes) -> TransportLayerCC:
        data = bytes(data)
        padding, count, packet_type, _ = _parse_header(data)
        if count != FORMAT_TCC or packet_type != TYPE_TRANSPORT_SPECIFIC_FEEDBACK:
            raise ValueError("not a transport-wide CC packet")
        if len(data) < HEADER_LENGTH + 16:
            raise ValueError("transport-wide CC packet too short")
        end = _content_end(data, padding, HEADER_LENGTH + 16)
        sender, media, base, status_count, word = struct.unpack_from(">IIHHI", data, 4)
        offset = HEADER_LENGTH + 16
        chunks: list[RunLengthChunk | StatusVectorChunk] = []
        delta_types: list[int] = []
        processed = 0
        while processed < status_count:
            if offset + 2 > end:
                raise ValueError("transport-wide CC packet chunks truncated")
            chunk = _parse_chunk(struct.unpack_from(">H", data, offset)[0])
            offset += 2
            chunks.append(chunk)
            remaining = status_count - processed
            if isinstance(chunk, RunLengthChunk):
                count_here = min(remaining, chunk.run_length)
                if chunk.packet_status_symbol in (TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA,
                                                  TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA):
                    delta_types.extend([chunk.packet_status_symbol] * count_here)
            else:
                symbols = chunk.symbol_list[:remaining]
                count_here = len(symbols)
                for symbol in symbols:
                    if chunk.symbol_size == TYPE_TCC_SYMBOL_SIZE_ONE_BIT:
                        if symbol == TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA:
                            delta_types.append(TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA)
                    elif symbol in (TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA,
                                    TYPE_TCC_PACKET_RECEIVED_LARGE_DELTA):
                        delta_types.append(symbol)
            if count_here == 0:
                raise ValueError("transport-wide CC chunk covers no packets")
            processed += count_here
        deltas = []
        for delta_type in delta_types:
            if delta_type == TYPE_TCC_PACKET_RECEIVED_SMALL_DELTA:
                if offset + 1 > end:
                    raise ValueError("transport-wide CC deltas truncated")
                deltas.append(RecvDelta(delta_type, data[offset] * TYPE_TCC_DELTA_SCALE_FACTOR))
                offset += 1
            else:
                if offset + 2 > end:
                    raise ValueError("transport-wide CC deltas truncated")
                scaled = struct.unpack_from(">h", data, offset)[0]
                deltas.append(RecvDelta(delta_type, scaled * TYPE_TCC_DELTA_SCALE_FACTOR))
                offset += 2
        return cls(sender, media, base, status_count, word >> 8, word & 0xFF, chunks, deltas)


@dataclass
class MetricBlock:
    received: bool = False
    ecn: int = 0
    arrival_time_offset: int = 0


@dataclass
class ReportBlock:
    media_ssrc: int = 0
    begin_sequence: int = 0
    metric_blocks: list[MetricBlock] = field(default_factory=list)


@dataclass
class CCFeedbackReport:
    sender_ssrc: int = 0
    report_blocks: list[ReportBlock] = field(default_factory=list)
    report_timestamp: int = 0

    def marshal(self) -> bytes:
        body = bytearray(struct.pack(">I", self.sender_ssrc))
        for block in self.report_blocks:
            count = len(block.metric_blocks)
            body += struct.pack(">IHH", block.media_ssrc, block.begin_sequence, count)
            for metric in block.metric_blocks:
                value = (int(metric.received) << 15 | (metric.ecn & 0x3) << 13
                         | (metric.arrival_time_offset & 0x1FFF))
                body += struct.pack(">H", value)
            if count % 2:
                body += bytes(2)
        body += struct.pack(">I", self.report_timestamp)
        total = HEADER_LENGTH + len(body)
        return _header(FORMAT_CCFB, TYPE_TRANSPORT_SPECIFIC_FEEDBACK, total) + bytes(body)

    @classmethod
    def unmarshal(cls, data: bytes) -> CCFeedbackReport:
        data = bytes(data)
        padding, count, packet_type, _ = _parse_header(data)
        if count != FORMAT_CCFB or packet_type != TYPE_TRANSPORT_SPECIFIC_FEEDBACK:
            raise ValueError("not a congestion control feedback packet")
        if len(data) < HEADER_LENGTH + 8:
            raise ValueError("congestion control feedback packet too short")
        end = _content_end(data, padding, HEADER_LENGTH + 8)
        sender = struct.unpack_from(">I", data, HEADER_LENGTH)[0]
        timestamp = struct.unpack_from(">I", data, end - 4)[0]
        blocks_end = end - 4
        offset = HEADER_LENGTH + 4
        blocks = []
        while offset < blocks_end:
            if offset + 8 > blocks_end:
                raise ValueError("report block truncated")
            ssrc, begin, num = struct.unpack_from(">IHH", data, offset)
            offset += 8
            length = num * 2 + (num % 2) * 2
            if offset + length > blocks_end:
                raise ValueError("metric blocks truncated")
            metrics = []
            for i in range(num):
                value = struct.unpack_from(">H", data, offset + 2 * i)[0]
                metrics.append(MetricBlock(bool(value >> 15), (value >> 13) & 0x3, value & 0x1FFF))
            offset += length
            blocks.append(ReportBlock(ssrc, begin, metrics))
        return cls(sender, blocks, timestamp)


@dataclass
class ReceptionReport:
    ssrc: int = 0
    fraction_lost: int = 0
    total_lost: int = 0
    last_sequence_number: int = 0
    jitter: int = 0
    last_sender_report: int = 0
    delay: int = 0


@dataclass
class SenderReport:
    ssrc: int = 0
    ntp_time: int = 0
    rtp_time: int = 0
    packet_count: int = 0
    octet_count: int = 0
    reports: list[ReceptionReport] = field(default_factory=list)
    profile_extensions: bytes = b""

    def marshal(self) -> bytes:
        body = bytearray(struct.pack(">IQIII", self.ssrc, self.ntp_time, self.rtp_time,
                                     self.packet_count, self.octet_count))
        for r in self.reports:
            body += struct.pack(">IIIIII", r.ssrc,
                                (r.fraction_lost & 0xFF) << 24 | (r.total_lost & 0xFFFFFF),
                                r.last_sequence_number, r.jitter, r.last_sender_report, r.delay)
        body += self.profile_extensions
        if (HEADER_LENGTH + len(body)) % 4:
            raise ValueError("sender report profile extensions must align to 32 bits")
        total = HEADER_LENGTH + len(body)
        return _header(len(self.reports), TYPE_SENDER_REPORT, total) + bytes(body)

    @classmethod
    def unmarshal(cls, data: bytes) -> SenderReport:
        data = bytes(data)
        padding, count, packet_type, _ = _parse_header(data)
        if packet_type != TYPE_SENDER_REPORT:
            raise ValueError("not a sender report")
        if len(data) < HEADER_LENGTH + 24 + 24 * count:
            raise ValueError("sender report too short")
        end = _content_end(data, padding, HEADER_LENGTH + 24 + 24 * count)
        ssrc, ntp_time, rtp_time, packets, octets = struct.unpack_from(">IQIII", data, HEADER_LENGTH)
        offset = HEADER_LENGTH + 24
        reports = []
        for _ in range(count):
            r_ssrc, lost, last, jitter, lsr, delay = struct.unpack_from(">IIIIII", data, offset)
            reports.append(ReceptionReport(r_ssrc, lost >> 24, lost & 0xFFFFFF, last, jitter, lsr, delay))
            offset += 24
        return cls(ssrc, ntp_time, rtp_time, packets, octets, reports, data[offset:end])


@dataclass
class RawPacket:
    data: bytes = b""

    def marshal(self) -> bytes:
        return bytes(self.data)


Packet = Union[TransportLayerCC, CCFeedbackReport, SenderReport, RawPacket]


def marshal(packets: list[Packet]) -> bytes:
    """Serialise a compound RTCP packet."""
    return b"".join(packet.marshal() for packet in packets)


def unmarshal(data: bytes | None) -> list[Packet]:
    """Parse a compound RTCP packet."""
    data = bytes(data or b"")
    packets: list[Packet] = []
    while data:
        _, count, packet_type, size = _parse_header(data)
        if size > len(data):
            raise ValueError("RTCP packet length exceeds buffer")
        chunk = data[:size]
        if packet_type == TYPE_SENDER_REPORT:
            packets.append(SenderReport.unmarshal(chunk))
        elif packet_type == TYPE_TRANSPORT_SPECIFIC_FEEDBACK and count == FORMAT_TCC:
            packets.append(TransportLayerCC.unmarshal(chunk))
        elif packet_type == TYPE_TRANSPORT_SPECIFIC_FEEDBACK and count == FORMAT_CCFB:
            packets.append(CCFeedbackReport.unmarshal(chunk))
        else:
            packets.append(RawPacket(chunk))
        data = data[size:]
    if not packets:
        raise ValueError("invalid RTCP header")
    return packets