"""FlexFEC encoder for the RFC 8627 header layout."""

from __future__ import annotations

import struct
from collections.abc import Sequence

from rtpinterceptor.flexfec.coverage import ProtectionCoverage, new_coverage
from rtpinterceptor.flexfec.media_packet_iterator import MediaPacketIterator
from rtpinterceptor.rtp import Header, Packet

BASE_RTP_HEADER_SIZE = 12
"""Smallest RTP header, in bytes."""
BASE_FEC_HEADER_SIZE = 12
"""Smallest FEC header including the first mask, in bytes."""

_FEC_TIMESTAMP = 54243243


def _marshal_into(packet: Packet, capacity: int) -> bytes | None:
    """Serialise ``packet`` if it fits into ``capacity`` bytes, else return None."""
    if packet.header.padding and packet.padding_size == 0:
        return None
    data = packet.marshal()
    if not data or len(data) > capacity:
        return None
    return data


def _repair_payload(media_packets: MediaPacketIterator) -> bytes:
    payload = bytearray(len(media_packets.first().payload))
    for packet in media_packets:
        media_payload = packet.payload
        if len(payload) < len(media_payload):
            payload.extend(bytes(len(media_payload) - len(payload)))
        for i, byte in enumerate(media_payload):
            payload[i] ^= byte
    return bytes(payload)


class FlexEncoder20:
    """Generates FlexFEC repair packets for a batch of media packets."""

    def __init__(self, payload_type: int, ssrc: int) -> None:
        self.payload_type = payload_type
        self.ssrc = ssrc
        self.fec_base_sn = 1000
        self.coverage: ProtectionCoverage | None = None

    def encode_fec(self, media_packets: Sequence[Packet], num_fec_packets: int) -> list[Packet]:
        """Return FEC packets protecting ``media_packets``, which must be in order and complete."""
        if self.coverage is None:
            self.coverage = new_coverage(media_packets, num_fec_packets)
        else:
            self.coverage.update_coverage(media_packets, num_fec_packets)
        if self.coverage is None:
            return []
        base_sn = media_packets[0].header.sequence_number
        return [self._encode_packet(i, base_sn) for i in range(num_fec_packets)]

    def _encode_packet(self, fec_packet_index: int, media_base_sn: int) -> Packet:
        coverage = self.coverage
        media_it = coverage.get_covered_by(fec_packet_index)
        fec_header = self._encode_header(
            media_it,
            coverage.extract_mask1(fec_packet_index),
            coverage.extract_mask2(fec_packet_index),
            coverage.extract_mask3(fec_packet_index),
            media_base_sn,
        )
        repair = _repair_payload(media_it.reset())
        packet = Packet(
            header=Header(
                version=2,
                payload_type=self.payload_type,
                sequence_number=self.fec_base_sn,
                timestamp=_FEC_TIMESTAMP,
                ssrc=self.ssrc,
                csrc=[],
            ),
            payload=fec_header + repair,
        )
        self.fec_base_sn = (self.fec_base_sn + 1) & 0xFFFF
        return packet

    @staticmethod
    def _encode_header(
        media_packets: MediaPacketIterator,
        mask1: int,
        mask2: int,
        mask3: int,
        media_base_sn: int,
    ) -> bytes:
        size = BASE_FEC_HEADER_SIZE
        if mask2 > 0:
            size += 4
        if mask3 > 0:
            size += 8
        header = bytearray(size)
        for packet in media_packets:
            raw = _marshal_into(packet, size)
            if raw is None:
                return b""
            header[0] ^= raw[0]
            header[1] ^= raw[1]
            length_recovery = (packet.marshal_size() - BASE_RTP_HEADER_SIZE) & 0xFFFF
            header[2] ^= length_recovery >> 8
            header[3] ^= length_recovery & 0xFF
            # The timestamp recovery field is cleared rather than XORed in this layout.
            header[4:8] = bytes(4)
        struct.pack_into(">H", header, 8, media_base_sn & 0xFFFF)
        struct.pack_into(">H", header, 10, mask1 & 0xFFFF)
        if mask2 > 0:
            struct.pack_into(">I", header, 12, mask2)
            header[10] |= 0x80
        if mask3 > 0:
            struct.pack_into(">Q", header, 16, mask3)
            header[12] |= 0x80
        return bytes(header)