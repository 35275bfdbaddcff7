"""FlexFEC encoder for the draft-03 header layout used by Chromium."""

from __future__ import annotations

import struct
from collections.abc import Sequence

from rtpinterceptor.flexfec.coverage import ProtectionCoverage, new_coverage
from rtpinterceptor.flexfec.encoder import (
    BASE_RTP_HEADER_SIZE,
    _marshal_into,
    _repair_payload,
)
from rtpinterceptor.flexfec.media_packet_iterator import MediaPacketIterator
from rtpinterceptor.rtp import Header, Packet

BASE_FEC03_HEADER_SIZE = 20
"""Smallest draft-03 FEC header including the first mask, in bytes."""

_FEC_TIMESTAMP = 54243243


class FlexEncoder03:
    """Generates FlexFEC (draft 03) repair packets for a batch of media packets."""

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
            coverage.extract_mask3_03(fec_packet_index),
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
        size = BASE_FEC03_HEADER_SIZE
        if mask2 > 0:
            size += 4
        if mask3 > 0:
            size += 8
        header = bytearray(size)
        for packet in media_packets:
            raw = _marshal_into(packet, packet.marshal_size())
            if raw is None:
                return b""
            header[0] ^= raw[0]
            header[1] ^= raw[1]
            header[0] &= 0x3F
            length_recovery = (packet.marshal_size() - BASE_RTP_HEADER_SIZE) & 0xFFFF
            header[2] ^= length_recovery >> 8
            header[3] ^= length_recovery & 0xFF
            for i in range(4, 8):
                header[i] ^= raw[i]

        header[8] = 1  # SSRC count
        header[9:12] = bytes(3)
        struct.pack_into(">I", header, 12, media_packets.first().header.ssrc & 0xFFFFFFFF)
        struct.pack_into(">H", header, 16, media_base_sn & 0xFFFF)
        struct.pack_into(">H", header, 18, mask1 & 0xFFFF)

        if mask2 == 0:
            header[18] |= 0x80
            return bytes(header)
        struct.pack_into(">I", header, 20, mask2 & 0xFFFFFFFF)
        if mask3 == 0:
            header[20] |= 0x80
        else:
            struct.pack_into(">Q", header, 24, mask3)
        return bytes(header)