"""Which media packets each FEC packet protects."""

from __future__ import annotations

from collections.abc import Sequence

from rtpinterceptor.flexfec.bitarray import BitArray
from rtpinterceptor.flexfec.media_packet_iterator import MediaPacketIterator
from rtpinterceptor.rtp import Packet

MAX_MEDIA_PACKETS = 110
"""Most media packets a single FEC packet can protect."""
MAX_FEC_PACKETS = MAX_MEDIA_PACKETS

_MASK64 = 0xFFFFFFFFFFFFFFFF


class ProtectionCoverage:
    """Interleaved coverage map: media packet X is protected by FEC packet X mod N."""

    def __init__(self) -> None:
        self.packet_masks = [BitArray() for _ in range(MAX_FEC_PACKETS)]
        self.num_fec_packets = 0
        self.num_media_packets = 0
        self.media_packets: list[Packet] = []

    def update_coverage(self, media_packets: Sequence[Packet], num_fec_packets: int) -> None:
        """Recompute the masks for a new batch; invalid batch sizes are ignored."""
        num_media = len(media_packets)
        if num_media <= 0 or num_media > MAX_MEDIA_PACKETS:
            return
        self.media_packets = list(media_packets)
        if num_fec_packets == self.num_fec_packets and num_media == self.num_media_packets:
            return
        self.num_fec_packets = num_fec_packets
        self.num_media_packets = num_media
        for mask in self.packet_masks:
            mask.reset()
        for fec_index in range(num_fec_packets):
            for media_index in range(fec_index, num_media, num_fec_packets):
                self.packet_masks[fec_index].set_bit(media_index)

    def get_covered_by(self, fec_packet_index: int) -> MediaPacketIterator:
        """Return an iterator over the media packets protected by one FEC packet."""
        mask = self.packet_masks[fec_packet_index]
        covered = [i for i in range(self.num_media_packets) if mask.get_bit(i) == 1]
        return MediaPacketIterator(self.media_packets, covered)

    def extract_mask1(self, fec_packet_index: int) -> int:
        """Mask bits 0-14, placed after the K bit."""
        return (self.packet_masks[fec_packet_index].lo >> 49) & 0xFFFF

    def extract_mask2(self, fec_packet_index: int) -> int:
        """Mask bits 15-45, placed after the K bit."""
        mask = (self.packet_masks[fec_packet_index].lo << 15) & _MASK64
        return (mask >> 34) & 0xFFFFFFFF

    def extract_mask3(self, fec_packet_index: int) -> int:
        """Mask bits 46-109 as one 64-bit word."""
        mask = self.packet_masks[fec_packet_index]
        return ((mask.lo << 46) & _MASK64) | (mask.hi >> 18)

    def extract_mask3_03(self, fec_packet_index: int) -> int:
        """Mask bits 46-108, placed after the K bit (draft 03 layout)."""
        return self.extract_mask3(fec_packet_index) >> 1


def new_coverage(media_packets: Sequence[Packet], num_fec_packets: int) -> ProtectionCoverage | None:
    """Build the coverage for a batch, or return None if the batch size is invalid."""
    num_media = len(media_packets)
    if num_media <= 0 or num_media > MAX_MEDIA_PACKETS:
        return None
    coverage = ProtectionCoverage()
    coverage.update_coverage(media_packets, num_fec_packets)
    return coverage