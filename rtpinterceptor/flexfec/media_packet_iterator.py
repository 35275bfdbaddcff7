"""Iteration over the media packets protected by one FEC packet."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from rtpinterceptor.rtp import Packet


class MediaPacketIterator:
    """Steps through media packets, one per covered index."""

    def __init__(self, media_packets: Sequence[Packet], covered_indices: Sequence[int]) -> None:
        self.media_packets = list(media_packets)
        self.covered_indices = list(covered_indices)
        self._next_index = 0

    def reset(self) -> MediaPacketIterator:
        """Start again from the beginning and return self."""
        self._next_index = 0
        return self

    def has_next(self) -> bool:
        return self._next_index < len(self.covered_indices)

    def next(self) -> Packet | None:
        """Return the next media packet, or None when exhausted."""
        if self._next_index == len(self.covered_indices):
            return None
        packet = self.media_packets[self._next_index]
        self._next_index += 1
        return packet

    def first(self) -> Packet:
        """Return the first media packet."""
        return self.media_packets[0]

    def __iter__(self) -> Iterator[Packet]:
        while self.has_next():
            packet = self.next()
            if packet is None:
                return
            yield packet