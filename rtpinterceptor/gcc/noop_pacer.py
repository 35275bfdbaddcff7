"""A pacer that sends every packet immediately."""

from __future__ import annotations

import threading

from rtpinterceptor.attributes import Attributes
from rtpinterceptor.interceptor import RTPWriter
from rtpinterceptor.rtp import Header


class UnknownStreamError(LookupError):
    """A packet was written for an SSRC that was never added."""

    def __init__(self, ssrc: int) -> None:
        self.ssrc = ssrc
        super().__init__(f"unknown ssrc: {ssrc}")


class NoOpPacer:
    """Forwards each packet at once to the writer of its stream."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._writers: dict[int, RTPWriter] = {}

    def set_target_bitrate(self, rate: int) -> None:
        """Ignored: this pacer does not limit the rate."""

    def add_stream(self, ssrc: int, writer: RTPWriter) -> None:
        with self._lock:
            self._writers[ssrc] = writer

    def write(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        """Send a packet to the stream of ``header.ssrc``."""
        with self._lock:
            writer = self._writers.get(header.ssrc)
            if writer is None:
                raise UnknownStreamError(header.ssrc)
            return writer.write(header, payload, attributes)

    def close(self) -> None:
        """Nothing to release."""