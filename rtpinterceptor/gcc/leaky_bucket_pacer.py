"""Leaky bucket pacing of outgoing RTP packets."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass

from rtpinterceptor.attributes import Attributes
from rtpinterceptor.interceptor import RTPWriter
from rtpinterceptor.rtp import Header

_MILLISECOND = 1_000_000

_log = logging.getLogger(__name__)


@dataclass
class _Item:
    header: Header
    payload: bytes
    attributes: Attributes | None


class LeakyBucketPacer:
    """Queues packets and releases them at up to ``f`` times the target bitrate."""

    def __init__(self, initial_bitrate: int) -> None:
        self.f = 1.5
        self._target_bitrate = initial_bitrate
        self._target_lock = threading.Lock()
        self.pacing_interval = 5 * _MILLISECOND
        self._queue: deque[_Item] = deque()
        self._queue_lock = threading.Lock()
        self._writers: dict[int, RTPWriter] = {}
        self._writer_lock = threading.Lock()
        self._done = threading.Event()
        self._thread = threading.Thread(target=self.run, name="leaky-bucket-pacer", daemon=True)
        self._thread.start()

    @property
    def target_bitrate(self) -> int:
        with self._target_lock:
            return self._target_bitrate

    def add_stream(self, ssrc: int, writer: RTPWriter) -> None:
        """Register the writer that receives the packets of ``ssrc``."""
        with self._writer_lock:
            self._writers[ssrc] = writer

    def set_target_bitrate(self, rate: int) -> None:
        """Set the bitrate to pace at; the pacer may exceed it by the factor ``f``."""
        with self._target_lock:
            self._target_bitrate = int(self.f * float(rate))

    def write(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        """Queue a packet for its stream and return its size on the wire."""
        item = _Item(header=header.clone(), payload=bytes(payload), attributes=attributes)
        with self._queue_lock:
            self._queue.append(item)
        return header.marshal_size() + len(payload)

    def run(self) -> None:
        """Release queued packets every pacing interval until closed."""
        interval = self.pacing_interval / 1e9
        last_sent = time.monotonic_ns()
        while not self._done.wait(interval):
            now = time.monotonic_ns()
            elapsed_ms = (now - last_sent) // _MILLISECOND
            budget = int(float(elapsed_ms) * float(self.target_bitrate) / 8000.0)
            while budget > 0:
                with self._queue_lock:
                    if not self._queue:
                        break
                    item = self._queue.popleft()
                _log.debug("budget=%s, len(queue)=%s", budget, len(self._queue))
                with self._writer_lock:
                    writer = self._writers.get(item.header.ssrc)
                if writer is None:
                    _log.warning("no writer found for ssrc: %s", item.header.ssrc)
                    continue
                try:
                    sent = writer.write(item.header, item.payload, item.attributes)
                except Exception as err:  # noqa: BLE001 - pacing goes on after a failed write
                    _log.error("failed to write packet: %s", err)
                    sent = 0
                last_sent = now
                budget -= sent

    def close(self) -> None:
        """Stop pacing."""
        self._done.set()
        if self._thread is not threading.current_thread():
            self._thread.join()