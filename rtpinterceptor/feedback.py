"""Conversion of TWCC and RFC 8888 feedback into acknowledgments."""

from __future__ import annotations

import itertools
import threading
from collections import OrderedDict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from rtpinterceptor import ntp
from rtpinterceptor.acknowledgment import Acknowledgment
from rtpinterceptor.rtcp import (
    TYPE_TCC_PACKET_NOT_RECEIVED,
    CCFeedbackReport,
    RecvDelta,
    RunLengthChunk,
    StatusVectorChunk,
    TransportLayerCC,
)
from rtpinterceptor.rtp import Header, TransportCCExtension

TWCC_EXTENSION_ATTRIBUTES_KEY = 0
"""Attribute key under which the TWCC header extension id is stored."""

_HISTORY_SIZE = 250
_MICROSECOND = 1_000
_MILLISECOND = 1_000_000
_SECOND = 1_000_000_000


class MissingTWCCExtensionError(ValueError):
    """A sent packet lacks the transport-wide sequence number extension."""

    def __init__(self) -> None:
        super().__init__("missing transport layer cc header extension")


class InvalidFeedbackError(ValueError):
    """Feedback that does not match what was sent."""

    def __init__(self) -> None:
        super().__init__("invalid feedback")


class _FeedbackHistory:
    """A bounded map of sent packets that forgets the least recently added."""

    def __init__(self, size: int) -> None:
        self._size = size
        self._items: OrderedDict[tuple[int, int], Acknowledgment] = OrderedDict()

    def get(self, key: tuple[int, int]) -> Acknowledgment | None:
        return self._items.get(key)

    def add(self, ack: Acknowledgment) -> None:
        key = (ack.ssrc, ack.sequence_number)
        if key in self._items:
            self._items.move_to_end(key)
            self._items[key] = ack
            return
        self._items[key] = ack
        if len(self._items) > self._size:
            self._items.popitem(last=False)


class FeedbackAdapter:
    """Records sent packets and maps incoming feedback onto them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history = _FeedbackHistory(_HISTORY_SIZE)

    def on_sent(
        self, ts: int, header: Header, size: int, attributes: Mapping | None
    ) -> None:
        """Record that a packet with ``header`` and payload ``size`` left at ``ts``."""
        ext_id = attributes.get(TWCC_EXTENSION_ATTRIBUTES_KEY) if attributes else None
        if isinstance(ext_id, int) and not isinstance(ext_id, bool):
            self._on_sent_twcc(ts, ext_id, header, size)
        else:
            self._on_sent_rfc8888(ts, header, size)

    def _on_sent_rfc8888(self, ts: int, header: Header, size: int) -> None:
        with self._lock:
            self._history.add(Acknowledgment(
                sequence_number=header.sequence_number,
                ssrc=header.ssrc,
                size=size,
                departure=ts,
            ))

    def _on_sent_twcc(self, ts: int, ext_id: int, header: Header, size: int) -> None:
        try:
            ext = TransportCCExtension.unmarshal(header.get_extension(ext_id))
        except ValueError as err:
            raise MissingTWCCExtensionError() from err
        with self._lock:
            self._history.add(Acknowledgment(
                sequence_number=ext.transport_sequence,
                ssrc=0,
                size=header.marshal_size() + size,
                departure=ts,
            ))

    def _unpack(
        self,
        start: int,
        ref_time: int,
        symbols: Iterable[int],
        deltas: Sequence[RecvDelta],
    ) -> tuple[int, int, list[Acknowledgment]]:
        result: list[Acknowledgment] = []
        delta_index = 0
        for offset, symbol in enumerate(symbols):
            ack = self._history.get((0, (start + offset) & 0xFFFF))
            if ack is None:
                result.append(Acknowledgment())
                continue
            if symbol != TYPE_TCC_PACKET_NOT_RECEIVED:
                if delta_index >= len(deltas):
                    raise InvalidFeedbackError()
                ref_time += deltas[delta_index].delta * _MICROSECOND
                ack = replace(ack, arrival=ref_time)
                delta_index += 1
            result.append(ack)
        return delta_index, ref_time, result

    def unpack_run_length_chunk(
        self, start: int, ref_time: int, chunk: RunLengthChunk, deltas: Sequence[RecvDelta]
    ) -> tuple[int, int, list[Acknowledgment]]:
        """Return consumed deltas, the next reference time and the acknowledgments."""
        symbols = itertools.repeat(chunk.packet_status_symbol, chunk.run_length)
        return self._unpack(start, ref_time, symbols, deltas)

    def unpack_status_vector_chunk(
        self, start: int, ref_time: int, chunk: StatusVectorChunk, deltas: Sequence[RecvDelta]
    ) -> tuple[int, int, list[Acknowledgment]]:
        """Return consumed deltas, the next reference time and the acknowledgments."""
        return self._unpack(start, ref_time, chunk.symbol_list, deltas)

    def on_transport_cc_feedback(
        self, ts: int, feedback: TransportLayerCC
    ) -> list[Acknowledgment]:
        """Convert a transport-wide CC feedback packet into acknowledgments."""
        with self._lock:
            result: list[Acknowledgment] = []
            index = feedback.base_sequence_number
            ref_time = feedback.reference_time * 64 * _MILLISECOND
            deltas = list(feedback.recv_deltas)
            for chunk in feedback.packet_chunks:
                if isinstance(chunk, RunLengthChunk):
                    consumed, ref_time, acks = self.unpack_run_length_chunk(
                        index, ref_time, chunk, deltas)
                elif isinstance(chunk, StatusVectorChunk):
                    consumed, ref_time, acks = self.unpack_status_vector_chunk(
                        index, ref_time, chunk, deltas)
                else:
                    raise InvalidFeedbackError()
                result.extend(acks)
                deltas = deltas[consumed:]
                index = (index + len(acks)) & 0xFFFF
            return result

    def on_rfc8888_feedback(
        self, ts: int, feedback: CCFeedbackReport
    ) -> list[Acknowledgment]:
        """Convert an RFC 8888 congestion control feedback report into acknowledgments."""
        with self._lock:
            result: list[Acknowledgment] = []
            reference_time = ntp.to_time(feedback.report_timestamp << 16)
            for block in feedback.report_blocks:
                for i, metric in enumerate(block.metric_blocks):
                    key = (block.media_ssrc, (block.begin_sequence + i) & 0xFFFF)
                    ack = self._history.get(key)
                    if ack is None:
                        continue
                    if metric.received:
                        delta = int((metric.arrival_time_offset / 1024.0) * _SECOND)
                        ack = replace(ack, arrival=reference_time - delta, ecn=metric.ecn)
                    result.append(ack)
            return result