"""Interceptor that sends FlexFEC repair packets after batches of media packets."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from rtpinterceptor.attributes import Attributes
from rtpinterceptor.flexfec.encoder03 import FlexEncoder03
from rtpinterceptor.interceptor import NoOp, RTPWriter, RTPWriterFunc
from rtpinterceptor.rtp import Header, Packet

_MIN_NUM_MEDIA_PACKETS = 5
_NUM_FEC_PACKETS = 2


class FecInterceptor(NoOp):
    """Buffers outgoing media packets and emits FEC packets for every full batch."""

    def __init__(self, min_num_media_packets: int = _MIN_NUM_MEDIA_PACKETS) -> None:
        self.flex_fec_encoder: FlexEncoder03 | None = None
        self.packet_buffer: list[Packet] = []
        self.min_num_media_packets = min_num_media_packets

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        """Wrap ``writer`` so that FEC packets follow each batch of media packets."""
        self.flex_fec_encoder = FlexEncoder03(info.payload_type, info.ssrc)
        encoder = self.flex_fec_encoder

        def write(header: Header, payload: bytes, attributes: Attributes | None) -> int:
            self.packet_buffer.append(Packet(header=header.clone(), payload=bytes(payload)))

            error: Exception | None = None
            result = 0
            try:
                result = writer.write(header, payload, attributes)
            except Exception as err:  # noqa: BLE001 - re-raised after FEC is sent
                error = err

            if len(self.packet_buffer) == self.min_num_media_packets:
                for fec in encoder.encode_fec(self.packet_buffer, _NUM_FEC_PACKETS):
                    try:
                        writer.write(fec.header, fec.payload, attributes)
                    except Exception:  # noqa: BLE001 - stop sending on the first failure
                        break
                self.packet_buffer = []

            if error is not None:
                raise error
            return result

        return RTPWriterFunc(write)


class FecInterceptorFactory:
    """Creates FecInterceptors.

    Options are accepted and kept; the interceptors use fixed batch parameters.
    """

    def __init__(self, *args: Callable[[FecInterceptor], None]) -> None:
        self.options = list(args)

    def new_interceptor(self, interceptor_id: str) -> FecInterceptor:
        return FecInterceptor()