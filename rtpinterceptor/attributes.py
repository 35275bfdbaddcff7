"""Key/value store that travels with packets through interceptors."""

from __future__ import annotations

from enum import Enum

from rtpinterceptor import rtcp
from rtpinterceptor.rtp import Header


class _Key(Enum):
    RTP_HEADER = 0
    RTCP_PACKETS = 1


class InvalidTypeError(TypeError):
    """A cached value in the attributes has an unexpected type."""

    def __init__(self) -> None:
        super().__init__("found value of invalid type in attributes map")


class Attributes(dict):
    """Generic attribute map with cached parsing of RTP and RTCP data."""

    def get_rtp_header(self, raw: bytes | None) -> Header:
        """Return the cached RTP header, parsing and caching it from ``raw`` if absent."""
        if _Key.RTP_HEADER in self:
            value = self[_Key.RTP_HEADER]
            if isinstance(value, Header):
                return value
            raise InvalidTypeError()
        header = Header.unmarshal(raw)
        self[_Key.RTP_HEADER] = header
        return header

    def get_rtcp_packets(self, raw: bytes | None) -> list:
        """Return the cached RTCP packets, parsing and caching them from ``raw`` if absent."""
        if _Key.RTCP_PACKETS in self:
            value = self[_Key.RTCP_PACKETS]
            if isinstance(value, list):
                return value
            raise InvalidTypeError()
        packets = rtcp.unmarshal(raw)
        self[_Key.RTCP_PACKETS] = packets
        return packets