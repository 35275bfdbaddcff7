"""RTP header and packet encoding."""

from __future__ import annotations

import copy
import struct
from dataclasses import dataclass, field

ONE_BYTE_PROFILE = 0xBEDE
TWO_BYTE_PROFILE = 0x1000
HEADER_LENGTH = 12
_RESERVED_ONE_BYTE_ID = 15


@dataclass
class Extension:
    id: int
    payload: bytes


@dataclass
class Header:
    version: int = 0
    padding: bool = False
    extension: bool = False
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: list[int] = field(default_factory=list)
    extension_profile: int = 0
    extensions: list[Extension] = field(default_factory=list)

    def _extension_payload_len(self) -> int:
        if self.extension_profile == ONE_BYTE_PROFILE:
            return sum(1 + len(e.payload) for e in self.extensions)
        if self.extension_profile == TWO_BYTE_PROFILE:
            return sum(2 + len(e.payload) for e in self.extensions)
        return sum(len(e.payload) for e in self.extensions)

    def marshal_size(self) -> int:
        size = HEADER_LENGTH + 4 * len(self.csrc)
        if self.extension:
            size += 4 + (self._extension_payload_len() + 3) // 4 * 4
        return size

    def marshal(self) -> bytes:
        b0 = (
            (self.version & 0x3) << 6
            | int(self.padding) << 5
            | int(self.extension) << 4
            | (len(self.csrc) & 0xF)
        )
        b1 = int(self.marker) << 7 | (self.payload_type & 0x7F)
        out = bytearray(
            struct.pack(">BBHII", b0, b1, self.sequence_number & 0xFFFF,
                        self.timestamp & 0xFFFFFFFF, self.ssrc & 0xFFFFFFFF)
        )
        for csrc in self.csrc:
            out += struct.pack(">I", csrc)
        if self.extension:
            words = (self._extension_payload_len() + 3) // 4
            out += struct.pack(">HH", self.extension_profile, words)
            body = bytearray()
            for ext in self.extensions:
                if self.extension_profile == ONE_BYTE_PROFILE:
                    body.append((ext.id << 4) | (len(ext.payload) - 1))
                elif self.extension_profile == TWO_BYTE_PROFILE:
                    body += bytes([ext.id, len(ext.payload)])
                body += ext.payload
            body += bytes(words * 4 - len(body))
            out += body
        return bytes(out)

    @classmethod
    def unmarshal(cls, data: bytes | None) -> Header:
        return cls._parse(data)[0]

    @classmethod
    def _parse(cls, data: bytes | None) -> tuple[Header, int]:
        data = bytes(data or b"")
        if len(data) < HEADER_LENGTH:
            raise ValueError("RTP header size insufficient")
        b0, b1, seq, ts, ssrc = struct.unpack_from(">BBHII", data)
        cc = b0 & 0xF
        offset = HEADER_LENGTH + 4 * cc
        if len(data) < offset:
            raise ValueError("RTP header size insufficient for CSRC list")
        csrc = list(struct.unpack_from(f">{cc}I", data, HEADER_LENGTH))
        has_ext = bool(b0 & 0x10)
        profile = 0
        extensions: list[Extension] = []
        if has_ext:
            if len(data) < offset + 4:
                raise ValueError("RTP header size insufficient for extension")
            profile, words = struct.unpack_from(">HH", data, offset)
            offset += 4
            end = offset + words * 4
            if len(data) < end:
                raise ValueError("RTP header size insufficient for extension payload")
            extensions = _parse_extensions(profile, data[offset:end])
            offset = end
        header = cls(
            version=b0 >> 6,
            padding=bool(b0 & 0x20),
            extension=has_ext,
            marker=bool(b1 & 0x80),
            payload_type=b1 & 0x7F,
            sequence_number=seq,
            timestamp=ts,
            ssrc=ssrc,
            csrc=csrc,
            extension_profile=profile,
            extensions=extensions,
        )
        return header, offset

    def get_extension(self, ext_id: int) -> bytes | None:
        """Return the payload of the extension with ``ext_id``, if present."""
        if not self.extension:
            return None
        for ext in self.extensions:
            if ext.id == ext_id:
                return ext.payload
        return None

    def set_extension(self, ext_id: int, payload: bytes) -> None:
        """Set or replace a header extension."""
        payload = bytes(payload)
        if self.extension:
            if self.extension_profile == ONE_BYTE_PROFILE:
                if not 1 <= ext_id <= 14:
                    raise ValueError("one-byte extension id must be in 1..14")
                if not 1 <= len(payload) <= 16:
                    raise ValueError("one-byte extension payload must be 1..16 bytes")
            elif self.extension_profile == TWO_BYTE_PROFILE:
                if not 1 <= ext_id <= 255:
                    raise ValueError("two-byte extension id must be in 1..255")
                if len(payload) > 255:
                    raise ValueError("two-byte extension payload must be at most 255 bytes")
            elif ext_id != 0:
                raise ValueError("raw extension id must be 0")
            for ext in self.extensions:
                if ext.id == ext_id:
                    ext.payload = payload
                    return
            self.extensions.append(Extension(ext_id, payload))
            return
        if 1 <= len(payload) <= 16 and 1 <= ext_id <= 14:
            self.extension_profile = ONE_BYTE_PROFILE
        elif len(payload) <= 255 and 1 <= ext_id <= 255:
            self.extension_profile = TWO_BYTE_PROFILE
        else:
            raise ValueError("extension id or payload size not supported")
        self.extension = True
        self.extensions = [Extension(ext_id, payload)]

    def clone(self) -> Header:
        return copy.deepcopy(self)


def _parse_extensions(profile: int, body: bytes) -> list[Extension]:
    extensions = []
    if profile == ONE_BYTE_PROFILE:
        i = 0
        while i < len(body):
            b = body[i]
            if b == 0:
                i += 1
                continue
            ext_id = b >> 4
            length = (b & 0xF) + 1
            i += 1
            if ext_id == _RESERVED_ONE_BYTE_ID:
                break
            if i + length > len(body):
                raise ValueError("RTP extension payload truncated")
            extensions.append(Extension(ext_id, body[i:i + length]))
            i += length
    elif profile == TWO_BYTE_PROFILE:
        i = 0
        while i < len(body):
            ext_id = body[i]
            if ext_id == 0:
                i += 1
                continue
            if i + 1 >= len(body):
                raise ValueError("RTP extension header truncated")
            length = body[i + 1]
            i += 2
            if i + length > len(body):
                raise ValueError("RTP extension payload truncated")
            extensions.append(Extension(ext_id, body[i:i + length]))
            i += length
    else:
        extensions.append(Extension(0, bytes(body)))
    return extensions


@dataclass
class Packet:
    header: Header = field(default_factory=Header)
    payload: bytes = b""
    padding_size: int = 0

    def marshal_size(self) -> int:
        size = self.header.marshal_size() + len(self.payload)
        if self.header.padding:
            size += self.padding_size
        return size

    def marshal(self) -> bytes:
        out = self.header.marshal() + bytes(self.payload)
        if self.header.padding and self.padding_size > 0:
            out += bytes(self.padding_size - 1) + bytes([self.padding_size])
        return out

    @classmethod
    def unmarshal(cls, data: bytes | None) -> Packet:
        data = bytes(data or b"")
        header, offset = Header._parse(data)
        end = len(data)
        padding_size = 0
        if header.padding:
            if end <= offset:
                raise ValueError("RTP packet too short for padding")
            padding_size = data[-1]
            if padding_size == 0 or padding_size > end - offset:
                raise ValueError("invalid RTP padding size")
            end -= padding_size
        return cls(header=header, payload=data[offset:end], padding_size=padding_size)


@dataclass
class TransportCCExtension:
    transport_sequence: int = 0

    def marshal(self) -> bytes:
        return struct.pack(">H", self.transport_sequence & 0xFFFF)

    @classmethod
    def unmarshal(cls, data: bytes | None) -> TransportCCExtension:
        if data is None or len(data) < 2:
            raise ValueError("transport-cc extension too short")
        return cls(struct.unpack_from(">H", data)[0])