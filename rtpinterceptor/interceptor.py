"""The interceptor interface, a pass-through base and a chaining interceptor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from rtpinterceptor.attributes import Attributes
from rtpinterceptor.errors import flatten_errs
from rtpinterceptor.rtp import Header


class RTPWriter(Protocol):
    def write(self, header: Header, payload: bytes, attributes: Attributes | None) -> int: ...


class RTPReader(Protocol):
    def read(self, data: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]: ...


class RTCPWriter(Protocol):
    def write(self, packets: list, attributes: Attributes | None) -> int: ...


class RTCPReader(Protocol):
    def read(self, data: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]: ...


class Interceptor(ABC):
    """Modifies incoming and outgoing RTP/RTCP packets, or sends its own."""

    @abstractmethod
    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        """Wrap the reader of incoming RTCP packet batches."""

    @abstractmethod
    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        """Wrap the writer of outgoing RTCP packet batches."""

    @abstractmethod
    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        """Wrap the writer of outgoing RTP packets of one local stream."""

    @abstractmethod
    def unbind_local_stream(self, info: Any) -> None:
        """Release what was kept for a removed local stream."""

    @abstractmethod
    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        """Wrap the reader of incoming RTP packets of one remote stream."""

    @abstractmethod
    def unbind_remote_stream(self, info: Any) -> None:
        """Release what was kept for a removed remote stream."""

    @abstractmethod
    def close(self) -> None:
        """Close the interceptor; raise if cleaning up failed."""


class NoOp(Interceptor):
    """An interceptor that leaves all packets untouched; a base for partial interceptors."""

    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        return reader

    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        return writer

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        return writer

    def unbind_local_stream(self, info: Any) -> None:
        pass

    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        return reader

    def unbind_remote_stream(self, info: Any) -> None:
        pass

    def close(self) -> None:
        pass


class Chain(Interceptor):
    """Runs several interceptors in order."""

    def __init__(self, interceptors: Sequence[Interceptor]) -> None:
        self.interceptors = list(interceptors)

    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        for interceptor in self.interceptors:
            reader = interceptor.bind_rtcp_reader(reader)
        return reader

    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        for interceptor in self.interceptors:
            writer = interceptor.bind_rtcp_writer(writer)
        return writer

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        for interceptor in self.interceptors:
            writer = interceptor.bind_local_stream(info, writer)
        return writer

    def unbind_local_stream(self, info: Any) -> None:
        for interceptor in self.interceptors:
            interceptor.unbind_local_stream(info)

    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        for interceptor in self.interceptors:
            reader = interceptor.bind_remote_stream(info, reader)
        return reader

    def unbind_remote_stream(self, info: Any) -> None:
        for interceptor in self.interceptors:
            interceptor.unbind_remote_stream(info)

    def close(self) -> None:
        """Close every interceptor, raising a MultiError of all failures."""
        errors: list[Exception] = []
        for interceptor in self.interceptors:
            try:
                interceptor.close()
            except Exception as err:  # noqa: BLE001 - every failure is collected
                errors.append(err)
        combined = flatten_errs(errors)
        if combined is not None:
            raise combined


@dataclass(frozen=True)
class RTPWriterFunc:
    """Adapts a callable to the RTP writer interface."""

    fn: Callable[[Header, bytes, Attributes | None], int]

    def write(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        return self.fn(header, payload, attributes)


@dataclass(frozen=True)
class RTPReaderFunc:
    """Adapts a callable to the RTP reader interface."""

    fn: Callable[[bytes, Attributes | None], tuple[int, Attributes | None]]

    def read(self, data: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]:
        return self.fn(data, attributes)


@dataclass(frozen=True)
class RTCPWriterFunc:
    """Adapts a callable to the RTCP writer interface."""

    fn: Callable[[list, Attributes | None], int]

    def write(self, packets: list, attributes: Attributes | None) -> int:
        return self.fn(packets, attributes)


@dataclass(frozen=True)
class RTCPReaderFunc:
    """Adapts a callable to the RTCP reader interface."""

    fn: Callable[[bytes, Attributes | None], tuple[int, Attributes | None]]

    def read(self, data: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]:
        return self.fn(data, attributes)