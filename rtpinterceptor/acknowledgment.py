"""Acknowledgments: what congestion controllers learn about sent packets."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Acknowledgment:
    """A sent packet and if and when it was received.

    Times are integer nanoseconds; 0 means the time is not known, so an
    ``arrival`` of 0 marks a packet that was not reported as received.
    """

    sequence_number: int = 0
    ssrc: int = 0
    size: int = 0
    departure: int = 0
    arrival: int = 0
    ecn: int = 0

    def __str__(self) -> str:
        return (
            "ACK:\n"
            f"\tTLCC:\t{self.sequence_number}\n"
            f"\tSIZE:\t{self.size}\n"
            f"\tDEPARTURE:\t{int(self.departure / 1e6)}\n"
            f"\tARRIVAL:\t{int(self.arrival / 1e6)}\n"
        )