"""A group of packets that arrived close together."""

from __future__ import annotations

from dataclasses import dataclass, field

from rtpinterceptor.acknowledgment import Acknowledgment


@dataclass
class ArrivalGroup:
    """Packets of one burst; times are those of the last packet, in nanoseconds."""

    packets: list[Acknowledgment] = field(default_factory=list)
    departure: int = 0
    arrival: int = 0

    def add(self, ack: Acknowledgment) -> None:
        self.packets.append(ack)
        self.arrival = ack.arrival
        self.departure = ack.departure

    def __str__(self) -> str:
        return (
            "ARRIVALGROUP:\n"
            f"\tARRIVAL:\t{int(self.arrival / 1e6)}\n"
            f"\tDEPARTURE:\t{int(self.departure / 1e6)}\n"
            f"\tPACKETS:\n{self.packets}\n"
        )