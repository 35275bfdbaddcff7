"""Grouping of acknowledgments into arrival groups."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from rtpinterceptor.acknowledgment import Acknowledgment
from rtpinterceptor.gcc.arrival_group import ArrivalGroup

_MILLISECOND = 1_000_000


def _inter_arrival_time(group: ArrivalGroup, ack: Acknowledgment) -> int:
    return ack.arrival - group.arrival


def _inter_departure_time(group: ArrivalGroup, ack: Acknowledgment) -> int:
    if not group.packets:
        return 0
    return ack.departure - group.packets[-1].departure


def _inter_group_delay_variation(group: ArrivalGroup, ack: Acknowledgment) -> int:
    return (ack.arrival - group.arrival) - (ack.departure - group.departure)


class ArrivalGroupAccumulator:
    """Collects packets sent in short bursts into arrival groups."""

    def __init__(self) -> None:
        self.inter_departure_threshold = 5 * _MILLISECOND
        self.inter_arrival_threshold = 5 * _MILLISECOND
        self.inter_group_delay_variation_threshold = 0

    def run(
        self,
        batches: Iterable[Iterable[Acknowledgment]],
        on_group: Callable[[ArrivalGroup], None],
    ) -> None:
        """Consume batches of acknowledgments and report each completed group.

        A group is complete once a packet arrives that does not belong to it; the
        last open group is never reported.
        """
        group: ArrivalGroup | None = None
        for acks in batches:
            for ack in acks:
                if group is None:
                    group = ArrivalGroup()
                    group.add(ack)
                    continue
                if ack.arrival < group.arrival:
                    continue  # out of order arrival
                if ack.departure <= group.departure:
                    continue
                if _inter_departure_time(group, ack) <= self.inter_departure_threshold:
                    group.add(ack)
                    continue
                if (
                    _inter_arrival_time(group, ack) <= self.inter_arrival_threshold
                    and _inter_group_delay_variation(group, ack)
                    < self.inter_group_delay_variation_threshold
                ):
                    group.add(ack)
                    continue
                on_group(group)
                group = ArrivalGroup()
                group.add(ack)