from rtpinterceptor.flexfec.media_packet_iterator import MediaPacketIterator
from rtpinterceptor.rtp import Header, Packet


def _packets(count):
    return [Packet(header=Header(version=2, sequence_number=n), payload=bytes([n])) for n in range(count)]


def test_iterates_once_per_covered_index():
    packets = _packets(4)
    it = MediaPacketIterator(packets, [0, 1, 2])
    assert [p.header.sequence_number for p in it] == [0, 1, 2]
    assert not it.has_next()


def test_next_returns_none_when_exhausted():
    it = MediaPacketIterator(_packets(2), [0])
    assert it.next() is not None
    assert it.next() is None


def test_has_next_with_no_coverage():
    it = MediaPacketIterator(_packets(2), [])
    assert it.has_next() is False
    assert list(it) == []


def test_reset_restarts_iteration_and_returns_self():
    packets = _packets(3)
    it = MediaPacketIterator(packets, [0, 1, 2])
    first_pass = list(it)
    assert it.reset() is it
    assert list(it) == first_pass


def test_first_is_first_media_packet():
    packets = _packets(3)
    it = MediaPacketIterator(packets, [2])
    assert it.first() == packets[0]