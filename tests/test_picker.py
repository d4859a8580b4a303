from unittest.mock import patch

import pytest

from torrentcore.peer import PeerState
from torrentcore.picker import Block, Picker, UnrequestedBlock

BLOCK = 16_384


def seeder(peer_id, count):
    return PeerState(peer_id, count, pieces=set(range(count)))


def test_seq_picker():
    picker = Picker([False] * 10, BLOCK, BLOCK * 10)
    picker.change_picker(True)
    peer = seeder(0, 10)

    for i in range(10):
        assert picker.pick(peer) == Block(i, 0)

    for i in range(10):
        canceled = []
        assert picker.completed(Block(i, 0), canceled.append) is True
        assert canceled == [0]

    picker.invalidate_piece(5)
    assert picker.pick(peer) == Block(5, 0)


def test_multi_block_pieces_and_short_last_piece():
    picker = Picker([False, False], 2 * BLOCK, 3 * BLOCK)
    picker.change_picker(True)
    peer = seeder(4, 2)
    assert picker.pick(peer) == Block(0, 0)
    assert picker.pick(peer) == Block(0, BLOCK)
    assert picker.pick(peer) == Block(1, 0)
    assert picker.pick(peer) is None
    assert picker.completed(Block(0, 0), lambda p: None) is False
    assert picker.completed(Block(0, BLOCK), lambda p: None) is True
    assert picker.completed(Block(1, 0), lambda p: None) is True


def test_completed_unrequested_block_raises():
    picker = Picker([False], BLOCK, BLOCK)
    with pytest.raises(UnrequestedBlock):
        picker.completed(Block(0, 0), lambda p: None)


def test_have_block_tracks_outstanding_requests():
    picker = Picker([False], BLOCK, BLOCK)
    peer = seeder(1, 1)
    block = picker.pick(peer)
    assert picker.have_block(block) is False
    picker.completed(block, lambda p: None)
    assert picker.have_block(block) is True


def test_duplicate_requests_are_capped_and_freed_by_remove_peer():
    picker = Picker([False], BLOCK, BLOCK)
    peers = [seeder(i, 1) for i in range(4)]
    for peer in peers[:3]:
        assert picker.pick(peer) == Block(0, 0)
    assert picker.pick(peers[3]) is None
    picker.remove_peer(peers[1])
    assert picker.pick(peers[3]) == Block(0, 0)
    canceled = []
    picker.completed(Block(0, 0), canceled.append)
    assert sorted(canceled) == [0, 2, 3]


def test_stalled_block_is_reassigned_after_timeout():
    clock = [1000.0]
    with patch("torrentcore.picker.monotonic", lambda: clock[0]):
        picker = Picker([False], BLOCK, BLOCK)
        peers = [seeder(i, 1) for i in range(4)]
        for peer in peers[:3]:
            picker.pick(peer)
        assert picker.pick(peers[3]) is None
        picker.tick()
        assert picker.pick(peers[3]) is None
        clock[0] += 11
        picker.tick()
        assert picker.pick(peers[3]) == Block(0, 0)
    canceled = []
    picker.completed(Block(0, 0), canceled.append)
    assert sorted(canceled) == [1, 2, 3]


def test_zero_priority_piece_is_skipped():
    picker = Picker([False, False], BLOCK, 2 * BLOCK, priorities=[0, 3])
    peer = seeder(1, 2)
    picker.add_peer(PeerState(2, 2, pieces={0, 1}))
    assert picker.pick(peer) == Block(1, 0)
    assert picker.pick(peer) is None


def test_sequential_follows_priorities():
    picker = Picker([False] * 3, BLOCK, 3 * BLOCK)
    picker.change_picker(True)
    assert picker.is_sequential() is True
    picker.set_priorities([1, 5, 3])
    peer = seeder(1, 3)
    assert [picker.pick(peer) for _ in range(3)] == [
        Block(1, 0),
        Block(2, 0),
        Block(0, 0),
    ]


def test_set_priorities_requires_one_per_piece():
    picker = Picker([False] * 3, BLOCK, 3 * BLOCK)
    with pytest.raises(ValueError):
        picker.set_priorities([3, 3])


def test_seeders_are_counted():
    picker = Picker([False] * 2, BLOCK, 2 * BLOCK)
    full = seeder(1, 2)
    picker.add_peer(full)
    picker.add_peer(PeerState(2, 2, pieces={0}))
    assert picker.seeders == 1
    picker.remove_peer(full)
    assert picker.seeders == 0


def test_invalidate_after_done_restores_piece():
    picker = Picker([True, True], BLOCK, 2 * BLOCK)
    picker.done()
    picker.invalidate_piece(1)
    peer = seeder(1, 2)
    assert picker.pick(peer) == Block(1, 0)