import pytest

from torrentcore.peer import PeerState
from torrentcore.sequential import SequentialPicker


def test_piece_pick_order():
    picker = SequentialPicker([False] * 3)
    peer = PeerState(id=0, num_pieces=3)
    assert picker.pick(peer) is None
    peer.set_piece(1)
    assert picker.pick(peer) == 1
    peer.set_piece(0)
    assert picker.pick(peer) == 0
    picker.completed(0)
    picker.completed(1)
    peer.set_piece(2)
    assert picker.pick(peer) == 2

    picker.completed(2)
    assert picker.pick(peer) is None
    picker.incomplete(1)
    assert picker.pick(peer) == 1


def test_present_pieces_are_skipped():
    picker = SequentialPicker([True, False, False])
    peer = PeerState(id=0, num_pieces=3, pieces={0, 1, 2})
    assert picker.pick(peer) == 1


def test_priorities_order_picks():
    picker = SequentialPicker.with_priorities([False] * 4, [1, 5, 3, 5])
    peer = PeerState(id=0, num_pieces=4, pieces={0, 1, 2, 3})
    order = []
    for _ in range(4):
        piece = picker.pick(peer)
        order.append(piece)
        picker.completed(piece)
    assert order == [1, 3, 2, 0]
    assert picker.pick(peer) is None


def test_zero_priority_is_never_picked():
    picker = SequentialPicker.with_priorities([False, False], [0, 3])
    peer = PeerState(id=0, num_pieces=2, pieces={0, 1})
    assert picker.pick(peer) == 1
    picker.completed(1)
    assert picker.pick(peer) is None


def test_invalid_priority():
    with pytest.raises(ValueError):
        SequentialPicker.with_priorities([False], [6])


def test_incomplete_unknown_piece_changes_nothing():
    picker = SequentialPicker([False, False])
    peer = PeerState(id=0, num_pieces=2, pieces={0, 1})
    picker.completed(0)
    picker.incomplete(7)
    assert picker.pick(peer) == 1