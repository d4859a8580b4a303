import pytest

from torrentcore.peer import PeerState


def test_set_and_has_piece():
    peer = PeerState(id=0, num_pieces=3)
    assert not peer.has_piece(1)
    peer.set_piece(1)
    assert peer.has_piece(1)
    assert not peer.has_piece(0)


def test_complete_after_all_pieces():
    peer = PeerState(id=1, num_pieces=3)
    for i in range(3):
        assert not peer.is_complete()
        peer.set_piece(i)
    assert peer.is_complete()


def test_setting_twice_is_idempotent():
    peer = PeerState(id=2, num_pieces=2)
    peer.set_piece(0)
    peer.set_piece(0)
    assert peer.pieces == {0}
    assert not peer.is_complete()


def test_out_of_range_piece():
    peer = PeerState(id=0, num_pieces=3)
    with pytest.raises(IndexError):
        peer.set_piece(3)
    with pytest.raises(IndexError):
        peer.set_piece(-1)


def test_initial_pieces_validated():
    with pytest.raises(IndexError):
        PeerState(id=0, num_pieces=2, pieces={5})
    peer = PeerState(id=0, num_pieces=2, pieces=[0, 1])
    assert peer.is_complete()


def test_piece_cache_independent_per_peer():
    a = PeerState(id=0, num_pieces=2)
    b = PeerState(id=1, num_pieces=2)
    a.piece_cache.append(1)
    assert b.piece_cache == []
    assert a.piece_cache == [1]