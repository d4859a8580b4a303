"""Rarest-first piece selection.

Pieces are kept in a single list ordered by availability, with a list of
bucket boundaries so that raising or lowering a piece's availability is a
constant-time swap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .peer import PeerState

MAX_PIECE_CACHE = 50
_INITIAL_AVAILABILITY_STEPS = 6
_COMPLETE_SHIFT = 100


@dataclass
class _PieceInfo:
    idx: int
    availability: int = 0
    complete: bool = False


class RarestPicker:
    """Picks the least available piece a peer has.

    ``have`` holds, for each piece, whether it is already picked or present.
    """

    def __init__(self, have: Sequence[bool]) -> None:
        count = len(have)
        self._pieces = list(range(count))
        self._info = [_PieceInfo(i) for i in range(count)]
        self._bounds = [count]
        # Every piece starts with a raised availability so that an initial
        # pick never underflows, and odd/even availability tells unpicked
        # from picked pieces.
        for piece in reversed(range(count)):
            for _ in range(_INITIAL_AVAILABILITY_STEPS):
                self.piece_available(piece)
            if have[piece]:
                self.completed(piece)

    def add_peer(self, peer: PeerState) -> None:
        """Count the pieces of a newly connected peer."""
        for piece in sorted(peer.pieces):
            self.piece_available(piece)

    def remove_peer(self, peer: PeerState) -> None:
        """Stop counting the pieces of a disconnected peer."""
        for piece in sorted(peer.pieces):
            self.piece_unavailable(piece)

    def piece_available(self, piece: int) -> None:
        """One more peer has the piece."""
        self.dec_pri(piece)
        self.dec_pri(piece)

    def piece_unavailable(self, piece: int) -> None:
        """One fewer peer has the piece."""
        self.inc_pri(piece)
        self.inc_pri(piece)

    def dec_pri(self, piece: int) -> None:
        """Raise the piece's availability by one step, lowering its priority."""
        info = self._info[piece]
        self._bounds[info.availability] -= 1
        info.availability += 1
        if len(self._bounds) == info.availability:
            self._bounds.append(len(self._pieces))
        self._swap(info.idx, self._bounds[info.availability - 1])

    def inc_pri(self, piece: int) -> None:
        """Lower the piece's availability by one step, raising its priority."""
        info = self._info[piece]
        if info.availability < 2:
            raise ValueError(f"availability of piece {piece} cannot be lowered")
        info.availability -= 1
        self._bounds[info.availability] += 1
        self._swap(info.idx, self._bounds[info.availability - 1])

    def pick(self, peer: PeerState) -> int | None:
        """The rarest incomplete piece the peer has, or None."""
        cache = peer.piece_cache
        while cache and self._info[cache[-1]].complete:
            cache.pop()

        if not cache:
            for piece in self._pieces:
                if peer.has_piece(piece) and not self._info[piece].complete:
                    cache.append(piece)
                if len(cache) >= MAX_PIECE_CACHE:
                    break
            cache.reverse()

        if not cache:
            return None
        piece = cache[-1]
        if self._info[piece].availability % 2 == 0:
            self.inc_pri(piece)
        return piece

    def incomplete(self, piece: int) -> None:
        """Make a piece pickable again."""
        info = self._info[piece]
        if info.complete:
            info.complete = False
            for _ in range(_COMPLETE_SHIFT):
                self.inc_pri(piece)

    def completed(self, piece: int) -> None:
        """Mark a piece as fully picked, pushing it to the back of the order."""
        info = self._info[piece]
        if not info.complete:
            info.complete = True
            for _ in range(_COMPLETE_SHIFT):
                self.dec_pri(piece)

    def _swap(self, a: int, b: int) -> None:
        pieces = self._pieces
        self._info[pieces[a]].idx = b
        self._info[pieces[b]].idx = a
        pieces[a], pieces[b] = pieces[b], pieces[a]