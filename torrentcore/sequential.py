"""In-order piece selection, honouring piece priorities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .peer import PeerState

_NUM_PRIORITIES = 6
_DEFAULT_PRIORITY = 3


@dataclass
class _Piece:
    pos: int
    complete: bool


class SequentialPicker:
    """Picks pieces in order, highest priority first.

    ``have`` holds, for each piece, whether it is already picked or present.
    """

    def __init__(self, have: Sequence[bool]) -> None:
        buckets: list[list[int]] = [[] for _ in range(_NUM_PRIORITIES)]
        for piece, present in enumerate(have):
            buckets[0 if present else _DEFAULT_PRIORITY].append(piece)
        self._build(buckets)

    @classmethod
    def with_priorities(
        cls, have: Sequence[bool], priorities: Sequence[int]
    ) -> "SequentialPicker":
        """Build a picker whose order follows per-piece priorities (0 to 5)."""
        buckets: list[list[int]] = [[] for _ in range(_NUM_PRIORITIES)]
        for piece, pri in enumerate(priorities):
            if have[piece]:
                buckets[0].append(piece)
            else:
                if not 0 <= pri < _NUM_PRIORITIES:
                    raise ValueError(f"priority {pri} out of range")
                buckets[pri].append(piece)
        picker = cls.__new__(cls)
        picker._build(buckets)
        return picker

    def _build(self, buckets: list[list[int]]) -> None:
        self._pieces = [_Piece(pos, True) for pos in buckets[0]]
        self._index = len(self._pieces)
        for bucket in reversed(buckets[1:]):
            self._pieces.extend(_Piece(pos, False) for pos in bucket)

    def pick(self, peer: PeerState) -> int | None:
        """The next piece in order that the peer has, or None."""
        return next(
            (p.pos for p in self._pieces[self._index:] if peer.has_piece(p.pos)),
            None,
        )

    def completed(self, index: int) -> None:
        """Mark a piece as fully picked."""
        for piece in self._pieces[self._index:]:
            if piece.pos == index:
                piece.complete = True
                break
        self._index += sum(p.complete for p in self._pieces[self._index:])

    def incomplete(self, index: int) -> None:
        """Mark a piece as needing to be picked again."""
        for position, piece in enumerate(self._pieces):
            if piece.pos == index:
                piece.complete = False
                self._index = position
                return