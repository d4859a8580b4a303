"""The part of a peer's state that piece selection works with."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PeerState:
    """A peer's identity, rank, advertised pieces and cached piece picks."""

    id: int
    num_pieces: int
    rank: int = 0
    pieces: set[int] = field(default_factory=set)
    piece_cache: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.pieces = set(self.pieces)
        for index in self.pieces:
            self._check(index)

    def _check(self, index: int) -> None:
        if not 0 <= index < self.num_pieces:
            raise IndexError(f"piece {index} out of range 0..{self.num_pieces}")

    def has_piece(self, index: int) -> bool:
        """Whether the peer advertises the piece."""
        return index in self.pieces

    def set_piece(self, index: int) -> None:
        """Record that the peer has the piece."""
        self._check(index)
        self.pieces.add(index)

    def is_complete(self) -> bool:
        """Whether the peer has every piece, i.e. is a seeder."""
        return len(self.pieces) == self.num_pieces