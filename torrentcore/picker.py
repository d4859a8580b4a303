"""Block selection for a torrent, built on a rarest-first or sequential picker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import islice
from time import monotonic
from typing import Callable, Sequence

from .peer import PeerState
from .rarest import RarestPicker
from .sequential import SequentialPicker
from .util import div_round_up

log = logging.getLogger(__name__)

BLOCK_SIZE = 16_384
MAX_DUP_REQS = 3
MAX_DL_REREQ = 150
REQ_TIMEOUT = 10
DEFAULT_PRIORITY = 3


@dataclass(frozen=True)
class Block:
    """A 16 KiB block of a piece."""

    index: int
    offset: int


class UnrequestedBlock(Exception):
    """A block was reported complete without having been requested."""


class _Request:
    """An outstanding block request and the peers it was sent to."""

    def __init__(self, peer: int, rank: int) -> None:
        self.rank = rank
        self.peers = [peer]
        self.requested_at = monotonic()

    def rerequest(self, peer: int, rank: int) -> None:
        self.rank = rank
        self.peers.append(peer)
        self.requested_at = monotonic()

    def force_rerequest(self, peer: int, rank: int) -> None:
        if len(self.peers) < MAX_DUP_REQS:
            self.rerequest(peer, rank)
        else:
            self.peers[0] = peer
            self.requested_at = monotonic()
            self.rank = rank

    def has_peer(self, peer: int) -> bool:
        return peer in self.peers


@dataclass
class _Progress:
    requested: int = 0
    completed: int = 0


class Picker:
    """Selects blocks to request from peers.

    ``have`` holds, for each piece, whether it is already present.
    ``priorities`` gives each piece a priority from 0 (skip) to 5.
    """

    def __init__(
        self,
        have: Sequence[bool],
        piece_length: int,
        total_length: int,
        priorities: Sequence[int] | None = None,
    ) -> None:
        if piece_length <= 0:
            raise ValueError("piece length must be positive")
        have = [bool(h) for h in have]
        count = len(have)
        self._scale = piece_length // BLOCK_SIZE
        self._last_piece = max(count - 1, 0)
        last_length = total_length - piece_length * self._last_piece
        self._last_piece_scale = div_round_up(last_length, BLOCK_SIZE)
        self._seeders = 0
        self._downloading: dict[Block, _Request] = {}
        self._blocks = [] if all(have) else [_Progress() for _ in range(count)]
        self._stalled: set[Block] = set()
        self._unpicked = have
        self._picker: RarestPicker | SequentialPicker = RarestPicker(have)
        self._priorities = [DEFAULT_PRIORITY] * count
        self.set_priorities(
            priorities if priorities is not None else [DEFAULT_PRIORITY] * count
        )

    @property
    def seeders(self) -> int:
        """Number of connected peers that have every piece."""
        return self._seeders

    def is_sequential(self) -> bool:
        """Whether pieces are picked in order."""
        return isinstance(self._picker, SequentialPicker)

    def done(self) -> None:
        """Drop all download state once the torrent is complete."""
        self._downloading = {}
        self._blocks = []
        self._stalled = set()

    def tick(self) -> None:
        """Mark requests that have been outstanding too long as stalled."""
        now = monotonic()
        expired = 0
        for block, request in self._downloading.items():
            deadline = REQ_TIMEOUT + DEFAULT_PRIORITY - self._priorities[block.index]
            if now - request.requested_at >= deadline and block not in self._stalled:
                expired += 1
                self._stalled.add(block)
        if expired:
            log.debug("Expired %d chunks!", expired)
        if self._downloading:
            log.debug(
                "Unpicked: %d/%d, Downloading: %d",
                sum(self._unpicked),
                len(self._unpicked),
                len(self._downloading),
            )

    def pick(self, peer: PeerState) -> Block | None:
        """Select a block to request from the peer, or None."""
        stalled = next(
            (
                b
                for b in self._stalled
                if peer.has_piece(b.index)
                and b in self._downloading
                and not self._downloading[b].has_peer(peer.id)
            ),
            None,
        )
        if stalled is not None:
            self._stalled.discard(stalled)
            self._downloading[stalled].force_rerequest(peer.id, peer.rank)
            return stalled

        piece = self._picker.pick(peer)
        if piece is not None:
            return self._pick_piece(piece, peer.id, peer.rank)
        return self._pick_downloading(peer)

    def _fully_counted(self, piece: int, amount: int) -> bool:
        return amount == self._scale or (
            piece == self._last_piece and amount == self._last_piece_scale
        )

    def _pick_piece(self, piece: int, peer: int, rank: int) -> Block:
        progress = self._blocks[piece]
        progress.requested += 1
        offset = (progress.requested - 1) * BLOCK_SIZE
        if self._fully_counted(piece, progress.requested):
            self._picker.completed(piece)
            self._unpicked[piece] = True
        block = Block(piece, offset)
        self._downloading[block] = _Request(peer, rank)
        return block

    def _pick_downloading(self, peer: PeerState) -> Block | None:
        candidates = (
            (block, request)
            for block, request in self._downloading.items()
            if len(request.peers) < MAX_DUP_REQS and not request.has_peer(peer.id)
        )
        best = min(
            islice(candidates, MAX_DL_REREQ),
            key=lambda item: len(item[1].peers),
            default=None,
        )
        if best is None:
            return None
        block, request = best
        request.rerequest(peer.id, peer.rank)
        return block

    def completed(self, block: Block, cancel: Callable[[int], object]) -> bool:
        """Record a received block; return whether its piece is now complete.

        ``cancel`` is called with every peer the block was requested from.
        """
        self._stalled.discard(block)
        request = self._downloading.pop(block, None)
        if request is None:
            raise UnrequestedBlock(f"block {block} was not requested")
        for peer in request.peers:
            cancel(peer)
        progress = self._blocks[block.index]
        progress.completed += 1
        return self._fully_counted(block.index, progress.completed)

    def have_block(self, block: Block) -> bool:
        """Whether the block is not outstanding."""
        return block not in self._downloading

    def invalidate_piece(self, index: int) -> None:
        """Make a piece that failed verification downloadable again."""
        self._picker.incomplete(index)
        if not self._blocks:
            self._blocks = [_Progress() for _ in self._priorities]
        self._blocks[index] = _Progress()
        self._unpicked[index] = False

    def piece_available(self, index: int) -> None:
        """A connected peer announced a new piece."""
        if isinstance(self._picker, RarestPicker):
            self._picker.piece_available(index)

    def add_peer(self, peer: PeerState) -> None:
        """Account for a newly connected peer."""
        if peer.is_complete():
            self._seeders += 1
        elif isinstance(self._picker, RarestPicker):
            self._picker.add_peer(peer)

    def remove_peer(self, peer: PeerState) -> None:
        """Forget a disconnected peer and its outstanding requests."""
        if peer.is_complete() and self._seeders > 0:
            self._seeders -= 1
        elif isinstance(self._picker, RarestPicker):
            self._picker.remove_peer(peer)
        for request in self._downloading.values():
            if peer.id in request.peers:
                request.peers.remove(peer.id)

    def change_picker(self, sequential: bool) -> None:
        """Switch between sequential and rarest-first picking.

        Peers must be added again after switching to rarest-first.
        """
        if sequential:
            self._picker = SequentialPicker(self._unpicked)
        else:
            self._picker = RarestPicker(self._unpicked)

    def set_priorities(self, priorities: Sequence[int]) -> None:
        """Replace the per-piece priorities."""
        if len(priorities) != len(self._priorities):
            raise ValueError("one priority per piece is required")
        self.unapply_priorities()
        self._priorities = list(priorities)
        self.apply_priorities()

    def apply_priorities(self) -> None:
        """Make the current priorities take effect in the picker."""
        if isinstance(self._picker, SequentialPicker):
            self._picker = SequentialPicker.with_priorities(
                self._unpicked, self._priorities
            )
            return
        for piece, priority in enumerate(self._priorities):
            for _ in range(priority):
                self._picker.piece_unavailable(piece)
            if priority == 0 and not self._unpicked[piece]:
                self._picker.completed(piece)

    def unapply_priorities(self) -> None:
        """Undo the effect of the current priorities on the picker."""
        if isinstance(self._picker, SequentialPicker):
            return
        for piece, priority in enumerate(self._priorities):
            for _ in range(priority):
                self._picker.piece_available(piece)
            if priority == 0 and not self._unpicked[piece]:
                self._picker.incomplete(piece)