"""Hashing, identifier, address and non-blocking IO helpers."""

from __future__ import annotations

import enum
import hashlib
import ipaddress
import random
import string
from dataclasses import dataclass
from typing import Iterable, TypeVar

T = TypeVar("T")

_ALPHANUMERIC = string.ascii_letters + string.digits
_HEX_DIGITS = frozenset(string.hexdigits)


def random_sample(iterable: Iterable[T]) -> T | None:
    """Pick one element uniformly at random in a single pass, or None if empty."""
    chosen = None
    for seen, item in enumerate(iterable, start=1):
        if random.random() < 1.0 / seen:
            chosen = item
    return chosen


def random_string(length: int) -> str:
    """Return a random ASCII alphanumeric string of the given length."""
    return "".join(random.choices(_ALPHANUMERIC, k=length))


def sha1_hash(data: bytes) -> bytes:
    """Return the 20 byte SHA-1 digest of data."""
    return hashlib.sha1(data).digest()


def _rpc_id(torrent: bytes, tag: bytes, extra: bytes) -> str:
    return hash_to_id(hashlib.sha1(bytes(torrent) + tag + extra).digest())


def peer_rpc_id(torrent: bytes, peer: int) -> str:
    """Identifier of a peer of a torrent."""
    return _rpc_id(torrent, b"PEER", peer.to_bytes(8, "big"))


def file_rpc_id(torrent: bytes, file: str) -> str:
    """Identifier of a file of a torrent."""
    return _rpc_id(torrent, b"FILE", file.encode("utf-8"))


def trk_rpc_id(torrent: bytes, url: str) -> str:
    """Identifier of a tracker of a torrent."""
    return _rpc_id(torrent, b"TRK", url.encode("utf-8"))


def hash_to_id(digest: bytes) -> str:
    """Upper case hexadecimal form of a digest."""
    return bytes(digest).hex().upper()


def id_to_hash(s: str) -> bytes | None:
    """Parse a 40 character hex identifier into 20 bytes, or None if malformed."""
    if len(s) != 40 or not all(c in _HEX_DIGITS for c in s):
        return None
    return bytes.fromhex(s)


def bytes_to_addr(data: bytes) -> tuple[str, int]:
    """Decode a compact 6 byte IPv4 address and port."""
    if len(data) < 6:
        raise ValueError("compact address needs 6 bytes")
    ip = str(ipaddress.IPv4Address(bytes(data[:4])))
    return ip, int.from_bytes(data[4:6], "big")


def addr_to_bytes(addr: tuple[str, int]) -> bytes:
    """Encode an IPv4 address and port in compact 6 byte form."""
    host, port = addr[0], addr[1]
    ip = ipaddress.ip_address(host)
    if ip.version != 4:
        raise ValueError("IPv6 DHT not supported")
    return ip.packed + int(port).to_bytes(2, "big")


def find_subseq(haystack: bytes, needle: bytes) -> int | None:
    """Position of the first occurrence of needle in haystack, or None."""
    if not needle:
        raise ValueError("needle must not be empty")
    pos = bytes(haystack).find(bytes(needle))
    return None if pos < 0 else pos


def div_round_up(a: int, b: int) -> int:
    """Integer division rounding up."""
    return (a + b - 1) // b


class IOStatus(enum.Enum):
    """Outcome of a non-blocking read or write."""

    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    BLOCKED = "blocked"
    EOF = "eof"


@dataclass(frozen=True)
class IOResult:
    """Status of a non-blocking operation and the number of bytes moved."""

    status: IOStatus
    count: int = 0


_BLOCKED = IOResult(IOStatus.BLOCKED)
_EOF = IOResult(IOStatus.EOF)


def aread(buf: bytearray | memoryview, reader) -> IOResult:
    """Read into buf without blocking; other OS errors propagate."""
    if len(buf) == 0:
        return IOResult(IOStatus.COMPLETE, 0)
    read_into = getattr(reader, "readinto", None) or reader.recv_into
    try:
        n = read_into(buf)
    except (BlockingIOError, BrokenPipeError):
        return _BLOCKED
    if n is None:
        return _BLOCKED
    if n == 0:
        return _EOF
    if n == len(buf):
        return IOResult(IOStatus.COMPLETE, n)
    return IOResult(IOStatus.INCOMPLETE, n)


def awrite(data: bytes, writer) -> IOResult:
    """Write data without blocking; other OS errors propagate."""
    write = getattr(writer, "write", None) or writer.send
    try:
        n = write(data)
    except (BlockingIOError, BrokenPipeError):
        return _BLOCKED
    if n is None:
        return _BLOCKED
    if n == 0:
        return _EOF
    if n == len(data):
        return IOResult(IOStatus.COMPLETE, n)
    return IOResult(IOStatus.INCOMPLETE, n)