"""DHT (KRPC) message encoding and decoding."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union

from .bencoding import BencodeError, decode, encode
from .util import addr_to_bytes, bytes_to_addr

VERSION = "SY"
_NODE_LEN = 26
_ID_LEN = 20


class ProtocolError(ValueError):
    """A DHT message could not be decoded."""


def _invalid_request(reason: str) -> ProtocolError:
    return ProtocolError(f"invalid request: {reason}")


def _invalid_response(reason: str) -> ProtocolError:
    return ProtocolError(f"invalid response: {reason}")


class DhtErrorCode(enum.IntEnum):
    """KRPC error codes."""

    GENERIC = 201
    SERVER = 202
    PROTOCOL = 203
    METHOD_UNKNOWN = 204


@dataclass(frozen=True)
class DhtError:
    """An error carried in a KRPC error reply."""

    code: DhtErrorCode
    message: str

    def __str__(self) -> str:
        labels = {
            DhtErrorCode.GENERIC: "generic node error",
            DhtErrorCode.SERVER: "server error",
            DhtErrorCode.PROTOCOL: "protocol error",
            DhtErrorCode.METHOD_UNKNOWN: "method unknown",
        }
        return f"{labels[self.code]}: {self.message}"


def _id_bytes(value: int) -> bytes:
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def _as_bytes(value: Any) -> bytes | None:
    return value if isinstance(value, bytes) else None


def _as_str(value: Any) -> str | None:
    if not isinstance(value, bytes):
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _as_id(value: Any) -> int | None:
    raw = _as_bytes(value)
    if raw is None or len(raw) < _ID_LEN:
        return None
    return int.from_bytes(raw[:_ID_LEN], "big")


@dataclass(frozen=True)
class Node:
    """A DHT node: its id and IPv4 address."""

    id: int
    addr: tuple[str, int]

    @classmethod
    def from_bytes(cls, data: bytes) -> "Node":
        """Parse a 26 byte compact node entry."""
        if len(data) < _NODE_LEN:
            raise ValueError("compact node needs 26 bytes")
        return cls(int.from_bytes(data[:_ID_LEN], "big"), bytes_to_addr(data[_ID_LEN:]))

    def to_bytes(self) -> bytes:
        """Compact form: id bytes followed by the 6 byte address."""
        return _id_bytes(self.id) + addr_to_bytes(self.addr)


def _parse_nodes(raw: bytes) -> list[Node]:
    return [
        Node.from_bytes(raw[start:start + _NODE_LEN])
        for start in range(0, len(raw), _NODE_LEN)
        if len(raw) - start >= _NODE_LEN
    ]


@dataclass
class Ping:
    id: int


@dataclass
class FindNode:
    id: int
    target: int


@dataclass
class GetPeers:
    id: int
    info_hash: bytes


@dataclass
class AnnouncePeer:
    id: int
    info_hash: bytes
    token: bytes
    port: int
    implied_port: bool = False


RequestKind = Union[Ping, FindNode, GetPeers, AnnouncePeer]


@dataclass
class Request:
    """A KRPC query."""

    transaction: bytes
    kind: RequestKind
    version: str | None = VERSION

    @classmethod
    def ping(cls, transaction: bytes, id: int) -> "Request":
        return cls(transaction, Ping(id))

    @classmethod
    def find_node(cls, transaction: bytes, id: int, target: int) -> "Request":
        return cls(transaction, FindNode(id, target))

    @classmethod
    def get_peers(cls, transaction: bytes, id: int, info_hash: bytes) -> "Request":
        return cls(transaction, GetPeers(id, bytes(info_hash)))

    @classmethod
    def announce(
        cls, transaction: bytes, id: int, info_hash: bytes, token: bytes, port: int
    ) -> "Request":
        return cls(transaction, AnnouncePeer(id, bytes(info_hash), bytes(token), port, False))

    def encode(self) -> bytes:
        """Bencoded wire form."""
        msg: dict[str, Any] = {"t": self.transaction, "y": "q"}
        if self.version is not None:
            msg["v"] = self.version
        kind = self.kind
        if isinstance(kind, Ping):
            msg["q"] = "ping"
            msg["a"] = {"id": _id_bytes(kind.id)}
        elif isinstance(kind, FindNode):
            msg["q"] = "find_node"
            msg["a"] = {"id": _id_bytes(kind.id), "target": _id_bytes(kind.target)}
        elif isinstance(kind, GetPeers):
            msg["q"] = "get_peers"
            msg["a"] = {"id": _id_bytes(kind.id), "info_hash": kind.info_hash}
        else:
            msg["q"] = "announce_peer"
            msg["a"] = {
                "id": _id_bytes(kind.id),
                "info_hash": kind.info_hash,
                "implied_port": 1 if kind.implied_port else 0,
                "port": kind.port,
                "token": kind.token,
            }
        return encode(msg)

    @classmethod
    def decode(cls, data: bytes) -> "Request":
        """Parse a bencoded query; raises ProtocolError."""
        try:
            msg = decode(data)
        except BencodeError as exc:
            raise _invalid_request("Invalid BEncoded data") from exc
        if not isinstance(msg, dict):
            raise _invalid_request("Invalid BEncoded data(must be dict)")
        transaction = _as_bytes(msg.get("t"))
        if transaction is None:
            raise _invalid_request("Invalid BEncoded data(dict must have t field)")
        version = _as_str(msg.get("v"))
        y = _as_str(msg.get("y"))
        if y is None:
            raise _invalid_request("Invalid BEncoded data(dict must have y field)")
        if y != "q":
            raise _invalid_request("Invalid BEncoded data(request must have y: q field)")
        q = _as_str(msg.get("q"))
        if q is None:
            raise _invalid_request("Invalid BEncoded data(dict must have q field)")
        args = msg.get("a")
        if not isinstance(args, dict):
            raise _invalid_request("Invalid BEncoded data(dict must have a field)")
        node_id = _as_id(args.get("id"))
        if node_id is None:
            raise _invalid_request("Invalid BEncoded data(ping must have id field)")

        kind: RequestKind
        if q == "ping":
            kind = Ping(node_id)
        elif q == "find_node":
            target = _as_id(args.get("target"))
            if target is None:
                raise _invalid_request(
                    "Invalid BEncoded data(find_node must have target field)"
                )
            kind = FindNode(node_id, target)
        elif q == "get_peers":
            info_hash = _as_bytes(args.get("info_hash"))
            if info_hash is None or len(info_hash) != _ID_LEN:
                raise _invalid_request(
                    "Invalid BEncoded data(get_peers must have hash field)"
                )
            kind = GetPeers(node_id, info_hash)
        elif q == "announce_peer":
            info_hash = _as_bytes(args.get("info_hash"))
            if info_hash is None or len(info_hash) != _ID_LEN:
                raise _invalid_request(
                    "Invalid BEncoded data(announce_peer must have hash field)"
                )
            implied = _as_int(args.get("implied_port"))
            port = _as_int(args.get("port"))
            if port is None or not 0 <= port <= 65_535:
                raise _invalid_request(
                    "Invalid BEncoded data(announce_peer must have port field)"
                )
            token = _as_bytes(args.get("token"))
            if token is None:
                raise _invalid_request(
                    "Invalid BEncoded data(announce_peer must have port field)"
                )
            kind = AnnouncePeer(
                node_id, info_hash, token, port, implied is not None and implied > 0
            )
        else:
            raise _invalid_request(
                "Invalid BEncoded data(request must be a valid query type)"
            )
        return cls(transaction, kind, version)


@dataclass
class IdReply:
    id: int


@dataclass
class FindNodeReply:
    id: int
    nodes: list[Node] = field(default_factory=list)


@dataclass
class GetPeersReply:
    id: int
    token: bytes
    values: list[tuple[str, int]] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)


@dataclass
class ErrorReply:
    error: DhtError


ResponseKind = Union[IdReply, FindNodeReply, GetPeersReply, ErrorReply]


@dataclass
class Response:
    """A KRPC reply or error."""

    transaction: bytes
    kind: ResponseKind

    @classmethod
    def id(cls, transaction: bytes, id: int) -> "Response":
        return cls(transaction, IdReply(id))

    @classmethod
    def find_node(cls, transaction: bytes, id: int, nodes: list[Node]) -> "Response":
        return cls(transaction, FindNodeReply(id, list(nodes)))

    @classmethod
    def peers(
        cls, transaction: bytes, id: int, token: bytes, values: list[tuple[str, int]]
    ) -> "Response":
        return cls(transaction, GetPeersReply(id, bytes(token), list(values), []))

    @classmethod
    def nodes(
        cls, transaction: bytes, id: int, token: bytes, nodes: list[Node]
    ) -> "Response":
        return cls(transaction, GetPeersReply(id, bytes(token), [], list(nodes)))

    @classmethod
    def error(cls, transaction: bytes, error: DhtError) -> "Response":
        return cls(transaction, ErrorReply(error))

    def is_err(self) -> bool:
        """Whether this is an error reply."""
        return isinstance(self.kind, ErrorReply)

    def encode(self) -> bytes:
        """Bencoded wire form."""
        msg: dict[str, Any] = {"t": self.transaction}
        kind = self.kind
        if isinstance(kind, ErrorReply):
            msg["y"] = "e"
            msg["e"] = [int(kind.error.code), kind.error.message]
            return encode(msg)
        if isinstance(kind, IdReply):
            args: dict[str, Any] = {"id": _id_bytes(kind.id)}
        elif isinstance(kind, FindNodeReply):
            args = {
                "id": _id_bytes(kind.id),
                "nodes": b"".join(n.to_bytes() for n in kind.nodes),
            }
        else:
            args = {
                "id": _id_bytes(kind.id),
                "token": kind.token,
                "values": [addr_to_bytes(a) for a in kind.values],
                "nodes": b"".join(n.to_bytes() for n in kind.nodes),
            }
        msg["y"] = "r"
        msg["r"] = args
        return encode(msg)

    @classmethod
    def decode(cls, data: bytes) -> "Response":
        """Parse a bencoded reply; raises ProtocolError."""
        try:
            msg = decode(data)
        except BencodeError as exc:
            raise _invalid_response("Invalid BEncoded data") from exc
        if not isinstance(msg, dict):
            raise _invalid_response("Invalid BEncoded data(must be dict)")
        transaction = _as_bytes(msg.get("t"))
        if transaction is None:
            raise _invalid_response("Invalid BEncoded data(dict must have t field)")
        y = _as_str(msg.get("y"))
        if y is None:
            raise _invalid_response("Invalid BEncoded data(dict must have y field)")

        if y == "e":
            err = msg.get("e")
            if not isinstance(err, list):
                raise _invalid_response(
                    "Invalid BEncoded data(error resp must have e field)"
                )
            if len(err) != 2:
                raise _invalid_response(
                    "Invalid BEncoded data(e field must have two terms)"
                )
            code = _as_int(err[0])
            if code is None:
                raise _invalid_response(
                    "Invalid BEncoded data(e field must start with integer code)"
                )
            message = _as_str(err[1])
            if message is None:
                raise _invalid_response(
                    "Invalid BEncoded data(e field must end with string data)"
                )
            try:
                error_code = DhtErrorCode(code)
            except ValueError as exc:
                raise _invalid_response("Invalid BEncoded data(invalid error code)") from exc
            return cls(transaction, ErrorReply(DhtError(error_code, message)))

        if y == "r":
            reply = msg.get("r")
            if not isinstance(reply, dict):
                raise _invalid_response("Invalid BEncoded data(resp must have r field)")
            node_id = _as_id(reply.get("id"))
            if node_id is None:
                raise _invalid_response("Invalid BEncoded data(response must have id)")
            token = _as_bytes(reply.get("token"))
            raw_nodes = _as_bytes(reply.get("nodes"))
            kind: ResponseKind
            if token is not None:
                values = []
                raw_values = reply.get("values")
                if isinstance(raw_values, list):
                    values = [
                        bytes_to_addr(v)
                        for v in raw_values
                        if isinstance(v, bytes) and len(v) == 6
                    ]
                nodes = _parse_nodes(raw_nodes) if raw_nodes is not None else []
                kind = GetPeersReply(node_id, token, values, nodes)
            elif raw_nodes is not None:
                kind = FindNodeReply(node_id, _parse_nodes(raw_nodes))
            else:
                kind = IdReply(node_id)
            return cls(transaction, kind)

        raise _invalid_response("Invalid BEncoded data(y field must be e/r)")