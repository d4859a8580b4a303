"""Bencode serialisation.

Decoded byte strings stay ``bytes``; dictionary keys are decoded to ``str``.
"""

from __future__ import annotations

import re
from typing import Any

_INT_RE = re.compile(rb"-?(0|[1-9][0-9]*)")
_LEN_RE = re.compile(rb"0|[1-9][0-9]*")


class BencodeError(ValueError):
    """The data is not valid bencode."""


def encode(value: Any) -> bytes:
    """Encode ints, bytes, str, lists, tuples and dicts as bencode."""
    out: list[bytes] = []
    _encode_into(value, out)
    return b"".join(out)


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise TypeError(f"dictionary key must be str or bytes, not {type(key).__name__}")


def _encode_into(value: Any, out: list[bytes]) -> None:
    if isinstance(value, bool):
        raise TypeError("booleans cannot be bencoded")
    if isinstance(value, int):
        out.append(b"i%de" % value)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        out.append(b"%d:" % len(raw))
        out.append(raw)
    elif isinstance(value, str):
        _encode_into(value.encode("utf-8"), out)
    elif isinstance(value, (list, tuple)):
        out.append(b"l")
        for item in value:
            _encode_into(item, out)
        out.append(b"e")
    elif isinstance(value, dict):
        out.append(b"d")
        for key, item in sorted(
            ((_key_bytes(k), v) for k, v in value.items()), key=lambda kv: kv[0]
        ):
            _encode_into(key, out)
            _encode_into(item, out)
        out.append(b"e")
    else:
        raise TypeError(f"cannot bencode {type(value).__name__}")


def decode(data: bytes) -> Any:
    """Decode a complete bencoded value; trailing bytes are an error."""
    data = bytes(data)
    value, end = _decode_at(data, 0)
    if end != len(data):
        raise BencodeError(f"trailing data at offset {end}")
    return value


def _decode_at(data: bytes, pos: int) -> tuple[Any, int]:
    if pos >= len(data):
        raise BencodeError("unexpected end of data")
    lead = data[pos:pos + 1]
    if lead == b"i":
        end = data.find(b"e", pos + 1)
        if end < 0:
            raise BencodeError("unterminated integer")
        raw = data[pos + 1:end]
        if not _INT_RE.fullmatch(raw) or raw == b"-0":
            raise BencodeError(f"malformed integer {raw!r}")
        return int(raw), end + 1
    if lead == b"l":
        items = []
        pos += 1
        while True:
            if pos >= len(data):
                raise BencodeError("unterminated list")
            if data[pos:pos + 1] == b"e":
                return items, pos + 1
            item, pos = _decode_at(data, pos)
            items.append(item)
    if lead == b"d":
        result: dict[str, Any] = {}
        pos += 1
        while True:
            if pos >= len(data):
                raise BencodeError("unterminated dictionary")
            if data[pos:pos + 1] == b"e":
                return result, pos + 1
            if not data[pos:pos + 1].isdigit():
                raise BencodeError("dictionary key must be a string")
            raw_key, pos = _decode_string(data, pos)
            try:
                key = raw_key.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise BencodeError("dictionary key must be UTF-8") from exc
            result[key], pos = _decode_at(data, pos)
    if lead.isdigit():
        return _decode_string(data, pos)
    raise BencodeError(f"unexpected byte {lead!r} at offset {pos}")


def _decode_string(data: bytes, pos: int) -> tuple[bytes, int]:
    colon = data.find(b":", pos)
    if colon < 0:
        raise BencodeError("unterminated string length")
    raw_len = data[pos:colon]
    if not _LEN_RE.fullmatch(raw_len):
        raise BencodeError(f"malformed string length {raw_len!r}")
    start = colon + 1
    end = start + int(raw_len)
    if end > len(data):
        raise BencodeError("string runs past end of data")
    return data[start:end], end