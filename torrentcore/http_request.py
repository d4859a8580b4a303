"""Minimal HTTP/1.0 GET request encoding for tracker announces."""

from __future__ import annotations


def _encode_param(value: bytes) -> str:
    out = []
    for byte in value:
        char = chr(byte)
        if 0x20 < byte < 0x7E and (char.isalnum() or char == "-"):
            out.append(char)
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


class RequestBuilder:
    """Builds a request line with percent-encoded query pairs and headers."""

    def __init__(self, method: str, path: str, query: str | None = None) -> None:
        self.method = method
        self.path = path
        self.base_query = query
        self.query_pairs: list[tuple[str, bytes]] = []
        self.headers: list[tuple[str, str]] = []

    def query(self, name: str, value: bytes | str) -> "RequestBuilder":
        """Append a query parameter; the value is percent-encoded."""
        if isinstance(value, str):
            value = value.encode("utf-8")
        self.query_pairs.append((name, bytes(value)))
        return self

    def query_opt(self, name: str, value: bytes | str | None) -> "RequestBuilder":
        """Append a query parameter only if a value is given."""
        if value is not None:
            self.query(name, value)
        return self

    def header(self, name: str, value: str) -> "RequestBuilder":
        """Append a header."""
        self.headers.append((name, value))
        return self

    def encode(self) -> bytes:
        """The request as bytes, ending with the blank line after the headers."""
        params = []
        if self.base_query is not None:
            params.append(self.base_query)
        params.extend(f"{name}={_encode_param(value)}" for name, value in self.query_pairs)
        target = self.path + ("?" + "&".join(params) if params else "")
        lines = [f"{self.method} {target} HTTP/1.0"]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")