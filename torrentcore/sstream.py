"""A non-blocking TCP stream, optionally secured with TLS."""

from __future__ import annotations

import errno
import os
import re
import socket
import ssl

_LABEL = re.compile(r"(?!-)[A-Za-z0-9_-]{1,63}(?<!-)")
_IN_PROGRESS = frozenset({0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY})


def _valid_dns_name(host: str) -> bool:
    if not host or len(host) > 253 or not host.isascii():
        return False
    name = host[:-1] if host.endswith(".") else host
    return all(_LABEL.fullmatch(label) for label in name.split("."))


def _would_block() -> BlockingIOError:
    return BlockingIOError(errno.EAGAIN, "TLS session needs more data")


class SecureStream:
    """A non-blocking stream over plain TCP, a TLS client or a TLS server."""

    def __init__(self, sock: socket.socket, *, tls: bool = False, server_side: bool = False) -> None:
        sock.setblocking(False)
        self._sock = sock
        self._tls = tls
        self._server_side = server_side
        self._handshaken = not tls

    @classmethod
    def _new(cls, family: int, host: str | None) -> "SecureStream":
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setblocking(False)
        if host is None:
            return cls(sock)
        if not _valid_dns_name(host):
            sock.close()
            raise ValueError("invalid host string used")
        context = ssl.create_default_context()
        try:
            wrapped = context.wrap_socket(
                sock, server_hostname=host, do_handshake_on_connect=False
            )
        except (ValueError, ssl.SSLError) as exc:
            sock.close()
            raise ValueError("invalid host string used") from exc
        return cls(wrapped, tls=True)

    @classmethod
    def new_v4(cls, host: str | None = None) -> "SecureStream":
        """An unconnected IPv4 stream; TLS to ``host`` if one is given."""
        return cls._new(socket.AF_INET, host)

    @classmethod
    def new_v6(cls, host: str | None = None) -> "SecureStream":
        """An unconnected IPv6 stream; TLS to ``host`` if one is given."""
        return cls._new(socket.AF_INET6, host)

    @classmethod
    def from_plain(cls, sock: socket.socket) -> "SecureStream":
        """Wrap an already connected plain socket."""
        return cls(sock)

    @classmethod
    def from_ssl(cls, sock: socket.socket, context: ssl.SSLContext) -> "SecureStream":
        """Wrap an accepted socket as the server side of a TLS session."""
        sock.setblocking(False)
        wrapped = context.wrap_socket(
            sock, server_side=True, do_handshake_on_connect=False
        )
        return cls(wrapped, tls=True, server_side=True)

    def connect(self, addr) -> None:
        """Start connecting; completion is signalled by writability."""
        if self._server_side:
            raise ValueError("server-side TLS stream cannot connect")
        rc = self._sock.connect_ex(addr)
        if rc not in _IN_PROGRESS:
            raise OSError(rc, os.strerror(rc))

    def _handshake(self) -> None:
        if self._handshaken:
            return
        try:
            self._sock.do_handshake()
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
            raise _would_block() from None
        self._handshaken = True

    def read(self, size: int = 65536) -> bytes:
        """Read up to size bytes; b"" at end of stream.

        Raises BlockingIOError when no data is available yet.
        """
        try:
            self._handshake()
            return self._sock.recv(size)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
            raise _would_block() from None
        except (ConnectionAbortedError, ssl.SSLZeroReturnError):
            return b""

    def readinto(self, buf) -> int:
        """Read into buf; 0 at end of stream."""
        try:
            self._handshake()
            return self._sock.recv_into(buf)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
            raise _would_block() from None
        except (ConnectionAbortedError, ssl.SSLZeroReturnError):
            return 0

    def write(self, data: bytes) -> int:
        """Write as much of data as possible and return the count."""
        try:
            self._handshake()
            return self._sock.send(data)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
            raise _would_block() from None

    def flush(self) -> None:
        """Sockets have no user-space buffer; nothing is pending."""

    def fileno(self) -> int:
        """The socket's file descriptor, for polling."""
        return self._sock.fileno()

    def close(self) -> None:
        """Close the underlying socket."""
        self._sock.close()

    def __enter__(self) -> "SecureStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()