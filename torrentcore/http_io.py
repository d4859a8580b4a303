"""Non-blocking reading of HTTP tracker responses and writing of requests."""

from __future__ import annotations

import errno
import re
from dataclasses import dataclass

from .errors import InvalidResponse, TrackerEOF, TrackerIOError
from .util import IOStatus, aread

_INITIAL_CAPACITY = 75
_GROWTH = 1.5
_MAX_HEADERS = 32
_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

_HEADER_END = re.compile(rb"\r?\n\r?\n")
_STATUS_LINE = re.compile(rb"HTTP/1\.[0-9] ([0-9]{3})(?: [^\r\n]*)?")
_HEADER_LINE = re.compile(rb"([!#$%&'*+\-.^_`|~0-9A-Za-z]+):[ \t]*(.*?)[ \t]*")
_STATUS_PREFIX = b"HTTP/"


@dataclass(frozen=True)
class Redirect:
    """The tracker answered with a redirect to another location."""

    location: str


def _malformed() -> InvalidResponse:
    return InvalidResponse("malformed HTTP")


class Reader:
    """Accumulates an HTTP response from a non-blocking connection."""

    def __init__(self) -> None:
        self._data = bytearray()
        self._capacity = _INITIAL_CAPACITY
        self._in_body = False

    def readable(self, conn) -> bytes | Redirect | None:
        """Read what is available.

        Returns the body once the connection closes, a Redirect if the
        tracker redirects, or None if more data is needed.
        """
        while True:
            chunk = bytearray(self._capacity - len(self._data))
            try:
                result = aread(chunk, conn)
            except OSError as exc:
                raise TrackerIOError() from exc
            if result.status is IOStatus.BLOCKED:
                return None
            if result.status is IOStatus.EOF:
                if not self._in_body:
                    raise TrackerEOF()
                body = bytes(self._data)
                self._data = bytearray()
                return body
            self._data += chunk[:result.count]
            if result.status is IOStatus.COMPLETE:
                self._capacity = int(self._capacity * _GROWTH)
            outcome = self._process()
            if outcome is not None:
                return outcome

    def _process(self) -> Redirect | None:
        if self._in_body:
            return None
        end = _HEADER_END.search(self._data)
        if end is None:
            prefix = bytes(self._data[:len(_STATUS_PREFIX)])
            if not _STATUS_PREFIX.startswith(prefix):
                raise _malformed()
            return None

        lines = re.split(rb"\r?\n", bytes(self._data[:end.start()]))
        status = _STATUS_LINE.fullmatch(lines[0])
        if status is None:
            raise _malformed()
        headers = lines[1:]
        if len(headers) > _MAX_HEADERS:
            raise _malformed()
        parsed = []
        for line in headers:
            match = _HEADER_LINE.fullmatch(line)
            if match is None:
                raise _malformed()
            parsed.append((match.group(1), match.group(2)))

        if int(status.group(1)) in _REDIRECT_CODES:
            value = next((v for name, v in parsed if name == b"Location"), None)
            if value is None:
                raise _malformed()
            try:
                return Redirect(value.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise _malformed() from exc

        header_len = end.end()
        del self._data[:header_len]
        self._capacity -= header_len
        self._in_body = True
        return None


_RETRYABLE_ERRNOS = frozenset({errno.EAGAIN, errno.EWOULDBLOCK, errno.ENOTCONN, errno.EPIPE})


class Writer:
    """Writes a complete request to a non-blocking connection."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._written = 0

    def writable(self, conn) -> bool:
        """Write what the connection accepts; return True once all is sent."""
        write = getattr(conn, "write", None) or conn.send
        try:
            count = write(self._data[self._written:])
        except OSError as exc:
            if isinstance(exc, (BlockingIOError, BrokenPipeError)) or exc.errno in _RETRYABLE_ERRNOS:
                return False
            raise TrackerIOError() from exc
        if count is None:
            return False
        if count == 0:
            raise TrackerEOF()
        if self._written + count == len(self._data):
            return True
        self._written += count
        return False