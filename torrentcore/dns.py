"""Non-blocking host name resolution with a result cache."""

from __future__ import annotations

import ipaddress
import socket
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from time import monotonic
from typing import Callable

from .errors import DNSInvalid, DNSTimeout, TrackerError


@dataclass
class QueryResponse:
    """The outcome of a query: an address, or the error it failed with."""

    id: int
    address: str | None = None
    error: TrackerError | None = None


@dataclass
class _Pending:
    host: str
    future: Future
    started: float


def _system_resolve(host: str) -> str:
    infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
    if not infos:
        raise socket.gaierror(f"no address for {host}")
    return infos[0][4][0]


class Resolver:
    """Resolves host names in the background.

    Queries are started with ``new_query`` and collected with ``poll``.
    """

    def __init__(
        self,
        resolve: Callable[[str], str] | None = None,
        timeout: float = 5.0,
        max_workers: int = 4,
    ) -> None:
        self._resolve = resolve or _system_resolve
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._cache: dict[str, str] = {}
        self._pending: dict[int, _Pending] = {}

    def new_query(self, id: int, host: str) -> str | None:
        """Start resolving host; return the address at once if it is known."""
        try:
            return str(ipaddress.ip_address(host))
        except ValueError:
            pass
        cached = self._cache.get(host)
        if cached is not None:
            return cached
        future = self._executor.submit(self._resolve, host)
        self._pending[id] = _Pending(host, future, monotonic())
        return None

    def poll(self) -> list[QueryResponse]:
        """Collect finished and timed out queries."""
        responses = []
        now = monotonic()
        for id, pending in list(self._pending.items()):
            if pending.future.done():
                del self._pending[id]
                responses.append(self._finish(id, pending))
            elif now - pending.started >= self._timeout:
                del self._pending[id]
                pending.future.cancel()
                responses.append(QueryResponse(id, error=DNSTimeout()))
        return responses

    def _finish(self, id: int, pending: _Pending) -> QueryResponse:
        try:
            address = pending.future.result()
        except TimeoutError:
            return QueryResponse(id, error=DNSTimeout())
        except (OSError, ValueError):
            return QueryResponse(id, error=DNSInvalid())
        self._cache[pending.host] = address
        return QueryResponse(id, address=address)

    def purge(self) -> None:
        """Forget every cached address."""
        self._cache.clear()

    def close(self) -> None:
        """Stop the background workers, abandoning pending queries."""
        self._pending.clear()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Resolver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()