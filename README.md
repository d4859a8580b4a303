# torrentcore

Building blocks for a BitTorrent client in plain Python, with no
third-party dependencies.

## Contents

- `torrentcore.picker`: `Picker` hands out 16 KiB `Block`s to peers. It
  re-requests blocks that have stalled (see `Picker.tick`) and applies
  per-piece priorities from 0 (skip) to 5. If a block is reported complete
  but was never requested, it raises `UnrequestedBlock`. Two piece
  orderings sit underneath it:
  - `torrentcore.rarest.RarestPicker` picks rarest first.
  - `torrentcore.sequential.SequentialPicker` picks in order, highest
    priority first.
- `torrentcore.peer.PeerState` is the view of a remote peer that the pickers
  use: its id, its rank, which pieces it has, and its piece cache.
- `torrentcore.bencoding` has `encode` and `decode`. Invalid input raises
  `BencodeError`.
- `torrentcore.dht_proto` has the DHT (KRPC) `Request` and `Response`
  messages, `Node`, and `DhtError` / `DhtErrorCode`. Messages that cannot be
  decoded raise `ProtocolError`.
- `torrentcore.http_request.RequestBuilder` builds HTTP/1.0 GET requests
  with percent-encoded query values.
- `torrentcore.http_io` reads HTTP responses with `Reader`, which returns
  the body, a `Redirect`, or `None` when it needs more data. It writes
  requests with `Writer`. Both work over non-blocking connections.
- `torrentcore.sstream.SecureStream` is a non-blocking TCP stream. It can
  run plain, as a TLS client, or as a TLS server.
- `torrentcore.dns.Resolver` resolves host names in background threads and
  caches the results. `new_query` starts a query, and `poll` collects
  `QueryResponse`s.
- `torrentcore.native` has `is_sparse` and `fallocate`, for preallocating
  files.
- `torrentcore.util` has SHA-1 and ID helpers (`sha1_hash`, `hash_to_id`,
  `id_to_hash`, `peer_rpc_id`, `file_rpc_id`, `trk_rpc_id`). It also has
  compact address conversion (`bytes_to_addr`, `addr_to_bytes`) and the
  non-blocking `aread` / `awrite`, which return an `IOResult`.
- `torrentcore.errors` defines `TrackerError` and its subclasses:
  `InvalidRequest`, `InvalidResponse`, `TrackerFailure`, `TrackerEOF`,
  `TrackerIOError`, `TrackerTimeout`, `DNSTimeout` and `DNSInvalid`.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Bencoding. Dictionary keys decode to `str`, and byte strings stay `bytes`:

```python
from torrentcore.bencoding import encode, decode

data = encode({"interval": 900, "peers": b""})
assert data == b"d8:intervali900e5:peers0:e"
assert decode(data) == {"interval": 900, "peers": b""}
```

Picking blocks:

```python
from torrentcore.peer import PeerState
from torrentcore.picker import Picker

picker = Picker([False] * 4, piece_length=32_768, total_length=4 * 32_768)
peer = PeerState(id=1, num_pieces=4, pieces={0, 1, 2, 3})
picker.add_peer(peer)

block = picker.pick(peer)
piece_done = picker.completed(block, cancel=lambda peer_id: None)
```

DHT messages:

```python
from torrentcore.dht_proto import Request

node_id = int.from_bytes(b"n" * 20, "big")
wire = Request.ping(b"aa", node_id).encode()
assert Request.decode(wire).kind.id == node_id
```

Building an HTTP request:

```python
from torrentcore.http_request import RequestBuilder

raw = (
    RequestBuilder("GET", "/announce", None)
    .query("compact", b"1")
    .header("Connection", "close")
    .encode()
)
assert raw == b"GET /announce?compact=1 HTTP/1.0\r\nConnection: close\r\n\r\n"
```

Converting between hashes and IDs:

```python
from torrentcore.util import hash_to_id, id_to_hash, sha1_hash

digest = sha1_hash(b"hello")
assert id_to_hash(hash_to_id(digest)) == digest
```

## What it does not do

This is a library of parts, not a client. It has no command-line program.
It does not run announces against HTTP or UDP trackers by itself. It does
not parse tracker announce replies into peer lists, and it does not keep a
DHT routing table or run a DHT node. The stream, resolver, request builder,
reader and writer are the pieces such clients would be built from.