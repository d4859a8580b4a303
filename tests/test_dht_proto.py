import pytest

from torrentcore.bencoding import decode, encode
from torrentcore.dht_proto import (
    AnnouncePeer,
    DhtError,
    DhtErrorCode,
    ErrorReply,
    FindNode,
    FindNodeReply,
    GetPeers,
    GetPeersReply,
    IdReply,
    Node,
    Ping,
    ProtocolError,
    Request,
    Response,
)

ID_A = int.from_bytes(b"abcdefghij0123456789", "big")
ID_B = int.from_bytes(b"mnopqrstuvwxyz123456", "big")
INFO_HASH = bytes(range(1, 21))

BEP_PING = b"d1:ad2:id20:abcdefghij0123456789e1:q4:ping1:t2:aa1:y1:qe"
BEP_PONG = b"d1:rd2:id20:mnopqrstuvwxyz123456e1:t2:aa1:y1:re"
BEP_ERROR = b"d1:eli201e23:A Generic Error Ocurrede1:t2:aa1:y1:ee"


def test_decode_reference_ping_and_reencode():
    request = Request.decode(BEP_PING)
    assert request.transaction == b"aa"
    assert request.version is None
    assert request.kind == Ping(ID_A)
    assert request.encode() == BEP_PING


def test_decode_reference_pong_and_reencode():
    response = Response.decode(BEP_PONG)
    assert response.transaction == b"aa"
    assert response.kind == IdReply(ID_B)
    assert not response.is_err()
    assert response.encode() == BEP_PONG


def test_decode_reference_error_and_reencode():
    response = Response.decode(BEP_ERROR)
    assert response.is_err()
    assert response.kind == ErrorReply(
        DhtError(DhtErrorCode.GENERIC, "A Generic Error Ocurred")
    )
    assert response.encode() == BEP_ERROR


def test_requests_carry_version():
    encoded = Request.ping(b"tx", ID_A).encode()
    assert decode(encoded)["v"] == b"SY"
    assert Request.decode(encoded).version == "SY"


@pytest.mark.parametrize(
    "request_",
    [
        Request.ping(b"t1", ID_A),
        Request.find_node(b"t2", ID_A, ID_B),
        Request.get_peers(b"t3", ID_A, INFO_HASH),
        Request.announce(b"t4", ID_A, INFO_HASH, b"token", 6881),
    ],
)
def test_request_round_trip(request_):
    decoded = Request.decode(request_.encode())
    assert decoded == request_
    assert decoded.encode() == request_.encode()


def test_announce_fields():
    decoded = Request.decode(Request.announce(b"t", ID_A, INFO_HASH, b"token", 6881).encode())
    assert decoded.kind == AnnouncePeer(ID_A, INFO_HASH, b"token", 6881, False)


def test_implied_port_decoded():
    msg = {
        "t": b"t",
        "y": b"q",
        "q": b"announce_peer",
        "a": {
            "id": b"abcdefghij0123456789",
            "info_hash": INFO_HASH,
            "implied_port": 1,
            "port": 1,
            "token": b"token",
        },
    }
    assert Request.decode(encode(msg)).kind.implied_port is True


def test_long_id_truncated_to_twenty_bytes():
    msg = {"t": b"t", "y": b"q", "q": b"ping", "a": {"id": b"abcdefghij0123456789XYZ"}}
    assert Request.decode(encode(msg)).kind == Ping(ID_A)


def _request(**overrides):
    msg = {
        "t": b"t",
        "y": b"q",
        "q": b"get_peers",
        "a": {"id": b"abcdefghij0123456789", "info_hash": INFO_HASH},
    }
    msg.update(overrides)
    return encode(msg)


@pytest.mark.parametrize(
    "data",
    [
        b"not bencode",
        encode([1, 2]),
        _request(t=5),
        _request(y=b"r"),
        _request(q=b"bogus"),
        _request(a={"info_hash": INFO_HASH}),
        _request(a={"id": b"short", "info_hash": INFO_HASH}),
        _request(a={"id": b"abcdefghij0123456789", "info_hash": b"short"}),
        _request(q=b"find_node"),
        _request(
            q=b"announce_peer",
            a={
                "id": b"abcdefghij0123456789",
                "info_hash": INFO_HASH,
                "port": 70000,
                "token": b"token",
            },
        ),
        _request(
            q=b"announce_peer",
            a={"id": b"abcdefghij0123456789", "info_hash": INFO_HASH, "port": 1},
        ),
    ],
)
def test_request_decode_errors(data):
    with pytest.raises(ProtocolError):
        Request.decode(data)


def test_request_decode_error_message():
    with pytest.raises(ProtocolError, match="invalid request"):
        Request.decode(_request(q=b"bogus"))


def test_node_round_trip():
    node = Node(ID_A, ("10.0.0.1", 6881))
    raw = node.to_bytes()
    assert len(raw) == 26
    assert Node.from_bytes(raw) == node


def test_node_from_short_data():
    with pytest.raises(ValueError):
        Node.from_bytes(b"\x01" * 25)


def test_find_node_reply_round_trip():
    nodes = [Node(ID_A, ("10.0.0.1", 1)), Node(ID_B, ("192.168.1.2", 65535))]
    response = Response.find_node(b"tx", ID_B, nodes)
    decoded = Response.decode(response.encode())
    assert decoded.kind == FindNodeReply(ID_B, nodes)


def test_peers_reply_round_trip():
    values = [("1.2.3.4", 80), ("5.6.7.8", 6881)]
    decoded = Response.decode(Response.peers(b"tx", ID_A, b"token", values).encode())
    assert decoded.kind == GetPeersReply(ID_A, b"token", values, [])


def test_nodes_reply_round_trip():
    nodes = [Node(ID_B, ("10.1.2.3", 4000))]
    decoded = Response.decode(Response.nodes(b"tx", ID_A, b"token", nodes).encode())
    assert decoded.kind == GetPeersReply(ID_A, b"token", [], nodes)


def test_get_peers_reply_skips_malformed_entries():
    msg = {
        "t": b"tx",
        "y": b"r",
        "r": {
            "id": b"abcdefghij0123456789",
            "token": b"token",
            "values": [b"\x01\x02\x03\x04\x00\x50", b"short", 7],
            "nodes": Node(ID_B, ("10.0.0.9", 9)).to_bytes() + b"extra",
        },
    }
    kind = Response.decode(encode(msg)).kind
    assert kind.values == [("1.2.3.4", 80)]
    assert kind.nodes == [Node(ID_B, ("10.0.0.9", 9))]


@pytest.mark.parametrize("code", list(DhtErrorCode))
def test_error_reply_round_trip(code):
    response = Response.error(b"tx", DhtError(code, "message"))
    decoded = Response.decode(response.encode())
    assert decoded == response
    assert decoded.is_err()


@pytest.mark.parametrize(
    "msg",
    [
        {"t": b"tx", "y": b"x"},
        {"y": b"r", "r": {"id": b"abcdefghij0123456789"}},
        {"t": b"tx"},
        {"t": b"tx", "y": b"r"},
        {"t": b"tx", "y": b"r", "r": {"id": b"short"}},
        {"t": b"tx", "y": b"e"},
        {"t": b"tx", "y": b"e", "e": [201]},
        {"t": b"tx", "y": b"e", "e": [b"x", b"msg"]},
        {"t": b"tx", "y": b"e", "e": [201, 5]},
        {"t": b"tx", "y": b"e", "e": [299, b"msg"]},
    ],
)
def test_response_decode_errors(msg):
    with pytest.raises(ProtocolError, match="invalid response"):
        Response.decode(encode(msg))


def test_response_decode_rejects_garbage():
    with pytest.raises(ProtocolError):
        Response.decode(b"\x00garbage")


def test_request_bytes_are_not_responses():
    with pytest.raises(ProtocolError):
        Response.decode(Request.ping(b"tx", ID_A).encode())


def test_kinds_match_factories():
    assert Request.find_node(b"t", ID_A, ID_B).kind == FindNode(ID_A, ID_B)
    assert Request.get_peers(b"t", ID_A, INFO_HASH).kind == GetPeers(ID_A, INFO_HASH)
    assert Response.id(b"t", ID_A).kind == IdReply(ID_A)


def test_dht_error_str():
    assert str(DhtError(DhtErrorCode.SERVER, "oops")) == "server error: oops"