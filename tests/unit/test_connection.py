"""
Unit tests for Connection, over a local socket pair.
"""

import socket

import pytest

from minihttp.core.connection import Connection, ConnectionState, SocketError
from minihttp.http.request import RequestTooLarge


@pytest.fixture
def socket_pair():
    """(server side, client side); both closed afterwards."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


def make_connection(sock, **kwargs) -> Connection:
    kwargs.setdefault("timeout", 2.0)
    return Connection(socket=sock, address=("127.0.0.1", 50000), **kwargs)


class TestReadRequest:
    """Buffered read of the request head."""

    def test_reads_whole_head(self, socket_pair, sample_get_request):
        server_side, client_side = socket_pair
        client_side.sendall(sample_get_request)

        conn = make_connection(server_side)

        assert conn.read_request() == sample_get_request
        assert conn.state == ConnectionState.READING

    def test_reassembles_small_chunks(self, socket_pair, sample_get_request):
        server_side, client_side = socket_pair
        client_side.sendall(sample_get_request)

        conn = make_connection(server_side, recv_size=3)

        assert conn.read_request() == sample_get_request

    def test_split_across_writes(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET /echo/ab")
        client_side.sendall(b"c HTTP/1.1\r\n\r\n")

        conn = make_connection(server_side, recv_size=8)

        assert conn.read_request() == b"GET /echo/abc HTTP/1.1\r\n\r\n"

    def test_stops_at_blank_line(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"POST /x HTTP/1.1\r\n\r\nbody bytes")

        conn = make_connection(server_side)

        assert conn.read_request() == b"POST /x HTTP/1.1\r\n\r\n"

    def test_peer_closed_without_data(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()

        conn = make_connection(server_side)

        assert conn.read_request() is None

    def test_peer_closed_mid_request(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET / HTTP/1.1\r\n")
        client_side.close()

        conn = make_connection(server_side)

        assert conn.read_request() == b"GET / HTTP/1.1\r\n"

    def test_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"A" * 64)

        conn = make_connection(server_side, recv_size=8, max_request_size=16)

        with pytest.raises(RequestTooLarge):
            conn.read_request()

    def test_terminator_at_limit_is_accepted(self, socket_pair):
        server_side, client_side = socket_pair
        data = b"GET / HTTP/1.1\r\n\r\n"
        client_side.sendall(data)

        conn = make_connection(server_side, recv_size=4, max_request_size=len(data))

        assert conn.read_request() == data

    def test_timeout(self, socket_pair):
        server_side, _ = socket_pair

        conn = make_connection(server_side, timeout=0.1)

        with pytest.raises(SocketError) as exc_info:
            conn.read_request()

        assert isinstance(exc_info.value.__cause__, OSError)


class TestSendAndClose:
    """Writing the response and releasing the socket."""

    def test_send_response(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n")
        conn.close()

        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"
        assert client_side.recv(1024) == b""  # clean end of stream
        assert conn.state == ConnectionState.CLOSED

    def test_send_to_closed_peer(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()
        conn = make_connection(server_side)

        with pytest.raises(SocketError):
            conn.send_response(b"x" * 65536)

    def test_close_is_idempotent(self, socket_pair):
        server_side, _ = socket_pair
        conn = make_connection(server_side)

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_context_manager_closes(self, socket_pair):
        server_side, client_side = socket_pair

        with make_connection(server_side) as conn:
            assert conn.state == ConnectionState.NEW

        assert conn.state == ConnectionState.CLOSED
        assert client_side.recv(1024) == b""

    def test_context_manager_does_not_swallow(self, socket_pair):
        server_side, _ = socket_pair

        with pytest.raises(KeyError):
            with make_connection(server_side):
                raise KeyError("boom")

    def test_timeout_applied_to_socket(self, socket_pair):
        server_side, _ = socket_pair

        make_connection(server_side, timeout=1.25)

        assert server_side.gettimeout() == 1.25

    def test_client_ip(self, socket_pair):
        server_side, _ = socket_pair

        assert make_connection(server_side).client_ip == "127.0.0.1"
