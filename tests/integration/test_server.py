"""
End-to-end tests: a real server on an ephemeral port, driven over TCP.
"""

import dataclasses
import socket
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from minihttp import HTTPServer, ServerConfig
from minihttp.http.response import ok, text_response
from helpers import send_raw, split_response


class TestEndpoints:
    """The standard routes, byte for byte where the output is fixed."""

    def test_root(self, running_server):
        raw = send_raw(running_server.address, b"GET / HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_echo(self, running_server):
        raw = send_raw(running_server.address, b"GET /echo/abc HTTP/1.1\r\n\r\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers == {"Content-Type": "text/plain", "Content-Length": "3"}
        assert body == b"abc"

    def test_user_agent(self, running_server):
        raw = send_raw(
            running_server.address,
            b"GET /user-agent HTTP/1.1\r\nUser-Agent: curl/8\r\n\r\n",
        )

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers == {"Content-Type": "text/plain", "Content-Length": "6"}
        assert body == b"curl/8"

    def test_user_agent_missing(self, running_server):
        raw = send_raw(running_server.address, b"GET /user-agent HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_file(self, running_server):
        raw = send_raw(running_server.address, b"GET /files/hello.txt HTTP/1.1\r\n\r\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers == {
            "Content-Type": "application/octet-stream",
            "Content-Length": "13",
        }
        assert body == b"Hello, World!"

    def test_missing_file(self, running_server):
        raw = send_raw(running_server.address, b"GET /files/nope.txt HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_file_outside_directory(self, running_server):
        raw = send_raw(
            running_server.address,
            b"GET /files/../secret.txt HTTP/1.1\r\n\r\n",
        )

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_file_name_with_nul_byte(self, running_server):
        raw = send_raw(running_server.address, b"GET /files/a\x00b HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    @pytest.mark.parametrize("path", [b"/unknown", b"/echo", b"/user-agent/x", b"/FILES/hello.txt"])
    def test_unknown_path(self, running_server, path):
        raw = send_raw(running_server.address, b"GET " + path + b" HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_post_is_not_routed(self, running_server):
        raw = send_raw(running_server.address, b"POST /echo/abc HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_unknown_method_treated_as_get(self, running_server):
        raw = send_raw(running_server.address, b"DELETE /echo/abc HTTP/1.1\r\n\r\n")

        assert split_response(raw)[2] == b"abc"

    def test_files_route_absent_without_directory(self, server_factory, config):
        server = server_factory(dataclasses.replace(config, directory=None))

        raw = send_raw(server.address, b"GET /files/hello.txt HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"
        assert "/files/" not in " ".join(server.server.router.describe())


class TestWireBehavior:
    """Framing, partial reads and dropped connections."""

    def test_request_split_across_packets(self, running_server):
        with socket.create_connection(running_server.address, timeout=5.0) as sock:
            sock.sendall(b"GET /echo/ab")
            time.sleep(0.1)
            sock.sendall(b"c HTTP/1.1\r\nUser-Agent: x\r\n")
            time.sleep(0.1)
            sock.sendall(b"\r\n")

            raw = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                raw += chunk

        assert split_response(raw)[2] == b"abc"

    def test_one_request_per_connection(self, running_server):
        data = b"GET /echo/one HTTP/1.1\r\n\r\nGET /echo/two HTTP/1.1\r\n\r\n"

        raw = send_raw(running_server.address, data)

        assert raw.count(b"HTTP/1.1 200 OK") == 1
        assert split_response(raw)[2] == b"one"

    def test_malformed_start_line_dropped(self, running_server):
        assert send_raw(running_server.address, b"GARBAGE\r\n\r\n") == b""

    def test_invalid_utf8_dropped(self, running_server):
        assert send_raw(running_server.address, b"GET /echo/\xff HTTP/1.1\r\n\r\n") == b""

    def test_oversized_request_dropped(self, server_factory, config):
        server = server_factory(dataclasses.replace(config, recv_size=64, max_request_size=256))

        raw = send_raw(server.address, b"GET /" + b"a" * 1024)

        assert raw == b""

    def test_client_closes_without_sending(self, running_server):
        with socket.create_connection(running_server.address, timeout=5.0):
            pass

        # Server is still healthy afterwards
        assert send_raw(running_server.address, b"GET / HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_stalled_client_times_out(self, server_factory, config):
        server = server_factory(dataclasses.replace(config, timeout=0.3))

        with socket.create_connection(server.address, timeout=5.0) as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n")  # never finished
            started = time.time()
            try:
                leftover = sock.recv(4096)
            except ConnectionResetError:
                leftover = b""

        assert leftover == b""
        assert time.time() - started < 4.0

    def test_survives_bad_requests(self, running_server):
        send_raw(running_server.address, b"GARBAGE\r\n\r\n")
        send_raw(running_server.address, b"GET /echo/\xff HTTP/1.1\r\n\r\n")

        raw = send_raw(running_server.address, b"GET /echo/still-here HTTP/1.1\r\n\r\n")

        assert split_response(raw)[2] == b"still-here"

    def test_canonical_headers(self, server_factory, config):
        server = server_factory(dataclasses.replace(config, canonical_headers=True))

        raw = send_raw(server.address, b"GET /user-agent HTTP/1.1\r\nuser-agent: curl/8\r\n\r\n")

        assert split_response(raw)[2] == b"curl/8"

    def test_header_case_preserved_by_default(self, running_server):
        raw = send_raw(
            running_server.address,
            b"GET /user-agent HTTP/1.1\r\nuser-agent: curl/8\r\n\r\n",
        )

        assert raw == b"HTTP/1.1 200 OK\r\n\r\n"


class TestConcurrency:
    """Many clients at once."""

    def test_parallel_clients(self, running_server):
        def fetch(i):
            raw = send_raw(running_server.address, f"GET /echo/client-{i} HTTP/1.1\r\n\r\n".encode())
            return split_response(raw)[2]

        with ThreadPoolExecutor(max_workers=20) as executor:
            bodies = list(executor.map(fetch, range(50)))

        assert bodies == [f"client-{i}".encode() for i in range(50)]

    def test_slow_client_does_not_block_others(self, running_server):
        with socket.create_connection(running_server.address, timeout=5.0) as slow:
            slow.sendall(b"GET /echo/slow")  # holds one worker

            raw = send_raw(running_server.address, b"GET /echo/fast HTTP/1.1\r\n\r\n")
            assert split_response(raw)[2] == b"fast"

            slow.sendall(b" HTTP/1.1\r\n\r\n")
            assert slow.recv(4096).startswith(b"HTTP/1.1 200 OK")


class TestCustomApplication:
    """HTTPServer with hand-registered routes."""

    def test_decorated_routes(self, server_factory, config):
        app = HTTPServer(config)

        @app.get("/")
        def index(request, config):
            return text_response("custom")

        @app.post("/submit")
        def submit(request, config):
            return ok()

        server = server_factory(app)

        assert split_response(send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n"))[2] == b"custom"
        assert send_raw(server.address, b"POST /submit HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_handler_error_drops_connection(self, server_factory, config):
        app = HTTPServer(config)

        @app.get("/boom")
        def boom(request, config):
            raise RuntimeError("handler failed")

        @app.get("/")
        def index(request, config):
            return ok()

        server = server_factory(app)

        assert send_raw(server.address, b"GET /boom HTTP/1.1\r\n\r\n") == b""
        assert send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_routes_frozen_after_start(self, server_factory, config):
        app = HTTPServer(config)
        server_factory(app)

        with pytest.raises(RuntimeError):
            app.get("/late")(lambda request, config: ok())

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=-1))
