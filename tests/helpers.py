"""
Client-side helpers shared by the socket-level tests.
"""

import socket
from typing import Dict, Tuple


def send_raw(address, data: bytes, timeout: float = 5.0) -> bytes:
    """
    Send raw bytes and read until the server closes the connection.

    A reset from the server (it dropped the request without reading
    everything) counts as an empty answer.
    """
    chunks = []
    with socket.create_connection(address, timeout=timeout) as sock:
        sock.sendall(data)
        while True:
            try:
                chunk = sock.recv(4096)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """
    Split a raw response into (status line, headers, body).

    Header order is not meaningful, so headers come back as a dict.
    """
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value

    return lines[0], headers, body
