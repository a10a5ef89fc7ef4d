"""Socket helpers shared by client and server."""

from __future__ import annotations

import socket
import struct

from transdata.debug import debug_perror

SOCKET_TIMEOUT_SEC = 20


def set_socket_timeout(sock: socket.socket, timeout_sec: float) -> None:
    """Apply *timeout_sec* to both sending and receiving on *sock*."""
    sock.settimeout(timeout_sec)


def prepare_break_connection(sock: socket.socket) -> None:
    """Arrange for closing *sock* to reset the connection instead of a clean FIN.

    Used when the exchange cannot continue; failures are only logged.
    """
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
    except OSError as exc:
        debug_perror("setsockopt", exc)


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Receive *size* bytes, returning fewer only if the peer closes first."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = sock.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)