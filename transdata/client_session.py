"""Client side of one file transfer: announce the file, then stream it."""

from __future__ import annotations

import os
import socket

from transdata.debug import debug_perror, debug_print
from transdata.message import (
    MESSAGE_TYPE_A,
    MESSAGE_TYPE_E,
    ProtocolError,
    peek_message_type,
    recv_message_a,
    recv_message_e,
    send_message_f,
)
from transdata.utility import prepare_break_connection

BUFFER_SIZE = 8192


class ResponseError(Exception):
    """The server refused a step of the transfer or replied unexpectedly."""

    def __init__(self, message: str, error_message: str | None = None) -> None:
        super().__init__(message)
        self.error_message = error_message


def _basename(path: str) -> str:
    stripped = path.rstrip(os.sep)
    if not stripped:
        return path[:1] or path
    return os.path.basename(stripped)


class ClientSession:
    """Sends one file over a connected socket."""

    def __init__(self, connected_socket: socket.socket) -> None:
        self.connected_socket = connected_socket
        self.send_file_path: str | None = None
        self.send_file_size = 0
        self.error_message: str | None = None

    def _recv_acknowledge(self) -> None:
        sock = self.connected_socket
        message_type = peek_message_type(sock)
        if message_type == MESSAGE_TYPE_A:
            recv_message_a(sock)
            return
        if message_type == MESSAGE_TYPE_E:
            reply = recv_message_e(sock)
            self.error_message = reply.error_message
            raise ResponseError(
                f"server replied with error: {reply.error_message}",
                reply.error_message,
            )
        debug_print("recv unexpected message type")
        raise ResponseError(f"unexpected message type {message_type!r}")

    def begin(self, send_file_path: str | os.PathLike[str]) -> None:
        """Announce the file to the server and wait for its acknowledgement.

        Raises ResponseError if the server refuses, OSError or ProtocolError
        if the exchange itself fails.
        """
        sock = self.connected_socket
        try:
            self.send_file_path = os.fspath(send_file_path)
            self.send_file_size = os.stat(self.send_file_path).st_size
            send_message_f(sock, _basename(self.send_file_path), self.send_file_size)
            self._recv_acknowledge()
        except ResponseError:
            raise
        except (OSError, ProtocolError) as exc:
            debug_perror("begin_session", exc)
            prepare_break_connection(sock)
            raise

    def put(self) -> None:
        """Stream the file's contents, shut down writing and await the reply."""
        if self.send_file_path is None:
            raise ValueError("session has not begun")
        sock = self.connected_socket
        try:
            with open(self.send_file_path, "rb") as source:
                while chunk := source.read(BUFFER_SIZE):
                    sock.sendall(chunk)
            sock.shutdown(socket.SHUT_WR)
            self._recv_acknowledge()
        except ResponseError:
            raise
        except (OSError, ProtocolError) as exc:
            debug_perror("put_session", exc)
            prepare_break_connection(sock)
            raise


def start_communicate_server(
    connected_socket: socket.socket, send_file_path: str | os.PathLike[str]
) -> None:
    """Send *send_file_path* to the server on *connected_socket*.

    Raises ResponseError, OSError or ProtocolError if the transfer fails.
    """
    session = ClientSession(connected_socket)
    try:
        session.begin(send_file_path)
    except (ResponseError, OSError, ProtocolError):
        debug_print("begin_session error: %s", session.error_message)
        raise
    try:
        session.put()
    except (ResponseError, OSError, ProtocolError):
        debug_print("put_session error: %s", session.error_message)
        raise