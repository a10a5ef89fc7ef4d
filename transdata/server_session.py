"""Server side of one file transfer: receive the request, store the data."""

from __future__ import annotations

import os
import socket

from transdata.debug import debug_perror, debug_print
from transdata.message import (
    ProtocolError,
    recv_message_f,
    send_message_a,
    send_message_e,
)
from transdata.utility import prepare_break_connection

BUFFER_SIZE = 8192

_LOCK_FILE_MODE = 0o700
_OUTPUT_FILE_MODE = 0o766


class SessionError(Exception):
    """The transfer with the client could not be completed."""


def _describe(error: BaseException | None) -> str:
    if error is None:
        return os.strerror(0)
    error_no = getattr(error, "errno", None)
    if isinstance(error_no, int):
        return os.strerror(error_no)
    return str(error)


def _terminate_session(
    sock: socket.socket, message: str, error: BaseException | None = None
) -> None:
    """Send an E message to the peer and wait for it to close the connection."""
    try:
        send_message_e(sock, f"{message}: {_describe(error)}")
    except OSError as exc:
        debug_perror("send_message_E", exc)
        prepare_break_connection(sock)
        return
    try:
        sock.recv(1)
    except OSError as exc:
        debug_perror("EOF read", exc)
        prepare_break_connection(sock)


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


class ServerSession:
    """Receives one file from a connected client into the current directory.

    Use as a context manager, or call close() when done.
    """

    def __init__(self, connected_socket: socket.socket) -> None:
        self.connected_socket = connected_socket
        self.filename: str | None = None
        self.send_file_size = 0
        self._lock_filename: str | None = None
        self._lock_fd: int | None = None
        self._output_fd: int | None = None

    def __enter__(self) -> ServerSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _send_acknowledge(self) -> None:
        try:
            send_message_a(self.connected_socket)
        except OSError as exc:
            debug_perror("send_message_A", exc)
            prepare_break_connection(self.connected_socket)
            raise SessionError("failed to send acknowledge") from exc

    def _recv_request(self) -> None:
        try:
            request = recv_message_f(self.connected_socket)
        except (OSError, ProtocolError) as exc:
            debug_print("recv_message_F error: %s", exc)
            prepare_break_connection(self.connected_socket)
            raise SessionError("failed to receive request") from exc
        self.send_file_size = request.file_size
        self.filename = request.filename

    def _open_output_file(self) -> None:
        assert self.filename is not None
        self._lock_filename = f".{self.filename}.lock"
        try:
            # Creating the lock file exclusively keeps concurrent transfers
            # of the same name from corrupting each other's data.
            self._lock_fd = os.open(
                self._lock_filename,
                os.O_WRONLY | os.O_CREAT | os.O_EXCL,
                _LOCK_FILE_MODE,
            )
            self._output_fd = os.open(
                self.filename, os.O_WRONLY | os.O_CREAT, _OUTPUT_FILE_MODE
            )
        except OSError as exc:
            debug_perror("open", exc)
            _terminate_session(
                self.connected_socket, "output file open or file lock error", exc
            )
            raise SessionError("cannot open output file") from exc

    def begin(self) -> None:
        """Receive the F request, open the output file and acknowledge it."""
        try:
            self._recv_request()
            self._open_output_file()
            self._send_acknowledge()
        except SessionError:
            self.close()
            raise

    def put(self) -> None:
        """Store data until the client shuts down, then acknowledge it."""
        if self._output_fd is None:
            raise SessionError("session has not begun")
        try:
            total_received = 0
            try:
                while chunk := self.connected_socket.recv(BUFFER_SIZE):
                    try:
                        _write_all(self._output_fd, chunk)
                    except OSError as exc:
                        debug_perror("write", exc)
                        _terminate_session(
                            self.connected_socket, "output file write error", exc
                        )
                        raise SessionError("cannot write output file") from exc
                    total_received += len(chunk)
            except SessionError:
                raise
            except OSError as exc:
                debug_perror("recv", exc)
                prepare_break_connection(self.connected_socket)
                raise SessionError("failed to receive file data") from exc

            if total_received != self.send_file_size:
                debug_print(
                    "send file size %d but receive file size %d",
                    self.send_file_size,
                    total_received,
                )
                _terminate_session(
                    self.connected_socket,
                    "send file size not equal receive data size",
                )
                raise SessionError(
                    f"expected {self.send_file_size} bytes, received {total_received}"
                )

            self._send_acknowledge()
        finally:
            self.close()

    def close(self) -> None:
        """Close the output file and remove the lock file if this session owns it."""
        if self._lock_fd is not None:
            os.close(self._lock_fd)
            self._lock_fd = None
            try:
                os.unlink(self._lock_filename)
            except OSError as exc:
                debug_perror("unlink lock file", exc)
        if self._output_fd is not None:
            os.close(self._output_fd)
            self._output_fd = None