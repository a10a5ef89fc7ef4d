"""Fixed-size wire messages: F (file request), A (acknowledge), E (error)."""

from __future__ import annotations

import os
import socket
import struct
from dataclasses import dataclass

from transdata.utility import recv_exact

FILE_NAME_MAX = 200
ERROR_MESSAGE_LENGTH = 1024

MESSAGE_TYPE_F = b"F"
MESSAGE_TYPE_A = b"A"
MESSAGE_TYPE_E = b"E"

_F_STRUCT = struct.Struct(f">cQ{FILE_NAME_MAX}s")
_E_STRUCT = struct.Struct(f">c{ERROR_MESSAGE_LENGTH}s")

MESSAGE_TYPE_F_LENGTH = _F_STRUCT.size
MESSAGE_TYPE_A_LENGTH = 1
MESSAGE_TYPE_E_LENGTH = _E_STRUCT.size


class ProtocolError(Exception):
    """A message was truncated or of an unexpected type."""


@dataclass(frozen=True)
class MessageF:
    """Request to send a file of *file_size* bytes named *filename*."""

    filename: str
    file_size: int


@dataclass(frozen=True)
class MessageA:
    """Acknowledgement."""


@dataclass(frozen=True)
class MessageE:
    """Error reply carrying a description."""

    error_message: str


def _check(data: bytes, expected_type: bytes, length: int) -> None:
    if len(data) < length:
        raise ProtocolError(f"message truncated: {len(data)} of {length} bytes")
    if data[:1] != expected_type:
        raise ProtocolError(
            f"expected message type {expected_type!r}, got {data[:1]!r}"
        )


def _until_nul(field: bytes) -> bytes:
    return field.split(b"\0", 1)[0]


def encode_message_f(filename: str, file_size: int) -> bytes:
    """Encode an F message; the name is cut to fit its NUL-terminated field."""
    name = os.fsencode(filename)[: FILE_NAME_MAX - 1]
    return _F_STRUCT.pack(MESSAGE_TYPE_F, file_size, name)


def decode_message_f(data: bytes) -> MessageF:
    _check(data, MESSAGE_TYPE_F, MESSAGE_TYPE_F_LENGTH)
    _, file_size, name = _F_STRUCT.unpack(data[:MESSAGE_TYPE_F_LENGTH])
    return MessageF(os.fsdecode(_until_nul(name)), file_size)


def encode_message_a() -> bytes:
    return MESSAGE_TYPE_A


def decode_message_a(data: bytes) -> MessageA:
    _check(data, MESSAGE_TYPE_A, MESSAGE_TYPE_A_LENGTH)
    return MessageA()


def encode_message_e(error_message: str) -> bytes:
    """Encode an E message; the text is cut to fit its NUL-terminated field."""
    text = error_message.encode("utf-8")[: ERROR_MESSAGE_LENGTH - 1]
    return _E_STRUCT.pack(MESSAGE_TYPE_E, text)


def decode_message_e(data: bytes) -> MessageE:
    _check(data, MESSAGE_TYPE_E, MESSAGE_TYPE_E_LENGTH)
    _, text = _E_STRUCT.unpack(data[:MESSAGE_TYPE_E_LENGTH])
    return MessageE(_until_nul(text).decode("utf-8", errors="replace"))


def peek_message_type(sock: socket.socket) -> bytes:
    """Return the type byte of the next message without consuming it."""
    data = sock.recv(1, socket.MSG_PEEK | socket.MSG_WAITALL)
    if not data:
        raise ProtocolError("connection closed before message type")
    return data


def recv_message_f(sock: socket.socket) -> MessageF:
    return decode_message_f(recv_exact(sock, MESSAGE_TYPE_F_LENGTH))


def recv_message_a(sock: socket.socket) -> MessageA:
    return decode_message_a(recv_exact(sock, MESSAGE_TYPE_A_LENGTH))


def recv_message_e(sock: socket.socket) -> MessageE:
    return decode_message_e(recv_exact(sock, MESSAGE_TYPE_E_LENGTH))


def send_message_f(sock: socket.socket, filename: str, file_size: int) -> None:
    sock.sendall(encode_message_f(filename, file_size))


def send_message_a(sock: socket.socket) -> None:
    sock.sendall(encode_message_a())


def send_message_e(sock: socket.socket, error_message: str) -> None:
    sock.sendall(encode_message_e(error_message))