import socket

import pytest

from transdata.message import (
    MessageA,
    encode_message_f,
    recv_message_a,
    recv_message_e,
)
from transdata.server_session import ServerSession, SessionError


@pytest.fixture
def pair(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    server_end, client_end = socket.socketpair()
    server_end.settimeout(5)
    client_end.settimeout(5)
    yield server_end, client_end
    server_end.close()
    client_end.close()


def test_successful_transfer_stores_file(pair, tmp_path):
    server_end, client_end = pair
    payload = b"hello transfer " * 100
    client_end.sendall(encode_message_f("data.bin", len(payload)))

    session = ServerSession(server_end)
    session.begin()
    assert session.filename == "data.bin"
    assert session.send_file_size == len(payload)
    assert (tmp_path / ".data.bin.lock").exists()
    assert recv_message_a(client_end) == MessageA()

    client_end.sendall(payload)
    client_end.shutdown(socket.SHUT_WR)
    session.put()

    assert recv_message_a(client_end) == MessageA()
    assert (tmp_path / "data.bin").read_bytes() == payload
    assert not (tmp_path / ".data.bin.lock").exists()


def test_existing_lock_file_rejects_request(pair, tmp_path):
    server_end, client_end = pair
    lock = tmp_path / ".busy.bin.lock"
    lock.touch()
    client_end.sendall(encode_message_f("busy.bin", 3))
    client_end.shutdown(socket.SHUT_WR)

    with pytest.raises(SessionError):
        ServerSession(server_end).begin()

    reply = recv_message_e(client_end)
    assert reply.error_message.startswith("output file open or file lock error: ")
    assert lock.exists()
    assert not (tmp_path / "busy.bin").exists()


def test_size_mismatch_sends_error(pair, tmp_path):
    server_end, client_end = pair
    client_end.sendall(encode_message_f("short.bin", 10))

    session = ServerSession(server_end)
    session.begin()
    assert recv_message_a(client_end) == MessageA()

    client_end.sendall(b"abc")
    client_end.shutdown(socket.SHUT_WR)
    with pytest.raises(SessionError):
        session.put()

    reply = recv_message_e(client_end)
    assert reply.error_message.startswith(
        "send file size not equal receive data size: "
    )
    assert (tmp_path / "short.bin").read_bytes() == b"abc"
    assert not (tmp_path / ".short.bin.lock").exists()


def test_truncated_request_fails_without_files(pair, tmp_path):
    server_end, client_end = pair
    client_end.sendall(b"F")
    client_end.shutdown(socket.SHUT_WR)

    with pytest.raises(SessionError):
        ServerSession(server_end).begin()
    assert list(tmp_path.iterdir()) == []


def test_wrong_message_type_fails(pair, tmp_path):
    server_end, client_end = pair
    client_end.sendall(b"A")
    client_end.shutdown(socket.SHUT_WR)

    with pytest.raises(SessionError):
        ServerSession(server_end).begin()
    assert list(tmp_path.iterdir()) == []


def test_put_before_begin_fails(pair):
    server_end, _ = pair
    with pytest.raises(SessionError):
        ServerSession(server_end).put()


def test_context_manager_removes_lock(pair, tmp_path):
    server_end, client_end = pair
    client_end.sendall(encode_message_f("ctx.bin", 0))
    with ServerSession(server_end) as session:
        session.begin()
        assert session.filename == "ctx.bin"
        assert session.send_file_size == 0
        assert (tmp_path / ".ctx.bin.lock").exists()
    assert recv_message_a(client_end) == MessageA()
    assert not (tmp_path / ".ctx.bin.lock").exists()
    assert (tmp_path / "ctx.bin").exists()


def test_existing_output_is_overwritten_in_place(pair, tmp_path):
    server_end, client_end = pair
    (tmp_path / "old.bin").write_bytes(b"zzzz")
    client_end.sendall(encode_message_f("old.bin", 4))
    session = ServerSession(server_end)
    session.begin()
    assert session.filename == "old.bin"
    assert recv_message_a(client_end) == MessageA()
    client_end.sendall(b"qqqq")
    client_end.shutdown(socket.SHUT_WR)
    session.put()
    assert recv_message_a(client_end) == MessageA()
    assert (tmp_path / "old.bin").read_bytes() == b"qqqq"