import socket
import threading

import pytest

from transdata.client_session import (
    ClientSession,
    ResponseError,
    start_communicate_server,
)
from transdata.message import MessageF, recv_message_f
from transdata.server import communicate_client
from transdata.utility import recv_exact


@pytest.fixture
def pair():
    client_sock, server_sock = socket.socketpair()
    client_sock.settimeout(5)
    server_sock.settimeout(5)
    yield client_sock, server_sock
    client_sock.close()
    server_sock.close()


def _serve(server_sock):
    thread = threading.Thread(target=communicate_client, args=(server_sock,))
    thread.start()
    return thread


def _run_in_thread(func, *args):
    errors = []

    def target():
        try:
            func(*args)
        except Exception as exc:  # noqa: BLE001 - reported to the test
            errors.append(exc)

    thread = threading.Thread(target=target)
    thread.start()
    return thread, errors


def test_full_transfer_stores_file(tmp_path, monkeypatch, pair):
    client_sock, server_sock = pair
    source_dir = tmp_path / "src"
    store_dir = tmp_path / "store"
    source_dir.mkdir()
    store_dir.mkdir()
    content = b"hello world\n" * 2000
    source = source_dir / "data.bin"
    source.write_bytes(content)
    monkeypatch.chdir(store_dir)

    thread = _serve(server_sock)
    session = ClientSession(client_sock)
    session.begin(source)
    session.put()
    thread.join(5)

    assert (store_dir / "data.bin").read_bytes() == content
    assert not (store_dir / ".data.bin.lock").exists()
    assert session.send_file_size == len(content)
    assert session.error_message is None


def test_start_communicate_server_sends_file(tmp_path, pair):
    client_sock, server_sock = pair
    source = tmp_path / "note.txt"
    source.write_bytes(b"abc")

    thread, errors = _run_in_thread(start_communicate_server, client_sock, str(source))
    request = recv_message_f(server_sock)
    server_sock.sendall(b"A")
    body = recv_exact(server_sock, 10)
    server_sock.sendall(b"A")
    thread.join(5)

    assert request == MessageF("note.txt", 3)
    assert body == b"abc"
    assert errors == []


def test_request_carries_basename_and_size(tmp_path, pair):
    client_sock, server_sock = pair
    content = b"0123456789"
    source = tmp_path / "data.bin"
    source.write_bytes(content)

    session = ClientSession(client_sock)
    thread, errors = _run_in_thread(session.begin, source)
    request = recv_message_f(server_sock)
    server_sock.sendall(b"A")
    thread.join(5)

    assert request.filename == "data.bin"
    assert request.file_size == len(content)
    assert session.send_file_size == len(content)
    assert errors == []


def test_lock_conflict_reports_server_error(tmp_path, monkeypatch, pair):
    client_sock, server_sock = pair
    source = tmp_path / "busy.txt"
    source.write_bytes(b"x")
    store_dir = tmp_path / "store"
    store_dir.mkdir()
    (store_dir / ".busy.txt.lock").write_bytes(b"")
    monkeypatch.chdir(store_dir)

    thread = _serve(server_sock)
    session = ClientSession(client_sock)
    with pytest.raises(ResponseError) as info:
        session.begin(source)
    client_sock.close()
    thread.join(5)

    assert info.value.error_message.startswith("output file open or file lock error")
    assert session.error_message == info.value.error_message
    assert not (store_dir / "busy.txt").exists()


def test_unexpected_reply_type(tmp_path, pair):
    client_sock, server_sock = pair
    source = tmp_path / "f.txt"
    source.write_bytes(b"data")

    def peer():
        recv_message_f(server_sock)
        server_sock.sendall(b"Z")

    thread = threading.Thread(target=peer)
    thread.start()
    session = ClientSession(client_sock)
    with pytest.raises(ResponseError) as info:
        session.begin(source)
    thread.join(5)

    assert info.value.error_message is None
    assert session.error_message is None


def test_missing_file_raises(tmp_path, pair):
    client_sock, _ = pair
    with pytest.raises(FileNotFoundError):
        ClientSession(client_sock).begin(tmp_path / "absent.txt")


def test_put_before_begin_raises(pair):
    client_sock, _ = pair
    with pytest.raises(ValueError):
        ClientSession(client_sock).put()


def test_start_communicate_server_propagates_error(tmp_path, pair):
    client_sock, _ = pair
    with pytest.raises(FileNotFoundError):
        start_communicate_server(client_sock, tmp_path / "absent.txt")