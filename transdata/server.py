"""File-receiving server: listens, and stores each client's file in a thread."""

from __future__ import annotations

import atexit
import getopt
import os
import signal
import socket
import sys
import threading
from dataclasses import dataclass

from transdata import debug
from transdata.debug import debug_perror, debug_print
from transdata.server_session import ServerSession, SessionError
from transdata.utility import SOCKET_TIMEOUT_SEC, set_socket_timeout

PORT_NUMBER_MAX_LEN = 5
USAGE = "trans-data-server -p port [-s files-store-directory] [-d]"


@dataclass
class ServerOptions:
    """Command-line settings of the server."""

    port: str
    files_store_dir_path: str | None = None
    enable_debug: bool = False


def parse_options(argv: list[str]) -> ServerOptions:
    """Parse server arguments; raise ValueError if they are unusable."""
    try:
        opts, rest = getopt.getopt(argv, "p:s:d")
    except getopt.GetoptError as exc:
        raise ValueError(str(exc)) from exc
    if rest:
        raise ValueError(f"unexpected arguments: {' '.join(rest)}")

    port = ""
    store_dir: str | None = None
    enable_debug = False
    for opt, value in opts:
        if opt == "-p":
            port = value[:PORT_NUMBER_MAX_LEN]
        elif opt == "-s":
            store_dir = value
        elif opt == "-d":
            enable_debug = True
    if not port:
        raise ValueError("a port is required")
    return ServerOptions(port, store_dir or None, enable_debug)


def open_server_socket(port: str) -> socket.socket:
    """Create a listening IPv4 TCP socket on *port*; raise OSError on failure."""
    addresses = socket.getaddrinfo(
        None, port, socket.AF_INET, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
    )
    for family, socktype, proto, _, address in addresses:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            continue
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as exc:
            debug_perror("setsockopt", exc)
            sock.close()
            raise
        try:
            sock.bind(address)
        except OSError:
            sock.close()
            continue
        try:
            sock.listen(socket.SOMAXCONN)
        except OSError as exc:
            debug_perror("listen", exc)
            sock.close()
            raise
        return sock
    debug_print("Could not bind socket to any address")
    raise OSError(f"could not bind socket to any address for port {port}")


def communicate_client(connected_socket: socket.socket) -> None:
    """Serve one client connection to completion, then close it."""
    try:
        set_socket_timeout(connected_socket, SOCKET_TIMEOUT_SEC)
        with ServerSession(connected_socket) as session:
            session.begin()
            session.put()
    except SessionError as exc:
        debug_print("session error: %s", exc)
    except OSError as exc:
        debug_perror("communicate_client", exc)
    finally:
        connected_socket.close()


def start_communicate_client(connected_socket: socket.socket) -> threading.Thread:
    """Serve *connected_socket* on a new daemon thread and return the thread."""
    thread = threading.Thread(
        target=communicate_client, args=(connected_socket,), daemon=True
    )
    thread.start()
    return thread


def _detach_standard_streams() -> None:
    """Point stdin, stdout and stderr at the null device."""
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)


def _initialize_server(options: ServerOptions) -> bool:
    try:
        _detach_standard_streams()
    except OSError as exc:
        debug_perror("daemon", exc)
        return False

    if options.enable_debug:
        try:
            debug.initialize(f"trans-data-server.{os.getpid()}")
        except OSError:
            return False
        atexit.register(debug.finalize)

    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)

    if options.files_store_dir_path:
        try:
            os.chdir(options.files_store_dir_path)
        except OSError as exc:
            debug_perror("chdir", exc)
            return False
    return True


def main(argv: list[str] | None = None) -> int:
    """Run the server until killed."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        options = parse_options(argv)
    except ValueError:
        print(USAGE, file=sys.stderr)
        return 0

    if not _initialize_server(options):
        return 0

    try:
        server_socket = open_server_socket(options.port)
    except OSError as exc:
        debug_perror("open_server_socket", exc)
        return 0

    with server_socket:
        while True:
            try:
                connected_socket, _ = server_socket.accept()
            except OSError as exc:
                debug_perror("accept", exc)
                continue
            try:
                start_communicate_client(connected_socket)
            except RuntimeError as exc:
                debug_print("thread start error: %s", exc)
                connected_socket.close()


if __name__ == "__main__":
    sys.exit(main())