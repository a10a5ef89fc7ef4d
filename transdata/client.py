"""File-sending client: connect to a server and send one file."""

from __future__ import annotations

import atexit
import getopt
import signal
import socket
import sys
from dataclasses import dataclass

from transdata import debug
from transdata.client_session import ResponseError, start_communicate_server
from transdata.debug import debug_perror, debug_print
from transdata.message import ProtocolError
from transdata.utility import SOCKET_TIMEOUT_SEC, set_socket_timeout

PORT_NUMBER_MAX_LEN = 5
HOST_NAME_MAX = 64
PATH_MAX = 4096
USAGE = "trans-data-client -h hostname -p port -f filename [-d]"


@dataclass
class ClientOptions:
    """Command-line settings of the client."""

    hostname: str
    port: str
    send_file_path: str
    enable_debug: bool = False


def parse_options(argv: list[str]) -> ClientOptions:
    """Parse client arguments; raise ValueError if they are unusable."""
    try:
        opts, rest = getopt.getopt(argv, "h:p:f:d")
    except getopt.GetoptError as exc:
        raise ValueError(str(exc)) from exc
    if rest:
        raise ValueError(f"unexpected arguments: {' '.join(rest)}")

    hostname = port = send_file_path = ""
    enable_debug = False
    for opt, value in opts:
        if opt == "-h":
            hostname = value[:HOST_NAME_MAX]
        elif opt == "-p":
            port = value[:PORT_NUMBER_MAX_LEN]
        elif opt == "-f":
            send_file_path = value[: PATH_MAX - 1]
        elif opt == "-d":
            enable_debug = True
    if not port:
        raise ValueError("a port is required")
    if not hostname:
        raise ValueError("a hostname is required")
    if not send_file_path:
        raise ValueError("a file to send is required")
    return ClientOptions(hostname, port, send_file_path, enable_debug)


def open_client_socket(hostname: str, port: str, timeout_sec: float) -> socket.socket:
    """Connect an IPv4 TCP socket to *hostname*:*port*; raise OSError on failure."""
    try:
        addresses = socket.getaddrinfo(hostname, port, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        debug_print("getaddrinfo error %s", exc)
        raise
    family, socktype, proto, _, address = addresses[0]
    sock = socket.socket(family, socktype, proto)
    try:
        set_socket_timeout(sock, timeout_sec)
        sock.connect(address)
    except OSError as exc:
        debug_perror("connect", exc)
        sock.close()
        raise
    return sock


def _initialize_client(options: ClientOptions) -> bool:
    if options.enable_debug:
        try:
            debug.initialize("/dev/stderr")
        except OSError:
            return False
        atexit.register(debug.finalize)
    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)
    return True


def main(argv: list[str] | None = None) -> int:
    """Send the requested file; return 0 on success and 1 on failure."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        options = parse_options(argv)
    except ValueError:
        print(USAGE, file=sys.stderr)
        return 1

    if not _initialize_client(options):
        return 1

    try:
        sock = open_client_socket(options.hostname, options.port, SOCKET_TIMEOUT_SEC)
    except OSError:
        return 1

    with sock:
        try:
            start_communicate_server(sock, options.send_file_path)
        except (ResponseError, OSError, ProtocolError) as exc:
            debug_print("transfer failed: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())