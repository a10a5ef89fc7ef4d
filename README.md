# transdata

A small TCP file transfer tool. A client sends one file to a server, and the
server stores it under the file's base name in its working directory, or in a
directory given on its command line.

## Installing

    pip install .

## Running the server

    trans-data-server -p PORT [-s FILES-STORE-DIRECTORY] [-d]

- `-p PORT`: port to listen on, on all IPv4 addresses (required).
- `-s DIR`: change into this directory before serving; received files are
  written there.
- `-d`: append debug log lines to `trans-data-server.<pid>`, created in the
  directory the server was started from.

The server redirects its standard input, output and error to the null device,
then accepts connections forever, serving each one in its own thread. It does
not fork into the background; run it under a service manager or with `&` if
you want that. On a usage error it prints the usage line and exits with
status 0.

While a file is being received, a lock file named `.<filename>.lock` is
created exclusively next to it and removed afterwards, so two clients cannot
write the same file at once; a second client gets an error reply instead. The
output file is opened without truncation, and data received before a failure
is left in place.

## Sending a file

    trans-data-client -h HOSTNAME -p PORT -f FILENAME [-d]

- `-h HOSTNAME`: server host (required).
- `-p PORT`: server port (required).
- `-f FILENAME`: file to send (required). Only its base name is sent to the
  server.
- `-d`: write debug log lines to standard error.

The client exits with status 0 when the server acknowledged the whole file,
and 1 otherwise, including on a usage error. Both sides use a 20 second socket
timeout.

## Protocol

Every message starts with a one-byte type:

- `F`: request. An 8-byte big-endian file size, then a 200-byte NUL-padded
  file name (at most 199 bytes of name).
- `A`: acknowledgement. The type byte alone.
- `E`: error. A 1024-byte NUL-padded error message (at most 1023 bytes of
  text).

The client sends `F`, waits for `A` (or `E`), streams the file contents, shuts
down its sending side, and waits for a final `A` (or `E`). The server answers
`E` if the lock or output file cannot be opened, if writing fails, or if the
number of bytes received differs from the announced size, and then waits for
the client to close. When an exchange breaks off, the side that gives up
closes with a connection reset rather than a clean shutdown.

## Using it as a library

- `transdata.message`: `encode_message_f`, `decode_message_f`,
  `encode_message_a`, `decode_message_a`, `encode_message_e`,
  `decode_message_e`, their socket counterparts `send_message_*` and
  `recv_message_*`, `peek_message_type`, the `MessageF`, `MessageA` and
  `MessageE` dataclasses, and `ProtocolError` for truncated or mistyped
  messages.
- `transdata.server_session.ServerSession`: receives one file over a
  connected socket (`begin()`, then `put()`; usable as a context manager).
  Failures raise `SessionError`.
- `transdata.client_session.ClientSession`: sends one file (`begin(path)`,
  then `put()`). An `E` or unexpected reply raises `ResponseError`, whose
  `error_message` holds the server's text. `start_communicate_server(sock,
  path)` does both steps over an already connected socket.
- `transdata.server`: `open_server_socket(port)`,
  `communicate_client(sock)`, `start_communicate_client(sock)` (returns the
  started daemon thread), `parse_options(argv)` and `main(argv=None)`.
- `transdata.client`: `open_client_socket(hostname, port, timeout_sec)`,
  `parse_options(argv)` and `main(argv=None)`. `parse_options` in either
  module raises `ValueError` for unusable arguments.
- `transdata.debug`: `initialize(log_filename)`, `finalize()`,
  `is_enabled()`, `debug_print(message, *args)` and
  `debug_perror(func, error)` for the timestamped, thread-safe debug log.
- `transdata.utility`: `set_socket_timeout`, `prepare_break_connection` and
  `recv_exact`.

## What it does not do

There is no encryption or authentication, no resuming of interrupted
transfers, and no way to fetch files back from the server: the client only
sends, and the server only stores.