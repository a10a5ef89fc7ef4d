"""TCP file transfer: a client sends one file, a server stores it, over F/A/E messages."""

__version__ = "0.1.0"