"""A netcat-like networking tool with encrypted file transfer, chat and shell access."""

__version__ = "0.1.0"