"""Encrypted file transfer over TCP."""

from __future__ import annotations

import os
import re
import socket
import struct
from functools import partial
from pathlib import Path

from tqdm import tqdm

from .encryption import decrypt_chunk, encrypt_chunk

CHUNK_SIZE = 8192
AES_KEY = b"This_is_32_byte_long_aes_key_!!!"

_SIZE = struct.Struct(">I")
_NUMBER = re.compile(r"\+?[0-9]+")


def parse_header(header: bytes) -> tuple[str, int]:
    """Parse a ``filename:filesize`` header; an unreadable size counts as 0."""
    parts = header.decode("utf-8", errors="replace").split(":")
    filename = parts[0]
    size_text = parts[1] if len(parts) > 1 else "0"
    filesize = int(size_text) if _NUMBER.fullmatch(size_text) else 0
    return filename, filesize


def send(file_path: str, host: str, port: int) -> int:
    """Send a file to a receiver in encrypted chunks; return the bytes sent."""
    address = f"{host}:{port}"
    filename = Path(file_path).name
    total_sent = 0
    with socket.create_connection((host, port)) as sock, open(file_path, "rb") as fh:
        size = os.fstat(fh.fileno()).st_size
        sock.sendall(f"{filename}:{size}\n".encode())
        with tqdm(total=size, unit="B", unit_scale=True, colour="cyan") as progress:
            for chunk in iter(partial(fh.read, CHUNK_SIZE), b""):
                encrypted = encrypt_chunk(chunk, AES_KEY)
                sock.sendall(_SIZE.pack(len(encrypted)) + encrypted)
                total_sent += len(chunk)
                progress.update(len(chunk))
            progress.set_description("File Sent")
    print(f"Sent file '{filename}' to {address}")
    return total_sent


def receive(port: int, output_dir: str) -> tuple[Path, int]:
    """Accept one sender, save its file under ``output_dir``; return path and size."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    with socket.create_server(("0.0.0.0", port)) as listener:
        print(f"Receiver listening on port {port}")
        conn, addr = listener.accept()

    with conn, conn.makefile("rb") as stream:
        print(f"Connection from {addr[0]}:{addr[1]}")
        header = stream.readline()
        if not header.endswith(b"\n"):
            raise ConnectionError("Failed to read file header")
        filename, filesize = parse_header(header[:-1])
        save_path = out / filename

        total_written = 0
        with open(save_path, "wb") as fh, tqdm(
            total=filesize, unit="B", unit_scale=True, colour="green"
        ) as progress:
            while True:
                size_buf = stream.read(_SIZE.size)
                if len(size_buf) < _SIZE.size:
                    break
                (chunk_size,) = _SIZE.unpack(size_buf)
                encrypted = stream.read(chunk_size)
                if len(encrypted) < chunk_size:
                    raise ConnectionError("Failed to read encrypted chunk")
                data = decrypt_chunk(encrypted, AES_KEY)
                fh.write(data)
                total_written += len(data)
                progress.update(len(data))
            progress.set_description("File received")

    print(f"Received file '{filename}' ({total_written} bytes)")
    return save_path, total_written