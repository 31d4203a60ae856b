"""Multi-user chat over TCP with X25519 key exchange and AES-256-CBC messages."""

from __future__ import annotations

import asyncio
import logging
import struct
import sys
from dataclasses import dataclass, field
from datetime import datetime

from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from termcolor import colored

from .encryption import IV_LEN, EncryptionError, decrypt_chunk, encrypt_chunk

PUBLIC_KEY_LEN = 32
USERNAME_PROMPT = b"Enter your username:\n"

_LENGTH = struct.Struct(">I")

log = logging.getLogger(__name__)


def encrypt_message(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt a chat message; return the random IV followed by the ciphertext."""
    return encrypt_chunk(plaintext, key)


def decrypt_message(key: bytes, data: bytes) -> bytes:
    """Decrypt a message produced by :func:`encrypt_message`."""
    if len(data) < IV_LEN:
        raise EncryptionError("Data too short")
    return decrypt_chunk(data, key)


async def perform_key_exchange(
    reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> bytes:
    """Swap X25519 public keys with the peer and return the raw shared secret."""
    private = X25519PrivateKey.generate()
    writer.write(private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw))
    await writer.drain()
    peer_bytes = await reader.readexactly(PUBLIC_KEY_LEN)
    return private.exchange(X25519PublicKey.from_public_bytes(peer_bytes))


def format_chat_line(username: str, text: str, now: datetime) -> str:
    """Render a broadcast line as ``[HH:MM:SS] username: text``."""
    return f"[{now:%H:%M:%S}] {username}: {text}"


def _write_frame(writer: asyncio.StreamWriter, key: bytes, payload: bytes) -> None:
    encrypted = encrypt_message(key, payload)
    writer.write(_LENGTH.pack(len(encrypted)) + encrypted)


async def _read_frame(reader: asyncio.StreamReader) -> bytes:
    (length,) = _LENGTH.unpack(await reader.readexactly(_LENGTH.size))
    return await reader.readexactly(length)


@dataclass
class _Client:
    username: str
    key: bytes
    writer: asyncio.StreamWriter
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ChatServer:
    """Keeps the connected users and relays every message to all of them."""

    def __init__(self) -> None:
        self.clients: list[_Client] = []

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Serve one connection from key exchange until it closes."""
        peer = writer.get_extra_info("peername")
        try:
            key = await perform_key_exchange(reader, writer)
        except (OSError, asyncio.IncompleteReadError, ValueError) as exc:
            log.error("Key exchange failed: %s", exc)
            writer.close()
            return

        try:
            writer.write(USERNAME_PROMPT)
            await writer.drain()
            line = await reader.readline()
        except OSError:
            writer.close()
            return

        username = line.decode("utf-8", errors="replace").strip()
        log.info(" %s Joined from %s", username, peer)
        self.clients.append(_Client(username, key, writer))

        try:
            while True:
                try:
                    payload = await _read_frame(reader)
                except (asyncio.IncompleteReadError, OSError):
                    break
                try:
                    plaintext = decrypt_message(key, payload)
                except EncryptionError:
                    log.warning(" Failed to decrypt message from %s", username)
                    continue
                try:
                    text = plaintext.decode("utf-8").strip()
                except UnicodeDecodeError:
                    log.warning(" Invalid UTF-8 from %s", username)
                    continue
                await self.broadcast(username, text)
        finally:
            log.info(" %s Disconnected.", username)
            self.clients = [c for c in self.clients if c.username != username]
            writer.close()

    async def broadcast(self, sender: str, text: str) -> str:
        """Send ``text`` from ``sender`` to every user; the sender also gets an empty ack."""
        full_msg = format_chat_line(sender, text, datetime.now())
        log.info(" Broadcasting: %s", full_msg)
        for other in list(self.clients):
            async with other.lock:
                try:
                    if other.username == sender:
                        _write_frame(other.writer, other.key, b"")
                    _write_frame(other.writer, other.key, full_msg.encode("utf-8"))
                    await other.writer.drain()
                except (OSError, EncryptionError) as exc:
                    log.warning(" Failed to write message to %s: %s", other.username, exc)
                    continue
            log.info(" Broadcasted message to %s", other.username)
        return full_msg


async def chat_server(port: int) -> None:
    """Run the chat server on all interfaces until cancelled."""
    logging.basicConfig(level=logging.INFO)
    server = ChatServer()
    listener = await asyncio.start_server(server.handle_connection, "0.0.0.0", port)
    log.info(" Encrypted Chat Server running on port %s", port)
    async with listener:
        await listener.serve_forever()


async def _read_stdin_line() -> str | None:
    line = await asyncio.get_running_loop().run_in_executor(None, sys.stdin.readline)
    if line == "":
        return None
    return line.rstrip("\n").rstrip("\r")


async def _receive_loop(reader: asyncio.StreamReader, key: bytes, my_name: str) -> None:
    marker = f"{my_name}:"
    while True:
        try:
            payload = await _read_frame(reader)
        except asyncio.IncompleteReadError:
            log.warning("Connection closed or read error.")
            break
        except OSError:
            log.warning("Connection closed or read error.")
            break
        try:
            text = decrypt_message(key, payload).decode("utf-8")
        except EncryptionError:
            log.warning("❌ Failed to decrypt broadcast message.")
            continue
        except UnicodeDecodeError:
            log.warning("❌ Failed to decode broadcast message.")
            continue
        if marker in text:
            continue
        print(text.strip(), flush=True)


async def chat_client(host: str, port: int) -> None:
    """Join a chat server and exchange messages typed on stdin."""
    logging.basicConfig(level=logging.INFO)
    reader, writer = await asyncio.open_connection(host, port)
    receiver: asyncio.Task | None = None
    try:
        key = await perform_key_exchange(reader, writer)
        prompt = await reader.readline()
        print(prompt.decode("utf-8", errors="replace"), end="", flush=True)

        name = await _read_stdin_line()
        if name is None:
            raise ConnectionError("Failed to read username")
        writer.write(f"{name}\n".encode("utf-8"))
        await writer.drain()
        username = name.strip()

        receiver = asyncio.create_task(_receive_loop(reader, key, username))

        while (msg := await _read_stdin_line()) is not None:
            msg = msg.strip()
            if not msg:
                continue
            timestamp = datetime.now().strftime("[%H:%M:%S]")
            name_shown = colored(username, "blue", attrs=["bold"])
            formatted = f"{timestamp} {name_shown}: {msg}"
            _write_frame(writer, key, formatted.encode("utf-8"))
            await writer.drain()
            print(formatted)
            print(colored("✔ Delivered", "green"), flush=True)
    finally:
        if receiver is not None:
            receiver.cancel()
        writer.close()