"""Remote shell over TCP protected by X25519 key exchange and AES-256-GCM."""

from __future__ import annotations

import hashlib
import socket
import struct
import subprocess
import sys
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .encryption import EncryptionError

NONCE = b"unique_nonce"
PUBLIC_KEY_LEN = 32
READ_SIZE = 1024

_LENGTH = struct.Struct(">I")


def generate_keypair() -> tuple[X25519PrivateKey, X25519PublicKey]:
    """Create a fresh X25519 key pair."""
    private = X25519PrivateKey.generate()
    return private, private.public_key()


def derive_shared_key(private: X25519PrivateKey, peer_public: X25519PublicKey) -> bytes:
    """SHA-256 of the X25519 shared secret, used as the AES-256 key."""
    return hashlib.sha256(private.exchange(peer_public)).digest()


def _public_bytes(public: X25519PublicKey) -> bytes:
    return public.public_bytes(Encoding.Raw, PublicFormat.Raw)


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            raise ConnectionError("connection closed")
        buf += chunk
    return bytes(buf)


def send_encrypted(sock: socket.socket, key: bytes, data: bytes) -> None:
    """Encrypt ``data`` and send it as a length-prefixed frame."""
    ciphertext = AESGCM(key).encrypt(NONCE, bytes(data), None)
    sock.sendall(_LENGTH.pack(len(ciphertext)) + ciphertext)


def receive_encrypted(sock: socket.socket, key: bytes) -> bytes:
    """Read one length-prefixed frame and decrypt it."""
    (length,) = _LENGTH.unpack(_recv_exact(sock, _LENGTH.size))
    ciphertext = _recv_exact(sock, length)
    try:
        return AESGCM(key).decrypt(NONCE, ciphertext, None)
    except InvalidTag as exc:
        raise EncryptionError("decryption failed") from exc


def _feed_shell(sock: socket.socket, key: bytes, stdin) -> None:
    try:
        while True:
            try:
                command = receive_encrypted(sock, key)
            except (OSError, EncryptionError):
                break
            try:
                stdin.write(command)
            except OSError:
                pass
    finally:
        try:
            stdin.close()
        except OSError:
            pass


def handle_client(sock: socket.socket) -> None:
    """Serve one connected client: key exchange, then relay a /bin/sh session."""
    private, public = generate_keypair()
    sock.sendall(_public_bytes(public))
    peer = X25519PublicKey.from_public_bytes(_recv_exact(sock, PUBLIC_KEY_LEN))
    key = derive_shared_key(private, peer)

    child = subprocess.Popen(
        ["/bin/sh"], stdin=subprocess.PIPE, stdout=subprocess.PIPE, bufsize=0
    )
    threading.Thread(
        target=_feed_shell, args=(sock, key, child.stdin), daemon=True
    ).start()

    try:
        while chunk := child.stdout.read(READ_SIZE):
            send_encrypted(sock, key, chunk)
    finally:
        child.stdout.close()
        if child.poll() is None:
            child.kill()
        child.wait()


def _serve(conn: socket.socket) -> None:
    with conn:
        try:
            handle_client(conn)
        except Exception as exc:
            print(f"❌ Client error: {exc}", file=sys.stderr)


def start_listener(port: int) -> None:
    """Accept shell clients forever, one thread per connection."""
    with socket.create_server(("0.0.0.0", port)) as listener:
        print(f"🔒 Listening for remote shell on port {port}...")
        while True:
            try:
                conn, addr = listener.accept()
            except OSError as exc:
                print(f"❌ Connection failed: {exc}", file=sys.stderr)
                continue
            print(f"✅ Connection established from {addr[0]}:{addr[1]}")
            threading.Thread(target=_serve, args=(conn,), daemon=True).start()


def _print_output(sock: socket.socket, key: bytes) -> None:
    while True:
        try:
            output = receive_encrypted(sock, key)
        except (OSError, EncryptionError):
            break
        print(output.decode("utf-8", errors="replace"), end="", flush=True)


def _strip_line_ending(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def start_connector(ip: str, port: int) -> None:
    """Connect to a remote shell and forward stdin lines to it."""
    sock = socket.create_connection((ip, port))
    try:
        print(f"🔐 Connected to remote shell at {ip}:{port}")
        private, public = generate_keypair()
        peer_bytes = _recv_exact(sock, PUBLIC_KEY_LEN)
        sock.sendall(_public_bytes(public))
        key = derive_shared_key(private, X25519PublicKey.from_public_bytes(peer_bytes))

        threading.Thread(target=_print_output, args=(sock, key), daemon=True).start()

        for line in sys.stdin:
            send_encrypted(sock, key, (_strip_line_ending(line) + "\n").encode())
    finally:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()