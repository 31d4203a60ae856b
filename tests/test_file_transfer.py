import os
import socket
import struct
import threading
import time

import pytest

from nettool.encryption import encrypt_chunk
from nettool.file_transfer import AES_KEY, parse_header, receive, send


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _start_receiver(port, out_dir):
    result = {}

    def target():
        try:
            result["value"] = receive(port, str(out_dir))
        except Exception as exc:  # recorded for the test to inspect
            result["error"] = exc

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, result


def _connect(port):
    for _ in range(200):
        try:
            return socket.create_connection(("127.0.0.1", port))
        except ConnectionRefusedError:
            time.sleep(0.02)
    raise AssertionError("receiver never started")


def _start_raw_sender(port, payload):
    """Connect once the receiver listens, send raw bytes and close."""

    def target():
        with _connect(port) as sock:
            sock.sendall(payload)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread


def _send_when_ready(path, port):
    for _ in range(200):
        try:
            return send(str(path), "127.0.0.1", port)
        except ConnectionRefusedError:
            time.sleep(0.02)
    raise AssertionError("receiver never started")


def test_parse_header_name_and_size():
    assert parse_header(b"report.txt:1234") == ("report.txt", 1234)


def test_parse_header_missing_size_is_zero():
    assert parse_header(b"report.txt") == ("report.txt", 0)


def test_parse_header_bad_size_is_zero():
    assert parse_header(b"report.txt:abc") == ("report.txt", 0)


def test_parse_header_ignores_extra_fields():
    assert parse_header(b"a:5:more") == ("a", 5)


def test_parse_header_invalid_utf8_is_replaced():
    name, size = parse_header(b"\xffname:7")
    assert name == "\ufffdname"
    assert size == 7


@pytest.mark.parametrize("size", [0, 10, 8192, 20000])
def test_send_and_receive_round_trip(tmp_path, size):
    payload = os.urandom(size)
    source = tmp_path / "src" / "data.bin"
    source.parent.mkdir()
    source.write_bytes(payload)
    out_dir = tmp_path / "out"
    port = _free_port()

    thread, result = _start_receiver(port, out_dir)
    sent = _send_when_ready(source, port)
    thread.join(timeout=10)

    assert "error" not in result
    save_path, written = result["value"]
    assert sent == size
    assert written == size
    assert save_path == out_dir / "data.bin"
    assert save_path.read_bytes() == payload


def test_send_missing_file_raises(tmp_path):
    with socket.create_server(("127.0.0.1", 0)) as listener:
        port = listener.getsockname()[1]
        with pytest.raises(FileNotFoundError):
            send(str(tmp_path / "missing.bin"), "127.0.0.1", port)


def test_receive_without_header_newline_raises(tmp_path):
    port = _free_port()
    sender = _start_raw_sender(port, b"name:3")
    with pytest.raises(ConnectionError):
        receive(port, str(tmp_path / "out"))
    sender.join(timeout=10)


def test_receive_truncated_chunk_raises(tmp_path):
    port = _free_port()
    encrypted = encrypt_chunk(b"abc", AES_KEY)
    sender = _start_raw_sender(
        port, b"f.txt:3\n" + struct.pack(">I", len(encrypted)) + encrypted[:-4]
    )
    with pytest.raises(ConnectionError):
        receive(port, str(tmp_path / "out"))
    sender.join(timeout=10)


def test_receive_raw_chunks_written_in_order(tmp_path):
    port = _free_port()
    out_dir = tmp_path / "out"
    thread, result = _start_receiver(port, out_dir)
    with _connect(port) as sock:
        sock.sendall(b"notes.txt:6\n")
        for part in (b"abc", b"def"):
            encrypted = encrypt_chunk(part, AES_KEY)
            sock.sendall(struct.pack(">I", len(encrypted)) + encrypted)
    thread.join(timeout=10)
    save_path, written = result["value"]
    assert save_path.read_bytes() == b"abcdef"
    assert written == len(b"abcdef")