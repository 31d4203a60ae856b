import socket
import threading
import time

import pytest

from nettool.cli import PORT_SCAN_MESSAGE, build_parser, main, port_scan


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_chat_host_default():
    args = build_parser().parse_args(["encrypted-chat", "-m", "server", "-p", "9000"])
    assert args.command == "encrypted-chat"
    assert args.mode == "server"
    assert args.host == "127.0.0.1"
    assert args.port == 9000


def test_file_send_arguments():
    args = build_parser().parse_args(
        ["file-transfer", "send", "-f", "a.txt", "-H", "localhost", "-p", "1234"]
    )
    assert (args.mode, args.file, args.host, args.port) == ("send", "a.txt", "localhost", 1234)


def test_shell_connect_long_options():
    args = build_parser().parse_args(
        ["shell-access", "connect", "--host", "localhost", "--port", "22"]
    )
    assert (args.mode, args.host, args.port) == ("connect", "localhost", 22)


@pytest.mark.parametrize("port", ["70000", "-1", "abc"])
def test_bad_port_rejected(port):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["shell-access", "listen", "-p", port])


def test_subcommand_required():
    with pytest.raises(SystemExit):
        main([])


def test_port_scan_prints_message(capsys):
    port_scan()
    assert capsys.readouterr().out.strip() == PORT_SCAN_MESSAGE


def test_main_port_scan(capsys):
    assert main(["port-scan"]) == 0
    assert PORT_SCAN_MESSAGE in capsys.readouterr().out


def test_invalid_chat_mode(capsys):
    assert main(["encrypted-chat", "-m", "bogus", "-p", "1"]) == 0
    assert "Invalid mode. Use 'server' or 'client'." in capsys.readouterr().err


def test_send_missing_file_fails(tmp_path, capsys):
    port = _free_port()
    assert main(
        ["file-transfer", "send", "-f", str(tmp_path / "none"), "-H", "127.0.0.1", "-p", str(port)]
    ) == 1
    assert "File transfer failed" in capsys.readouterr().err


def test_file_transfer_end_to_end(tmp_path):
    source = tmp_path / "payload.bin"
    content = bytes(range(256)) * 100
    source.write_bytes(content)
    out_dir = tmp_path / "out"
    port = _free_port()

    results = []
    receiver = threading.Thread(
        target=lambda: results.append(
            main(["file-transfer", "receive", "-p", str(port), "-o", str(out_dir)])
        ),
        daemon=True,
    )
    receiver.start()

    rc = 1
    for _ in range(100):
        rc = main(["file-transfer", "send", "-f", str(source), "-H", "127.0.0.1", "-p", str(port)])
        if rc == 0:
            break
        time.sleep(0.05)
    receiver.join(10)

    assert rc == 0
    assert results == [0]
    assert (out_dir / "payload.bin").read_bytes() == content