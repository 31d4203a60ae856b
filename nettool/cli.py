"""Command-line entry point for the networking tool."""

from __future__ import annotations

import argparse
import asyncio
import sys

from .encrypted_chat import chat_client, chat_server
from .encryption import EncryptionError
from .file_transfer import receive, send
from .shell_access import start_connector, start_listener

PORT_SCAN_MESSAGE = "Port scanning is not available in this build."


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from None
    if not 0 <= value <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="nettool", description="A Netcat-like networking tool"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    transfer = commands.add_parser("file-transfer", help="send or receive a file")
    transfer_modes = transfer.add_subparsers(dest="mode", required=True)
    sender = transfer_modes.add_parser("send", help="send a file")
    sender.add_argument("-f", "--file", required=True)
    sender.add_argument("-H", "--host", required=True)
    sender.add_argument("-p", "--port", type=_port, required=True)
    receiver = transfer_modes.add_parser("receive", help="receive a file")
    receiver.add_argument("-p", "--port", type=_port, required=True)
    receiver.add_argument("-o", "--output", required=True)

    chat = commands.add_parser("encrypted-chat", help="encrypted chat")
    chat.add_argument("-m", "--mode", required=True, help="server or client")
    chat.add_argument("-H", "--host", default="127.0.0.1")
    chat.add_argument("-p", "--port", type=_port, required=True)

    commands.add_parser("port-scan", help="port scanner")

    shell = commands.add_parser("shell-access", help="remote shell")
    shell_modes = shell.add_subparsers(dest="mode", required=True)
    listen = shell_modes.add_parser(
        "listen", help="Listen for incoming shell access on a port"
    )
    listen.add_argument("-p", "--port", type=_port, required=True)
    connect = shell_modes.add_parser(
        "connect", help="Connect to a remote shell at given IP and port"
    )
    connect.add_argument("-H", "--host", required=True)
    connect.add_argument("-p", "--port", type=_port, required=True)

    return parser


def port_scan() -> None:
    """Report that port scanning is unavailable."""
    print(PORT_SCAN_MESSAGE)


def _run(args: argparse.Namespace) -> int:
    if args.command == "file-transfer":
        try:
            if args.mode == "send":
                send(args.file, args.host, args.port)
            else:
                receive(args.port, args.output)
        except (OSError, EncryptionError) as exc:
            print(f"File transfer failed: {exc}", file=sys.stderr)
            return 1
    elif args.command == "encrypted-chat":
        mode = args.mode.lower()
        if mode == "server":
            asyncio.run(chat_server(args.port))
        elif mode == "client":
            asyncio.run(chat_client(args.host, args.port))
        else:
            print("Invalid mode. Use 'server' or 'client'.", file=sys.stderr)
    elif args.command == "port-scan":
        port_scan()
    elif args.command == "shell-access":
        try:
            if args.mode == "listen":
                start_listener(args.port)
            else:
                start_connector(args.host, args.port)
        except (OSError, EncryptionError) as exc:
            print(f"Shell access failed: {exc}", file=sys.stderr)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse ``argv`` and run the chosen command; return the exit status."""
    args = build_parser().parse_args(argv)
    try:
        return _run(args)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())