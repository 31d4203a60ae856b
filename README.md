# nettool

A small netcat-like command-line tool for the network. It does three things:

- **file transfer**: sends a file over TCP in AES-256-CBC encrypted chunks and shows a progress bar
- **encrypted chat**: a multi-user chat server and client. Each connection agrees on its own key through an X25519 exchange
- **shell access**: a remote `/bin/sh` carried over a channel encrypted with X25519 and AES-256-GCM

## Installation

```
pip install .
```

To also install the test dependencies:

```
pip install ".[test]"
```

## Usage

Every command is a subcommand of `nettool`. Ports must lie between 0 and 65535.

### File transfer

On the receiving side, listen on a port and save the incoming file into a directory. The directory is created if it does not exist:

```
nettool file-transfer receive --port 9000 --output downloads
```

The receiver accepts one sender, writes the file under its original name and then exits.

On the sending side:

```
nettool file-transfer send --file report.pdf --host 192.0.2.10 --port 9000
```

The sender first writes a `filename:size` header line. Each chunk of up to 8192 bytes then follows, encrypted and prefixed with its encrypted length as a 4-byte big-endian integer. If a connection, file or decryption error occurs, the command prints `File transfer failed: ...` and exits with status 1.

### Encrypted chat

Start a server. It listens on all interfaces:

```
nettool encrypted-chat --mode server --port 7000
```

Join it from a client. `--host` defaults to `127.0.0.1`:

```
nettool encrypted-chat --mode client --host 192.0.2.10 --port 7000
```

The client asks for a username and then sends each non-empty line you type. Your own line is shown with a timestamp and followed by `✔ Delivered`. Messages from other users arrive as `[HH:MM:SS] name: text`. The `--mode` value is case-insensitive. Any value other than `server` or `client` prints an error message.

### Shell access

Offer a shell on a port. Each connection gets its own `/bin/sh`:

```
nettool shell-access listen --port 4444
```

Connect to it:

```
nettool shell-access connect --host 192.0.2.10 --port 4444
```

Each line you type runs on the listening side, and the shell's output is printed locally.

Pressing Ctrl-C stops any command with exit status 130.

## Library use

The chunk cipher used by file transfer can be called directly:

```python
import os

from nettool.encryption import decrypt_chunk, encrypt_chunk

key = os.urandom(32)
blob = encrypt_chunk(b"hello", key)
assert decrypt_chunk(blob, key) == b"hello"
```

`encrypt_chunk` puts a random 16-byte IV in front of the ciphertext. `encrypt_chunk` and `decrypt_chunk` raise `nettool.encryption.EncryptionError` when the key is not 32 bytes, when the data is too short to hold an IV, or when decryption or unpadding fails.

Other building blocks:

- `nettool.file_transfer.parse_header` parses a `filename:size` header. A size it cannot read counts as 0.
- `nettool.encrypted_chat.ChatServer` keeps the connected users and relays messages to all of them.
- `nettool.encrypted_chat.encrypt_message` and `decrypt_message` encrypt and decrypt chat messages.
- `nettool.shell_access.generate_keypair`, `derive_shared_key`, `send_encrypted` and `receive_encrypted` handle the key exchange and framing of the shell channel.

## What it does not do

`nettool port-scan` exists, but it only prints `Port scanning is not available in this build.` No port scanning is done.

## Security note

The file-transfer key is a fixed value built into the package. The shell channel uses a fixed nonce. Use this tool only on networks you trust.