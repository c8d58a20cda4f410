"""Encrypted file sharing through IPFS and a file system manager."""

from __future__ import annotations

import logging
import os
import socket
import subprocess
import time
from dataclasses import dataclass

BUFF_SIZE = 100
UPLOAD_INDEX = 0
DOWNLOAD_INDEX = 1
DOWNLOAD_RESP = 2
MAX_REPLY_NUM = 100

IPFS_ADD_COMMAND = ("ipfs", "add", "--quiet")
TXT_FILE_EXTENSION = ".txt"
ENCRYPTED_FILE_NAME = "encrypted"
RESULT_FILE_NAME = "result"
DOWNLOAD_FILE_NAME = "download"

_MAX_FIELD = 255
_RECEIVE_SIZE = 4096

log = logging.getLogger(__name__)


class IpfsError(Exception):
    """Raised when an upload, a download or a message exchange fails."""


@dataclass
class EstimateTime:
    """Seconds spent in each stage of an upload or a download."""

    up_download_time: float = 0.0
    keygenerate_time: float = 0.0
    enc_dec_time: float = 0.0
    filemanager_time: float = 0.0


def _as_bytes(value: bytes | bytearray | str) -> bytes:
    return value.encode() if isinstance(value, str) else bytes(value)


def _field(value: bytes | bytearray | str, what: str) -> bytes:
    data = _as_bytes(value)
    if len(data) > _MAX_FIELD:
        raise IpfsError(f"{what} is too long: {len(data)} bytes")
    return bytes([len(data)]) + data


def available_file_name(file_name: str, file_extension: str) -> str:
    """Return the first of ``name.ext``, ``name1.ext``, ... that does not exist."""
    for suffix in range(MAX_REPLY_NUM):
        number = str(suffix) if suffix else ""
        candidate = f"{file_name}{number}{file_extension}"
        if not os.path.exists(candidate):
            return candidate
        log.info("File already exists: %s.", candidate)
    raise IpfsError(
        "Cannot save the file as file name's suffix number exceeds max."
    )


def ipfs_add(file_name: str, estimate_time: EstimateTime | None = None) -> str:
    """Add ``file_name`` to IPFS and return its content identifier."""
    start = time.perf_counter()
    command = [*IPFS_ADD_COMMAND, str(file_name)]
    log.info("Command: %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise IpfsError(f"Failed to run ipfs: {exc}") from exc
    lines = result.stdout.splitlines()
    if not lines or not lines[0]:
        raise IpfsError("Failed to read CID from ipfs output.")
    cid = lines[0]
    if estimate_time is not None:
        estimate_time.up_download_time = time.perf_counter() - start
    return cid


def make_upload_request(
    name: bytes | str, key_id: bytes, hash_value: bytes | str
) -> bytes:
    """Build the message telling the file system manager about an upload."""
    return (
        bytes([UPLOAD_INDEX])
        + _field(name, "name")
        + _field(key_id, "key id")
        + _field(hash_value, "hash value")
    )


def make_download_request(name: bytes | str) -> bytes:
    """Build the message asking the file system manager for a download."""
    return bytes([DOWNLOAD_INDEX]) + _field(name, "name")


def parse_download_response(buf: bytes) -> tuple[bytes, str]:
    """Split a download response into ``(key_id, command)``."""
    data = bytes(buf)
    if len(data) < 2:
        raise IpfsError("Download response is too short.")
    key_id_size = data[1]
    key_end = 2 + key_id_size
    if len(data) < key_end + 1:
        raise IpfsError("Download response is truncated in the key id.")
    key_id = data[2:key_end]
    command_size = data[key_end]
    command_start = key_end + 1
    command_bytes = data[command_start : command_start + command_size]
    if len(command_bytes) != command_size:
        raise IpfsError("Download response is truncated in the command.")
    command = command_bytes.decode().rstrip("\r\n\0")
    return key_id, command


def download_file(received: bytes, directory: str = ".") -> tuple[bytes, str]:
    """Run the download command in ``received``; return ``(key_id, file_name)``."""
    key_id, base_command = parse_download_response(received)
    file_name = available_file_name(
        os.path.join(directory, DOWNLOAD_FILE_NAME), TXT_FILE_EXTENSION
    )
    command = f"{base_command}{file_name}"
    log.info("Command: %s", command)
    try:
        subprocess.run(command, shell=True, check=False)
    except OSError as exc:
        raise IpfsError(f"Failed to run download command: {exc}") from exc
    log.info("Downloaded the file: %s", file_name)
    return key_id, file_name


def upload_to_file_system_manager(
    host: str, port: int, name: bytes | str, key_id: bytes, hash_value: bytes | str
) -> None:
    """Send the session key id and hash value of an upload to the manager."""
    message = make_upload_request(name, key_id, hash_value)
    try:
        with socket.create_connection((host, port)) as sock:
            sock.sendall(message)
    except OSError as exc:
        raise IpfsError(f"Failed to write data to socket: {exc}") from exc
    log.info("Sent the session key id and hash value for the file.")


def receive_data_and_download_file(
    host: str,
    port: int,
    name: bytes | str,
    estimate_time: EstimateTime | None = None,
) -> tuple[bytes, str]:
    """Ask the manager where a file is, download it; return ``(key_id, file_name)``."""
    start = time.perf_counter()
    try:
        with socket.create_connection((host, port)) as sock:
            sock.sendall(make_download_request(name))
            received = sock.recv(_RECEIVE_SIZE)
    except OSError as exc:
        raise IpfsError(f"Socket error while requesting a download: {exc}") from exc
    if not received:
        raise IpfsError("No response from the file system manager.")
    log.info("Received the information for the file.")
    middle = time.perf_counter()
    result = download_file(received, ".")
    if estimate_time is not None:
        estimate_time.filemanager_time = middle - start
        estimate_time.up_download_time = time.perf_counter() - middle
    return result