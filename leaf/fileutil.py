"""Small file-system and HTTP request helpers."""

from __future__ import annotations

import ipaddress
import os
from collections.abc import Mapping


def path_exists(path: str | os.PathLike[str]) -> bool:
    """True if path can be stat'ed."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def tail_file(filename: str | os.PathLike[str], size: int) -> bytes | None:
    """Last size bytes of a file; None if it is missing, empty or nothing could be read."""
    if size < 0:
        raise ValueError("size must not be negative")
    try:
        file_size = os.stat(filename).st_size
    except OSError:
        return None
    if file_size == 0:
        return None
    size = min(size, file_size)
    try:
        with open(filename, "rb") as f:
            f.seek(file_size - size)
            data = f.read(size)
    except OSError:
        return None
    if len(data) < size and not data:
        return None
    return data


def get_dir_path(filename: str) -> str:
    """Directory part of a path, or '' when there is none or it is the root."""
    pos = filename.rfind(os.sep)
    if pos < 0:
        pos = filename.rfind("/")
    return filename[:pos] if pos > 0 else ""


def _is_ip(text: str) -> bool:
    if not text or "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    return next((v for k, v in headers.items() if k.lower() == wanted), "")


def _split_host(addr: str) -> str:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or addr[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address: {addr}")
        return addr[1:end]
    pos = addr.rfind(":")
    if pos < 0:
        raise ValueError(f"missing port in address: {addr}")
    host = addr[:pos]
    if ":" in host:
        raise ValueError(f"too many colons in address: {addr}")
    return host


def get_ip(headers: Mapping[str, str], remote_addr: str) -> str:
    """Client IP from proxy headers, falling back to the peer address; '' if none is valid."""
    ip = _header(headers, "cf-connecting-ip")
    if _is_ip(ip):
        return ip
    ip = _header(headers, "X-Real-IP")
    if _is_ip(ip):
        return ip
    for candidate in _header(headers, "X-Forwarded-For").split(","):
        if _is_ip(candidate):
            return candidate
    try:
        host = _split_host(remote_addr)
    except ValueError:
        return ""
    return host if _is_ip(host) else ""