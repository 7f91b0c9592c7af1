"""Generation of version 1-5 UUIDs."""

from __future__ import annotations

import hashlib
import os
import struct
import threading
import time
import uuid as _stduuid
from collections.abc import Callable

from leaf.guid import UUID, UUIDError, Domain, Variant

# Difference in 100-nanosecond intervals between the UUID epoch
# (October 15, 1582) and the Unix epoch (January 1, 1970).
EPOCH_START = 122192928000000000

EpochFunc = Callable[[], int]
HwAddrFunc = Callable[[], bytes]
RandFunc = Callable[[int], bytes]


def _posix_uid() -> int:
    try:
        return os.getuid() & 0xFFFFFFFF
    except AttributeError:
        return 0xFFFFFFFF


def _posix_gid() -> int:
    try:
        return os.getgid() & 0xFFFFFFFF
    except AttributeError:
        return 0xFFFFFFFF


_POSIX_UID = _posix_uid()
_POSIX_GID = _posix_gid()


def _default_hwaddr() -> bytes:
    """MAC address of a network interface; raises when none is found."""
    node = _stduuid.getnode()
    if (node >> 40) & 0x01:
        # The standard library falls back to a random multicast node.
        raise UUIDError("uuid: no HW address found")
    return node.to_bytes(6, "big")


def _trunc_div(n: int, d: int) -> int:
    q = abs(n) // d
    return q if n >= 0 else -q


class Generator:
    """RFC 4122 generator with injectable clock, hardware address and randomness.

    epoch_func returns nanoseconds since the Unix epoch, hwaddr_func returns
    at least six bytes of hardware address or raises, and rand(n) returns up
    to n random bytes.
    """

    def __init__(
        self,
        epoch_func: EpochFunc | None = None,
        hwaddr_func: HwAddrFunc | None = None,
        rand: RandFunc | None = None,
    ) -> None:
        self._epoch_func = epoch_func or time.time_ns
        self._hwaddr_func = hwaddr_func or _default_hwaddr
        self._rand = rand or os.urandom
        self._lock = threading.Lock()
        self._clock_seq_ready = False
        self._clock_seq = 0
        self._last_time = 0
        self._hwaddr_ready = False
        self._hwaddr = bytes(6)

    def _read_full(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self._rand(n - len(buf))
            if not chunk:
                raise UUIDError("uuid: unexpected end of random data")
            buf += chunk
        return bytes(buf[:n])

    def _epoch(self) -> int:
        return EPOCH_START + _trunc_div(self._epoch_func(), 100)

    def _clock_sequence(self) -> tuple[int, int]:
        with self._lock:
            if not self._clock_seq_ready:
                self._clock_seq_ready = True
                self._clock_seq = int.from_bytes(self._read_full(2), "big")
            now = self._epoch()
            if now <= self._last_time:
                self._clock_seq = (self._clock_seq + 1) & 0xFFFF
            self._last_time = now
            return now, self._clock_seq

    def _hardware_addr(self) -> bytes:
        with self._lock:
            if not self._hwaddr_ready:
                self._hwaddr_ready = True
                try:
                    addr = bytes(self._hwaddr_func())
                except (OSError, ValueError):
                    raw = bytearray(self._read_full(6))
                    # Multicast bit marks a randomly chosen node.
                    raw[0] |= 0x01
                    self._hwaddr = bytes(raw)
                else:
                    self._hwaddr = addr[:6].ljust(6, b"\x00")
            return self._hwaddr

    def new_v1(self) -> UUID:
        """UUID from the current timestamp and hardware address."""
        now, seq = self._clock_sequence()
        head = struct.pack(
            ">IHHH",
            now & 0xFFFFFFFF,
            (now >> 32) & 0xFFFF,
            (now >> 48) & 0xFFFF,
            seq,
        )
        raw = head + self._hardware_addr()
        return UUID(raw).with_version(1).with_variant(Variant.RFC4122)

    def new_v2(self, domain: int) -> UUID:
        """DCE security UUID carrying the POSIX UID or GID."""
        raw = bytearray(bytes(self.new_v1()))
        if domain == Domain.PERSON:
            raw[0:4] = _POSIX_UID.to_bytes(4, "big")
        elif domain == Domain.GROUP:
            raw[0:4] = _POSIX_GID.to_bytes(4, "big")
        raw[9] = int(domain) & 0xFF
        return UUID(raw).with_version(2).with_variant(Variant.RFC4122)

    def new_v3(self, ns: UUID, name: str) -> UUID:
        """UUID from the MD5 hash of a namespace and a name."""
        return _from_hash(hashlib.md5(), ns, name, 3)

    def new_v4(self) -> UUID:
        """Randomly generated UUID."""
        raw = self._read_full(16)
        return UUID(raw).with_version(4).with_variant(Variant.RFC4122)

    def new_v5(self, ns: UUID, name: str) -> UUID:
        """UUID from the SHA-1 hash of a namespace and a name."""
        return _from_hash(hashlib.sha1(), ns, name, 5)


def _from_hash(h: "hashlib._Hash", ns: UUID, name: str, version: int) -> UUID:
    h.update(bytes(ns))
    h.update(name.encode("utf-8"))
    return UUID(h.digest()[:16]).with_version(version).with_variant(Variant.RFC4122)


_global = Generator()


def new_v1() -> UUID:
    """UUID from the current timestamp and hardware address."""
    return _global.new_v1()


def new_v2(domain: int) -> UUID:
    """DCE security UUID carrying the POSIX UID or GID."""
    return _global.new_v2(domain)


def new_v3(ns: UUID, name: str) -> UUID:
    """UUID from the MD5 hash of a namespace and a name."""
    return _global.new_v3(ns, name)


def new_v4() -> UUID:
    """Randomly generated UUID."""
    return _global.new_v4()


def new_v5(ns: UUID, name: str) -> UUID:
    """UUID from the SHA-1 hash of a namespace and a name."""
    return _global.new_v5(ns, name)