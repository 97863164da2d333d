"""Checksum over the data area of a tag block."""

from __future__ import annotations

import hashlib

CHECKSUM_LENGTH = hashlib.md5().digest_size


def compute_checksum(data: bytes | bytearray | memoryview) -> bytes:
    """Return the MD5 digest of ``data``."""
    return hashlib.md5(bytes(data)).digest()