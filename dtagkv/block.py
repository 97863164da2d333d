"""A fixed-capacity block of key/value tags with a checksummed binary layout."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union

from .checksum import CHECKSUM_LENGTH, compute_checksum
from .log import LogLevel, log

MAGIC = 0x44544147
VERSION = 0x03
MAX_KLEN = 0xFF
MAX_VLEN = 0x00FFFFFF

_HEADER = struct.Struct(f"<IHHII{CHECKSUM_LENGTH}s")
HEADER_SIZE = _HEADER.size
_ITEM = struct.Struct("<I")
ITEM_HEADER_SIZE = _ITEM.size

Key = Union[str, bytes]


class ErrorCode(enum.IntEnum):
    OK = 0
    MAGIC = -1
    VERSION = -2
    CHKSUM_LEN = -3
    CAPACITY = -4
    LENGTH = -5
    CHECKSUM = -6
    TAG = -7
    LEN = -8
    DATA = -9
    NOMEM = -10
    EXIST = -11
    NOTFOUND = -12
    FILEIO = -13
    INVPARAM = -14
    NOSPACE = -15


class DtagError(Exception):
    """Raised for any failure on a tag block; ``code`` tells which."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = ErrorCode(code)
        super().__init__(message or self.code.name)


@dataclass(frozen=True)
class Item:
    """One tag: its key, its value and its offset in the data area."""

    key: str
    value: bytes
    offset: int

    @property
    def size(self) -> int:
        return ITEM_HEADER_SIZE + len(self.key.encode("utf-8")) + 1 + len(self.value)


def _key_bytes(key: Key) -> bytes:
    raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    if b"\0" in raw:
        raise DtagError(ErrorCode.INVPARAM, "key contains a NUL byte")
    if len(raw) >= MAX_KLEN:
        raise DtagError(ErrorCode.INVPARAM, f"key longer than {MAX_KLEN - 1} bytes")
    return raw


@dataclass(eq=False)
class Block:
    """A tag block: header fields plus a data area of ``capacity`` bytes."""

    capacity: int
    length: int = 0
    checksum: bytes = bytes(CHECKSUM_LENGTH)
    magic: int = MAGIC
    version: int = VERSION
    checksum_length: int = CHECKSUM_LENGTH
    data: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        if len(self.data) < self.capacity:
            self.data.extend(bytes(self.capacity - len(self.data)))

    @classmethod
    def init(cls, size: int) -> "Block":
        """Create an empty block occupying ``size`` bytes including its header."""
        if size < HEADER_SIZE:
            raise DtagError(ErrorCode.CAPACITY, f"size {size} below header size {HEADER_SIZE}")
        return cls(capacity=size - HEADER_SIZE)

    @staticmethod
    def _parse_header(raw: bytes) -> Tuple[int, int, int, int, int, bytes]:
        magic, version, chksum_len, capacity, length, chksum = _HEADER.unpack_from(raw)
        if magic != MAGIC:
            raise DtagError(ErrorCode.MAGIC, f"bad magic {magic:08x}")
        if version != VERSION:
            raise DtagError(ErrorCode.VERSION, f"unsupported version {version}")
        if chksum_len != CHECKSUM_LENGTH:
            raise DtagError(ErrorCode.CHKSUM_LEN, f"bad checksum length {chksum_len}")
        if length > capacity:
            raise DtagError(ErrorCode.LENGTH, f"length {length} exceeds capacity {capacity}")
        return magic, version, chksum_len, capacity, length, chksum

    @classmethod
    def _build(cls, header: Tuple[int, int, int, int, int, bytes], body: bytes) -> "Block":
        magic, version, chksum_len, capacity, length, chksum = header
        block = cls(
            capacity=capacity,
            length=length,
            checksum=chksum,
            magic=magic,
            version=version,
            checksum_length=chksum_len,
            data=bytearray(body),
        )
        if compute_checksum(block.data[:length]) != chksum:
            raise DtagError(ErrorCode.CHECKSUM, "checksum mismatch")
        return block

    @classmethod
    def from_bytes(cls, data: bytes) -> "Block":
        """Parse and verify a block from its binary image."""
        data = bytes(data)
        if len(data) < HEADER_SIZE:
            raise DtagError(ErrorCode.CAPACITY, "buffer shorter than header")
        header = cls._parse_header(data)
        capacity = header[3]
        if capacity > len(data) - HEADER_SIZE:
            raise DtagError(ErrorCode.CAPACITY, f"capacity {capacity} exceeds buffer")
        return cls._build(header, data[HEADER_SIZE:HEADER_SIZE + capacity])

    @classmethod
    def load(cls, path: Union[str, os.PathLike]) -> "Block":
        """Read and verify a block from a file."""
        try:
            handle = open(path, "rb")
        except OSError as exc:
            log(LogLevel.ERROR, f"fail to open file: {path} ({exc.errno}:{exc.strerror})")
            raise DtagError(ErrorCode.FILEIO, f"cannot open {path}") from exc
        with handle:
            try:
                head = handle.read(HEADER_SIZE)
            except OSError as exc:
                raise DtagError(ErrorCode.FILEIO, f"cannot read {path}") from exc
            if len(head) != HEADER_SIZE:
                log(LogLevel.ERROR, f"fail to read file: {path},{HEADER_SIZE}")
                raise DtagError(ErrorCode.FILEIO, f"short header in {path}")
            try:
                header = cls._parse_header(head)
            except DtagError as exc:
                log(LogLevel.ERROR, f"fail to check0 file: {path} ({int(exc.code)})")
                raise
            capacity = header[3]
            try:
                body = handle.read(capacity)
            except OSError as exc:
                raise DtagError(ErrorCode.FILEIO, f"cannot read {path}") from exc
            if len(body) != capacity:
                log(LogLevel.ERROR, f"fail to read file: {path},{capacity}")
                raise DtagError(ErrorCode.FILEIO, f"short data in {path}")
        try:
            return cls._build(header, body)
        except DtagError as exc:
            log(LogLevel.ERROR, f"fail to final file: {path} ({int(exc.code)})")
            raise

    def to_bytes(self) -> bytes:
        """Return the full binary image: header followed by the whole data area."""
        header = _HEADER.pack(
            self.magic,
            self.version,
            self.checksum_length,
            self.capacity,
            self.length,
            bytes(self.checksum),
        )
        return header + bytes(self.data[:self.capacity])

    def save(self, path: Union[str, os.PathLike]) -> None:
        """Write the full binary image to a file."""
        image = self.to_bytes()
        try:
            with open(path, "wb") as handle:
                handle.write(image)
        except OSError as exc:
            log(LogLevel.ERROR, f"fail to open file: {path} ({exc.errno}:{exc.strerror})")
            raise DtagError(ErrorCode.FILEIO, f"cannot write {path}") from exc

    def complete(self) -> None:
        """Recompute the checksum over the used part of the data area."""
        self.checksum = compute_checksum(self.data[:self.length])

    def _scan(self) -> Iterator[Tuple[int, int, int]]:
        offset = 0
        end = self.length
        while offset < end:
            if end - offset < ITEM_HEADER_SIZE:
                log(LogLevel.ERROR, f"detect error @{offset}: truncated item header")
                raise DtagError(ErrorCode.DATA, f"truncated item at offset {offset}")
            (word,) = _ITEM.unpack_from(self.data, offset)
            klen, vlen = word & 0xFF, word >> 8
            following = offset + ITEM_HEADER_SIZE + klen + vlen
            if following > end:
                log(LogLevel.ERROR, f"detect error @{offset} klen {klen} vlen {vlen}")
                raise DtagError(ErrorCode.DATA, f"item at offset {offset} overruns data")
            yield offset, klen, vlen
            offset = following

    def items(self) -> Iterator[Item]:
        """Yield every tag in stored order, validating each as it goes."""
        for offset, klen, vlen in self._scan():
            start = offset + ITEM_HEADER_SIZE
            raw_key = bytes(self.data[start:start + klen]).split(b"\0", 1)[0]
            value = bytes(self.data[start + klen:start + klen + vlen])
            yield Item(raw_key.decode("utf-8", "replace"), value, offset)

    def _locate(self, raw: bytes) -> Optional[Tuple[int, int, int]]:
        wanted = raw + b"\0"
        for offset, klen, vlen in self._scan():
            if klen != len(wanted):
                continue
            start = offset + ITEM_HEADER_SIZE
            if self.data[start:start + klen] == wanted:
                return offset, klen, vlen
        return None

    def find(self, key: Key) -> Item:
        """Return the tag stored under ``key``."""
        raw = _key_bytes(key)
        found = self._locate(raw)
        if found is None:
            raise DtagError(ErrorCode.NOTFOUND, f"key {key!r} not found")
        offset, klen, vlen = found
        start = offset + ITEM_HEADER_SIZE + klen
        return Item(raw.decode("utf-8", "replace"), bytes(self.data[start:start + vlen]), offset)

    def get(self, key: Key) -> bytes:
        """Return the value stored under ``key``."""
        return self.find(key).value

    def _remove(self, offset: int, size: int) -> None:
        end = self.length
        self.data[offset:end - size] = self.data[offset + size:end]
        self.length -= size

    def delete(self, key: Key) -> None:
        """Remove the tag stored under ``key``."""
        raw = _key_bytes(key)
        found = self._locate(raw)
        if found is None:
            raise DtagError(ErrorCode.NOTFOUND, f"key {key!r} not found")
        offset, klen, vlen = found
        self._remove(offset, ITEM_HEADER_SIZE + klen + vlen)

    def set(self, key: Key, value: bytes = b"") -> None:
        """Store ``value`` under ``key``, moving the tag to the end of the block."""
        raw = _key_bytes(key)
        value = bytes(value)
        if len(value) > MAX_VLEN:
            raise DtagError(ErrorCode.INVPARAM, f"value longer than {MAX_VLEN} bytes")
        found = self._locate(raw)
        needed = ITEM_HEADER_SIZE + len(raw) + 1 + len(value)
        freed = ITEM_HEADER_SIZE + found[1] + found[2] if found else 0
        if self.length - freed + needed > self.capacity:
            raise DtagError(ErrorCode.CAPACITY, "not enough room in block")
        if found:
            self._remove(found[0], freed)
        start = self.length
        record = _ITEM.pack((len(raw) + 1) | (len(value) << 8)) + raw + b"\0" + value
        self.data[start:start + needed] = record
        self.length += needed