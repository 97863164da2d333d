# dtagkv

A small library and command-line tool for **tag blocks**. A tag block is a
fixed-capacity binary container that holds key/value pairs and is guarded by
an MD5 checksum over its used data.

The binary image is a little-endian header followed by the data area:

| Field             | Size                   |
|-------------------|------------------------|
| magic             | 4 bytes (`0x44544147`) |
| version           | 2 bytes (`3`)          |
| checksum length   | 2 bytes (`16`)         |
| capacity          | 4 bytes                |
| length (used)     | 4 bytes                |
| checksum          | 16 bytes (MD5)         |
| data              | `capacity` bytes       |

Items are packed one after another in the data area. Each item starts with a
4-byte word: the low 8 bits hold the key length, including its NUL terminator,
and the high 24 bits hold the value length. The key and then the value follow.
A key is at most 254 bytes and may not contain a NUL byte. A value is at most
`0xFFFFFF` bytes.

## Installation

```
pip install .
```

## Library use

```python
from dtagkv.block import Block, DtagError, ErrorCode

block = Block.init(1024)            # total size including the header
block.set("serial", b"\x01\x02\x03")
block.complete()                    # recompute the checksum
block.save("tags.bin")

loaded = Block.load("tags.bin")     # validates magic, version, sizes, checksum
print(loaded.get("serial"))         # b'\x01\x02\x03'

for item in loaded.items():
    print(item.key, item.value.hex(), item.offset)

try:
    loaded.get("missing")
except DtagError as exc:
    assert exc.code is ErrorCode.NOTFOUND
```

- `Block.init(size)` creates an empty block. `size` is the whole image,
  header included. It raises `ErrorCode.CAPACITY` if `size` is smaller than
  the header.
- `Block.from_bytes(data)` parses a block from its raw image, and
  `Block.to_bytes()` returns that image. `Block.load(path)` and
  `Block.save(path)` do the same with files.
- `find(key)` returns an `Item` with `key`, `value`, `offset` and `size`.
  `get(key)` returns only the value. `set(key, value)` stores a value.
  Replacing a key moves its item to the end of the block. `delete(key)`
  removes a key.
- `set` and `delete` do not update the checksum. Call `complete()` before
  saving, because `load` and `from_bytes` verify the checksum.
- Every failure raises `DtagError`. Its `code` is an `ErrorCode` member, for
  example `MAGIC`, `VERSION`, `CHKSUM_LEN`, `LENGTH`, `CAPACITY`, `CHECKSUM`,
  `DATA`, `NOTFOUND`, `INVPARAM` or `FILEIO`.

Other modules:

- `dtagkv.checksum.compute_checksum(data)` returns the MD5 digest that the
  block uses.
- `dtagkv.tokens` has `line_to_tokens`, `read_tokens` and the `TokenIter`
  cursor, which split lines on spaces and newlines.
- `dtagkv.log` has `log(level, message)`, `set_logger(level, func)`,
  `parse_stderr_level(value)` and the `LogLevel` enum.

## Command line

```
dtagkv <filename> <operation> [...]
```

| Operation                 | Effect                                           |
|---------------------------|--------------------------------------------------|
| `init {capa}`             | Create an empty block with `capa` data bytes     |
| `dump`                    | Print the header and every tag                   |
| `set {key} {hex} ...`     | Set keys to hex-encoded values                   |
| `get {key} ...`           | Print the given tags                             |
| `setf {key} {file} ...`   | Set keys to the contents of files                |
| `getf {key} {file} ...`   | Write the values of keys to files                |
| `del {key} ...`           | Delete keys                                      |
| `hexdump`                 | Colourised `hexdump -C` style view of the file   |

Example:

```
dtagkv tags.bin init 256
dtagkv tags.bin set serial 010203 name 6869
dtagkv tags.bin get serial
dtagkv tags.bin dump
```

`init` accepts a decimal, octal (`0` prefix) or hexadecimal (`0x` prefix)
capacity. `set` reads a value as pairs of hex digits. A trailing odd digit is
ignored. Commands that change the file recompute the checksum before they
write it.

If there are too few arguments or the operation is unknown, the command
prints the usage text and exits with status 1. Any failure also exits with
status 1.

Error messages go through `dtagkv.log`. By default they are written to
standard output. When the `log2stderr` environment variable is set, they are
also written to standard error, up to the level it names. The level can be a
name (`ERROR`, `WARNING`, `INFO`, `VERBOSE`, `DEBUG`) or a number. A value
that is neither counts as `DEBUG`.

## Tests

```
pip install .[test]
pytest
```