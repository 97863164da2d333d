"""Command line front end for tag block files."""

from __future__ import annotations

import os
import re
import sys
from typing import Iterator, List, Optional, Sequence

from .block import HEADER_SIZE, ITEM_HEADER_SIZE, VERSION, Block, DtagError, ErrorCode, Item
from .log import LogLevel, log
from .tokens import TokenIter

COLOR_RESET = "\033[0m"
COLOR_RED = "\033[31m"
COLOR_GREEN = "\033[32m"
COLOR_YELLOW = "\033[33m"
COLOR_BLUE = "\033[34m"
COLOR_CYAN = "\033[36m"

_UINT32_MAX = 0xFFFFFFFF
_ULONG_MAX = 2**64 - 1

_AUTO_NUMBER = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_HEX_NUMBER = re.compile(r"\s*([+-]?)(?:0[xX](?=[0-9a-fA-F]))?([0-9a-fA-F]+)")

# End offset (exclusive) of each header field and the colour it is shown in.
_HEADER_COLORS = (
    (4, COLOR_CYAN),
    (6, COLOR_GREEN),
    (8, COLOR_RED),
    (12, COLOR_YELLOW),
    (16, COLOR_BLUE),
    (HEADER_SIZE, COLOR_RED),
)


def usage(prog_name: str) -> str:
    """Return the usage text."""
    return "\n".join([
        f"Usage: {prog_name} <filename> <operation> [...]",
        f"Version {VERSION}:",
        "Operations:",
        "  init {capa}           - Initialize an empty file",
        "  dump                  - Dump the content of file",
        "  set {key} {value} ... - Set keys with the given value",
        "  get {key} ...         - Get the value of the given keys",
        "  setf {key} {file} ... - Set keys with the given files",
        "  getf {key} {file} ... - Get the given keys to files",
        "  del {key} ...         - Delete the given keys",
        "  hexdump               - Dump the content like hexdump -C",
    ]) + "\n"


def _error(message: str) -> None:
    log(LogLevel.ERROR, f"{COLOR_RED}{message}{COLOR_RESET}")


def _strtoul(text: str, hexadecimal: bool = False) -> int:
    """Parse a leading unsigned number the way the C library does, wrapping negatives."""
    if hexadecimal:
        match = _HEX_NUMBER.match(text)
        if match is None:
            return 0
        sign, digits = match.groups()
        value = int(digits, 16)
    else:
        match = _AUTO_NUMBER.match(text)
        if match is None:
            return 0
        sign, digits = match.groups()
        if digits[:2].lower() == "0x":
            value = int(digits, 16)
        elif digits.startswith("0"):
            value = int(digits, 8)
        else:
            value = int(digits)
    if value > _ULONG_MAX:
        return _ULONG_MAX
    if sign == "-":
        value = (-value) % (_ULONG_MAX + 1)
    return value


def _parse_hex_value(text: str) -> bytes:
    return bytes(_strtoul(text[i:i + 2], hexadecimal=True) & 0xFF for i in range(0, len(text) // 2 * 2, 2))


def format_item(item: Item) -> str:
    """Return the one-line description of a tag used by dump and get."""
    hex_value = "".join(f"{byte:02x} " for byte in item.value)
    return f"Tag: {item.key}, Length: {len(item.value)}, Value: {hex_value}"


def _load(filename: str) -> Optional[Block]:
    try:
        return Block.load(filename)
    except DtagError:
        _error("Failed to import dtag block")
        return None


def _store(block: Block, filename: str) -> int:
    block.complete()
    try:
        block.save(filename)
    except DtagError:
        _error("Failed to export dtag block")
        return 1
    return 0


def cmd_init(filename: str, tokens: Sequence[str]) -> int:
    """Create a file holding an empty block of the given capacity."""
    it = TokenIter(list(tokens))
    capacity_text = it.pop()
    if capacity_text is None:
        _error("Missing capacity")
        return 1
    capacity = _strtoul(capacity_text) & _UINT32_MAX
    if capacity == 0 or capacity > _UINT32_MAX - HEADER_SIZE:
        _error("Invalid capacity")
        return 1
    try:
        block = Block.init(capacity + HEADER_SIZE)
    except DtagError:
        _error("Failed to initialize dtag block")
        return 1
    return _store(block, filename)


def cmd_dump(filename: str) -> int:
    """Print the header and every tag of a block file."""
    block = _load(filename)
    if block is None:
        return 1
    print(f"Magic: {block.magic:08x}, Version: {block.version}")
    print(f"Capacity: {block.capacity}, Length: {block.length}")
    print("Chksum:" + "".join(f" {byte:02x}" for byte in block.checksum))
    try:
        for item in block.items():
            print(format_item(item))
    except DtagError:
        _error("Failed to next")
        return 1
    return 0


def cmd_set(filename: str, tokens: Sequence[str]) -> int:
    """Set each key to the value given as a hex string."""
    block = _load(filename)
    if block is None:
        return 1
    it = TokenIter(list(tokens))
    while it.top() is not None:
        key = it.pop()
        value_text = it.pop()
        if value_text is None:
            _error("Missing value")
            return 1
        try:
            block.set(key, _parse_hex_value(value_text))
        except DtagError:
            _error("Failed to set key")
            return 1
    return _store(block, filename)


def _find(block: Block, key: str) -> Optional[Item]:
    try:
        return block.find(key)
    except DtagError as exc:
        _error("Tag not found" if exc.code == ErrorCode.NOTFOUND else "Failed to get_inner")
        return None


def cmd_get(filename: str, tokens: Sequence[str]) -> int:
    """Print the tags stored under the given keys."""
    block = _load(filename)
    if block is None:
        return 1
    it = TokenIter(list(tokens))
    while it.top() is not None:
        item = _find(block, it.pop())
        if item is None:
            return 1
        print(format_item(item))
    return 0


def cmd_setf(filename: str, tokens: Sequence[str]) -> int:
    """Set each key to the contents of the paired file."""
    block = _load(filename)
    if block is None:
        return 1
    it = TokenIter(list(tokens))
    while it.top() is not None:
        key = it.pop()
        source = it.pop()
        if source is None:
            _error("Missing file")
            return 1
        try:
            handle = open(source, "rb")
        except OSError:
            _error("Failed to open file")
            return 1
        with handle:
            try:
                value = handle.read()
            except OSError:
                _error("Failed to read file")
                return 1
        try:
            block.set(key, value)
        except DtagError:
            _error("Failed to set key")
            return 1
    return _store(block, filename)


def cmd_getf(filename: str, tokens: Sequence[str]) -> int:
    """Write the value of each key to the paired file."""
    block = _load(filename)
    if block is None:
        return 1
    it = TokenIter(list(tokens))
    while it.top() is not None:
        key = it.pop()
        target = it.pop()
        if target is None:
            _error("Missing file")
            return 1
        item = _find(block, key)
        if item is None:
            return 1
        try:
            handle = open(target, "wb")
        except OSError:
            _error("Failed to open file")
            return 1
        with handle:
            try:
                handle.write(item.value)
            except OSError:
                _error("Failed to write file")
                return 1
    return 0


def cmd_del(filename: str, tokens: Sequence[str]) -> int:
    """Delete the given keys."""
    block = _load(filename)
    if block is None:
        return 1
    it = TokenIter(list(tokens))
    while it.top() is not None:
        key = it.pop()
        try:
            block.delete(key)
        except DtagError:
            _error("Failed to delete key")
            return 1
    return _store(block, filename)


def _paint(color: Optional[str], byte: int) -> str:
    if color is None:
        return f"{byte:02x} "
    return f"{color}{byte:02x} {COLOR_RESET}"


def _header_color(pos: int) -> Optional[str]:
    for end, color in _HEADER_COLORS:
        if pos < end:
            return color
    return None


def _item_lengths(image: bytes, start: int) -> tuple:
    klen = image[start] if start < len(image) else 0
    vlen = int.from_bytes(image[start + 1:start + ITEM_HEADER_SIZE], "little")
    return klen, vlen


def _item_color(image: bytes, start: int, pos: int) -> Optional[str]:
    klen, vlen = _item_lengths(image, start)
    offset = pos - start
    if offset < 1:
        return COLOR_CYAN
    if offset < ITEM_HEADER_SIZE:
        return COLOR_GREEN
    if offset < ITEM_HEADER_SIZE + klen:
        return COLOR_YELLOW
    if offset < ITEM_HEADER_SIZE + klen + vlen:
        return COLOR_BLUE
    return None


def hexdump_lines(block: Block) -> Iterator[str]:
    """Yield a coloured hexdump -C style listing of the block's binary image."""
    image = block.to_bytes()
    total = len(image)
    used_end = HEADER_SIZE + block.length
    data_end = HEADER_SIZE + block.capacity
    zero_run = 0
    item: Optional[int] = None
    for row_start in range(0, total, 16):
        row = image[row_start:row_start + 16]
        if not any(row):
            zero_run += 1
            if zero_run == 1:
                yield "*"
            continue
        zero_run = 0
        cells: List[str] = []
        for pos in range(row_start, row_start + 16):
            if pos < used_end:
                if pos < HEADER_SIZE:
                    cells.append(_paint(_header_color(pos), image[pos]))
                    continue
                if item is None:
                    item = HEADER_SIZE
                else:
                    klen, vlen = _item_lengths(image, item)
                    if pos == item + ITEM_HEADER_SIZE + klen + vlen:
                        item = pos
                color = _item_color(image, item, pos)
                if color is not None:
                    cells.append(_paint(color, image[pos]))
            elif pos < data_end:
                cells.append(_paint(None, image[pos]))
            else:
                cells.append("   ")
        text = "".join(chr(byte) if 32 <= byte <= 126 else "." for byte in row)
        yield f"{row_start:08x}  {''.join(cells)} |{text}|"


def cmd_hexdump(filename: str) -> int:
    """Print a hexdump of a block file."""
    block = _load(filename)
    if block is None:
        return 1
    for line in hexdump_lines(block):
        print(line)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line; ``argv`` excludes the program name."""
    if argv is None:
        prog = os.path.basename(sys.argv[0]) or "dtag"
        args = list(sys.argv[1:])
    else:
        prog = "dtag"
        args = list(argv)
    if len(args) < 2:
        sys.stdout.write(usage(prog))
        return 1
    filename, operation, rest = args[0], args[1], args[2:]
    with_tokens = {
        "init": cmd_init,
        "set": cmd_set,
        "get": cmd_get,
        "setf": cmd_setf,
        "getf": cmd_getf,
        "del": cmd_del,
    }
    without_tokens = {"dump": cmd_dump, "hexdump": cmd_hexdump}
    if operation in with_tokens:
        return with_tokens[operation](filename, rest)
    if operation in without_tokens:
        return without_tokens[operation](filename)
    sys.stdout.write(usage(prog))
    return 1


if __name__ == "__main__":
    sys.exit(main())