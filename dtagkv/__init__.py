"""Checksummed binary key/value tag blocks, with helper modules and a command-line tool."""

__version__ = "1.0.0"
__all__ = ["block", "checksum", "cli", "log", "tokens"]