#!/usr/bin/env python3
"""
JSON Utilities Module

Centralised JSON reading and writing with consistent formatting, so every JSON
file and blob the dashboard produces is pretty-printed the same way.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_json(filepath: str | Path, data: Any, ensure_ascii: bool = False, sort_keys: bool = False) -> None:
    """
    Write data to a JSON file atomically with standard pretty-printing.

    The document is written to a sibling temp file and moved into place so a
    crash mid-write never leaves a truncated file behind.

    Args:
        filepath: Path to the JSON file
        data: Data to write to the file
        ensure_ascii: If True, escape non-ASCII characters (default: False)
        sort_keys: If True, sort dictionary keys (default: False)
    """
    write_bytes_atomic(filepath, dumps_json(data, ensure_ascii=ensure_ascii, sort_keys=sort_keys).encode("utf-8"))


def read_json(filepath: str | Path) -> Any:
    """
    Read data from a JSON file.

    Args:
        filepath: Path to the JSON file

    Returns:
        The parsed JSON data
    """
    with open(filepath, encoding="utf-8") as f:
        return json.load(f)


def dumps_json(data: Any, ensure_ascii: bool = False, sort_keys: bool = False) -> str:
    """Format data as a pretty-printed JSON string."""
    return json.dumps(data, indent=2, ensure_ascii=ensure_ascii, sort_keys=sort_keys)


def loads_json(raw: bytes | str) -> Any:
    """Parse a JSON document from bytes or text."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def write_bytes_atomic(filepath: str | Path, data: bytes) -> None:
    """Write bytes to ``filepath`` via a temp file and ``os.replace``."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{filepath.name}.", dir=filepath.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, filepath)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
