"""
Byte-exact encodings shared by everything that gets hashed or signed.

- record addresses: `domain_sep_bytes(label) || encode_bytes(key) ...`
- instruction signatures and snapshot commitments: `canonical_json_bytes`
- pubkeys / addresses: lowercase 0x-prefixed fixed-width hex
"""

from __future__ import annotations

import json
import re
from typing import Any


_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def _check_json_value(value: Any, *, path: str = "$") -> None:
    # Amounts are ints or opaque handles; floats and lone surrogates would make
    # two encoders disagree on the bytes.
    if isinstance(value, float):
        raise TypeError(f"{path}: floats are not canonical")
    if isinstance(value, str):
        if any(0xD800 <= ord(ch) <= 0xDFFF for ch in value):
            raise TypeError(f"{path}: surrogate code points are not canonical")
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path}: object keys must be str")
            _check_json_value(key, path=path)
            _check_json_value(item, path=f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_json_value(item, path=f"{path}[{i}]")


def canonical_json_bytes(value: Any) -> bytes:
    """UTF-8 JSON with sorted keys and no whitespace."""
    _check_json_value(value)
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """`confidex:<label>:v<version>\\x00`; ASCII only, NUL-terminated."""
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label or not label.isascii():
        raise ValueError(f"label must be ASCII without NUL: {label!r}")
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return f"confidex:{label}:v{version}".encode("ascii") + b"\x00"


def _uvarint(n: int) -> bytes:
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def encode_bytes(value: bytes) -> bytes:
    """LEB128 length prefix followed by the raw bytes."""
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("value must be bytes")
    return _uvarint(len(value)) + bytes(value)


def hex_to_bytes_fixed(hex_str: str, *, nbytes: int, name: str) -> bytes:
    """Strict decode: requires the 0x prefix and exactly `nbytes` bytes."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not hex_str.startswith("0x") or len(hex_str) != 2 + 2 * nbytes:
        raise ValueError(f"{name} must be a 0x-prefixed {nbytes}-byte hex string")
    if not _HEX_RE.fullmatch(hex_str[2:]):
        raise ValueError(f"{name} must be valid hex")
    return bytes.fromhex(hex_str[2:])


def canonical_hex(hex_str: str, *, nbytes: int, name: str) -> str:
    """Lenient input (prefix optional, any case), canonical lowercase 0x output."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    body = hex_str.strip()
    if body[:2].lower() == "0x":
        body = body[2:]
    if len(body) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {2 * nbytes})")
    if not _HEX_RE.fullmatch(body):
        raise ValueError(f"{name} must be valid hex")
    return "0x" + body.lower()
