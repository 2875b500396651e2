"""
Encrypted value handles.

An `EncryptedValue` is an opaque reference to a ciphertext held by the
coprocessor. The ledger stores and passes handles around but never learns
the plaintext behind them.
"""

from __future__ import annotations

from dataclasses import dataclass


HANDLE_BITS = 128
HANDLE_MAX = (1 << HANDLE_BITS) - 1
HANDLE_NBYTES = HANDLE_BITS // 8


@dataclass(frozen=True)
class EncryptedValue:
    """
    Opaque u128 ciphertext handle.

    `EncryptedValue.default()` (handle 0) is the well-known encrypted zero,
    matching the default value of freshly allocated records.
    """

    handle: int

    def __post_init__(self) -> None:
        if not isinstance(self.handle, int) or isinstance(self.handle, bool):
            raise TypeError("handle must be an int")
        if not (0 <= self.handle <= HANDLE_MAX):
            raise ValueError(f"handle must fit in u{HANDLE_BITS}")

    @classmethod
    def default(cls) -> "EncryptedValue":
        return cls(0)

    def is_default(self) -> bool:
        return self.handle == 0

    def to_bytes(self) -> bytes:
        return self.handle.to_bytes(HANDLE_NBYTES, "little")

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedValue":
        if len(data) != HANDLE_NBYTES:
            raise ValueError(f"handle must be {HANDLE_NBYTES} bytes")
        return cls(int.from_bytes(data, "little"))

    def to_hex(self) -> str:
        return "0x" + f"{self.handle:032x}"

    def __repr__(self) -> str:
        # Handles are opaque; a short prefix is enough for debugging.
        return f"EncryptedValue({self.to_hex()[:10]}...)"
