"""
Homomorphic computation capability.

`Coprocessor` is the only way the ledger and AMM combine encrypted values.
Every call returns a fresh handle and may fail with `ComputationFailed`.

`LocalCoprocessor` is a plaintext-behind-handles reference backend for tests and
local development. It follows euint128 semantics:
- add/sub/mul wrap modulo 2**128
- div by zero yields 2**128 - 1
- mul_div keeps the full product and saturates at 2**128 - 1
- ge/eq yield encrypted booleans (1 or 0)
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Dict, Protocol

from ..state.canonical import domain_sep_bytes
from ..state.encrypted import HANDLE_BITS, HANDLE_MAX, HANDLE_NBYTES, EncryptedValue
from .errors import ComputationFailed


logger = logging.getLogger(__name__)

MODULUS = 1 << HANDLE_BITS
CIPHERTEXT_NBYTES = 32


class Coprocessor(Protocol):
    def wrap(self, ciphertext: bytes) -> EncryptedValue:
        """Register a client-produced ciphertext and return its handle."""
        ...

    def zero(self) -> EncryptedValue:
        ...

    def trivial(self, plain: int) -> EncryptedValue:
        """Encrypt a public constant (fees, caps)."""
        ...

    def add(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def sub(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def mul(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def div(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def mul_div(self, a: EncryptedValue, b: EncryptedValue, c: EncryptedValue) -> EncryptedValue:
        """`a * b / c` with a full-width intermediate; saturates at the u128 max."""
        ...

    def ge(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def eq(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def min(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        ...

    def select(self, cond: EncryptedValue, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        """Return `a` if `cond` decrypts non-zero, else `b`, without revealing `cond`."""
        ...

    def reveal_bool(self, cond: EncryptedValue) -> bool:
        """
        Trusted decryption of an encrypted boolean.

        Only used where a public side effect (custody release) must be gated
        on an encrypted predicate.
        """
        ...


class LocalCoprocessor:
    """
    Reference coprocessor keeping plaintexts in a private table.

    Handle 0 is the well-known encrypted zero. `encrypt()` stands in for the
    client-side encryption step and `decrypt()` is a test-only hook; neither
    is part of the `Coprocessor` capability.
    """

    def __init__(self, *, seed: bytes = b"") -> None:
        self._lock = threading.Lock()
        self._seed = bytes(seed)
        self._counter = 0
        self._plaintexts: Dict[int, int] = {0: 0}
        self._ciphertexts: Dict[bytes, int] = {}
        self.unavailable = False

    # ------------------------------------------------------------------
    # client side / test hooks

    def encrypt(self, plain: int) -> bytes:
        value = _require_u128(plain, name="plain")
        with self._lock:
            self._counter += 1
            ciphertext = hashlib.sha256(
                domain_sep_bytes("local_ciphertext", version=1)
                + self._seed
                + self._counter.to_bytes(8, "big")
            ).digest()
            self._ciphertexts[ciphertext] = value
        return ciphertext

    def decrypt(self, value: EncryptedValue) -> int:
        return self._plain(value)

    def encrypt_handle(self, plain: int) -> EncryptedValue:
        """Shortcut for tests: encrypt then wrap."""
        return self.wrap(self.encrypt(plain))

    # ------------------------------------------------------------------
    # capability

    def wrap(self, ciphertext: bytes) -> EncryptedValue:
        self._check_available()
        if not isinstance(ciphertext, (bytes, bytearray)) or len(ciphertext) != CIPHERTEXT_NBYTES:
            raise ComputationFailed("malformed ciphertext")
        value = self._ciphertexts.get(bytes(ciphertext))
        if value is None:
            raise ComputationFailed("unknown ciphertext")
        return self._new_handle(value)

    def zero(self) -> EncryptedValue:
        return EncryptedValue.default()

    def trivial(self, plain: int) -> EncryptedValue:
        self._check_available()
        return self._new_handle(_require_u128(plain, name="plain"))

    def add(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        return self._new_handle((self._plain(a) + self._plain(b)) % MODULUS)

    def sub(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        return self._new_handle((self._plain(a) - self._plain(b)) % MODULUS)

    def mul(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        return self._new_handle((self._plain(a) * self._plain(b)) % MODULUS)

    def div(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        divisor = self._plain(b)
        if divisor == 0:
            return self._new_handle(HANDLE_MAX)
        return self._new_handle(self._plain(a) // divisor)

    def mul_div(self, a: EncryptedValue, b: EncryptedValue, c: EncryptedValue) -> EncryptedValue:
        self._check_available()
        divisor = self._plain(c)
        if divisor == 0:
            return self._new_handle(HANDLE_MAX)
        return self._new_handle(min(self._plain(a) * self._plain(b) // divisor, HANDLE_MAX))

    def ge(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        return self._new_handle(1 if self._plain(a) >= self._plain(b) else 0)

    def eq(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        return self._new_handle(1 if self._plain(a) == self._plain(b) else 0)

    def min(self, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        return self.select(self.ge(b, a), a, b)

    def select(self, cond: EncryptedValue, a: EncryptedValue, b: EncryptedValue) -> EncryptedValue:
        self._check_available()
        chosen = a if self._plain(cond) != 0 else b
        return self._new_handle(self._plain(chosen))

    def reveal_bool(self, cond: EncryptedValue) -> bool:
        self._check_available()
        return self._plain(cond) != 0

    # ------------------------------------------------------------------

    def _check_available(self) -> None:
        if self.unavailable:
            logger.warning("coprocessor call rejected: service unavailable")
            raise ComputationFailed("coprocessor unavailable")

    def _plain(self, value: EncryptedValue) -> int:
        if not isinstance(value, EncryptedValue):
            raise ComputationFailed(f"expected EncryptedValue, got {type(value).__name__}")
        plain = self._plaintexts.get(value.handle)
        if plain is None:
            raise ComputationFailed("unknown handle")
        return plain

    def _new_handle(self, plain: int) -> EncryptedValue:
        with self._lock:
            while True:
                self._counter += 1
                digest = hashlib.sha256(
                    domain_sep_bytes("local_handle", version=1)
                    + self._seed
                    + self._counter.to_bytes(8, "big")
                ).digest()
                handle = int.from_bytes(digest[:HANDLE_NBYTES], "little")
                if handle != 0 and handle not in self._plaintexts:
                    break
            self._plaintexts[handle] = plain
        return EncryptedValue(handle)

    def __len__(self) -> int:
        return len(self._plaintexts)


def _require_u128(value: int, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (0 <= value <= HANDLE_MAX):
        raise ValueError(f"{name} must fit in u{HANDLE_BITS}")
    return value
