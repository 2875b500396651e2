"""
Deterministic record addresses.

Every record lives at `address = H(domain_sep(label) || enc(key_0) || enc(key_1) ...)`.
Two callers that name the same logical record (same label, same keys) always
land on the same storage slot, which is what keeps a UserBalance or a Vault
unique without any index scan.
"""

from __future__ import annotations

import hashlib
from typing import Tuple

from .canonical import canonical_hex, domain_sep_bytes, encode_bytes


# Type aliases
PubKey = str  # BLS12-381 public key as 48-byte hex string
Address = str  # 32-byte record address as hex string (0x...)
AssetId = str  # 32-byte asset identifier; confidential mints use their address

# Native currency identifier
NATIVE_ASSET: AssetId = "0x" + "00" * 32

LABEL_MINT = "mint"
LABEL_ACCOUNT = "account"
LABEL_VAULT = "vault"
LABEL_NATIVE_VAULT = "native_vault"
LABEL_USER_BALANCE = "user_balance"
LABEL_POOL = "pool"
LABEL_POSITION = "position"
LABEL_SWAP_RESULT = "swap_result"
LABEL_RENT_ESCROW = "rent_escrow"


def canonical_pubkey(pubkey: PubKey, *, name: str = "pubkey") -> PubKey:
    return canonical_hex(pubkey, nbytes=48, name=name)


def canonical_address(address: Address, *, name: str = "address") -> Address:
    return canonical_hex(address, nbytes=32, name=name)


def derive_address(label: str, *keys: str) -> Address:
    """
    Derive a record address from a fixed label and string key fields.

    Keys are length-prefixed so ("ab", "c") and ("a", "bc") never collide.
    """
    payload = bytearray(domain_sep_bytes(f"address:{label}", version=1))
    for key in keys:
        if not isinstance(key, str):
            raise TypeError(f"address key must be a str, got {type(key).__name__}")
        payload += encode_bytes(key.encode("utf-8"))
    return "0x" + hashlib.sha256(bytes(payload)).hexdigest()


def mint_address(creator: PubKey, seed: str) -> Address:
    return derive_address(LABEL_MINT, canonical_pubkey(creator, name="creator"), seed)


def account_address(mint: Address, owner: PubKey, seed: str = "") -> Address:
    return derive_address(
        LABEL_ACCOUNT,
        canonical_address(mint, name="mint"),
        canonical_pubkey(owner, name="owner"),
        seed,
    )


def vault_address(asset: AssetId) -> Address:
    """Token vaults are keyed by asset; the native vault has a single fixed slot."""
    asset = canonical_address(asset, name="asset")
    if asset == NATIVE_ASSET:
        return derive_address(LABEL_NATIVE_VAULT)
    return derive_address(LABEL_VAULT, asset)


def user_balance_address(owner: PubKey, mint: Address) -> Address:
    return derive_address(
        LABEL_USER_BALANCE,
        canonical_pubkey(owner, name="owner"),
        canonical_address(mint, name="mint"),
    )


def canonical_pair(asset_a: AssetId, asset_b: AssetId) -> Tuple[AssetId, AssetId]:
    """Order an asset pair canonically (lexicographic on the canonical hex)."""
    a = canonical_address(asset_a, name="asset_a")
    b = canonical_address(asset_b, name="asset_b")
    if a == b:
        raise ValueError("pool assets must differ")
    return (a, b) if a < b else (b, a)


def pool_address(asset_a: AssetId, asset_b: AssetId) -> Address:
    """Pool identity is derived from the unordered pair."""
    first, second = canonical_pair(asset_a, asset_b)
    return derive_address(LABEL_POOL, first, second)


def position_address(pool: Address, owner: PubKey) -> Address:
    return derive_address(
        LABEL_POSITION,
        canonical_address(pool, name="pool"),
        canonical_pubkey(owner, name="owner"),
    )


def swap_result_address(pool: Address, owner: PubKey) -> Address:
    return derive_address(
        LABEL_SWAP_RESULT,
        canonical_address(pool, name="pool"),
        canonical_pubkey(owner, name="owner"),
    )


def rent_escrow_address() -> Address:
    return derive_address(LABEL_RENT_ESCROW)
