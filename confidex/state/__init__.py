"""
Record types, addressing and storage for the confidential ledger
"""

from .accounts import Account, AccountState, Mint, UserBalance, Vault
from .addresses import NATIVE_ASSET, derive_address
from .encrypted import EncryptedValue
from .pools import Pool, PoolInfo, Position, SwapResult
from .store import RecordStore

__all__ = [
    "Account",
    "AccountState",
    "Mint",
    "UserBalance",
    "Vault",
    "NATIVE_ASSET",
    "derive_address",
    "EncryptedValue",
    "Pool",
    "PoolInfo",
    "Position",
    "SwapResult",
    "RecordStore",
]
