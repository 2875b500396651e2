"""
Ledger records: confidential mints, token accounts, custody vaults and
per-user balances.

Records are plain mutable dataclasses. They are only ever mutated inside a
`RecordStore.transaction()`, so a failed operation never leaves a partially
updated record behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .addresses import Address, AssetId, PubKey
from .encrypted import EncryptedValue


MAX_DECIMALS = 18


class AccountState(Enum):
    """Account lifecycle state."""
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZED = "INITIALIZED"
    FROZEN = "FROZEN"


def _require_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass
class Mint:
    """
    A confidential asset.

    Attributes:
        address: Deterministic mint address (also the asset id of the wrapped asset)
        decimals: Public decimal precision
        mint_authority: Only signer allowed to mint; None disables minting
        freeze_authority: Signer allowed to freeze/thaw accounts; None disables freezing
        supply: Encrypted total supply
        is_initialized: Set once by initialize_mint
    """
    address: Address
    decimals: int
    mint_authority: Optional[PubKey]
    freeze_authority: Optional[PubKey] = None
    supply: EncryptedValue = field(default_factory=EncryptedValue.default)
    is_initialized: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool):
            raise TypeError("decimals must be an int")
        if not (0 <= self.decimals <= MAX_DECIMALS):
            raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}]: {self.decimals}")


@dataclass
class Account:
    """
    A confidential token account: one mint, one owner, one encrypted balance.

    `deposit` is the public storage deposit paid at creation and refunded by
    close_account.
    """
    address: Address
    mint: Address
    owner: PubKey
    amount: EncryptedValue = field(default_factory=EncryptedValue.default)
    delegate: Optional[PubKey] = None
    delegated_amount: EncryptedValue = field(default_factory=EncryptedValue.default)
    state: AccountState = AccountState.UNINITIALIZED
    close_authority: Optional[PubKey] = None
    deposit: int = 0

    def __post_init__(self) -> None:
        _require_non_negative("deposit", self.deposit)

    @property
    def is_initialized(self) -> bool:
        # Frozen accounts are still initialized accounts.
        return self.state != AccountState.UNINITIALIZED

    @property
    def is_frozen(self) -> bool:
        return self.state == AccountState.FROZEN


@dataclass
class Vault:
    """
    Program-custodied holding for one public asset.

    The plaintext units themselves live in the custody service under the
    vault's address; the vault address doubles as its signing authority.
    """
    address: Address
    asset: AssetId
    label: str
    is_initialized: bool = False

    @property
    def authority(self) -> Address:
        return self.address


@dataclass
class UserBalance:
    """Encrypted balance for exactly one (owner, mint) pair."""
    address: Address
    owner: PubKey
    mint: Address
    encrypted_balance: EncryptedValue = field(default_factory=EncryptedValue.default)
    is_initialized: bool = False
