"""Access-control predicates.

One pure function per check. Each returns nothing on success and raises the
matching `ConfidexError` subclass on the first violation, so operations can
call them top to bottom before touching any state.
"""

from __future__ import annotations

from typing import Optional, Union

from ..state.accounts import Account, AccountState, Mint, UserBalance, Vault
from ..state.addresses import Address, PubKey
from ..state.encrypted import EncryptedValue
from ..state.pools import BPS_DENOM, MAX_FEE_BPS, Pool, Position
from .coprocessor import Coprocessor
from .errors import (
    AccountFrozen,
    ConfidexError,
    FeeTooHigh,
    InsufficientFunds,
    InvalidOwner,
    MintMismatch,
    OwnerMismatch,
    PoolNotInitialized,
    UninitializedState,
)


Initializable = Union[Mint, Account, Vault, UserBalance, Pool]


def require_initialized(entity: Optional[Initializable]) -> None:
    if entity is None or not entity.is_initialized:
        raise UninitializedState(f"{type(entity).__name__ if entity is not None else 'record'} is not initialized")


def require_not_frozen(account: Account) -> None:
    if account.is_frozen:
        raise AccountFrozen(f"account {account.address} is frozen")


def require_state(account: Account, expected: AccountState, error: type[ConfidexError]) -> None:
    if account.state != expected:
        raise error(f"account state is {account.state.value}, expected {expected.value}")


def require_owner(signer: PubKey, stored_owner: PubKey) -> None:
    if signer != stored_owner:
        raise OwnerMismatch("signer does not match stored owner")


def require_authority(signer: PubKey, authority: Optional[PubKey]) -> None:
    """A missing authority means nobody may act."""
    if authority is None:
        raise OwnerMismatch("authority is not set")
    require_owner(signer, authority)


def require_mint_match(account_mint: Address, mint: Address) -> None:
    if account_mint != mint:
        raise MintMismatch(f"account mint {account_mint} != {mint}")


def require_fee_bps(fee_bps: int) -> None:
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool) or fee_bps < 0:
        raise ValueError(f"fee_bps must be a non-negative int: {fee_bps!r}")
    if fee_bps > MAX_FEE_BPS:
        raise FeeTooHigh(f"fee_bps {fee_bps} exceeds {MAX_FEE_BPS} (of {BPS_DENOM})")


def require_pool_initialized(pool: Optional[Pool]) -> None:
    if pool is None or not pool.is_initialized:
        raise PoolNotInitialized("pool is not initialized")


def require_position_owner(position: Optional[Position], signer: PubKey) -> None:
    if position is None or position.owner != signer:
        raise InvalidOwner("signer does not own this position")


def require_encrypted(value: EncryptedValue, *, name: str = "encrypted_amount") -> EncryptedValue:
    if not isinstance(value, EncryptedValue):
        raise TypeError(f"{name} must be an EncryptedValue")
    return value


def require_public_amount(value: int, *, name: str = "public_amount") -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    return value


def require_covered(fhe: Coprocessor, balance: EncryptedValue, amount: EncryptedValue, public_amount: int) -> None:
    """
    Gate a public release on `balance >= amount and amount == public_amount`.

    Both comparisons stay encrypted; only their conjunction is revealed.
    """
    covered = fhe.ge(balance, amount)
    matches = fhe.eq(amount, fhe.trivial(public_amount))
    if not fhe.reveal_bool(fhe.select(covered, matches, fhe.zero())):
        raise InsufficientFunds("encrypted balance does not cover the requested amount")
