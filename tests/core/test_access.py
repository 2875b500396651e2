# [TESTER] v1

from __future__ import annotations

import pytest

from confidex.core.access import (
    require_authority,
    require_fee_bps,
    require_initialized,
    require_mint_match,
    require_not_frozen,
    require_owner,
    require_pool_initialized,
    require_position_owner,
    require_public_amount,
    require_state,
)
from confidex.core.errors import (
    AccountFrozen,
    FeeTooHigh,
    InvalidOwner,
    InvalidState,
    MintMismatch,
    OwnerMismatch,
    PoolNotInitialized,
    UninitializedState,
)
from confidex.state.accounts import Account, AccountState, Mint
from confidex.state.pools import Pool, Position


OWNER = "0x" + "aa" * 48
OTHER = "0x" + "bb" * 48
MINT = "0x" + "01" * 32
ACCT = "0x" + "02" * 32


def _account(state: AccountState = AccountState.INITIALIZED) -> Account:
    return Account(address=ACCT, mint=MINT, owner=OWNER, state=state)


def test_require_initialized() -> None:
    require_initialized(_account())
    require_initialized(_account(AccountState.FROZEN))
    with pytest.raises(UninitializedState):
        require_initialized(_account(AccountState.UNINITIALIZED))
    with pytest.raises(UninitializedState):
        require_initialized(Mint(address=MINT, decimals=6, mint_authority=OWNER))
    with pytest.raises(UninitializedState):
        require_initialized(None)


def test_require_not_frozen_and_state() -> None:
    require_not_frozen(_account())
    with pytest.raises(AccountFrozen):
        require_not_frozen(_account(AccountState.FROZEN))
    with pytest.raises(InvalidState):
        require_state(_account(), AccountState.FROZEN, InvalidState)
    with pytest.raises(UninitializedState):
        require_state(_account(AccountState.FROZEN), AccountState.INITIALIZED, UninitializedState)


def test_owner_and_authority_checks() -> None:
    require_owner(OWNER, OWNER)
    with pytest.raises(OwnerMismatch):
        require_owner(OTHER, OWNER)
    require_authority(OWNER, OWNER)
    with pytest.raises(OwnerMismatch):
        require_authority(OWNER, None)


def test_mint_match() -> None:
    require_mint_match(MINT, MINT)
    with pytest.raises(MintMismatch):
        require_mint_match(MINT, "0x" + "03" * 32)


def test_fee_bps_bounds() -> None:
    require_fee_bps(0)
    require_fee_bps(1000)
    with pytest.raises(FeeTooHigh):
        require_fee_bps(1001)
    with pytest.raises(ValueError):
        require_fee_bps(-1)


def test_pool_and_position_checks() -> None:
    a, b = "0x" + "11" * 32, "0x" + "22" * 32
    pool = Pool(address="0x" + "33" * 32, asset_a=a, asset_b=b, fee_bps=30, authority=OWNER)
    with pytest.raises(PoolNotInitialized):
        require_pool_initialized(pool)
    with pytest.raises(PoolNotInitialized):
        require_pool_initialized(None)
    pool.is_initialized = True
    require_pool_initialized(pool)

    pos = Position(address="0x" + "44" * 32, pool=pool.address, owner=OWNER)
    require_position_owner(pos, OWNER)
    with pytest.raises(InvalidOwner):
        require_position_owner(pos, OTHER)
    with pytest.raises(InvalidOwner):
        require_position_owner(None, OWNER)


def test_public_amount_validation() -> None:
    assert require_public_amount(0) == 0
    with pytest.raises(ValueError):
        require_public_amount(-1)
    with pytest.raises(TypeError):
        require_public_amount(True)
