# [TESTER] v1

from __future__ import annotations

import pytest

from confidex.state.addresses import (
    NATIVE_ASSET,
    account_address,
    canonical_pair,
    canonical_pubkey,
    derive_address,
    mint_address,
    pool_address,
    position_address,
    swap_result_address,
    user_balance_address,
    vault_address,
)


ALICE = "0x" + "aa" * 48
BOB = "0x" + "bb" * 48
ASSET_A = "0x" + "11" * 32
ASSET_B = "0x" + "22" * 32


def test_derive_address_is_deterministic_and_length_prefixed() -> None:
    assert derive_address("x", "ab", "c") == derive_address("x", "ab", "c")
    assert derive_address("x", "ab", "c") != derive_address("x", "a", "bc")
    assert derive_address("x", "k") != derive_address("y", "k")
    addr = derive_address("x")
    assert addr.startswith("0x") and len(addr) == 66

    with pytest.raises(TypeError):
        derive_address("x", 1)  # type: ignore[arg-type]


def test_addresses_canonicalize_hex_case() -> None:
    upper = "0x" + "AA" * 48
    assert canonical_pubkey(upper) == ALICE
    assert user_balance_address(upper, ASSET_A) == user_balance_address(ALICE, ASSET_A)
    assert mint_address(upper, "seed") == mint_address(ALICE, "seed")

    with pytest.raises(ValueError):
        canonical_pubkey("0x1234")


def test_pool_address_is_order_independent() -> None:
    assert pool_address(ASSET_A, ASSET_B) == pool_address(ASSET_B, ASSET_A)
    assert canonical_pair(ASSET_B, ASSET_A) == (ASSET_A, ASSET_B)
    with pytest.raises(ValueError):
        canonical_pair(ASSET_A, ASSET_A)


def test_record_kinds_never_share_a_slot() -> None:
    pool = pool_address(ASSET_A, ASSET_B)
    slots = {
        mint_address(ALICE, ""),
        account_address(ASSET_A, ALICE),
        account_address(ASSET_A, ALICE, "2"),
        vault_address(ASSET_A),
        vault_address(NATIVE_ASSET),
        user_balance_address(ALICE, ASSET_A),
        user_balance_address(BOB, ASSET_A),
        pool,
        position_address(pool, ALICE),
        swap_result_address(pool, ALICE),
    }
    assert len(slots) == 10


def test_native_vault_has_fixed_slot() -> None:
    assert vault_address(NATIVE_ASSET) == derive_address("native_vault")
    assert vault_address(ASSET_A) != vault_address(ASSET_B)
