# [TESTER] v1

from __future__ import annotations

import pytest

from confidex.config import ArithmeticMode, LedgerConfig
from confidex.core.amm import ConfidentialAMM
from confidex.core.coprocessor import LocalCoprocessor
from confidex.core.errors import (
    AccountAlreadyInUse,
    AccountNotFound,
    FeeTooHigh,
    InvalidOwner,
    InvalidState,
    PoolNotInitialized,
)
from confidex.state.addresses import pool_address
from confidex.state.encrypted import HANDLE_MAX
from confidex.state.store import RecordStore


ALICE = "0x" + "aa" * 48
BOB = "0x" + "bb" * 48
ASSET_A = "0x" + "11" * 32
ASSET_B = "0x" + "22" * 32
ASSET_C = "0x" + "33" * 32


def _amm(config: LedgerConfig | None = None):
    cop = LocalCoprocessor()
    return ConfidentialAMM(RecordStore(), cop, config), cop


def _seeded_pool(amm: ConfidentialAMM, cop: LocalCoprocessor, *, fee_bps: int = 30, liquidity: int = 1000):
    pool = amm.initialize_pool(ALICE, ASSET_A, ASSET_B, fee_bps)
    amm.add_liquidity(ALICE, pool.address, cop.encrypt_handle(liquidity), cop.encrypt_handle(liquidity))
    return pool


def _reserves(amm: ConfidentialAMM, cop: LocalCoprocessor, pool: str) -> tuple[int, int, int, int]:
    p = amm.get_pool(pool)
    return (
        cop.decrypt(p.reserve_a),
        cop.decrypt(p.reserve_b),
        cop.decrypt(p.k_constant),
        cop.decrypt(p.lp_supply),
    )


def test_initialize_pool_fee_bounds() -> None:
    amm, _ = _amm()
    with pytest.raises(FeeTooHigh):
        amm.initialize_pool(ALICE, ASSET_A, ASSET_B, 1001)
    assert not amm.store.exists(pool_address(ASSET_A, ASSET_B))

    pool = amm.initialize_pool(ALICE, ASSET_A, ASSET_B, 1000)
    assert pool.fee_bps == 1000
    with pytest.raises(AccountAlreadyInUse):
        amm.initialize_pool(BOB, ASSET_B, ASSET_A, 30)


def test_pool_address_ignores_asset_order() -> None:
    amm, _ = _amm()
    pool = amm.initialize_pool(ALICE, ASSET_B, ASSET_A, 30)
    assert pool.address == pool_address(ASSET_A, ASSET_B) == pool_address(ASSET_B, ASSET_A)
    assert (pool.asset_a, pool.asset_b) == (ASSET_A, ASSET_B)

    with pytest.raises(ValueError):
        amm.initialize_pool(ALICE, ASSET_A, ASSET_A, 30)


def test_get_pool_info_exposes_public_fields_only() -> None:
    amm, _ = _amm()
    pool = amm.initialize_pool(ALICE, ASSET_A, ASSET_B, 30)
    info = amm.get_pool_info(pool.address)
    assert info.address == pool.address
    assert info.fee_bps == 30
    assert info.authority == ALICE
    assert info.is_initialized
    assert not hasattr(info, "reserve_a")

    with pytest.raises(PoolNotInitialized):
        amm.get_pool_info(pool_address(ASSET_A, ASSET_C))


def test_first_deposit_mints_amount_a() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    assert _reserves(amm, cop, pool.address) == (1000, 1000, 1_000_000, 1000)
    position = amm.get_position(pool.address, ALICE)
    assert position is not None
    assert cop.decrypt(position.lp_amount) == 1000


def test_proportional_deposit_mints_min_share() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    position = amm.add_liquidity(BOB, pool.address, cop.encrypt_handle(500), cop.encrypt_handle(200))

    assert cop.decrypt(position.lp_amount) == 200
    ra, rb, k, lp = _reserves(amm, cop, pool.address)
    assert (ra, rb, lp) == (1500, 1200, 1200)
    assert k == 1500 * 1200


def test_swap_with_fee_updates_reserves() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(0), True)
    assert result.is_complete
    assert cop.decrypt(result.amount_out) == 90
    assert cop.decrypt(result.filled) == 1
    assert _reserves(amm, cop, pool.address)[:3] == (1100, 910, 1_001_000)

    stored = amm.get_swap_result(pool.address, BOB)
    assert stored is not None and stored.address == result.address


def test_swap_b_to_a_is_symmetric() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(0), False)
    assert cop.decrypt(result.amount_out) == 90
    assert _reserves(amm, cop, pool.address)[:3] == (910, 1100, 1_001_000)


def test_swap_prices_eighteen_decimal_reserves() -> None:
    amm, cop = _amm()
    token = 10**18
    pool = _seeded_pool(amm, cop, liquidity=1_000 * token)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(token), cop.encrypt_handle(0), True)
    out = cop.decrypt(result.amount_out)
    in_after_fee = token * 9_970 // 10_000
    assert out == 1_000 * token * in_after_fee // (1_000 * token + in_after_fee)
    assert 0 < out < token

    ra, rb, k, _ = _reserves(amm, cop, pool.address)
    assert (ra, rb) == (1_001 * token, 1_000 * token - out)
    assert ra * rb >= (1_000 * token) ** 2
    # reserve_a * reserve_b no longer fits in u128.
    assert k == HANDLE_MAX


def test_swap_that_would_wrap_reserves_fails_closed() -> None:
    amm, cop = _amm()
    pool = amm.initialize_pool(ALICE, ASSET_A, ASSET_B, 30)
    amm.add_liquidity(ALICE, pool.address, cop.encrypt_handle(HANDLE_MAX - 10), cop.encrypt_handle(1_000))
    before = _reserves(amm, cop, pool.address)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(0), True)
    assert cop.decrypt(result.filled) == 0
    assert cop.decrypt(result.amount_out) == 0
    assert _reserves(amm, cop, pool.address) == before


def test_deposit_that_would_wrap_reserves_mints_nothing() -> None:
    amm, cop = _amm()
    pool = amm.initialize_pool(ALICE, ASSET_A, ASSET_B, 30)
    amm.add_liquidity(ALICE, pool.address, cop.encrypt_handle(HANDLE_MAX - 10), cop.encrypt_handle(1_000))
    before = _reserves(amm, cop, pool.address)
    assert before[2] == HANDLE_MAX

    position = amm.add_liquidity(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(100))
    assert cop.decrypt(position.lp_amount) == 0
    assert _reserves(amm, cop, pool.address) == before


def test_remove_liquidity_at_eighteen_decimals() -> None:
    amm, cop = _amm()
    token = 10**18
    pool = _seeded_pool(amm, cop, liquidity=1_000 * token)
    position = amm.get_position(pool.address, ALICE)

    payout = amm.remove_liquidity(ALICE, pool.address, position.address, cop.encrypt_handle(250 * token))
    assert cop.decrypt(payout.amount_a) == 250 * token
    assert cop.decrypt(payout.amount_b) == 250 * token
    assert _reserves(amm, cop, pool.address)[3] == 750 * token


def test_swap_below_min_out_leaves_reserves_unchanged() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(91), True)
    assert result.is_complete
    assert cop.decrypt(result.filled) == 0
    assert cop.decrypt(result.amount_out) == 0
    assert _reserves(amm, cop, pool.address)[:3] == (1000, 1000, 1_000_000)


def test_swap_result_is_overwritten_per_owner() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    first = amm.swap(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(0), True)
    second = amm.swap(BOB, pool.address, cop.encrypt_handle(1), cop.encrypt_handle(1000), True)
    assert first.address == second.address
    assert cop.decrypt(amm.get_swap_result(pool.address, BOB).filled) == 0


def test_swap_on_unknown_pool_fails() -> None:
    amm, cop = _amm()
    with pytest.raises(PoolNotInitialized):
        amm.swap(BOB, pool_address(ASSET_A, ASSET_B), cop.encrypt_handle(1), cop.encrypt_handle(0), True)
    with pytest.raises(PoolNotInitialized):
        amm.add_liquidity(BOB, pool_address(ASSET_A, ASSET_B), cop.encrypt_handle(1), cop.encrypt_handle(1))


def test_remove_liquidity_pays_out_pro_rata() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    position = amm.get_position(pool.address, ALICE)

    payout = amm.remove_liquidity(ALICE, pool.address, position.address, cop.encrypt_handle(250))
    assert cop.decrypt(payout.amount_a) == 250
    assert cop.decrypt(payout.amount_b) == 250
    assert _reserves(amm, cop, pool.address) == (750, 750, 562_500, 750)
    assert cop.decrypt(amm.get_position(pool.address, ALICE).lp_amount) == 750


def test_remove_liquidity_caps_burn_at_position() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    amm.add_liquidity(BOB, pool.address, cop.encrypt_handle(100), cop.encrypt_handle(100))
    bob_position = amm.get_position(pool.address, BOB)

    payout = amm.remove_liquidity(BOB, pool.address, bob_position.address, cop.encrypt_handle(10_000))
    assert cop.decrypt(payout.amount_a) == 100
    assert cop.decrypt(payout.amount_b) == 100
    assert cop.decrypt(amm.get_position(pool.address, BOB).lp_amount) == 0
    assert _reserves(amm, cop, pool.address)[3] == 1000


def test_remove_liquidity_checks_position() -> None:
    amm, cop = _amm()
    pool = _seeded_pool(amm, cop)
    position = amm.get_position(pool.address, ALICE)

    with pytest.raises(InvalidOwner):
        amm.remove_liquidity(BOB, pool.address, position.address, cop.encrypt_handle(1))
    with pytest.raises(AccountNotFound):
        amm.remove_liquidity(ALICE, pool.address, "0x" + "55" * 32, cop.encrypt_handle(1))

    other = amm.initialize_pool(ALICE, ASSET_A, ASSET_C, 30)
    with pytest.raises(InvalidState):
        amm.remove_liquidity(ALICE, other.address, position.address, cop.encrypt_handle(1))


def test_overwrite_mode_reproduces_assignments() -> None:
    amm, cop = _amm(LedgerConfig(arithmetic=ArithmeticMode.OVERWRITE))
    pool = _seeded_pool(amm, cop)
    amm.add_liquidity(ALICE, pool.address, cop.encrypt_handle(7), cop.encrypt_handle(9))
    assert _reserves(amm, cop, pool.address) == (7, 9, 7, 7)

    result = amm.swap(BOB, pool.address, cop.encrypt_handle(3), cop.encrypt_handle(100), True)
    assert cop.decrypt(result.filled) == 1
    assert cop.decrypt(result.amount_out) == 3
    assert _reserves(amm, cop, pool.address)[:3] == (3, 3, 7)

    position = amm.get_position(pool.address, ALICE)
    payout = amm.remove_liquidity(ALICE, pool.address, position.address, cop.encrypt_handle(1))
    assert cop.decrypt(payout.amount_a) == 0
    assert cop.decrypt(amm.get_position(pool.address, ALICE).lp_amount) == 0
