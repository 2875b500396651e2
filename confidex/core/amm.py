"""
Confidential constant-product AMM.

Reserves, k, LP supply, positions and swap outputs are encrypted handles;
every formula below runs inside the coprocessor.

Swap (exact-in, direction relative to the pool's canonical (a, b) order):
    in_after_fee = amount_in * (10000 - fee_bps) / 10000
    net      = reserve_out * in_after_fee / (reserve_in + in_after_fee)
    ok       = net >= min_out and no sum wrapped
    out      = select(ok, net, 0)
    reserve_in'  = select(ok, reserve_in + amount_in, reserve_in)
    reserve_out' = reserve_out - out
    k'       = reserve_in' * reserve_out'          (saturating)

Products that feed a division go through `mul_div`, which keeps the full
intermediate, so 18-decimal reserves price correctly. Sums are checked for
wrap-around and a wrapped sum fails the operation closed: nothing moves.
`k_constant` saturates at the u128 max once reserve_a * reserve_b no longer
fits; pricing never reads it.

A failed slippage check moves nothing: `out` is zero and the reserves keep
their previous values, but the caller only learns that through the encrypted
`filled` flag of its SwapResult.

Liquidity:
    minted = amount_a                                  if lp_supply == 0
           = min(amount_a * lp / reserve_a,
                 amount_b * lp / reserve_b)            otherwise
    payout_x = burned * reserve_x / lp_supply
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import LedgerConfig
from ..state.addresses import (
    Address,
    AssetId,
    PubKey,
    canonical_address,
    canonical_pair,
    canonical_pubkey,
    pool_address,
    position_address,
    swap_result_address,
)
from ..state.encrypted import HANDLE_MAX, EncryptedValue
from ..state.pools import BPS_DENOM, Pool, PoolInfo, Position, SwapResult
from ..state.store import RecordStore
from .access import (
    require_encrypted,
    require_fee_bps,
    require_pool_initialized,
    require_position_owner,
)
from .coprocessor import Coprocessor
from .errors import AccountAlreadyInUse, AccountNotFound, InvalidState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidityPayout:
    """Encrypted amounts released by remove_liquidity."""
    amount_a: EncryptedValue
    amount_b: EncryptedValue


class ConfidentialAMM:
    def __init__(
        self,
        store: RecordStore,
        coprocessor: Coprocessor,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        self.store = store
        self.fhe = coprocessor
        self.config = config or LedgerConfig()

    def get_pool(self, pool: Address) -> Pool:
        record = self.store.get(canonical_address(pool, name="pool"), Pool)
        require_pool_initialized(record)
        return record

    def get_position(self, pool: Address, owner: PubKey) -> Optional[Position]:
        return self.store.get(position_address(pool, owner), Position)

    def get_swap_result(self, pool: Address, owner: PubKey) -> Optional[SwapResult]:
        return self.store.get(swap_result_address(pool, owner), SwapResult)

    def initialize_pool(self, signer: PubKey, asset_a: AssetId, asset_b: AssetId, fee_bps: int) -> Pool:
        require_fee_bps(fee_bps)
        signer = canonical_pubkey(signer, name="signer")
        first, second = canonical_pair(asset_a, asset_b)
        address = pool_address(first, second)
        with self.store.transaction():
            if self.store.exists(address):
                raise AccountAlreadyInUse(f"pool {address} already initialized")
            zero = self.fhe.zero()
            pool = Pool(
                address=address,
                asset_a=first,
                asset_b=second,
                fee_bps=fee_bps,
                authority=signer,
                reserve_a=zero,
                reserve_b=zero,
                k_constant=zero,
                lp_supply=zero,
                is_initialized=True,
            )
            self.store.create(pool)
        logger.info("pool initialized address=%s fee_bps=%d", address, fee_bps)
        return pool

    def add_liquidity(
        self,
        signer: PubKey,
        pool: Address,
        encrypted_amount_a: EncryptedValue,
        encrypted_amount_b: EncryptedValue,
    ) -> Position:
        """Deposit both assets; the signer's position is created on first deposit."""
        require_encrypted(encrypted_amount_a, name="encrypted_amount_a")
        require_encrypted(encrypted_amount_b, name="encrypted_amount_b")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            p = self.get_pool(pool)
            position = self.get_position(p.address, signer)
            if position is None:
                position = Position(
                    address=position_address(p.address, signer),
                    pool=p.address,
                    owner=signer,
                    lp_amount=self.fhe.zero(),
                )
                self.store.create(position)

            if self.config.homomorphic:
                fhe = self.fhe
                zero = fhe.zero()
                first_deposit = fhe.eq(p.lp_supply, zero)
                share_a = fhe.mul_div(encrypted_amount_a, p.lp_supply, p.reserve_a)
                share_b = fhe.mul_div(encrypted_amount_b, p.lp_supply, p.reserve_b)
                minted = fhe.select(first_deposit, encrypted_amount_a, fhe.min(share_a, share_b))

                new_a, fits_a = self._checked_add(p.reserve_a, encrypted_amount_a)
                new_b, fits_b = self._checked_add(p.reserve_b, encrypted_amount_b)
                new_lp, fits_lp = self._checked_add(p.lp_supply, minted)
                # A wrapped sum deposits nothing.
                ok = self._all(fits_a, fits_b, fits_lp)
                minted = fhe.select(ok, minted, zero)
                p.reserve_a = fhe.select(ok, new_a, p.reserve_a)
                p.reserve_b = fhe.select(ok, new_b, p.reserve_b)
                p.lp_supply = fhe.select(ok, new_lp, p.lp_supply)
                p.k_constant = self._k(p.reserve_a, p.reserve_b)
                position.lp_amount = fhe.add(position.lp_amount, minted)
            else:
                p.reserve_a = encrypted_amount_a
                p.reserve_b = encrypted_amount_b
                p.k_constant = encrypted_amount_a
                p.lp_supply = encrypted_amount_a
                position.lp_amount = encrypted_amount_a
        logger.info("add_liquidity pool=%s owner=%s", p.address, signer)
        return position

    def remove_liquidity(
        self,
        signer: PubKey,
        pool: Address,
        position: Address,
        encrypted_lp_amount: EncryptedValue,
    ) -> LiquidityPayout:
        require_encrypted(encrypted_lp_amount, name="encrypted_lp_amount")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            p = self.get_pool(pool)
            pos = self.store.get(canonical_address(position, name="position"), Position)
            if pos is None:
                raise AccountNotFound(f"no position at {position}")
            if pos.pool != p.address:
                raise InvalidState("position belongs to a different pool")
            require_position_owner(pos, signer)

            fhe = self.fhe
            zero = fhe.zero()
            if not self.config.homomorphic:
                pos.lp_amount = zero
                payout = LiquidityPayout(amount_a=zero, amount_b=zero)
            else:
                burned = fhe.min(pos.lp_amount, encrypted_lp_amount)
                empty = fhe.eq(p.lp_supply, zero)
                out_a = fhe.select(empty, zero, fhe.mul_div(burned, p.reserve_a, p.lp_supply))
                out_b = fhe.select(empty, zero, fhe.mul_div(burned, p.reserve_b, p.lp_supply))
                ok = self._all(
                    fhe.ge(p.reserve_a, out_a),
                    fhe.ge(p.reserve_b, out_b),
                    fhe.ge(p.lp_supply, burned),
                )
                burned = fhe.select(ok, burned, zero)
                out_a = fhe.select(ok, out_a, zero)
                out_b = fhe.select(ok, out_b, zero)

                p.reserve_a = fhe.sub(p.reserve_a, out_a)
                p.reserve_b = fhe.sub(p.reserve_b, out_b)
                p.k_constant = self._k(p.reserve_a, p.reserve_b)
                p.lp_supply = fhe.sub(p.lp_supply, burned)
                pos.lp_amount = fhe.sub(pos.lp_amount, burned)
                payout = LiquidityPayout(amount_a=out_a, amount_b=out_b)
        logger.info("remove_liquidity pool=%s owner=%s", p.address, pos.owner)
        return payout

    def swap(
        self,
        signer: PubKey,
        pool: Address,
        encrypted_amount_in: EncryptedValue,
        encrypted_min_out: EncryptedValue,
        a_to_b: bool,
    ) -> SwapResult:
        require_encrypted(encrypted_amount_in, name="encrypted_amount_in")
        require_encrypted(encrypted_min_out, name="encrypted_min_out")
        if not isinstance(a_to_b, bool):
            raise TypeError("a_to_b must be a bool")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            p = self.get_pool(pool)
            reserve_in, reserve_out = p.reserves_for(a_to_b)
            fhe = self.fhe

            if self.config.homomorphic:
                zero = fhe.zero()
                in_after_fee = fhe.mul_div(
                    encrypted_amount_in,
                    fhe.trivial(BPS_DENOM - p.fee_bps),
                    fhe.trivial(BPS_DENOM),
                )
                denom, fits_denom = self._checked_add(reserve_in, in_after_fee)
                net = fhe.mul_div(reserve_out, in_after_fee, denom)
                new_in, fits_in = self._checked_add(reserve_in, encrypted_amount_in)
                ok = self._all(
                    fhe.ge(net, encrypted_min_out),
                    fhe.ge(reserve_out, net),
                    fits_denom,
                    fits_in,
                )
                amount_out = fhe.select(ok, net, zero)
                final_in = fhe.select(ok, new_in, reserve_in)
                final_out = fhe.sub(reserve_out, amount_out)
                filled = ok
            else:
                amount_out = encrypted_amount_in
                final_in = encrypted_amount_in
                final_out = amount_out
                filled = fhe.trivial(1)

            if a_to_b:
                p.reserve_a, p.reserve_b = final_in, final_out
            else:
                p.reserve_b, p.reserve_a = final_in, final_out
            if self.config.homomorphic:
                p.k_constant = self._k(p.reserve_a, p.reserve_b)

            result = self.get_swap_result(p.address, signer)
            if result is None:
                result = SwapResult(
                    address=swap_result_address(p.address, signer),
                    pool=p.address,
                    owner=signer,
                )
                self.store.create(result)
            result.amount_out = amount_out
            result.filled = filled
            result.is_complete = True
        logger.info("swap pool=%s owner=%s direction=%s", p.address, signer, "a->b" if a_to_b else "b->a")
        return result

    # ------------------------------------------------------------------
    # encrypted arithmetic helpers

    def _checked_add(self, a: EncryptedValue, b: EncryptedValue) -> Tuple[EncryptedValue, EncryptedValue]:
        """Return `a + b` and an encrypted flag that is 1 unless the sum wrapped."""
        total = self.fhe.add(a, b)
        return total, self.fhe.ge(total, a)

    def _all(self, *conds: EncryptedValue) -> EncryptedValue:
        ok = conds[0]
        for cond in conds[1:]:
            ok = self.fhe.select(ok, cond, self.fhe.zero())
        return ok

    def _k(self, reserve_a: EncryptedValue, reserve_b: EncryptedValue) -> EncryptedValue:
        fhe = self.fhe
        product = fhe.mul(reserve_a, reserve_b)
        fits = fhe.select(
            fhe.eq(reserve_b, fhe.zero()),
            fhe.trivial(1),
            fhe.eq(fhe.div(product, reserve_b), reserve_a),
        )
        return fhe.select(fits, product, fhe.trivial(HANDLE_MAX))

    def get_pool_info(self, pool: Address) -> PoolInfo:
        p = self.get_pool(pool)
        return PoolInfo(
            address=p.address,
            asset_a=p.asset_a,
            asset_b=p.asset_b,
            fee_bps=p.fee_bps,
            authority=p.authority,
            is_initialized=p.is_initialized,
        )
