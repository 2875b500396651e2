"""
Confidential pool state: pools, liquidity positions and swap results.

Reserves, the constant product and LP balances are encrypted handles; only
the asset pair, fee and authority are public.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .addresses import Address, AssetId, PubKey
from .encrypted import EncryptedValue


BPS_DENOM = 10_000
MAX_FEE_BPS = 1_000  # 10%


@dataclass
class Pool:
    """
    State of a confidential constant-product pool.

    Attributes:
        address: Pool address derived from the unordered asset pair
        asset_a: First asset (canonical order, asset_a < asset_b)
        asset_b: Second asset
        reserve_a: Encrypted reserve of asset_a
        reserve_b: Encrypted reserve of asset_b
        k_constant: Encrypted constant product reserve_a * reserve_b
        lp_supply: Encrypted total LP supply
        fee_bps: Public swap fee in basis points (0-1000)
        authority: Pool creator
        is_initialized: Set once by initialize_pool
    """
    address: Address
    asset_a: AssetId
    asset_b: AssetId
    fee_bps: int
    authority: PubKey
    reserve_a: EncryptedValue = field(default_factory=EncryptedValue.default)
    reserve_b: EncryptedValue = field(default_factory=EncryptedValue.default)
    k_constant: EncryptedValue = field(default_factory=EncryptedValue.default)
    lp_supply: EncryptedValue = field(default_factory=EncryptedValue.default)
    is_initialized: bool = False

    def __post_init__(self) -> None:
        if self.asset_a >= self.asset_b:
            raise ValueError(
                f"Assets must be in canonical order: {self.asset_a} < {self.asset_b}"
            )
        if not isinstance(self.fee_bps, int) or isinstance(self.fee_bps, bool):
            raise TypeError("fee_bps must be an int")
        if self.fee_bps < 0:
            raise ValueError(f"fee_bps must be non-negative: {self.fee_bps}")

    def reserves_for(self, a_to_b: bool) -> tuple[EncryptedValue, EncryptedValue]:
        """Return (reserve_in, reserve_out) for a swap direction."""
        if a_to_b:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def __repr__(self) -> str:
        return (
            f"Pool(address={self.address[:18]}..., "
            f"assets=({self.asset_a[:10]}..., {self.asset_b[:10]}...), "
            f"fee_bps={self.fee_bps}, initialized={self.is_initialized})"
        )


@dataclass
class Position:
    """A user's encrypted LP balance in one pool."""
    address: Address
    pool: Address
    owner: PubKey
    lp_amount: EncryptedValue = field(default_factory=EncryptedValue.default)


@dataclass
class SwapResult:
    """
    Latest swap outcome for one (pool, owner) pair; overwritten on every swap.

    `is_complete` is public and says the swap was processed. Whether the
    slippage check passed is itself confidential and lives in `filled`
    (an encrypted boolean).
    """
    address: Address
    pool: Address
    owner: PubKey
    amount_out: EncryptedValue = field(default_factory=EncryptedValue.default)
    filled: EncryptedValue = field(default_factory=EncryptedValue.default)
    is_complete: bool = False


@dataclass(frozen=True)
class PoolInfo:
    """Public view of a pool. Reserves are deliberately absent."""
    address: Address
    asset_a: AssetId
    asset_b: AssetId
    fee_bps: int
    authority: PubKey
    is_initialized: bool
