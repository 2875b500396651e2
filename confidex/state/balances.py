"""
Public (plaintext) balance tracking for the custody service.

Implements PublicBalanceTable[holder, AssetId] -> Amount. Holders are either
user pubkeys or program-owned record addresses (vaults, rent escrow).
"""

from __future__ import annotations

from typing import Dict, Tuple

from .addresses import AssetId


Holder = str
Amount = int  # Non-negative integer (arbitrary precision)


class PublicBalanceTable:
    """
    Balance table mapping (holder, asset) -> plaintext amount.

    Zero balances are dropped to keep the table sparse. Do not rely on dict
    iteration order; callers sort keys at serialization boundaries.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Holder, AssetId], Amount] = {}

    def get(self, holder: Holder, asset: AssetId) -> Amount:
        """Get balance for (holder, asset). Returns 0 if not found."""
        return self._balances.get((holder, asset), 0)

    def set(self, holder: Holder, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (holder, asset).

        Raises:
            ValueError: If amount is negative
        """
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError("amount must be an int")
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((holder, asset), None)
        else:
            self._balances[(holder, asset)] = amount

    def add(self, holder: Holder, asset: AssetId, delta: Amount) -> None:
        """Add delta (may be negative) to a balance; never lets it go below zero."""
        current = self.get(holder, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(holder, asset, new_balance)

    def get_all_balances(self) -> Dict[Tuple[Holder, AssetId], Amount]:
        return dict(self._balances)

    def copy(self) -> "PublicBalanceTable":
        copied = PublicBalanceTable()
        copied._balances = dict(self._balances)
        return copied

    def __repr__(self) -> str:
        return f"PublicBalanceTable({len(self._balances)} entries)"
