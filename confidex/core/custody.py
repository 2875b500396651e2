"""
Public token custody capability.

The custody service moves plaintext units between holders. Vaults hold the
public backing for wrapped balances and sign their own outbound transfers
(their address is their authority).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, Tuple

from ..state.addresses import AssetId
from ..state.balances import Amount, Holder, PublicBalanceTable
from .errors import AuthorizationFailed, InsufficientFunds


logger = logging.getLogger(__name__)


class PublicTokenTransfer(Protocol):
    def transfer(
        self,
        source: Holder,
        destination: Holder,
        asset: AssetId,
        amount: Amount,
        authority: Holder,
    ) -> None:
        """Move `amount` units; raises InsufficientFunds or AuthorizationFailed."""
        ...

    def balance_of(self, holder: Holder, asset: AssetId) -> Amount:
        ...


class InMemoryCustody:
    """
    Custody over a `PublicBalanceTable`.

    Only the source holder may authorize a transfer out of its balance. Joins
    a `RecordStore` transaction through `snapshot()`/`restore()`.
    """

    def __init__(self) -> None:
        self._table = PublicBalanceTable()

    def mint_public(self, holder: Holder, asset: AssetId, amount: Amount) -> None:
        """Credit fresh public units (test/dev funding)."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"amount must be a non-negative int: {amount!r}")
        self._table.add(holder, asset, amount)

    def transfer(
        self,
        source: Holder,
        destination: Holder,
        asset: AssetId,
        amount: Amount,
        authority: Holder,
    ) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"amount must be a non-negative int: {amount!r}")
        if authority != source:
            raise AuthorizationFailed("transfer authority does not control the source")
        available = self._table.get(source, asset)
        if available < amount:
            raise InsufficientFunds(f"source holds {available} < {amount}")
        self._table.add(source, asset, -amount)
        self._table.add(destination, asset, amount)
        logger.debug("custody transfer %s -> %s asset=%s amount=%d", source, destination, asset, amount)

    def balance_of(self, holder: Holder, asset: AssetId) -> Amount:
        return self._table.get(holder, asset)

    def balances(self) -> Dict[Tuple[Holder, AssetId], Amount]:
        return self._table.get_all_balances()

    def snapshot(self) -> Any:
        return self._table.copy()

    def restore(self, snapshot: Any) -> None:
        self._table = snapshot.copy()
