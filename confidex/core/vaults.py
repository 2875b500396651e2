"""Vault bootstrap and lookup shared by the account ledger and the per-user ledger."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..state.accounts import Vault
from ..state.addresses import (
    LABEL_NATIVE_VAULT,
    LABEL_VAULT,
    NATIVE_ASSET,
    AssetId,
    canonical_address,
    vault_address,
)
from ..state.store import RecordStore
from .errors import UninitializedState


logger = logging.getLogger(__name__)


def initialize_vault(store: RecordStore, asset: AssetId) -> Tuple[Vault, bool]:
    """
    Create the single vault for `asset`.

    Idempotent: re-initializing returns the existing vault with
    `created=False` instead of failing.
    """
    asset = canonical_address(asset, name="asset")
    address = vault_address(asset)
    with store.transaction():
        existing = store.get(address, Vault)
        if existing is not None:
            return existing, False
        label = LABEL_NATIVE_VAULT if asset == NATIVE_ASSET else LABEL_VAULT
        vault = Vault(address=address, asset=asset, label=label, is_initialized=True)
        store.create(vault)
    logger.info("vault initialized asset=%s address=%s", asset, address)
    return vault, True


def find_vault(store: RecordStore, asset: AssetId) -> Optional[Vault]:
    return store.get(vault_address(asset), Vault)


def require_vault(store: RecordStore, asset: AssetId) -> Vault:
    vault = find_vault(store, asset)
    if vault is None or not vault.is_initialized:
        raise UninitializedState(f"no vault for asset {asset}")
    return vault
