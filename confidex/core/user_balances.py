"""
Per-user confidential balances.

Mapping-style ledger: exactly one `UserBalance` per (owner, mint), found by
deterministic address instead of an explicit account argument. Used for
wrapped native currency and vault-backed tokens feeding the AMM, with direct
user-to-user transfers and a capped faucet for test deployments.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import LedgerConfig
from ..state.accounts import UserBalance
from ..state.addresses import (
    NATIVE_ASSET,
    Address,
    AssetId,
    PubKey,
    canonical_address,
    canonical_pubkey,
    user_balance_address,
)
from ..state.encrypted import EncryptedValue
from ..state.store import RecordStore, TransactionParticipant
from .access import require_covered, require_encrypted, require_initialized, require_public_amount
from .coprocessor import Coprocessor
from .custody import PublicTokenTransfer
from .errors import AccountAlreadyInUse, AccountNotFound, FaucetDisabled, InsufficientFunds
from .vaults import find_vault, require_vault


logger = logging.getLogger(__name__)


class UserBalanceLedger:
    def __init__(
        self,
        store: RecordStore,
        coprocessor: Coprocessor,
        custody: PublicTokenTransfer,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        self.store = store
        self.fhe = coprocessor
        self.custody = custody
        self.config = config or LedgerConfig()
        if isinstance(custody, TransactionParticipant):
            store.join(custody)

    def get_balance(self, owner: PubKey, mint: Address) -> Optional[UserBalance]:
        return self.store.get(user_balance_address(owner, mint), UserBalance)

    def initialize_user_balance(self, owner: PubKey, mint: Address) -> UserBalance:
        owner = canonical_pubkey(owner, name="owner")
        mint = canonical_address(mint, name="mint")
        with self.store.transaction():
            if self.get_balance(owner, mint) is not None:
                raise AccountAlreadyInUse(f"user balance for {owner} / {mint} already exists")
            balance = self._create(owner, mint)
        return balance

    def _create(self, owner: PubKey, mint: Address) -> UserBalance:
        balance = UserBalance(
            address=user_balance_address(owner, mint),
            owner=owner,
            mint=mint,
            encrypted_balance=self.fhe.zero(),
            is_initialized=True,
        )
        self.store.create(balance)
        logger.info("user balance initialized owner=%s mint=%s", owner, mint)
        return balance

    def _get_or_create(self, owner: PubKey, mint: Address) -> UserBalance:
        existing = self.get_balance(owner, mint)
        if existing is not None:
            return existing
        return self._create(owner, mint)

    def _require_balance(self, owner: PubKey, mint: Address) -> UserBalance:
        balance = self.get_balance(owner, mint)
        if balance is None:
            raise AccountNotFound(f"no balance for {owner} / {mint}")
        require_initialized(balance)
        return balance

    def _credit(self, balance: EncryptedValue, amount: EncryptedValue) -> EncryptedValue:
        if self.config.homomorphic:
            return self.fhe.add(balance, amount)
        return amount

    def wrap_to_user(
        self,
        signer: PubKey,
        asset: AssetId,
        public_amount: int,
        encrypted_amount: EncryptedValue,
    ) -> UserBalance:
        """Lock public units in the asset's vault and credit the signer's balance."""
        require_public_amount(public_amount)
        require_encrypted(encrypted_amount, name="encrypted_amount")
        owner = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            vault = require_vault(self.store, asset)
            self.custody.transfer(owner, vault.address, vault.asset, public_amount, owner)
            balance = self._get_or_create(owner, vault.asset)
            balance.encrypted_balance = self._credit(balance.encrypted_balance, encrypted_amount)
        logger.info("wrap_to_user asset=%s owner=%s amount=%d", vault.asset, owner, public_amount)
        return balance

    def unwrap_from_user(
        self,
        signer: PubKey,
        asset: AssetId,
        public_amount: int,
        encrypted_amount: Optional[EncryptedValue] = None,
    ) -> None:
        """
        Release public units from the vault against the signer's balance.

        Homomorphic mode debits exactly `encrypted_amount`, which must encrypt
        `public_amount` and be covered by the balance (InsufficientFunds
        otherwise).
        """
        require_public_amount(public_amount)
        if self.config.homomorphic:
            if encrypted_amount is None:
                raise ValueError("encrypted_amount is required for homomorphic unwrap")
            require_encrypted(encrypted_amount, name="encrypted_amount")
        owner = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            vault = require_vault(self.store, asset)
            balance = self._require_balance(owner, vault.asset)
            held = self.custody.balance_of(vault.address, vault.asset)
            if held < public_amount:
                raise InsufficientFunds(f"vault holds {held} < {public_amount}")

            if self.config.homomorphic and encrypted_amount is not None:
                current = balance.encrypted_balance
                require_covered(self.fhe, current, encrypted_amount, public_amount)
                balance.encrypted_balance = self.fhe.sub(current, encrypted_amount)
            else:
                balance.encrypted_balance = self.fhe.zero()
            self.custody.transfer(vault.address, owner, vault.asset, public_amount, vault.authority)
        logger.info("unwrap_from_user asset=%s owner=%s amount=%d", vault.asset, owner, public_amount)

    def transfer_to_user(
        self,
        signer: PubKey,
        dest_owner: PubKey,
        mint: Address,
        encrypted_amount: EncryptedValue,
    ) -> None:
        """Private transfer between two owners' balances of the same mint."""
        require_encrypted(encrypted_amount, name="encrypted_amount")
        source_owner = canonical_pubkey(signer, name="signer")
        dest_owner = canonical_pubkey(dest_owner, name="dest_owner")
        mint = canonical_address(mint, name="mint")
        with self.store.transaction():
            source = self._require_balance(source_owner, mint)
            dest = self._get_or_create(dest_owner, mint)
            if self.config.homomorphic:
                ok = self.fhe.ge(source.encrypted_balance, encrypted_amount)
                moved = self.fhe.select(ok, encrypted_amount, self.fhe.zero())
                source.encrypted_balance = self.fhe.sub(source.encrypted_balance, moved)
                dest.encrypted_balance = self.fhe.add(dest.encrypted_balance, moved)
            else:
                source.encrypted_balance = self.fhe.zero()
                dest.encrypted_balance = encrypted_amount
        logger.info("transfer_to_user mint=%s %s -> %s", mint, source_owner, dest_owner)

    def faucet(self, signer: PubKey, mint: Address, encrypted_amount: EncryptedValue) -> UserBalance:
        """
        Credit free test units to the signer's balance.

        Disabled unless `faucet_enabled`. Only `faucet_mint` is served, and
        never an asset with a vault: faucet units must not be redeemable for
        custody units. The credit is capped at `faucet_cap` under encryption.
        """
        if not self.config.faucet_enabled:
            raise FaucetDisabled("faucet is disabled")
        require_encrypted(encrypted_amount, name="encrypted_amount")
        owner = canonical_pubkey(signer, name="signer")
        mint = canonical_address(mint, name="mint")
        if mint != self.config.faucet_mint:
            raise FaucetDisabled(f"faucet does not serve mint {mint}")
        with self.store.transaction():
            if mint == NATIVE_ASSET or find_vault(self.store, mint) is not None:
                raise FaucetDisabled(f"mint {mint} is vault-backed")
            balance = self._get_or_create(owner, mint)
            capped = self.fhe.min(encrypted_amount, self.fhe.trivial(self.config.faucet_cap))
            balance.encrypted_balance = self._credit(balance.encrypted_balance, capped)
        logger.info("faucet mint=%s owner=%s", mint, owner)
        return balance
