"""
Confidential token ledger.

Mints, token accounts (owner balance, delegate, freeze, close) and the
wrap/unwrap bridge between public custody units and encrypted balances.

Each operation:
1. runs inside one `RecordStore.transaction()` (all-or-nothing),
2. checks every precondition before mutating anything,
3. combines encrypted amounts only through the coprocessor.

In `ArithmeticMode.OVERWRITE` the balance-changing operations assign the
supplied ciphertext instead of composing it, reproducing the legacy
placeholder behavior.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..config import LedgerConfig
from ..state.accounts import Account, AccountState, Mint, Vault
from ..state.addresses import (
    NATIVE_ASSET,
    Address,
    AssetId,
    PubKey,
    account_address,
    canonical_address,
    canonical_pubkey,
    mint_address,
    rent_escrow_address,
)
from ..state.encrypted import EncryptedValue
from ..state.store import RecordStore, TransactionParticipant
from .access import (
    require_authority,
    require_covered,
    require_encrypted,
    require_initialized,
    require_mint_match,
    require_not_frozen,
    require_owner,
    require_public_amount,
    require_state,
)
from .coprocessor import Coprocessor
from .custody import PublicTokenTransfer
from .errors import (
    AccountAlreadyInUse,
    AccountNotFound,
    InsufficientFunds,
    InvalidState,
    OwnerMismatch,
    UninitializedState,
)
from .vaults import initialize_vault, require_vault


logger = logging.getLogger(__name__)


class ConfidentialLedger:
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

    # ------------------------------------------------------------------
    # lookups

    def get_mint(self, address: Address) -> Mint:
        """A missing mint slot is an uninitialized mint."""
        mint = self.store.get(canonical_address(address, name="mint"), Mint)
        if mint is None:
            raise UninitializedState(f"mint {address} is not initialized")
        return mint

    def get_account(self, address: Address) -> Account:
        account = self.store.get(canonical_address(address, name="account"), Account)
        if account is None:
            raise AccountNotFound(f"no account at {address}")
        return account

    # ------------------------------------------------------------------
    # mints and accounts

    def initialize_mint(
        self,
        signer: PubKey,
        seed: str,
        decimals: int,
        mint_authority: Optional[PubKey],
        freeze_authority: Optional[PubKey] = None,
    ) -> Mint:
        signer = canonical_pubkey(signer, name="signer")
        address = mint_address(signer, seed)
        with self.store.transaction():
            if self.store.exists(address):
                raise AccountAlreadyInUse(f"mint slot {address} already in use")
            mint = Mint(
                address=address,
                decimals=decimals,
                mint_authority=canonical_pubkey(mint_authority, name="mint_authority") if mint_authority else None,
                freeze_authority=canonical_pubkey(freeze_authority, name="freeze_authority") if freeze_authority else None,
                supply=self.fhe.zero(),
                is_initialized=True,
            )
            self.store.create(mint)
        logger.info("mint initialized address=%s decimals=%d", address, decimals)
        return mint

    def initialize_account(self, signer: PubKey, mint: Address, owner: PubKey, seed: str = "") -> Account:
        """
        Create an Initialized account for (mint, owner).

        The signer pays the configured storage deposit into the rent escrow.
        """
        signer = canonical_pubkey(signer, name="signer")
        owner = canonical_pubkey(owner, name="owner")
        with self.store.transaction():
            mint_rec = self.get_mint(mint)
            require_initialized(mint_rec)
            address = account_address(mint_rec.address, owner, seed)
            if self.store.exists(address):
                raise AccountAlreadyInUse(f"account slot {address} already in use")
            deposit = self.config.account_deposit
            if deposit:
                self.custody.transfer(signer, rent_escrow_address(), NATIVE_ASSET, deposit, signer)
            account = Account(
                address=address,
                mint=mint_rec.address,
                owner=owner,
                amount=self.fhe.zero(),
                delegated_amount=self.fhe.zero(),
                state=AccountState.INITIALIZED,
                deposit=deposit,
            )
            self.store.create(account)
        logger.info("account initialized address=%s mint=%s deposit=%d", address, mint_rec.address, deposit)
        return account

    def mint_to(self, signer: PubKey, mint: Address, account: Address, encrypted_amount: EncryptedValue) -> None:
        require_encrypted(encrypted_amount, name="encrypted_amount")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            mint_rec = self.get_mint(mint)
            acct = self.get_account(account)
            require_initialized(mint_rec)
            require_initialized(acct)
            require_not_frozen(acct)
            require_mint_match(acct.mint, mint_rec.address)
            require_authority(signer, mint_rec.mint_authority)

            if self.config.homomorphic:
                acct.amount = self.fhe.add(acct.amount, encrypted_amount)
                mint_rec.supply = self.fhe.add(mint_rec.supply, encrypted_amount)
            else:
                acct.amount = encrypted_amount
                mint_rec.supply = encrypted_amount
        logger.info("mint_to mint=%s account=%s", mint_rec.address, acct.address)

    def transfer(self, signer: PubKey, source: Address, destination: Address, encrypted_amount: EncryptedValue) -> None:
        """
        Move an encrypted amount between two accounts of the same mint.

        The signer is either the source owner or its delegate. The move is
        all-or-nothing under encryption: if the source balance (or the
        remaining allowance, for a delegate) is too small, zero is moved.
        """
        require_encrypted(encrypted_amount, name="encrypted_amount")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            src = self.get_account(source)
            dst = self.get_account(destination)
            require_initialized(src)
            require_initialized(dst)
            require_not_frozen(src)
            require_not_frozen(dst)
            require_mint_match(dst.mint, src.mint)

            if signer == src.owner:
                via_delegate = False
            elif src.delegate is not None and signer == src.delegate:
                via_delegate = True
            else:
                raise OwnerMismatch("signer is neither the owner nor the delegate")

            if not self.config.homomorphic:
                dst.amount = encrypted_amount
            else:
                zero = self.fhe.zero()
                ok = self.fhe.ge(src.amount, encrypted_amount)
                if via_delegate:
                    allowed = self.fhe.ge(src.delegated_amount, encrypted_amount)
                    ok = self.fhe.select(ok, allowed, zero)
                moved = self.fhe.select(ok, encrypted_amount, zero)
                src.amount = self.fhe.sub(src.amount, moved)
                dst.amount = self.fhe.add(dst.amount, moved)
                if via_delegate:
                    src.delegated_amount = self.fhe.sub(src.delegated_amount, moved)
        logger.info("transfer %s -> %s delegate=%s", src.address, dst.address, via_delegate)

    def burn(self, signer: PubKey, account: Address, mint: Address, encrypted_amount: EncryptedValue) -> None:
        require_encrypted(encrypted_amount, name="encrypted_amount")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            mint_rec = self.get_mint(mint)
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_mint_match(acct.mint, mint_rec.address)
            require_owner(signer, acct.owner)

            if self.config.homomorphic:
                burned = self.fhe.min(acct.amount, encrypted_amount)
                acct.amount = self.fhe.sub(acct.amount, burned)
                mint_rec.supply = self.fhe.sub(mint_rec.supply, burned)
            else:
                acct.amount = self.fhe.zero()
        logger.info("burn account=%s", acct.address)

    def freeze(self, signer: PubKey, account: Address, mint: Address) -> None:
        self._set_frozen(signer, account, mint, frozen=True)

    def thaw(self, signer: PubKey, account: Address, mint: Address) -> None:
        self._set_frozen(signer, account, mint, frozen=False)

    def _set_frozen(self, signer: PubKey, account: Address, mint: Address, *, frozen: bool) -> None:
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            mint_rec = self.get_mint(mint)
            acct = self.get_account(account)
            require_mint_match(acct.mint, mint_rec.address)
            require_authority(signer, mint_rec.freeze_authority)
            if frozen:
                require_state(acct, AccountState.INITIALIZED, InvalidState)
                acct.state = AccountState.FROZEN
            else:
                require_state(acct, AccountState.FROZEN, InvalidState)
                acct.state = AccountState.INITIALIZED
        logger.info("%s account=%s", "freeze" if frozen else "thaw", acct.address)

    def approve(self, signer: PubKey, account: Address, delegate: PubKey, encrypted_amount: EncryptedValue) -> None:
        require_encrypted(encrypted_amount, name="encrypted_amount")
        signer = canonical_pubkey(signer, name="signer")
        delegate = canonical_pubkey(delegate, name="delegate")
        with self.store.transaction():
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_owner(signer, acct.owner)
            acct.delegate = delegate
            acct.delegated_amount = encrypted_amount
        logger.info("approve account=%s delegate=%s", acct.address, delegate)

    def revoke(self, signer: PubKey, account: Address) -> None:
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_owner(signer, acct.owner)
            acct.delegate = None
            acct.delegated_amount = self.fhe.zero()
        logger.info("revoke account=%s", acct.address)

    def set_close_authority(self, signer: PubKey, account: Address, new_authority: Optional[PubKey]) -> None:
        signer = canonical_pubkey(signer, name="signer")
        if new_authority is not None:
            new_authority = canonical_pubkey(new_authority, name="new_authority")
        with self.store.transaction():
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_owner(signer, acct.owner)
            acct.close_authority = new_authority
        logger.info("set_close_authority account=%s", acct.address)

    def close_account(self, signer: PubKey, account: Address, destination: PubKey) -> int:
        """
        Close an Initialized account and refund its storage deposit.

        Returns the refunded amount. The record is removed, so a second close
        fails with AccountNotFound and the deposit is paid out exactly once.
        """
        signer = canonical_pubkey(signer, name="signer")
        destination = canonical_pubkey(destination, name="destination")
        with self.store.transaction():
            acct = self.get_account(account)
            # Frozen accounts are not closable.
            require_state(acct, AccountState.INITIALIZED, UninitializedState)
            require_owner(signer, acct.close_authority or acct.owner)
            refund = acct.deposit
            if refund:
                escrow = rent_escrow_address()
                self.custody.transfer(escrow, destination, NATIVE_ASSET, refund, escrow)
            acct.deposit = 0
            self.store.delete(acct.address)
        logger.info("close_account account=%s refund=%d", acct.address, refund)
        return refund

    # ------------------------------------------------------------------
    # custody bridge

    def initialize_vault(self, asset: AssetId) -> Tuple[Vault, bool]:
        """The faucet mint is never vault-backed."""
        if canonical_address(asset, name="asset") == self.config.faucet_mint:
            raise InvalidState(f"asset {asset} is the faucet mint")
        return initialize_vault(self.store, asset)

    def wrap(
        self,
        signer: PubKey,
        asset: AssetId,
        account: Address,
        public_amount: int,
        encrypted_amount: EncryptedValue,
    ) -> None:
        """
        Lock `public_amount` units of `asset` in its vault and credit the
        encrypted amount to `account`. A custody failure aborts the whole
        operation, leaving the balance untouched.
        """
        require_public_amount(public_amount)
        require_encrypted(encrypted_amount, name="encrypted_amount")
        signer = canonical_pubkey(signer, name="signer")
        with self.store.transaction():
            vault = require_vault(self.store, asset)
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_owner(signer, acct.owner)

            self.custody.transfer(signer, vault.address, vault.asset, public_amount, signer)
            if self.config.homomorphic:
                acct.amount = self.fhe.add(acct.amount, encrypted_amount)
            else:
                acct.amount = encrypted_amount
        logger.info("wrap asset=%s account=%s amount=%d", vault.asset, acct.address, public_amount)

    def unwrap(
        self,
        signer: PubKey,
        asset: AssetId,
        account: Address,
        public_amount: int,
        encrypted_amount: Optional[EncryptedValue] = None,
    ) -> None:
        """
        Debit the encrypted balance and release `public_amount` units from
        the vault, signed by the vault's own authority.

        In homomorphic mode `encrypted_amount` must encrypt `public_amount`
        and be covered by the balance. Both are checked under encryption and
        the combined predicate is revealed before any custody movement; a
        false predicate raises InsufficientFunds.
        """
        require_public_amount(public_amount)
        signer = canonical_pubkey(signer, name="signer")
        if self.config.homomorphic:
            if encrypted_amount is None:
                raise ValueError("encrypted_amount is required for homomorphic unwrap")
            require_encrypted(encrypted_amount, name="encrypted_amount")
        with self.store.transaction():
            vault = require_vault(self.store, asset)
            acct = self.get_account(account)
            require_initialized(acct)
            require_not_frozen(acct)
            require_owner(signer, acct.owner)
            held = self.custody.balance_of(vault.address, vault.asset)
            if held < public_amount:
                raise InsufficientFunds(f"vault holds {held} < {public_amount}")

            acct.amount = self._debit(acct.amount, encrypted_amount, public_amount)
            self.custody.transfer(vault.address, signer, vault.asset, public_amount, vault.authority)
        logger.info("unwrap asset=%s account=%s amount=%d", vault.asset, acct.address, public_amount)

    def _debit(self, balance: EncryptedValue, amount: Optional[EncryptedValue], public_amount: int) -> EncryptedValue:
        if not self.config.homomorphic or amount is None:
            return self.fhe.zero()
        require_covered(self.fhe, balance, amount, public_amount)
        return self.fhe.sub(balance, amount)
