"""
Signed-instruction execution engine.

Imperative shell around the ledger/AMM core:
- bounds and parses the raw instruction,
- verifies the BLS signature (py_ecc G2Basic) bound to the chain id,
- enforces strict per-signer sequential nonces (replay protection),
- wraps client ciphertexts into coprocessor handles,
- dispatches to ConfidentialLedger / UserBalanceLedger / ConfidentialAMM
  inside one store transaction.

Core failures come back as `TxResult(ok=False, error_kind=...)`; the engine
never raises for a rejected instruction.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from py_ecc.bls import G2Basic

from ..config import EngineConfig
from ..core.amm import ConfidentialAMM
from ..core.coprocessor import Coprocessor, LocalCoprocessor
from ..core.custody import InMemoryCustody, PublicTokenTransfer
from ..core.errors import (
    BadNonce,
    ConfidexError,
    ErrorKind,
    InvalidInstruction,
    InvalidSignature,
)
from ..core.ledger import ConfidentialLedger
from ..core.user_balances import UserBalanceLedger
from ..state.addresses import PubKey
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, hex_to_bytes_fixed
from ..state.encrypted import EncryptedValue
from ..state.store import RecordStore
from .instructions import Instruction, Op, parse_instruction
from .snapshot import ConfidexSnapshot, snapshot_from_store, store_from_snapshot


logger = logging.getLogger(__name__)

SIGNATURE_NBYTES = 96


@dataclass(frozen=True)
class TxResult:
    ok: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    effects: Dict[str, Any] = field(default_factory=dict)


def instruction_signing_hash(instruction: Mapping[str, Any], *, chain_id: str) -> bytes:
    """sha256(domain_sep("instruction_sig:<chain_id>") || canonical_json(instruction))"""
    msg = domain_sep_bytes(f"instruction_sig:{chain_id}", version=1) + canonical_json_bytes(dict(instruction))
    return hashlib.sha256(msg).digest()


def verify_instruction_signature(
    instruction: Mapping[str, Any], signature_hex: str, *, signer: PubKey, chain_id: str
) -> None:
    """
    Raises:
        InvalidSignature: If the signature is malformed or does not verify
    """
    try:
        pubkey_bytes = hex_to_bytes_fixed(signer, nbytes=48, name="signer")
        sig_bytes = hex_to_bytes_fixed(signature_hex, nbytes=SIGNATURE_NBYTES, name="signature")
    except (TypeError, ValueError) as exc:
        raise InvalidSignature(str(exc)) from exc
    msg_hash = instruction_signing_hash(instruction, chain_id=chain_id)
    try:
        ok = bool(G2Basic.Verify(pubkey_bytes, msg_hash, sig_bytes))
    except Exception as exc:  # py_ecc raises a mix of types on malformed points
        raise InvalidSignature(f"signature verification error: {exc}") from exc
    if not ok:
        raise InvalidSignature("invalid instruction signature")


class ConfidexEngine:
    """
    Owns one record store and the ledger/AMM components bound to it.

    The coprocessor and custody service default to the local in-memory
    implementations.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        store: Optional[RecordStore] = None,
        coprocessor: Optional[Coprocessor] = None,
        custody: Optional[PublicTokenTransfer] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store if store is not None else RecordStore()
        self.coprocessor = coprocessor if coprocessor is not None else LocalCoprocessor()
        self.custody = custody if custody is not None else InMemoryCustody()
        ledger_cfg = self.config.ledger
        self.ledger = ConfidentialLedger(self.store, self.coprocessor, self.custody, ledger_cfg)
        self.user_balances = UserBalanceLedger(self.store, self.coprocessor, self.custody, ledger_cfg)
        self.amm = ConfidentialAMM(self.store, self.coprocessor, ledger_cfg)
        self.nonces: Dict[PubKey, int] = {}
        self._handlers: Dict[Op, Callable[[Instruction], Dict[str, Any]]] = {
            Op.INITIALIZE_MINT: self._initialize_mint,
            Op.INITIALIZE_ACCOUNT: self._initialize_account,
            Op.MINT_TO: self._mint_to,
            Op.TRANSFER: self._transfer,
            Op.BURN: self._burn,
            Op.FREEZE: self._freeze,
            Op.THAW: self._thaw,
            Op.APPROVE: self._approve,
            Op.REVOKE: self._revoke,
            Op.SET_CLOSE_AUTHORITY: self._set_close_authority,
            Op.CLOSE_ACCOUNT: self._close_account,
            Op.INITIALIZE_VAULT: self._initialize_vault,
            Op.WRAP: self._wrap,
            Op.UNWRAP: self._unwrap,
            Op.INITIALIZE_USER_BALANCE: self._initialize_user_balance,
            Op.WRAP_TO_USER: self._wrap_to_user,
            Op.UNWRAP_FROM_USER: self._unwrap_from_user,
            Op.TRANSFER_TO_USER: self._transfer_to_user,
            Op.FAUCET: self._faucet,
            Op.INITIALIZE_POOL: self._initialize_pool,
            Op.ADD_LIQUIDITY: self._add_liquidity,
            Op.REMOVE_LIQUIDITY: self._remove_liquidity,
            Op.SWAP: self._swap,
        }

    def next_nonce(self, signer: PubKey) -> int:
        return self.nonces.get(signer, 0)

    def snapshot(self) -> ConfidexSnapshot:
        custody = self.custody if isinstance(self.custody, InMemoryCustody) else None
        return snapshot_from_store(self.store, custody=custody, nonces=self.nonces)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: ConfidexSnapshot,
        config: Optional[EngineConfig] = None,
        *,
        coprocessor: Optional[Coprocessor] = None,
    ) -> "ConfidexEngine":
        store, custody, nonces = store_from_snapshot(snapshot)
        engine = cls(config, store=store, coprocessor=coprocessor, custody=custody)
        engine.nonces.update(nonces)
        return engine

    def apply(self, instruction: Mapping[str, Any], signature: Optional[str] = None) -> TxResult:
        try:
            try:
                size = len(canonical_json_bytes(dict(instruction)))
            except (TypeError, ValueError) as exc:
                raise InvalidInstruction(f"instruction is not canonical JSON: {exc}") from exc
            if size > self.config.max_instruction_bytes:
                raise InvalidInstruction(f"instruction too large: {size} > {self.config.max_instruction_bytes}")

            instr = parse_instruction(instruction)
            if signature is not None:
                verify_instruction_signature(
                    instruction, signature, signer=instr.signer, chain_id=self.config.chain_id
                )
            elif self.config.require_signatures:
                raise InvalidSignature("missing instruction signature")

            expected = self.next_nonce(instr.signer)
            if instr.nonce != expected:
                raise BadNonce(f"expected nonce {expected}, got {instr.nonce}")

            with self.store.transaction():
                effects = self._handlers[instr.op](instr)
            self.nonces[instr.signer] = expected + 1
        except ConfidexError as exc:
            logger.info("instruction rejected: %s: %s", exc.kind.value, exc.message)
            return TxResult(ok=False, error=exc.message, error_kind=exc.kind)
        except (TypeError, ValueError) as exc:
            logger.info("instruction rejected: invalid argument: %s", exc)
            return TxResult(ok=False, error=str(exc), error_kind=ErrorKind.INVALID_INSTRUCTION)
        logger.debug("instruction applied op=%s signer=%s", instr.op.value, instr.signer)
        return TxResult(ok=True, effects=effects)

    # ------------------------------------------------------------------

    def _handle(self, ciphertext: Optional[bytes]) -> Optional[EncryptedValue]:
        if ciphertext is None:
            return None
        return self.coprocessor.wrap(ciphertext)

    def _initialize_mint(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        mint = self.ledger.initialize_mint(
            i.signer, a["seed"], a["decimals"], a["mint_authority"], a.get("freeze_authority")
        )
        return {"mint": mint.address}

    def _initialize_account(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        account = self.ledger.initialize_account(i.signer, a["mint"], a["owner"], a.get("seed", ""))
        return {"account": account.address, "deposit": account.deposit}

    def _mint_to(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.mint_to(i.signer, a["mint"], a["account"], self._handle(a["amount"]))
        return {"account": a["account"]}

    def _transfer(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.transfer(i.signer, a["source"], a["destination"], self._handle(a["amount"]))
        return {"source": a["source"], "destination": a["destination"]}

    def _burn(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.burn(i.signer, a["account"], a["mint"], self._handle(a["amount"]))
        return {"account": a["account"]}

    def _freeze(self, i: Instruction) -> Dict[str, Any]:
        self.ledger.freeze(i.signer, i.args["account"], i.args["mint"])
        return {"account": i.args["account"], "state": "FROZEN"}

    def _thaw(self, i: Instruction) -> Dict[str, Any]:
        self.ledger.thaw(i.signer, i.args["account"], i.args["mint"])
        return {"account": i.args["account"], "state": "INITIALIZED"}

    def _approve(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.approve(i.signer, a["account"], a["delegate"], self._handle(a["amount"]))
        return {"account": a["account"], "delegate": a["delegate"]}

    def _revoke(self, i: Instruction) -> Dict[str, Any]:
        self.ledger.revoke(i.signer, i.args["account"])
        return {"account": i.args["account"]}

    def _set_close_authority(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.set_close_authority(i.signer, a["account"], a["new_authority"])
        return {"account": a["account"], "close_authority": a["new_authority"]}

    def _close_account(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        refund = self.ledger.close_account(i.signer, a["account"], a["destination"])
        return {"account": a["account"], "refund": refund}

    def _initialize_vault(self, i: Instruction) -> Dict[str, Any]:
        vault, created = self.ledger.initialize_vault(i.args["asset"])
        return {"vault": vault.address, "created": created}

    def _wrap(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.wrap(i.signer, a["asset"], a["account"], a["public_amount"], self._handle(a["amount"]))
        return {"account": a["account"], "public_amount": a["public_amount"]}

    def _unwrap(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.ledger.unwrap(
            i.signer, a["asset"], a["account"], a["public_amount"], self._handle(a.get("amount"))
        )
        return {"account": a["account"], "public_amount": a["public_amount"]}

    def _initialize_user_balance(self, i: Instruction) -> Dict[str, Any]:
        balance = self.user_balances.initialize_user_balance(i.args["owner"], i.args["mint"])
        return {"user_balance": balance.address}

    def _wrap_to_user(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        balance = self.user_balances.wrap_to_user(i.signer, a["asset"], a["public_amount"], self._handle(a["amount"]))
        return {"user_balance": balance.address, "public_amount": a["public_amount"]}

    def _unwrap_from_user(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.user_balances.unwrap_from_user(i.signer, a["asset"], a["public_amount"], self._handle(a.get("amount")))
        return {"public_amount": a["public_amount"]}

    def _transfer_to_user(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        self.user_balances.transfer_to_user(i.signer, a["dest_owner"], a["mint"], self._handle(a["amount"]))
        return {"dest_owner": a["dest_owner"], "mint": a["mint"]}

    def _faucet(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        balance = self.user_balances.faucet(i.signer, a["mint"], self._handle(a["amount"]))
        return {"user_balance": balance.address}

    def _initialize_pool(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        pool = self.amm.initialize_pool(i.signer, a["asset_a"], a["asset_b"], a["fee_bps"])
        return {"pool": pool.address, "asset_a": pool.asset_a, "asset_b": pool.asset_b}

    def _add_liquidity(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        position = self.amm.add_liquidity(i.signer, a["pool"], self._handle(a["amount_a"]), self._handle(a["amount_b"]))
        return {"pool": a["pool"], "position": position.address}

    def _remove_liquidity(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        payout = self.amm.remove_liquidity(i.signer, a["pool"], a["position"], self._handle(a["lp_amount"]))
        return {
            "pool": a["pool"],
            "payout_a": payout.amount_a.to_hex(),
            "payout_b": payout.amount_b.to_hex(),
        }

    def _swap(self, i: Instruction) -> Dict[str, Any]:
        a = i.args
        result = self.amm.swap(
            i.signer, a["pool"], self._handle(a["amount_in"]), self._handle(a["min_out"]), a["a_to_b"]
        )
        return {"pool": a["pool"], "swap_result": result.address, "is_complete": result.is_complete}
