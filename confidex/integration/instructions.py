"""
Instruction parsing.

An instruction is a JSON-shaped object:

    {
      "program": "confidex",
      "version": "1",
      "op": "<operation name>",
      "signer": "0x<48-byte BLS pubkey>",
      "nonce": <int>,
      "args": {...}
    }

Encrypted amounts travel as 0x-hex ciphertexts; the engine turns them into
handles through the coprocessor. Parsing is strict: unknown ops, unknown or
missing args and wrongly typed values are all rejected with
`InvalidInstruction`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..core.errors import InvalidInstruction
from ..state.addresses import canonical_address, canonical_pubkey


PROGRAM = "confidex"
VERSION = "1"
MAX_CIPHERTEXT_BYTES = 4096
MAX_SEED_LEN = 64

_HEX_CHARS_RE = re.compile(r"^[0-9a-fA-F]*$")


class Op(Enum):
    INITIALIZE_MINT = "initialize_mint"
    INITIALIZE_ACCOUNT = "initialize_account"
    MINT_TO = "mint_to"
    TRANSFER = "transfer"
    BURN = "burn"
    FREEZE = "freeze"
    THAW = "thaw"
    APPROVE = "approve"
    REVOKE = "revoke"
    SET_CLOSE_AUTHORITY = "set_close_authority"
    CLOSE_ACCOUNT = "close_account"
    INITIALIZE_VAULT = "initialize_vault"
    WRAP = "wrap"
    UNWRAP = "unwrap"
    INITIALIZE_USER_BALANCE = "initialize_user_balance"
    WRAP_TO_USER = "wrap_to_user"
    UNWRAP_FROM_USER = "unwrap_from_user"
    TRANSFER_TO_USER = "transfer_to_user"
    FAUCET = "faucet"
    INITIALIZE_POOL = "initialize_pool"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    SWAP = "swap"


# Arg kinds
PUBKEY = "pubkey"
OPT_PUBKEY = "opt_pubkey"
ADDRESS = "address"
STR = "str"
UINT = "uint"
BOOL = "bool"
CIPHERTEXT = "ciphertext"
OPT_CIPHERTEXT = "opt_ciphertext"

# op -> ((arg name, kind, required), ...)
ARG_SCHEMAS: Dict[Op, Tuple[Tuple[str, str, bool], ...]] = {
    Op.INITIALIZE_MINT: (
        ("seed", STR, True),
        ("decimals", UINT, True),
        ("mint_authority", OPT_PUBKEY, True),
        ("freeze_authority", OPT_PUBKEY, False),
    ),
    Op.INITIALIZE_ACCOUNT: (("mint", ADDRESS, True), ("owner", PUBKEY, True), ("seed", STR, False)),
    Op.MINT_TO: (("mint", ADDRESS, True), ("account", ADDRESS, True), ("amount", CIPHERTEXT, True)),
    Op.TRANSFER: (("source", ADDRESS, True), ("destination", ADDRESS, True), ("amount", CIPHERTEXT, True)),
    Op.BURN: (("account", ADDRESS, True), ("mint", ADDRESS, True), ("amount", CIPHERTEXT, True)),
    Op.FREEZE: (("account", ADDRESS, True), ("mint", ADDRESS, True)),
    Op.THAW: (("account", ADDRESS, True), ("mint", ADDRESS, True)),
    Op.APPROVE: (("account", ADDRESS, True), ("delegate", PUBKEY, True), ("amount", CIPHERTEXT, True)),
    Op.REVOKE: (("account", ADDRESS, True),),
    Op.SET_CLOSE_AUTHORITY: (("account", ADDRESS, True), ("new_authority", OPT_PUBKEY, True)),
    Op.CLOSE_ACCOUNT: (("account", ADDRESS, True), ("destination", PUBKEY, True)),
    Op.INITIALIZE_VAULT: (("asset", ADDRESS, True),),
    Op.WRAP: (
        ("asset", ADDRESS, True),
        ("account", ADDRESS, True),
        ("public_amount", UINT, True),
        ("amount", CIPHERTEXT, True),
    ),
    Op.UNWRAP: (
        ("asset", ADDRESS, True),
        ("account", ADDRESS, True),
        ("public_amount", UINT, True),
        ("amount", OPT_CIPHERTEXT, False),
    ),
    Op.INITIALIZE_USER_BALANCE: (("owner", PUBKEY, True), ("mint", ADDRESS, True)),
    Op.WRAP_TO_USER: (("asset", ADDRESS, True), ("public_amount", UINT, True), ("amount", CIPHERTEXT, True)),
    Op.UNWRAP_FROM_USER: (("asset", ADDRESS, True), ("public_amount", UINT, True), ("amount", OPT_CIPHERTEXT, False)),
    Op.TRANSFER_TO_USER: (("dest_owner", PUBKEY, True), ("mint", ADDRESS, True), ("amount", CIPHERTEXT, True)),
    Op.FAUCET: (("mint", ADDRESS, True), ("amount", CIPHERTEXT, True)),
    Op.INITIALIZE_POOL: (("asset_a", ADDRESS, True), ("asset_b", ADDRESS, True), ("fee_bps", UINT, True)),
    Op.ADD_LIQUIDITY: (("pool", ADDRESS, True), ("amount_a", CIPHERTEXT, True), ("amount_b", CIPHERTEXT, True)),
    Op.REMOVE_LIQUIDITY: (("pool", ADDRESS, True), ("position", ADDRESS, True), ("lp_amount", CIPHERTEXT, True)),
    Op.SWAP: (
        ("pool", ADDRESS, True),
        ("amount_in", CIPHERTEXT, True),
        ("min_out", CIPHERTEXT, True),
        ("a_to_b", BOOL, True),
    ),
}


@dataclass(frozen=True)
class Instruction:
    op: Op
    signer: str
    nonce: int
    args: Dict[str, Any]


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise InvalidInstruction(f"{name} must be a string")
    if non_empty and not value:
        raise InvalidInstruction(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise InvalidInstruction(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInstruction(f"{name} must be an int")
    if non_negative and value < 0:
        raise InvalidInstruction(f"{name} must be non-negative")
    return int(value)


def _require_ciphertext(value: Any, *, name: str) -> bytes:
    raw = _require_str(value, name=name, max_len=2 + 2 * MAX_CIPHERTEXT_BYTES)
    if not raw.startswith("0x") or len(raw) % 2 != 0 or len(raw) <= 2:
        raise InvalidInstruction(f"{name} must be 0x-prefixed hex bytes")
    if not _HEX_CHARS_RE.fullmatch(raw[2:]):
        raise InvalidInstruction(f"{name} must be valid hex")
    return bytes.fromhex(raw[2:])


def _parse_arg(value: Any, *, kind: str, name: str) -> Any:
    try:
        if kind == PUBKEY:
            return canonical_pubkey(value, name=name)
        if kind == OPT_PUBKEY:
            return None if value is None else canonical_pubkey(value, name=name)
        if kind == ADDRESS:
            return canonical_address(value, name=name)
    except (TypeError, ValueError) as exc:
        raise InvalidInstruction(str(exc)) from exc
    if kind == STR:
        return _require_str(value, name=name, non_empty=False, max_len=MAX_SEED_LEN)
    if kind == UINT:
        return _require_int(value, name=name, non_negative=True)
    if kind == BOOL:
        if not isinstance(value, bool):
            raise InvalidInstruction(f"{name} must be a bool")
        return value
    if kind == CIPHERTEXT:
        return _require_ciphertext(value, name=name)
    if kind == OPT_CIPHERTEXT:
        return None if value is None else _require_ciphertext(value, name=name)
    raise AssertionError(f"unknown arg kind: {kind}")


def parse_instruction(obj: Any) -> Instruction:
    """
    Parse and validate a raw instruction object.

    Raises:
        InvalidInstruction: On any structural or type error
    """
    if not isinstance(obj, Mapping):
        raise InvalidInstruction("instruction must be an object")
    expected = {"program", "version", "op", "signer", "nonce", "args"}
    keys = set(obj.keys())
    if keys != expected:
        missing = sorted(expected - keys)
        extra = sorted(str(k) for k in keys - expected)
        raise InvalidInstruction(f"instruction fields mismatch (missing={missing}, unexpected={extra})")

    if obj["program"] != PROGRAM:
        raise InvalidInstruction(f"invalid program: {obj['program']!r}")
    if obj["version"] != VERSION:
        raise InvalidInstruction(f"unsupported version: {obj['version']!r}")

    op_raw = _require_str(obj["op"], name="op", max_len=64)
    try:
        op = Op(op_raw)
    except ValueError:
        raise InvalidInstruction(f"unknown op: {op_raw}") from None

    try:
        signer = canonical_pubkey(obj["signer"], name="signer")
    except (TypeError, ValueError) as exc:
        raise InvalidInstruction(str(exc)) from exc
    nonce = _require_int(obj["nonce"], name="nonce", non_negative=True)

    raw_args = obj["args"]
    if not isinstance(raw_args, Mapping):
        raise InvalidInstruction("args must be an object")
    schema = ARG_SCHEMAS[op]
    allowed = {name for name, _, _ in schema}
    unexpected = sorted(str(k) for k in raw_args.keys() if k not in allowed)
    if unexpected:
        raise InvalidInstruction(f"unexpected args for {op.value}: {unexpected}")

    args: Dict[str, Any] = {}
    for name, kind, required in schema:
        if name not in raw_args:
            if required:
                raise InvalidInstruction(f"missing arg for {op.value}: {name}")
            continue
        args[name] = _parse_arg(raw_args[name], kind=kind, name=f"args.{name}")
    return Instruction(op=op, signer=signer, nonce=nonce, args=args)


def build_instruction(op: Op, *, signer: str, nonce: int, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Assemble a raw instruction object (the signed payload)."""
    return {
        "program": PROGRAM,
        "version": VERSION,
        "op": op.value,
        "signer": signer,
        "nonce": nonce,
        "args": dict(args or {}),
    }
