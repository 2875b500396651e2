"""
Fixed-size binary layouts for persisted records.

Every record type packs to a constant number of bytes (`*_LEN`) so storage can
be allocated up front. Layout conventions (little-endian):
- byte 0: record tag
- addresses / asset ids: 32 raw bytes
- pubkeys: 48 raw bytes; optional pubkeys are a presence byte + 48 bytes
- encrypted handles: 16-byte u128
- booleans: 1 byte
"""

from __future__ import annotations

import struct
from typing import Any, Callable, Dict, Optional, Tuple, Type

from .accounts import Account, AccountState, Mint, UserBalance, Vault
from .addresses import LABEL_NATIVE_VAULT, LABEL_VAULT, PubKey
from .canonical import hex_to_bytes_fixed
from .encrypted import EncryptedValue
from .pools import Pool, Position, SwapResult


ADDR = "32s"
PUBKEY = "48s"
HANDLE = "16s"
OPT_PUBKEY = "B48s"

TAG_MINT = 1
TAG_ACCOUNT = 2
TAG_VAULT = 3
TAG_USER_BALANCE = 4
TAG_POOL = 5
TAG_POSITION = 6
TAG_SWAP_RESULT = 7

_MINT = struct.Struct("<B" + ADDR + "B" + OPT_PUBKEY + OPT_PUBKEY + HANDLE + "?")
_ACCOUNT = struct.Struct(
    "<B" + ADDR + ADDR + PUBKEY + HANDLE + OPT_PUBKEY + HANDLE + "B" + OPT_PUBKEY + "Q"
)
_VAULT = struct.Struct("<B" + ADDR + ADDR + "B?")
_USER_BALANCE = struct.Struct("<B" + ADDR + PUBKEY + ADDR + HANDLE + "?")
_POOL = struct.Struct(
    "<B" + ADDR + ADDR + ADDR + HANDLE + HANDLE + HANDLE + HANDLE + "H" + PUBKEY + "?"
)
_POSITION = struct.Struct("<B" + ADDR + ADDR + PUBKEY + HANDLE)
_SWAP_RESULT = struct.Struct("<B" + ADDR + ADDR + PUBKEY + HANDLE + HANDLE + "?")

MINT_LEN = _MINT.size
ACCOUNT_LEN = _ACCOUNT.size
VAULT_LEN = _VAULT.size
USER_BALANCE_LEN = _USER_BALANCE.size
POOL_LEN = _POOL.size
POSITION_LEN = _POSITION.size
SWAP_RESULT_LEN = _SWAP_RESULT.size

_ACCOUNT_STATES = (AccountState.UNINITIALIZED, AccountState.INITIALIZED, AccountState.FROZEN)
_VAULT_LABELS = (LABEL_VAULT, LABEL_NATIVE_VAULT)


def _addr(value: str) -> bytes:
    return hex_to_bytes_fixed(value, nbytes=32, name="address")


def _pk(value: str) -> bytes:
    return hex_to_bytes_fixed(value, nbytes=48, name="pubkey")


def _opt_pk(value: Optional[PubKey]) -> Tuple[int, bytes]:
    if value is None:
        return 0, bytes(48)
    return 1, _pk(value)


def _hex(raw: bytes) -> str:
    return "0x" + raw.hex()


def _from_opt_pk(present: int, raw: bytes) -> Optional[PubKey]:
    if present not in (0, 1):
        raise ValueError("invalid option tag")
    return _hex(raw) if present else None


def _h(value: EncryptedValue) -> bytes:
    return value.to_bytes()


def _eh(raw: bytes) -> EncryptedValue:
    return EncryptedValue.from_bytes(raw)


def _encode_mint(m: Mint) -> bytes:
    return _MINT.pack(
        TAG_MINT,
        _addr(m.address),
        m.decimals,
        *_opt_pk(m.mint_authority),
        *_opt_pk(m.freeze_authority),
        _h(m.supply),
        m.is_initialized,
    )


def _decode_mint(data: bytes) -> Mint:
    _, address, decimals, has_ma, ma, has_fa, fa, supply, init = _MINT.unpack(data)
    return Mint(
        address=_hex(address),
        decimals=decimals,
        mint_authority=_from_opt_pk(has_ma, ma),
        freeze_authority=_from_opt_pk(has_fa, fa),
        supply=_eh(supply),
        is_initialized=init,
    )


def _encode_account(a: Account) -> bytes:
    return _ACCOUNT.pack(
        TAG_ACCOUNT,
        _addr(a.address),
        _addr(a.mint),
        _pk(a.owner),
        _h(a.amount),
        *_opt_pk(a.delegate),
        _h(a.delegated_amount),
        _ACCOUNT_STATES.index(a.state),
        *_opt_pk(a.close_authority),
        a.deposit,
    )


def _decode_account(data: bytes) -> Account:
    (
        _, address, mint, owner, amount, has_del, delegate, delegated,
        state, has_close, close_auth, deposit,
    ) = _ACCOUNT.unpack(data)
    if state >= len(_ACCOUNT_STATES):
        raise ValueError(f"invalid account state: {state}")
    return Account(
        address=_hex(address),
        mint=_hex(mint),
        owner=_hex(owner),
        amount=_eh(amount),
        delegate=_from_opt_pk(has_del, delegate),
        delegated_amount=_eh(delegated),
        state=_ACCOUNT_STATES[state],
        close_authority=_from_opt_pk(has_close, close_auth),
        deposit=deposit,
    )


def _encode_vault(v: Vault) -> bytes:
    return _VAULT.pack(TAG_VAULT, _addr(v.address), _addr(v.asset), _VAULT_LABELS.index(v.label), v.is_initialized)


def _decode_vault(data: bytes) -> Vault:
    _, address, asset, label, init = _VAULT.unpack(data)
    if label >= len(_VAULT_LABELS):
        raise ValueError(f"invalid vault label: {label}")
    return Vault(address=_hex(address), asset=_hex(asset), label=_VAULT_LABELS[label], is_initialized=init)


def _encode_user_balance(b: UserBalance) -> bytes:
    return _USER_BALANCE.pack(
        TAG_USER_BALANCE, _addr(b.address), _pk(b.owner), _addr(b.mint), _h(b.encrypted_balance), b.is_initialized
    )


def _decode_user_balance(data: bytes) -> UserBalance:
    _, address, owner, mint, balance, init = _USER_BALANCE.unpack(data)
    return UserBalance(
        address=_hex(address), owner=_hex(owner), mint=_hex(mint), encrypted_balance=_eh(balance), is_initialized=init
    )


def _encode_pool(p: Pool) -> bytes:
    return _POOL.pack(
        TAG_POOL,
        _addr(p.address),
        _addr(p.asset_a),
        _addr(p.asset_b),
        _h(p.reserve_a),
        _h(p.reserve_b),
        _h(p.k_constant),
        _h(p.lp_supply),
        p.fee_bps,
        _pk(p.authority),
        p.is_initialized,
    )


def _decode_pool(data: bytes) -> Pool:
    _, address, a, b, ra, rb, k, lp, fee, authority, init = _POOL.unpack(data)
    return Pool(
        address=_hex(address),
        asset_a=_hex(a),
        asset_b=_hex(b),
        fee_bps=fee,
        authority=_hex(authority),
        reserve_a=_eh(ra),
        reserve_b=_eh(rb),
        k_constant=_eh(k),
        lp_supply=_eh(lp),
        is_initialized=init,
    )


def _encode_position(p: Position) -> bytes:
    return _POSITION.pack(TAG_POSITION, _addr(p.address), _addr(p.pool), _pk(p.owner), _h(p.lp_amount))


def _decode_position(data: bytes) -> Position:
    _, address, pool, owner, lp = _POSITION.unpack(data)
    return Position(address=_hex(address), pool=_hex(pool), owner=_hex(owner), lp_amount=_eh(lp))


def _encode_swap_result(s: SwapResult) -> bytes:
    return _SWAP_RESULT.pack(
        TAG_SWAP_RESULT, _addr(s.address), _addr(s.pool), _pk(s.owner), _h(s.amount_out), _h(s.filled), s.is_complete
    )


def _decode_swap_result(data: bytes) -> SwapResult:
    _, address, pool, owner, out, filled, complete = _SWAP_RESULT.unpack(data)
    return SwapResult(
        address=_hex(address), pool=_hex(pool), owner=_hex(owner), amount_out=_eh(out), filled=_eh(filled), is_complete=complete
    )


_CODECS: Dict[Type[Any], Tuple[int, int, Callable[[Any], bytes]]] = {
    Mint: (TAG_MINT, MINT_LEN, _encode_mint),
    Account: (TAG_ACCOUNT, ACCOUNT_LEN, _encode_account),
    Vault: (TAG_VAULT, VAULT_LEN, _encode_vault),
    UserBalance: (TAG_USER_BALANCE, USER_BALANCE_LEN, _encode_user_balance),
    Pool: (TAG_POOL, POOL_LEN, _encode_pool),
    Position: (TAG_POSITION, POSITION_LEN, _encode_position),
    SwapResult: (TAG_SWAP_RESULT, SWAP_RESULT_LEN, _encode_swap_result),
}

_DECODERS: Dict[int, Tuple[int, Callable[[bytes], Any]]] = {
    TAG_MINT: (MINT_LEN, _decode_mint),
    TAG_ACCOUNT: (ACCOUNT_LEN, _decode_account),
    TAG_VAULT: (VAULT_LEN, _decode_vault),
    TAG_USER_BALANCE: (USER_BALANCE_LEN, _decode_user_balance),
    TAG_POOL: (POOL_LEN, _decode_pool),
    TAG_POSITION: (POSITION_LEN, _decode_position),
    TAG_SWAP_RESULT: (SWAP_RESULT_LEN, _decode_swap_result),
}


def record_len(record_type: Type[Any]) -> int:
    codec = _CODECS.get(record_type)
    if codec is None:
        raise TypeError(f"no layout for {record_type.__name__}")
    return codec[1]


def encode_record(record: Any) -> bytes:
    codec = _CODECS.get(type(record))
    if codec is None:
        raise TypeError(f"no layout for {type(record).__name__}")
    _, size, encode = codec
    data = encode(record)
    if len(data) != size:
        raise AssertionError(f"layout size mismatch for {type(record).__name__}")
    return data


def decode_record(data: bytes) -> Any:
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise ValueError("record data must be non-empty bytes")
    entry = _DECODERS.get(data[0])
    if entry is None:
        raise ValueError(f"unknown record tag: {data[0]}")
    size, decode = entry
    if len(data) != size:
        raise ValueError(f"record length {len(data)} != {size}")
    return decode(bytes(data))
