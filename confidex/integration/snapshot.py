"""
Ledger state snapshots.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into a `RecordStore` (+ custody table and nonces).
- Explicit versioning.

Records are stored in their fixed-size binary layouts (hex encoded), so a
snapshot never contains anything but opaque handles for encrypted values.
The coprocessor's ciphertext store is external and is not part of it.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.custody import InMemoryCustody
from ..state.addresses import canonical_address
from ..state.canonical import canonical_json_bytes, domain_sep_bytes
from ..state.layout import decode_record, encode_record
from ..state.store import RecordStore


SNAPSHOT_VERSION = 1
MAX_SNAPSHOT_RECORDS = 1_000_000


def _field(entry: Any, key: str, kind: type, *, where: str) -> Any:
    if not isinstance(entry, Mapping):
        raise TypeError(f"{where} must be an object")
    value = entry.get(key)
    if not isinstance(value, kind) or isinstance(value, bool):
        raise TypeError(f"{where}.{key} must be {kind.__name__}")
    if kind is str and not value:
        raise ValueError(f"{where}.{key} must be non-empty")
    if kind is int and value < 0:
        raise ValueError(f"{where}.{key} must be non-negative")
    return value


def _require_list(value: Any, *, name: str) -> list:
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    if len(value) > MAX_SNAPSHOT_RECORDS:
        raise ValueError(f"{name} too large")
    return value


@dataclass(frozen=True)
class ConfidexSnapshot:
    """
    Deterministic, versioned snapshot of ledger state.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        prefix = domain_sep_bytes("confidex_snapshot", version=self.version)
        return hashlib.sha256(prefix + self.canonical_bytes()).digest()

    def commitment_hex(self) -> str:
        return "0x" + self.commitment_bytes().hex()


def snapshot_from_store(
    store: RecordStore,
    *,
    custody: Optional[InMemoryCustody] = None,
    nonces: Optional[Mapping[str, int]] = None,
    version: int = SNAPSHOT_VERSION,
) -> ConfidexSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    records = sorted(
        ({"address": address, "data": "0x" + encode_record(record).hex()} for address, record in store.records().items()),
        key=lambda e: e["address"],
    )
    balances = custody.balances() if custody is not None else {}
    custody_entries = [
        {"holder": holder, "asset": asset, "amount": int(balances[(holder, asset)])}
        for holder, asset in sorted(balances)
    ]
    nonce_map = dict(nonces or {})
    nonce_entries = [{"signer": signer, "nonce": int(nonce_map[signer])} for signer in sorted(nonce_map)]

    data = {
        "version": int(version),
        "records": records,
        "custody": custody_entries,
        "nonces": nonce_entries,
    }
    return ConfidexSnapshot(version=int(version), data=data)


def store_from_snapshot(
    snapshot: ConfidexSnapshot,
) -> Tuple[RecordStore, InMemoryCustody, Dict[str, int]]:
    """
    Rebuild a store, custody table and nonce map from a snapshot.

    Every record is re-decoded from its layout and must sit at the address it
    claims.

    Raises:
        TypeError / ValueError: On malformed snapshot data
    """
    data = snapshot.data
    if not isinstance(data, Mapping):
        raise TypeError("snapshot data must be an object")
    if data.get("version") != snapshot.version:
        raise ValueError("snapshot version mismatch")

    store = RecordStore()
    with store.transaction():
        for i, entry in enumerate(_require_list(data.get("records"), name="records")):
            where = f"records[{i}]"
            address = canonical_address(_field(entry, "address", str, where=where))
            raw = _field(entry, "data", str, where=where)
            if not raw.startswith("0x"):
                raise ValueError(f"{where}.data must be 0x-prefixed hex")
            record = decode_record(bytes.fromhex(raw[2:]))
            if record.address != address:
                raise ValueError(f"{where} address mismatch")
            store.create(record)

    custody = InMemoryCustody()
    for i, entry in enumerate(_require_list(data.get("custody", []), name="custody")):
        where = f"custody[{i}]"
        custody.mint_public(
            _field(entry, "holder", str, where=where),
            canonical_address(_field(entry, "asset", str, where=where)),
            _field(entry, "amount", int, where=where),
        )

    nonces: Dict[str, int] = {}
    for i, entry in enumerate(_require_list(data.get("nonces", []), name="nonces")):
        where = f"nonces[{i}]"
        nonces[_field(entry, "signer", str, where=where)] = _field(entry, "nonce", int, where=where)

    return store, custody, nonces
