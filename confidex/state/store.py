"""
Address-keyed record store with scoped transactions.

Every ledger/AMM operation runs inside `store.transaction()`. On a clean exit
the changes stay; on any exception all records (and every joined participant,
e.g. the in-memory custody table) are restored to their pre-transaction state.
Nested `transaction()` calls join the outermost one.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol, Type, TypeVar, runtime_checkable

from .addresses import Address


R = TypeVar("R")


@runtime_checkable
class TransactionParticipant(Protocol):
    """Anything whose state must roll back together with the store."""

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class RecordStore:
    """
    Mutable mapping: address -> record.

    Writes are only allowed inside an open transaction. A re-entrant lock
    serializes units of work on one store.
    """

    def __init__(self) -> None:
        self._records: Dict[Address, Any] = {}
        self._lock = threading.RLock()
        self._depth = 0
        self._participants: List[TransactionParticipant] = []

    def join(self, participant: TransactionParticipant) -> None:
        """Register a participant whose state is snapshotted with every transaction."""
        if any(p is participant for p in self._participants):
            return
        self._participants.append(participant)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            records_snapshot = copy.deepcopy(self._records)
            participant_snapshots = [p.snapshot() for p in self._participants]
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._records = records_snapshot
                for participant, snap in zip(self._participants, participant_snapshots):
                    participant.restore(snap)
                raise
            finally:
                self._depth = 0

    def _require_write(self) -> None:
        if self._depth == 0:
            raise RuntimeError("record writes require an open transaction")

    def exists(self, address: Address) -> bool:
        return address in self._records

    def get(self, address: Address, record_type: Type[R]) -> Optional[R]:
        """
        Fetch the record at `address`, or None if the slot is empty.

        Raises:
            TypeError: If the slot holds a record of a different type
        """
        record = self._records.get(address)
        if record is None:
            return None
        if not isinstance(record, record_type):
            raise TypeError(
                f"record at {address} is {type(record).__name__}, expected {record_type.__name__}"
            )
        return record

    def create(self, record: Any) -> None:
        """Insert a new record at `record.address`; the slot must be empty."""
        self._require_write()
        address = record.address
        if address in self._records:
            raise ValueError(f"slot already in use: {address}")
        self._records[address] = record

    def delete(self, address: Address) -> None:
        self._require_write()
        self._records.pop(address, None)

    def records(self) -> Dict[Address, Any]:
        """Shallow copy of all records, keyed by address."""
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"RecordStore({len(self._records)} records)"
