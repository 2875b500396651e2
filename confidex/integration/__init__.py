"""
Instruction surface, signed execution engine and snapshots
"""

from .engine import ConfidexEngine, TxResult
from .instructions import Instruction, Op, build_instruction, parse_instruction
from .snapshot import ConfidexSnapshot, snapshot_from_store, store_from_snapshot

__all__ = [
    "ConfidexEngine",
    "TxResult",
    "Instruction",
    "Op",
    "build_instruction",
    "parse_instruction",
    "ConfidexSnapshot",
    "snapshot_from_store",
    "store_from_snapshot",
]
