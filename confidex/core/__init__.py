"""
Confidential ledger and AMM state machines
"""

from .amm import ConfidentialAMM, LiquidityPayout
from .coprocessor import Coprocessor, LocalCoprocessor
from .custody import InMemoryCustody, PublicTokenTransfer
from .errors import ConfidexError, ErrorKind
from .ledger import ConfidentialLedger
from .user_balances import UserBalanceLedger

__all__ = [
    "ConfidentialAMM",
    "LiquidityPayout",
    "Coprocessor",
    "LocalCoprocessor",
    "InMemoryCustody",
    "PublicTokenTransfer",
    "ConfidexError",
    "ErrorKind",
    "ConfidentialLedger",
    "UserBalanceLedger",
]
