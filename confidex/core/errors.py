"""Exception types for the confidential ledger and AMM.

Every failure raised by a core operation is a `ConfidexError` subclass carrying
an `ErrorKind`, so callers (and the engine's `TxResult`) can distinguish the
cause programmatically instead of parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Type


class ErrorKind(Enum):
    UNINITIALIZED_STATE = "UninitializedState"
    MINT_MISMATCH = "MintMismatch"
    ACCOUNT_FROZEN = "AccountFrozen"
    INVALID_STATE = "InvalidState"
    OWNER_MISMATCH = "OwnerMismatch"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    FEE_TOO_HIGH = "FeeTooHigh"
    POOL_NOT_INITIALIZED = "PoolNotInitialized"
    INVALID_OWNER = "InvalidOwner"
    SLIPPAGE_EXCEEDED = "SlippageExceeded"
    COMPUTATION_FAILED = "ComputationFailed"
    AUTHORIZATION_FAILED = "AuthorizationFailed"
    ACCOUNT_ALREADY_IN_USE = "AccountAlreadyInUse"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    FAUCET_DISABLED = "FaucetDisabled"
    INVALID_INSTRUCTION = "InvalidInstruction"
    INVALID_SIGNATURE = "InvalidSignature"
    BAD_NONCE = "BadNonce"


class ConfidexError(Exception):
    """Base class; `kind` identifies the failure."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str = "") -> None:
        self.message = message or self.kind.value
        super().__init__(self.message)


class UninitializedState(ConfidexError):
    kind = ErrorKind.UNINITIALIZED_STATE


class MintMismatch(ConfidexError):
    kind = ErrorKind.MINT_MISMATCH


class AccountFrozen(ConfidexError):
    kind = ErrorKind.ACCOUNT_FROZEN


class InvalidState(ConfidexError):
    kind = ErrorKind.INVALID_STATE


class OwnerMismatch(ConfidexError):
    kind = ErrorKind.OWNER_MISMATCH


class InsufficientFunds(ConfidexError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class FeeTooHigh(ConfidexError):
    kind = ErrorKind.FEE_TOO_HIGH


class PoolNotInitialized(ConfidexError):
    kind = ErrorKind.POOL_NOT_INITIALIZED


class InvalidOwner(ConfidexError):
    kind = ErrorKind.INVALID_OWNER


class SlippageExceeded(ConfidexError):
    """Reserved: slippage is enforced homomorphically and never raised in plaintext."""

    kind = ErrorKind.SLIPPAGE_EXCEEDED


class ComputationFailed(ConfidexError):
    """The coprocessor rejected or could not perform a call."""

    kind = ErrorKind.COMPUTATION_FAILED


class AuthorizationFailed(ConfidexError):
    kind = ErrorKind.AUTHORIZATION_FAILED


class AccountAlreadyInUse(ConfidexError):
    kind = ErrorKind.ACCOUNT_ALREADY_IN_USE


class AccountNotFound(ConfidexError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class FaucetDisabled(ConfidexError):
    kind = ErrorKind.FAUCET_DISABLED


class InvalidInstruction(ConfidexError):
    kind = ErrorKind.INVALID_INSTRUCTION


class InvalidSignature(ConfidexError):
    kind = ErrorKind.INVALID_SIGNATURE


class BadNonce(ConfidexError):
    kind = ErrorKind.BAD_NONCE


ERROR_TYPES: Dict[ErrorKind, Type[ConfidexError]] = {
    cls.kind: cls
    for cls in (
        UninitializedState,
        MintMismatch,
        AccountFrozen,
        InvalidState,
        OwnerMismatch,
        InsufficientFunds,
        FeeTooHigh,
        PoolNotInitialized,
        InvalidOwner,
        SlippageExceeded,
        ComputationFailed,
        AuthorizationFailed,
        AccountAlreadyInUse,
        AccountNotFound,
        FaucetDisabled,
        InvalidInstruction,
        InvalidSignature,
        BadNonce,
    )
}
