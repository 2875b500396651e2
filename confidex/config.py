"""
Runtime configuration.

Defaults are safe for production use (faucet off, signatures required,
homomorphic arithmetic). `load_config()` layers an optional YAML file and then
environment overrides on top of the defaults:

- CONFIDEX_CONFIG: path to a YAML file
- CONFIDEX_ARITHMETIC: "homomorphic" | "overwrite"
- CONFIDEX_ACCOUNT_DEPOSIT: storage deposit charged per token account
- CONFIDEX_FAUCET: enable the faucet ("1", "true", ...)
- CONFIDEX_FAUCET_CAP: max amount credited by one faucet call
- CONFIDEX_FAUCET_MINT: the one test mint the faucet serves
- CONFIDEX_CHAIN_ID: chain id bound into instruction signatures
- CONFIDEX_REQUIRE_SIGNATURES: require BLS signatures on instructions
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .state.addresses import Address, canonical_address


logger = logging.getLogger(__name__)


class ArithmeticMode(Enum):
    """How balance-changing operations combine encrypted amounts."""
    HOMOMORPHIC = "homomorphic"
    # Assign the supplied ciphertext instead of composing it (legacy behavior).
    OVERWRITE = "overwrite"


DEFAULT_FAUCET_CAP = 1_000_000_000
MAX_INSTRUCTION_BYTES = 64 * 1024


@dataclass(frozen=True)
class LedgerConfig:
    arithmetic: ArithmeticMode = ArithmeticMode.HOMOMORPHIC
    account_deposit: int = 0
    faucet_enabled: bool = False
    faucet_cap: int = DEFAULT_FAUCET_CAP
    faucet_mint: Optional[Address] = None

    def __post_init__(self) -> None:
        if not isinstance(self.arithmetic, ArithmeticMode):
            raise TypeError("arithmetic must be an ArithmeticMode")
        for name in ("account_deposit", "faucet_cap"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an int")
            if value < 0:
                raise ValueError(f"{name} must be non-negative")
        if not isinstance(self.faucet_enabled, bool):
            raise TypeError("faucet_enabled must be a bool")
        if self.faucet_mint is not None:
            object.__setattr__(self, "faucet_mint", canonical_address(self.faucet_mint, name="faucet_mint"))

    @property
    def homomorphic(self) -> bool:
        return self.arithmetic == ArithmeticMode.HOMOMORPHIC


@dataclass(frozen=True)
class EngineConfig:
    chain_id: str = "confidex-local"
    require_signatures: bool = True
    max_instruction_bytes: int = MAX_INSTRUCTION_BYTES
    ledger: LedgerConfig = field(default_factory=LedgerConfig)

    def __post_init__(self) -> None:
        if not isinstance(self.chain_id, str) or not self.chain_id:
            raise ValueError("chain_id must be a non-empty string")
        if not isinstance(self.require_signatures, bool):
            raise TypeError("require_signatures must be a bool")
        if not isinstance(self.max_instruction_bytes, int) or self.max_instruction_bytes <= 0:
            raise ValueError("max_instruction_bytes must be a positive int")


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _bool_env(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return bool(default)
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _parse_mode(value: Any) -> ArithmeticMode:
    if isinstance(value, ArithmeticMode):
        return value
    try:
        return ArithmeticMode(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown arithmetic mode: {value!r}") from None


def _ledger_from_mapping(obj: Mapping[str, Any], base: LedgerConfig) -> LedgerConfig:
    unknown = set(obj) - {"arithmetic", "account_deposit", "faucet_enabled", "faucet_cap", "faucet_mint"}
    if unknown:
        raise ValueError(f"unknown ledger config keys: {sorted(unknown)}")
    updates: dict[str, Any] = dict(obj)
    if "arithmetic" in updates:
        updates["arithmetic"] = _parse_mode(updates["arithmetic"])
    return replace(base, **updates)


def config_from_mapping(obj: Mapping[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a parsed YAML/JSON mapping."""
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    unknown = set(obj) - {"chain_id", "require_signatures", "max_instruction_bytes", "ledger"}
    if unknown:
        raise ValueError(f"unknown config keys: {sorted(unknown)}")
    base = EngineConfig()
    ledger = base.ledger
    if "ledger" in obj:
        ledger_obj = obj["ledger"]
        if not isinstance(ledger_obj, Mapping):
            raise TypeError("ledger config must be a mapping")
        ledger = _ledger_from_mapping(ledger_obj, ledger)
    updates = {k: v for k, v in obj.items() if k != "ledger"}
    return replace(base, ledger=ledger, **updates)


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load configuration: defaults, then YAML file (if any), then env overrides.

    Invalid env values fall back to the file/default value rather than failing.
    """
    if path is None:
        env_path = _env_str("CONFIDEX_CONFIG", "")
        path = env_path or None

    cfg = EngineConfig()
    if path is not None:
        obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if obj is not None:
            cfg = config_from_mapping(obj)

    ledger = cfg.ledger
    raw_mode = os.environ.get("CONFIDEX_ARITHMETIC")
    if raw_mode is not None and raw_mode.strip():
        try:
            ledger = replace(ledger, arithmetic=_parse_mode(raw_mode))
        except ValueError:
            logger.warning("ignoring invalid CONFIDEX_ARITHMETIC=%r", raw_mode)
    ledger = replace(
        ledger,
        account_deposit=_env_int("CONFIDEX_ACCOUNT_DEPOSIT", ledger.account_deposit, lo=0, hi=10**18),
        faucet_enabled=_bool_env("CONFIDEX_FAUCET", default=ledger.faucet_enabled),
        faucet_cap=_env_int("CONFIDEX_FAUCET_CAP", ledger.faucet_cap, lo=0, hi=(1 << 128) - 1),
    )
    raw_mint = _env_str("CONFIDEX_FAUCET_MINT", "")
    if raw_mint:
        try:
            ledger = replace(ledger, faucet_mint=raw_mint)
        except ValueError:
            logger.warning("ignoring invalid CONFIDEX_FAUCET_MINT=%r", raw_mint)
    return replace(
        cfg,
        chain_id=_env_str("CONFIDEX_CHAIN_ID", cfg.chain_id),
        require_signatures=_bool_env("CONFIDEX_REQUIRE_SIGNATURES", default=cfg.require_signatures),
        ledger=ledger,
    )
