# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from confidex.config import (
    DEFAULT_FAUCET_CAP,
    ArithmeticMode,
    EngineConfig,
    LedgerConfig,
    config_from_mapping,
    load_config,
)


_ENV = (
    "CONFIDEX_CONFIG",
    "CONFIDEX_ARITHMETIC",
    "CONFIDEX_ACCOUNT_DEPOSIT",
    "CONFIDEX_FAUCET",
    "CONFIDEX_FAUCET_CAP",
    "CONFIDEX_FAUCET_MINT",
    "CONFIDEX_CHAIN_ID",
    "CONFIDEX_REQUIRE_SIGNATURES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_safe() -> None:
    cfg = load_config()
    assert cfg == EngineConfig()
    assert cfg.require_signatures
    assert cfg.ledger.arithmetic == ArithmeticMode.HOMOMORPHIC
    assert cfg.ledger.homomorphic
    assert not cfg.ledger.faucet_enabled
    assert cfg.ledger.faucet_cap == DEFAULT_FAUCET_CAP
    assert cfg.ledger.faucet_mint is None
    assert cfg.ledger.account_deposit == 0


def test_yaml_file_then_env_overrides(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "confidex.yaml"
    path.write_text(
        "chain_id: devnet\n"
        "ledger:\n"
        "  arithmetic: overwrite\n"
        "  account_deposit: 7\n"
        "  faucet_enabled: true\n"
        "  faucet_mint: \"0x" + "AB" * 32 + "\"\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CONFIDEX_CONFIG", str(path))
    cfg = load_config()
    assert cfg.chain_id == "devnet"
    assert cfg.ledger.arithmetic == ArithmeticMode.OVERWRITE
    assert cfg.ledger.account_deposit == 7
    assert cfg.ledger.faucet_enabled
    assert cfg.ledger.faucet_mint == "0x" + "ab" * 32

    monkeypatch.setenv("CONFIDEX_ARITHMETIC", "homomorphic")
    monkeypatch.setenv("CONFIDEX_FAUCET_MINT", "cd" * 32)
    monkeypatch.setenv("CONFIDEX_FAUCET", "off")
    monkeypatch.setenv("CONFIDEX_FAUCET_CAP", "42")
    monkeypatch.setenv("CONFIDEX_CHAIN_ID", "mainnet")
    cfg = load_config()
    assert cfg.ledger.homomorphic
    assert not cfg.ledger.faucet_enabled
    assert cfg.ledger.faucet_cap == 42
    assert cfg.chain_id == "mainnet"
    assert cfg.ledger.faucet_mint == "0x" + "cd" * 32
    assert cfg.ledger.account_deposit == 7


def test_invalid_env_values_fall_back(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("CONFIDEX_ARITHMETIC", "quantum")
    monkeypatch.setenv("CONFIDEX_ACCOUNT_DEPOSIT", "lots")
    monkeypatch.setenv("CONFIDEX_REQUIRE_SIGNATURES", "maybe")
    monkeypatch.setenv("CONFIDEX_FAUCET_CAP", "-5")
    monkeypatch.setenv("CONFIDEX_FAUCET_MINT", "0x1234")
    with caplog.at_level(logging.WARNING, logger="confidex.config"):
        cfg = load_config()
    assert cfg.ledger.homomorphic
    assert cfg.ledger.account_deposit == 0
    assert cfg.require_signatures
    assert cfg.ledger.faucet_cap == 0
    assert cfg.ledger.faucet_mint is None
    assert "CONFIDEX_FAUCET_MINT" in caplog.text
    assert "CONFIDEX_ARITHMETIC" in caplog.text


def test_config_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError):
        config_from_mapping({"chain": "x"})
    with pytest.raises(ValueError):
        config_from_mapping({"ledger": {"faucet": True}})
    with pytest.raises(TypeError):
        config_from_mapping({"ledger": [1]})
    with pytest.raises(ValueError):
        config_from_mapping({"ledger": {"arithmetic": "fast"}})


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        LedgerConfig(account_deposit=-1)
    with pytest.raises(TypeError):
        LedgerConfig(faucet_enabled="yes")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        LedgerConfig(faucet_mint="0x12")
    with pytest.raises(ValueError):
        EngineConfig(chain_id="")
    with pytest.raises(ValueError):
        EngineConfig(max_instruction_bytes=0)
