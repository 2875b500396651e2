# [TESTER] v1

from __future__ import annotations

import pytest

pytest.importorskip("py_ecc")

from confidex.agents.instruction_signer import InstructionSigner, ciphertext_hex, sign_instruction
from confidex.config import EngineConfig
from confidex.core.coprocessor import LocalCoprocessor
from confidex.core.errors import ErrorKind, InvalidSignature
from confidex.integration.engine import ConfidexEngine, instruction_signing_hash, verify_instruction_signature
from confidex.integration.instructions import Op, build_instruction


ASSET = "0x" + "11" * 32


def test_signing_hash_binds_chain_id() -> None:
    instr = build_instruction(Op.INITIALIZE_VAULT, signer="0x" + "aa" * 48, nonce=0, args={"asset": ASSET})
    assert instruction_signing_hash(instr, chain_id="a") != instruction_signing_hash(instr, chain_id="b")
    assert instruction_signing_hash(instr, chain_id="a") == instruction_signing_hash(dict(instr), chain_id="a")


def test_signed_instruction_is_accepted_once() -> None:
    engine = ConfidexEngine(EngineConfig(chain_id="test-chain"))
    signer = InstructionSigner(b"\x07" * 32, chain_id="test-chain")

    instr, sig = signer.build(Op.INITIALIZE_VAULT, {"asset": ASSET})
    res = engine.apply(instr, sig)
    assert res.ok, res.error
    assert engine.next_nonce(signer.pubkey) == 1

    replay = engine.apply(instr, sig)
    assert replay.error_kind == ErrorKind.BAD_NONCE


def test_signature_from_other_chain_or_key_is_rejected() -> None:
    engine = ConfidexEngine(EngineConfig(chain_id="test-chain"))
    alice = InstructionSigner(b"\x07" * 32, chain_id="other-chain")
    instr, sig = alice.build(Op.INITIALIZE_VAULT, {"asset": ASSET})
    assert engine.apply(instr, sig).error_kind == ErrorKind.INVALID_SIGNATURE

    mallory = InstructionSigner(b"\x08" * 32, chain_id="test-chain")
    forged = build_instruction(Op.INITIALIZE_VAULT, signer=alice.pubkey, nonce=0, args={"asset": ASSET})
    _, mallory_sig = mallory.build(Op.INITIALIZE_VAULT, {"asset": ASSET})
    assert engine.apply(forged, mallory_sig).error_kind == ErrorKind.INVALID_SIGNATURE


def test_tampered_args_invalidate_signature() -> None:
    engine = ConfidexEngine(EngineConfig(chain_id="test-chain"))
    signer = InstructionSigner(b"\x07" * 32, chain_id="test-chain")
    instr, sig = signer.build(Op.INITIALIZE_VAULT, {"asset": ASSET})
    instr["args"]["asset"] = "0x" + "12" * 32
    assert engine.apply(instr, sig).error_kind == ErrorKind.INVALID_SIGNATURE


def test_malformed_signature_raises_invalid_signature() -> None:
    signer = InstructionSigner(b"\x07" * 32, chain_id="c")
    instr = build_instruction(Op.INITIALIZE_VAULT, signer=signer.pubkey, nonce=0, args={"asset": ASSET})
    with pytest.raises(InvalidSignature):
        verify_instruction_signature(instr, "0x1234", signer=signer.pubkey, chain_id="c")

    sig = sign_instruction(instr, privkey=signer._sk, chain_id="c")
    verify_instruction_signature(instr, sig, signer=signer.pubkey, chain_id="c")


def test_signed_wrap_with_client_ciphertext() -> None:
    cop = LocalCoprocessor()
    engine = ConfidexEngine(EngineConfig(chain_id="c"), coprocessor=cop)
    signer = InstructionSigner(b"\x09" * 32, chain_id="c")
    engine.custody.mint_public(signer.pubkey, ASSET, 10)

    for op, args in (
        (Op.INITIALIZE_VAULT, {"asset": ASSET}),
        (Op.WRAP_TO_USER, {"asset": ASSET, "public_amount": 10, "amount": ciphertext_hex(cop.encrypt(10))}),
    ):
        instr, sig = signer.build(op, args)
        assert engine.apply(instr, sig).ok

    balance = engine.user_balances.get_balance(signer.pubkey, ASSET)
    assert cop.decrypt(balance.encrypted_balance) == 10


def test_signer_rejects_short_seed() -> None:
    with pytest.raises(ValueError):
        InstructionSigner(b"short", chain_id="c")
    with pytest.raises(ValueError):
        ciphertext_hex(b"")
