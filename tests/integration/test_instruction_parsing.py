# [TESTER] v1

from __future__ import annotations

import pytest

from confidex.core.errors import ErrorKind, InvalidInstruction
from confidex.integration.instructions import ARG_SCHEMAS, Op, build_instruction, parse_instruction


ALICE = "0x" + "aa" * 48
POOL = "0x" + "44" * 32


def _swap_args(**overrides):
    args = {"pool": POOL, "amount_in": "0x" + "01" * 32, "min_out": "0x" + "02" * 32, "a_to_b": True}
    args.update(overrides)
    return args


def test_parse_canonicalizes_keys_and_decodes_ciphertexts() -> None:
    raw = build_instruction(Op.SWAP, signer="0x" + "AA" * 48, nonce=3, args=_swap_args(pool="0x" + "AB" * 32))
    instr = parse_instruction(raw)
    assert instr.op == Op.SWAP
    assert instr.signer == ALICE
    assert instr.nonce == 3
    assert instr.args["pool"] == "0x" + "ab" * 32
    assert instr.args["amount_in"] == b"\x01" * 32
    assert instr.args["a_to_b"] is True


def test_every_op_has_a_schema() -> None:
    assert set(ARG_SCHEMAS) == set(Op)


def test_optional_args_may_be_omitted() -> None:
    instr = parse_instruction(
        build_instruction(
            Op.UNWRAP_FROM_USER, signer=ALICE, nonce=0, args={"asset": POOL, "public_amount": 5}
        )
    )
    assert "amount" not in instr.args

    instr = parse_instruction(
        build_instruction(
            Op.INITIALIZE_MINT, signer=ALICE, nonce=0, args={"seed": "", "decimals": 0, "mint_authority": None}
        )
    )
    assert instr.args["mint_authority"] is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda raw: raw.update(program="other"),
        lambda raw: raw.update(version="2"),
        lambda raw: raw.update(op="teleport"),
        lambda raw: raw.update(signer="0x1234"),
        lambda raw: raw.update(nonce=-1),
        lambda raw: raw.update(nonce=True),
        lambda raw: raw.update(args=[]),
        lambda raw: raw.update(extra=1),
        lambda raw: raw.pop("nonce"),
        lambda raw: raw["args"].update(unexpected=1),
        lambda raw: raw["args"].pop("min_out"),
        lambda raw: raw["args"].update(a_to_b="yes"),
        lambda raw: raw["args"].update(amount_in="0x"),
        lambda raw: raw["args"].update(amount_in="0x123"),
        lambda raw: raw["args"].update(amount_in="0xzz"),
        lambda raw: raw["args"].update(amount_in="01" * 32),
        lambda raw: raw["args"].update(pool="0x" + "44" * 31),
    ],
)
def test_malformed_instruction_rejected(mutate) -> None:
    raw = build_instruction(Op.SWAP, signer=ALICE, nonce=0, args=_swap_args())
    mutate(raw)
    with pytest.raises(InvalidInstruction) as excinfo:
        parse_instruction(raw)
    assert excinfo.value.kind == ErrorKind.INVALID_INSTRUCTION


def test_uint_args_reject_negative_and_bool() -> None:
    for value in (-1, True, "5"):
        raw = build_instruction(
            Op.INITIALIZE_POOL, signer=ALICE, nonce=0, args={"asset_a": POOL, "asset_b": POOL, "fee_bps": value}
        )
        with pytest.raises(InvalidInstruction):
            parse_instruction(raw)


def test_non_mapping_rejected() -> None:
    with pytest.raises(InvalidInstruction):
        parse_instruction([])
