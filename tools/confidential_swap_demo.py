#!/usr/bin/env python3
"""
Offline end-to-end demo: wrap two public assets, seed a confidential pool and
run a private swap through the signed-instruction engine.

Uses the local reference coprocessor, so the final balances can be decrypted
for display.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from confidex.agents.instruction_signer import InstructionSigner, ciphertext_hex
from confidex.config import EngineConfig, LedgerConfig
from confidex.core.coprocessor import LocalCoprocessor
from confidex.integration.engine import ConfidexEngine
from confidex.integration.instructions import Op


ASSET_A = "0x" + "11" * 32
ASSET_B = "0x" + "22" * 32


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("--chain-id", default="confidex-local")
    ap.add_argument("--liquidity", type=int, default=1000, help="units of each asset deposited")
    ap.add_argument("--amount-in", type=int, default=100)
    ap.add_argument("--min-out", type=int, default=0)
    ap.add_argument("--fee-bps", type=int, default=30)
    ap.add_argument("--b-to-a", action="store_true", help="swap asset B for asset A")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    coprocessor = LocalCoprocessor(seed=b"demo")
    engine = ConfidexEngine(
        EngineConfig(chain_id=args.chain_id, ledger=LedgerConfig()),
        coprocessor=coprocessor,
    )
    alice = InstructionSigner(b"\x01" * 32, chain_id=args.chain_id)
    for asset in (ASSET_A, ASSET_B):
        engine.custody.mint_public(alice.pubkey, asset, 10 * args.liquidity)

    def enc(value: int) -> str:
        return ciphertext_hex(coprocessor.encrypt(value))

    def submit(op: Op, op_args: dict) -> dict:
        instruction, signature = alice.build(op, op_args)
        res = engine.apply(instruction, signature)
        if not res.ok:
            raise SystemExit(f"[confidential-demo] FAIL ({op.value}): {res.error_kind.value}: {res.error}")
        return res.effects

    for asset in (ASSET_A, ASSET_B):
        submit(Op.INITIALIZE_VAULT, {"asset": asset})
        submit(Op.WRAP_TO_USER, {"asset": asset, "public_amount": args.liquidity, "amount": enc(args.liquidity)})

    pool = submit(Op.INITIALIZE_POOL, {"asset_a": ASSET_A, "asset_b": ASSET_B, "fee_bps": args.fee_bps})["pool"]
    print(f"[confidential-demo] pool={pool}")

    submit(Op.ADD_LIQUIDITY, {"pool": pool, "amount_a": enc(args.liquidity), "amount_b": enc(args.liquidity)})
    submit(
        Op.SWAP,
        {
            "pool": pool,
            "amount_in": enc(args.amount_in),
            "min_out": enc(args.min_out),
            "a_to_b": not args.b_to_a,
        },
    )

    result = engine.amm.get_swap_result(pool, alice.pubkey)
    p = engine.amm.get_pool(pool)
    print(f"[confidential-demo] complete={result.is_complete} filled={coprocessor.decrypt(result.filled)}")
    print(f"[confidential-demo] amount_out={coprocessor.decrypt(result.amount_out)}")
    print(
        "[confidential-demo] reserves="
        f"({coprocessor.decrypt(p.reserve_a)}, {coprocessor.decrypt(p.reserve_b)}) "
        f"k={coprocessor.decrypt(p.k_constant)}"
    )
    print(f"[confidential-demo] snapshot={engine.snapshot().commitment_hex()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
