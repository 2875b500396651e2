"""
Client-side instruction building and BLS signing.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from py_ecc.bls import G2Basic

from ..integration.engine import instruction_signing_hash
from ..integration.instructions import Op, build_instruction


def ciphertext_hex(ciphertext: bytes) -> str:
    """Encode a client-produced ciphertext for an instruction arg."""
    if not isinstance(ciphertext, (bytes, bytearray)) or not ciphertext:
        raise ValueError("ciphertext must be non-empty bytes")
    return "0x" + bytes(ciphertext).hex()


def sign_instruction(instruction: Dict[str, Any], *, privkey: int, chain_id: str) -> str:
    """Sign a raw instruction object; returns the 96-byte signature as 0x-hex."""
    msg_hash = instruction_signing_hash(instruction, chain_id=chain_id)
    return "0x" + G2Basic.Sign(privkey, msg_hash).hex()


class InstructionSigner:
    """
    Holds one BLS keypair and tracks the next nonce for it.

    `seed` must be at least 32 bytes (py_ecc KeyGen requirement).
    """

    def __init__(self, seed: bytes, *, chain_id: str, next_nonce: int = 0) -> None:
        if not isinstance(seed, (bytes, bytearray)) or len(seed) < 32:
            raise ValueError("seed must be at least 32 bytes")
        self._sk = G2Basic.KeyGen(bytes(seed))
        self.pubkey = "0x" + G2Basic.SkToPk(self._sk).hex()
        self.chain_id = chain_id
        self.next_nonce = int(next_nonce)

    def build(self, op: Op, args: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], str]:
        """Build and sign the next instruction, consuming one nonce."""
        instruction = build_instruction(op, signer=self.pubkey, nonce=self.next_nonce, args=args)
        signature = sign_instruction(instruction, privkey=self._sk, chain_id=self.chain_id)
        self.next_nonce += 1
        return instruction, signature
