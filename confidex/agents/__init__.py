"""
Client-side helpers for building and signing instructions
"""

from .instruction_signer import InstructionSigner, ciphertext_hex, sign_instruction

__all__ = ["InstructionSigner", "ciphertext_hex", "sign_instruction"]
