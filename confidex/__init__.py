"""
Confidex: confidential token ledger and confidential constant-product AMM.
"""

__version__ = "0.1.0"
