"""
Transaction execution support.

- NonceSequencer: per-chain FIFO nonce issuance for concurrent fills
- TransactionExecutor: fee, gas, nonce and receipt handling for one transaction

Usage:
    from solver.core.execution import NonceSequencer

    nonces = NonceSequencer.for_client(chain_client)
    nonce = await nonces.next_nonce(8453)
"""

from .executor import TransactionExecutor
from .nonce_manager import NonceSequencer

__all__ = ["NonceSequencer", "TransactionExecutor"]
