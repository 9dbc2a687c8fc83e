"""
Transaction executor for protocol fills.

Handles one transaction end to end:
- EIP-1559 fees from the latest base fee plus a per-chain priority fee
- Gas estimation with the settlement gas buffer
- Nonce reservation through the NonceSequencer
- Submission and receipt check
"""

from typing import Any, Callable

import structlog

from ..chain.client import ChainClient
from ..chain.models import TransactionRequest
from ..errors import SubmissionError
from ..settlement.calculator import buffered_gas, max_fee_per_gas
from .nonce_manager import NonceSequencer


logger = structlog.stdlib.get_logger(__name__)


class TransactionExecutor:
    """
    Submits fill-side transactions (approvals, fills, withdrawals).

    Usage:
        executor = TransactionExecutor(chain_client, nonces, metadata.priority_fee)
        tx_hash = await executor.submit(chain_id, to, calldata, value=0, action="approve")
    """

    def __init__(
        self,
        chain_client: ChainClient,
        nonces: NonceSequencer,
        priority_fee: Callable[[int], int],
    ):
        self.chain_client = chain_client
        self.nonces = nonces
        self.priority_fee = priority_fee

    async def submit(
        self,
        chain_id: int,
        to: str,
        data: str,
        value: int = 0,
        log: Any = None,
        action: str = "transaction",
    ) -> str:
        """
        Submit and wait for one transaction; returns its hash.

        Raises:
            SubmissionError: fee lookup, estimation or sending failed, or the
                transaction reverted.
        """
        log = log or logger
        filler_address = await self.chain_client.get_signer_address(chain_id)
        block = await self.chain_client.get_latest_block(chain_id)
        if not block.base_fee_per_gas:
            raise SubmissionError(f"Could not get base fee from latest block on chain {chain_id}")

        priority_fee = self.priority_fee(chain_id)
        tx = TransactionRequest(
            chain_id=chain_id,
            to=to,
            data=data,
            value=value,
            from_address=filler_address,
            max_fee_per_gas=max_fee_per_gas(block.base_fee_per_gas, priority_fee),
            max_priority_fee_per_gas=priority_fee,
        )

        try:
            tx.gas_limit = buffered_gas(int(await self.chain_client.estimate_gas(chain_id, tx)))
            tx.nonce = await self.nonces.next_nonce(chain_id)
            receipt = await self.chain_client.send_transaction(chain_id, tx)
        except Exception as e:
            raise SubmissionError(f"{action} submission failed on chain {chain_id}: {e}") from e

        if not receipt.is_success:
            raise SubmissionError(
                f"{action} transaction {receipt.transaction_hash} reverted on chain {chain_id}",
                details={"transaction_hash": receipt.transaction_hash},
            )

        log.info(
            "Transaction submitted",
            action=action,
            chain_id=chain_id,
            hash=receipt.transaction_hash,
            block_explorer=self.chain_client.explorer_url(chain_id, receipt.transaction_hash),
            nonce=tx.nonce,
        )
        return receipt.transaction_hash
