"""
Chain client boundary.

The solving engine consumes chains through the ``ChainClient`` protocol:
per-chain reads (blocks, balances, gas estimation, contract calls) and
per-chain signing/submission. ``Web3ChainClient`` is the production
implementation backed by web3.py and a local eth_account signer.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import AsyncWeb3

from .abis import ABIS
from .models import Block, EventLog, TransactionReceipt, TransactionRequest


logger = logging.getLogger(__name__)


class ContractBinding(Protocol):
    """A contract connected to one chain."""

    address: str

    def encode(self, fn_name: str, *args: Any) -> str:
        """ABI-encode a call to ``fn_name``."""
        ...

    async def call(self, fn_name: str, *args: Any) -> Any:
        """Execute a read-only call."""
        ...

    async def get_logs(self, event_name: str, from_block: int, to_block: int) -> List[EventLog]:
        """Fetch decoded logs of ``event_name`` in the inclusive block range."""
        ...


class ChainClient(Protocol):
    """Per-chain read access and signing/submission."""

    async def get_signer_address(self, chain_id: int) -> str: ...

    async def get_balance(self, chain_id: int, address: str) -> int: ...

    async def get_transaction_count(self, chain_id: int, address: Optional[str] = None) -> int: ...

    async def get_latest_block(self, chain_id: int) -> Block: ...

    async def estimate_gas(self, chain_id: int, tx: TransactionRequest) -> int: ...

    async def send_transaction(self, chain_id: int, tx: TransactionRequest) -> TransactionReceipt: ...

    def contract(self, chain_id: int, name: str, address: str) -> ContractBinding: ...

    def explorer_url(self, chain_id: int, tx_hash: str) -> Optional[str]: ...


def _plain(value: Any) -> Any:
    """Convert web3 return values (AttributeDict, HexBytes, tuples) to plain Python."""
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _checksum_args(value: Any) -> Any:
    """web3 only accepts checksummed address strings; normalize nested args."""
    if isinstance(value, str) and len(value) == 42 and value[:2].lower() == "0x":
        try:
            return to_checksum_address(value)
        except ValueError:
            return value
    if isinstance(value, Mapping):
        return {k: _checksum_args(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_checksum_args(v) for v in value)
    return value


class Web3ContractBinding:
    """ContractBinding backed by a web3.py AsyncContract."""

    def __init__(self, w3: AsyncWeb3, name: str, address: str):
        if name not in ABIS:
            raise ValueError(f"No ABI registered for contract {name}")
        self.name = name
        self.address = to_checksum_address(address)
        self._contract = w3.eth.contract(address=self.address, abi=ABIS[name])

    def encode(self, fn_name: str, *args: Any) -> str:
        return self._contract.encode_abi(fn_name, args=[_checksum_args(a) for a in args])

    async def call(self, fn_name: str, *args: Any) -> Any:
        fn = self._contract.get_function_by_name(fn_name)
        return await fn(*[_checksum_args(a) for a in args]).call()

    async def get_logs(self, event_name: str, from_block: int, to_block: int) -> List[EventLog]:
        event = getattr(self._contract.events, event_name)
        entries = await event.get_logs(from_block=from_block, to_block=to_block)
        return [
            EventLog(
                event=entry["event"],
                args=_plain(entry["args"]),
                block_number=entry["blockNumber"],
                transaction_hash=_plain(entry["transactionHash"]),
                log_index=entry.get("logIndex", 0),
                address=entry.get("address", self.address),
                raw=_plain(dict(entry)),
            )
            for entry in entries
        ]


class Web3ChainClient:
    """
    ChainClient over web3.py HTTP providers.

    One AsyncWeb3 instance per chain; a single local account signs for
    every chain.
    """

    def __init__(
        self,
        rpc_urls: Dict[int, str],
        private_key: str,
        explorer_urls: Optional[Dict[int, str]] = None,
        receipt_timeout_seconds: float = 120.0,
    ):
        if not private_key:
            raise ValueError("A private key is required to sign fill transactions")
        self._rpc_urls = {int(k): v for k, v in rpc_urls.items()}
        self._explorers = {int(k): v.rstrip("/") for k, v in (explorer_urls or {}).items()}
        self._account: LocalAccount = Account.from_key(private_key)
        self._web3: Dict[int, AsyncWeb3] = {}
        self._receipt_timeout = receipt_timeout_seconds

    @property
    def chain_ids(self) -> Sequence[int]:
        return tuple(self._rpc_urls)

    def provider(self, chain_id: int) -> AsyncWeb3:
        chain_id = int(chain_id)
        if chain_id not in self._web3:
            rpc_url = self._rpc_urls.get(chain_id)
            if not rpc_url:
                raise ValueError(f"No RPC URL configured for chain {chain_id}")
            self._web3[chain_id] = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        return self._web3[chain_id]

    async def get_signer_address(self, chain_id: int) -> str:
        return self._account.address

    async def get_balance(self, chain_id: int, address: str) -> int:
        return await self.provider(chain_id).eth.get_balance(to_checksum_address(address))

    async def get_transaction_count(self, chain_id: int, address: Optional[str] = None) -> int:
        owner = to_checksum_address(address or self._account.address)
        return await self.provider(chain_id).eth.get_transaction_count(owner, "pending")

    async def get_latest_block(self, chain_id: int) -> Block:
        block = await self.provider(chain_id).eth.get_block("latest")
        return Block(
            number=block["number"],
            timestamp=block["timestamp"],
            base_fee_per_gas=block.get("baseFeePerGas"),
        )

    async def estimate_gas(self, chain_id: int, tx: TransactionRequest) -> int:
        payload = tx.to_dict()
        payload.setdefault("from", self._account.address)
        payload.pop("gas", None)
        payload.pop("nonce", None)
        return await self.provider(chain_id).eth.estimate_gas(payload)

    async def send_transaction(self, chain_id: int, tx: TransactionRequest) -> TransactionReceipt:
        w3 = self.provider(chain_id)
        payload = tx.to_dict()
        payload["from"] = self._account.address
        payload["to"] = to_checksum_address(tx.to)

        if tx.nonce is None:
            payload["nonce"] = await self.get_transaction_count(chain_id)
        if tx.gas_limit is None:
            payload["gas"] = await self.estimate_gas(chain_id, tx)

        logger.debug(f"Sending transaction on chain {chain_id}: {payload}")

        signed = self._account.sign_transaction(payload)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = await asyncio.wait_for(
            w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout),
            timeout=self._receipt_timeout + 5,
        )

        return TransactionReceipt(
            transaction_hash=_plain(receipt["transactionHash"]),
            chain_id=int(chain_id),
            block_number=receipt.get("blockNumber"),
            status=receipt.get("status", 1),
            gas_used=receipt.get("gasUsed"),
            effective_gas_price=receipt.get("effectiveGasPrice"),
        )

    def contract(self, chain_id: int, name: str, address: str) -> ContractBinding:
        return Web3ContractBinding(self.provider(chain_id), name, address)

    def explorer_url(self, chain_id: int, tx_hash: str) -> Optional[str]:
        base = self._explorers.get(int(chain_id))
        if not base:
            return None
        return f"{base}/tx/{tx_hash}"
