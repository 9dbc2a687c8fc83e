"""
Shared fakes for the solver tests.

FakeChainClient records every chain interaction in ``calls`` so tests can
assert that a rejected intent never reached the chain. Contract bindings
answer from per-function ``responses`` or from sensible defaults (nothing
filled, nonce unused, unlimited token balances).
"""

import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from eth_keys import keys

from solver.core.chain.models import Block, EventLog, TransactionReceipt, TransactionRequest
from solver.core.compact.claim_hash import derive_claim_hash
from solver.core.compact.models import BroadcastRequest
from solver.core.compact.signature import signing_digest
from solver.protocols.compactx.metadata import (
    AllocatorInfo,
    ChainInfo,
    CompactXMetadata,
    TokenInfo,
)


ORIGIN_CHAIN = 10
MANDATE_CHAIN = 8453

ZERO = "0x0000000000000000000000000000000000000000"
WETH = "0x4200000000000000000000000000000000000006"
USDC_OPTIMISM = "0x0b2c639c533813f4aa9d7837caf62653d097ff85"
USDC_BASE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
ARBITER = "0x2602d9f66ec17f2dc770063f7b91821dd741f626"
TRIBUNAL = "0xfabe453252ca8337b091ba01bb168030e2fe6c1f"
THE_COMPACT = "0x00000000000018df021ff2467df97ff846e09f48"
RECIPIENT = "0x3333333333333333333333333333333333333333"
FILLER = "0x9999999999999999999999999999999999999999"

ALLOCATOR_ID = 1223867955028248789127899354

SPONSOR_KEY = keys.PrivateKey(b"\x01" * 32)
ALLOCATOR_KEY = keys.PrivateKey(b"\x02" * 32)
SPONSOR = SPONSOR_KEY.public_key.to_checksum_address().lower()
ALLOCATOR_SIGNER = ALLOCATOR_KEY.public_key.to_checksum_address().lower()


class FakeContract:
    def __init__(self, client: "FakeChainClient", chain_id: int, name: str, address: str):
        self.client = client
        self.chain_id = chain_id
        self.name = name
        self.address = address
        self.responses: Dict[str, Any] = {}
        self.logs: List[EventLog] = []
        self.encoded: List[Tuple[str, tuple]] = []
        self.max_log_range: Optional[int] = None

    def encode(self, fn_name: str, *args: Any) -> str:
        self.encoded.append((fn_name, args))
        return "0x" + fn_name.encode().hex()

    async def call(self, fn_name: str, *args: Any) -> Any:
        self.client.calls.append(f"{self.name}.{fn_name}")
        if fn_name in self.responses:
            response = self.responses[fn_name]
            if isinstance(response, Exception):
                raise response
            return response(*args) if callable(response) else response
        return self._default(fn_name, *args)

    def _default(self, fn_name: str, *args: Any) -> Any:
        if fn_name == "balanceOf":
            return self.client.token_balances.get((self.chain_id, self.address.lower()), 10**24)
        if fn_name in ("filled", "hasConsumedAllocatorNonce"):
            return False
        if fn_name == "getRegistrationStatus":
            return (False, 0)
        if fn_name == "orderStatus":
            return b"\x00" * 32
        raise AssertionError(f"Unexpected call {self.name}.{fn_name}")

    async def get_logs(self, event_name: str, from_block: int, to_block: int) -> List[EventLog]:
        self.client.calls.append(f"{self.name}.get_logs")
        self.client.log_queries.append((from_block, to_block))
        if self.max_log_range is not None and to_block - from_block + 1 > self.max_log_range:
            raise ValueError(f"block range exceeds {self.max_log_range} blocks")
        return [log for log in self.logs if from_block <= log.block_number <= to_block]


class FakeChainClient:
    """In-memory ChainClient."""

    def __init__(self, signer: str = FILLER):
        self.signer = signer
        self.calls: List[str] = []
        self.native_balances: Dict[int, int] = {}
        self.token_balances: Dict[Tuple[int, str], int] = {}
        self.transaction_counts: Dict[int, int] = {}
        self.base_fee: Optional[int] = 10**9
        self.block_number = 100
        self.gas_estimate = 100_000
        self.estimate_error: Optional[Exception] = None
        self.receipt_status = 1
        self.estimates: List[TransactionRequest] = []
        self.sent: List[TransactionRequest] = []
        self.log_queries: List[Tuple[int, int]] = []
        self.contracts: Dict[Tuple[int, str, str], FakeContract] = {}

    async def get_signer_address(self, chain_id: int) -> str:
        return self.signer

    async def get_balance(self, chain_id: int, address: str) -> int:
        self.calls.append("get_balance")
        return self.native_balances.get(chain_id, 10**20)

    async def get_transaction_count(self, chain_id: int, address: Optional[str] = None) -> int:
        self.calls.append("get_transaction_count")
        return self.transaction_counts.get(chain_id, 0)

    async def get_latest_block(self, chain_id: int) -> Block:
        self.calls.append("get_latest_block")
        return Block(number=self.block_number, timestamp=int(time.time()), base_fee_per_gas=self.base_fee)

    async def estimate_gas(self, chain_id: int, tx: TransactionRequest) -> int:
        self.calls.append("estimate_gas")
        self.estimates.append(tx)
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas_estimate

    async def send_transaction(self, chain_id: int, tx: TransactionRequest) -> TransactionReceipt:
        self.calls.append("send_transaction")
        self.sent.append(tx)
        return TransactionReceipt(
            transaction_hash="0x" + f"{len(self.sent):064x}",
            chain_id=chain_id,
            block_number=self.block_number,
            status=self.receipt_status,
        )

    def contract(self, chain_id: int, name: str, address: str) -> FakeContract:
        key = (int(chain_id), name, address.lower())
        if key not in self.contracts:
            self.contracts[key] = FakeContract(self, int(chain_id), name, address.lower())
        return self.contracts[key]

    def explorer_url(self, chain_id: int, tx_hash: str) -> Optional[str]:
        return f"https://explorer.test/{chain_id}/tx/{tx_hash}"


class FixedPrices:
    def __init__(self, price: float = 3000.0, error: Optional[Exception] = None):
        self.price = price
        self.error = error

    def get_price(self, chain_id: int) -> float:
        if self.error is not None:
            raise self.error
        return self.price


def compact_signature(private_key: keys.PrivateKey, digest: bytes) -> str:
    """EIP-2098 64-byte signature (r || yParity << 255 | s)."""
    signature = private_key.sign_msg_hash(digest)
    y_parity_and_s = (signature.v << 255) | signature.s
    return "0x" + signature.r.to_bytes(32, "big").hex() + y_parity_and_s.to_bytes(32, "big").hex()


def _tokens(weth: str, usdc: str) -> Dict[str, TokenInfo]:
    return {
        "ETH": TokenInfo(address=ZERO, decimals=18, symbol="ETH", coingecko_id="ethereum"),
        "WETH": TokenInfo(address=weth, decimals=18, symbol="WETH", coingecko_id="weth"),
        "USDC": TokenInfo(address=usdc, decimals=6, symbol="USDC", coingecko_id="usd-coin"),
    }


def build_metadata(**overrides) -> CompactXMetadata:
    fields = dict(
        protocol_name="CompactX",
        chain_info={
            ORIGIN_CHAIN: ChainInfo(
                arbiter=ARBITER,
                tribunal=ARBITER,
                priority_fee=1,
                tokens=_tokens(WETH, USDC_OPTIMISM),
            ),
            MANDATE_CHAIN: ChainInfo(
                arbiter=TRIBUNAL,
                tribunal=TRIBUNAL,
                priority_fee=50,
                tokens=_tokens(WETH, USDC_BASE),
            ),
        },
        allocators={
            "TEST": AllocatorInfo(
                id=str(ALLOCATOR_ID),
                signing_address=ALLOCATOR_SIGNER,
                url="https://allocator.test",
            ),
        },
    )
    fields.update(overrides)
    return CompactXMetadata(**fields)


def build_payload(
    expires_in: int = 3600,
    mandate_expires_in: int = 3600,
    nonce: int = 1,
    amount: int = 1_000_000_000,
    minimum_amount: int = 900_000_000,
    claim_token: str = USDC_OPTIMISM,
    mandate_token: str = USDC_BASE,
    sponsor_signature: Optional[str] = "0x",
    allocator_signature: str = "0x" + "00" * 64,
) -> Dict[str, Any]:
    now = int(time.time())
    compact_id = (ALLOCATOR_ID << 160) | int(claim_token, 16)
    return {
        "chainId": str(ORIGIN_CHAIN),
        "compact": {
            "arbiter": ARBITER,
            "sponsor": SPONSOR,
            "nonce": "0x" + f"{nonce:064x}",
            "expires": str(now + expires_in),
            "id": str(compact_id),
            "amount": str(amount),
            "mandate": {
                "chainId": MANDATE_CHAIN,
                "tribunal": TRIBUNAL,
                "recipient": RECIPIENT,
                "expires": str(now + mandate_expires_in),
                "token": mandate_token,
                "minimumAmount": str(minimum_amount),
                "baselinePriorityFee": "0",
                "scalingFactor": "1000000000100000000",
                "salt": "0x" + "ab" * 32,
            },
        },
        "sponsorSignature": sponsor_signature,
        "allocatorSignature": allocator_signature,
        "context": {
            "dispensation": str(10**12),
            "dispensationUSD": "$0.01",
            "spotOutputAmount": str(minimum_amount),
            "quoteOutputAmountDirect": str(minimum_amount),
            "quoteOutputAmountNet": str(minimum_amount),
            "witnessTypeString": "Mandate mandate)Mandate(uint256 chainId,address tribunal,address recipient,uint256 expires,address token,uint256 minimumAmount,uint256 baselinePriorityFee,uint256 scalingFactor,bytes32 salt)",
            "witnessHash": "0x" + "11" * 32,
        },
    }


def sign_payload(payload: Dict[str, Any], metadata: CompactXMetadata, sponsor: bool = True) -> BroadcastRequest:
    """Attach valid sponsor (optional) and allocator signatures to ``payload``."""
    request = BroadcastRequest.model_validate(payload)
    claim_hash = derive_claim_hash(request.compact)
    digest = signing_digest(claim_hash, metadata.domain_prefix(ORIGIN_CHAIN))

    signed = dict(payload)
    signed["allocatorSignature"] = compact_signature(ALLOCATOR_KEY, digest)
    signed["sponsorSignature"] = compact_signature(SPONSOR_KEY, digest) if sponsor else "0x"
    return BroadcastRequest.model_validate(signed)


@pytest.fixture
def chain_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def prices() -> FixedPrices:
    return FixedPrices()


@pytest.fixture
def metadata() -> CompactXMetadata:
    return build_metadata()


@pytest.fixture
def make_request(metadata) -> Callable[..., BroadcastRequest]:
    def make(sponsor: bool = True, **kwargs) -> BroadcastRequest:
        return sign_payload(build_payload(**kwargs), metadata, sponsor=sponsor)

    return make
