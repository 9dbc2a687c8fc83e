"""
CompactX Metadata

Per-chain deployment data (arbiter, tribunal, The Compact, tokens, fees,
expiration buffers), the allocator table and intent sources. The default
instance covers Ethereum, Optimism, Unichain and Base.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...config import settings
from ...core.chain.models import ZERO_ADDRESS
from ...core.compact.claim_hash import domain_prefix
from ...core.compact.models import Address
from ...core.filler.models import BaseMetadata
from ...core.settlement.models import ChainTokens, SettlementConfig


THE_COMPACT_ADDRESS = "0x00000000000018DF021Ff2467dF97ff846E09f48"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class TokenInfo(_Model):
    address: Address
    decimals: int
    symbol: str
    coingecko_id: str = Field(..., alias="coingeckoId")


class ChainInfo(_Model):
    arbiter: Address
    tribunal: Address
    compact_x: Address = Field(THE_COMPACT_ADDRESS, alias="compactX")
    prefix: Optional[str] = None
    priority_fee: int = Field(..., alias="priorityFee", ge=0)
    compact_expiration_buffer: int = Field(60, alias="compactExpirationBuffer", ge=0)
    mandate_expiration_buffer: int = Field(10, alias="mandateExpirationBuffer", ge=0)
    tokens: Dict[str, TokenInfo]

    def token_addresses(self) -> List[str]:
        return [token.address for token in self.tokens.values()]


class AllocatorInfo(_Model):
    id: str
    signing_address: Address = Field(..., alias="signingAddress")
    url: str


class WebSocketIntentSource(_Model):
    url: str
    max_reconnect_attempts: Optional[int] = Field(None, alias="maxReconnectAttempts")
    reconnect_delay: Optional[float] = Field(None, alias="reconnectDelay")


class CompactXIntentSources(_Model):
    web_sockets: List[WebSocketIntentSource] = Field(default_factory=list, alias="webSockets")


class CompactXMetadata(BaseMetadata):
    """CompactX protocol metadata."""

    protocol_name: str = Field("CompactX", alias="protocolName")
    intent_sources: CompactXIntentSources = Field(
        default_factory=CompactXIntentSources, alias="intentSources"
    )
    chain_info: Dict[int, ChainInfo] = Field(..., alias="chainInfo")
    allocators: Dict[str, AllocatorInfo]

    def chain(self, chain_id: int) -> Optional[ChainInfo]:
        return self.chain_info.get(int(chain_id))

    def domain_prefix(self, chain_id: int) -> str:
        """Signing prefix of The Compact on ``chain_id``; configured or derived."""
        info = self.chain_info[int(chain_id)]
        return info.prefix or domain_prefix(int(chain_id), info.compact_x)

    def allocator_signers(self) -> Dict[int, str]:
        return {int(a.id): a.signing_address for a in self.allocators.values()}

    def compact_addresses(self) -> Dict[int, str]:
        return {chain_id: info.compact_x for chain_id, info in self.chain_info.items()}

    def settlement_config(self) -> SettlementConfig:
        return SettlementConfig(
            tokens={
                chain_id: ChainTokens(
                    eth=info.tokens["ETH"].address,
                    weth=info.tokens["WETH"].address,
                    usdc=info.tokens["USDC"].address,
                )
                for chain_id, info in self.chain_info.items()
            },
            priority_fees={chain_id: info.priority_fee for chain_id, info in self.chain_info.items()},
        )


def _tokens(weth: str, usdc: str) -> Dict[str, TokenInfo]:
    return {
        "ETH": TokenInfo(address=ZERO_ADDRESS, decimals=18, symbol="ETH", coingecko_id="ethereum"),
        "WETH": TokenInfo(address=weth, decimals=18, symbol="WETH", coingecko_id="weth"),
        "USDC": TokenInfo(address=usdc, decimals=6, symbol="USDC", coingecko_id="usd-coin"),
    }


_OP_STACK_WETH = "0x4200000000000000000000000000000000000006"


def default_metadata() -> CompactXMetadata:
    return CompactXMetadata(
        protocol_name="CompactX",
        intent_sources=CompactXIntentSources(
            web_sockets=[WebSocketIntentSource(url=settings.compactx_ws_url)]
        ),
        chain_info={
            1: ChainInfo(
                arbiter="0xDfd41e6E2e08e752f464084F5C11619A3c950237",
                tribunal="0xDfd41e6E2e08e752f464084F5C11619A3c950237",
                priority_fee=1,
                tokens=_tokens(
                    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
                    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
                ),
            ),
            10: ChainInfo(
                arbiter="0x2602D9f66ec17F2dc770063F7B91821DD741F626",
                tribunal="0x2602D9f66ec17F2dc770063F7B91821DD741F626",
                priority_fee=1,
                tokens=_tokens(_OP_STACK_WETH, "0x0b2c639c533813f4aa9d7837caf62653d097ff85"),
            ),
            130: ChainInfo(
                arbiter="0x81fC1d90C5fae0f15FC91B5592177B594011C576",
                tribunal="0x81fC1d90C5fae0f15FC91B5592177B594011C576",
                priority_fee=1,
                tokens=_tokens(_OP_STACK_WETH, "0x078d782b760474a361dda0af3839290b0ef57ad6"),
            ),
            8453: ChainInfo(
                arbiter="0xfaBE453252ca8337b091ba01BB168030E2FE6c1F",
                tribunal="0xfaBE453252ca8337b091ba01BB168030E2FE6c1F",
                priority_fee=50,
                tokens=_tokens(_OP_STACK_WETH, "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"),
            ),
        },
        allocators={
            "AUTOCATOR": AllocatorInfo(
                id="1730150456036417775412616585",
                signing_address="0x4491fB95F2d51416688D4862f0cAeFE5281Fa3d9",
                url="https://autocator.org",
            ),
            "SMALLOCATOR": AllocatorInfo(
                id="1223867955028248789127899354",
                signing_address="0x51044301738Ba2a27bd9332510565eBE9F03546b",
                url="https://smallocator.xyz",
            ),
        },
    )
