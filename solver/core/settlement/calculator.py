"""
Settlement Calculator

Sizes a Tribunal fill against gas cost, dispensation and the solver's
balances, using two gas estimations: one against a simulated settlement
(minimum amount + 1%) to price the fill, and a second against the real
settlement value to size the gas limit.

Balance and profitability gates compare integers in on-chain units only.
Decimal arithmetic is used to convert between the native asset and a
6-decimal stable token through the current price sample, and for USD
figures that are only logged.
"""

from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Optional, Protocol, Union

import structlog

from ..chain.client import ChainClient
from ..chain.models import ZERO_ADDRESS, TransactionRequest
from ..chain.utils import retrieve_token_balance
from ..compact.models import BroadcastRequest, to_int
from ..errors import PriceUnavailableError, StalePriceError, SubmissionError
from .models import (
    BASE_FEE_BUFFER_PCT,
    DISPENSATION_BUFFER_PCT,
    GAS_BUFFER_PCT,
    NATIVE_DECIMALS,
    SIMULATION_SETTLEMENT_PCT,
    USDC_DECIMALS,
    RejectionReason,
    SettlementConfig,
    SettlementQuote,
    SettlementRejection,
)


logger = structlog.stdlib.get_logger(__name__)

QuoteOutcome = Union[SettlementQuote, SettlementRejection]

_WEI_PER_ETH = Decimal(10) ** NATIVE_DECIMALS
_USDC_UNIT = Decimal(10) ** USDC_DECIMALS


class PriceSource(Protocol):
    """Native asset USD price per chain."""

    def get_price(self, chain_id: int) -> float: ...


def buffered_dispensation(request: BroadcastRequest) -> int:
    return to_int(request.context.dispensation) * DISPENSATION_BUFFER_PCT // 100


def buffered_gas(estimated_gas: int) -> int:
    return estimated_gas * GAS_BUFFER_PCT // 100


def max_fee_per_gas(base_fee: int, priority_fee: int) -> int:
    """Priority fee plus the base fee with a 20% buffer."""
    return priority_fee + base_fee * BASE_FEE_BUFFER_PCT // 100


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class SettlementCalculator:
    """
    Decides how much a fill pays and whether the solver can afford it.

    Every rejection is returned as a ``SettlementRejection`` carrying a
    ``RejectionReason``; only gas estimation failures raise
    (``SubmissionError``).
    """

    def __init__(self, client: ChainClient, prices: PriceSource, config: SettlementConfig):
        self.client = client
        self.prices = prices
        self.config = config

    def is_native_or_wrapped_claim(self, request: BroadcastRequest) -> bool:
        """Whether the locked token is ETH or WETH on any configured chain."""
        claim_token = request.compact.claim_token
        return any(tokens.is_native_or_wrapped(claim_token) for tokens in self.config.tokens.values())

    def calculate_fill_value(self, request: BroadcastRequest, settlement_amount: int) -> int:
        """Native value attached to the fill: the dispensation, plus the settlement when paid in ETH."""
        tokens = self.config.tokens[request.mandate_chain_id]
        dispensation = buffered_dispensation(request)
        if tokens.is_native(request.compact.mandate.token):
            return settlement_amount + dispensation
        return dispensation

    def gas_cost_usd(self, estimated_gas: int, max_fee: int, price: float) -> Decimal:
        gas_cost_wei = max_fee * buffered_gas(estimated_gas)
        return Decimal(gas_cost_wei) / _WEI_PER_ETH * Decimal(str(price))

    def get_max_settlement_amount(
        self,
        request: BroadcastRequest,
        *,
        estimated_gas: int,
        max_fee: int,
        price: float,
    ) -> int:
        """
        Claim amount less execution costs, in the settlement token's units.

        Execution cost is the buffered gas cost plus the buffered dispensation.
        Non ETH/WETH claims are assumed to be USDC (6 decimals) and are
        converted through ``price``.
        """
        tokens = self.config.tokens[request.mandate_chain_id]
        eth_price = Decimal(str(price))
        amount = to_int(request.compact.amount)

        gas_cost_wei = max_fee * buffered_gas(estimated_gas)
        execution_cost_wei = gas_cost_wei + buffered_dispensation(request)

        with localcontext() as ctx:
            ctx.prec = 80

            if self.is_native_or_wrapped_claim(request):
                net_wei = amount - execution_cost_wei
                net_usd = Decimal(net_wei) / _WEI_PER_ETH * eth_price
            else:
                dispensation_usd = Decimal(request.context.dispensation_usd_amount)
                execution_cost_usd = (
                    Decimal(gas_cost_wei) / _WEI_PER_ETH * eth_price + dispensation_usd
                )
                net_usd = Decimal(amount) / _USDC_UNIT - execution_cost_usd
                net_wei = _floor(net_usd / eth_price * _WEI_PER_ETH)

            if tokens.is_native_or_wrapped(request.compact.mandate.token):
                return net_wei
            return _floor(net_usd * _USDC_UNIT)

    async def _estimate(
        self,
        chain_id: int,
        to: str,
        data: str,
        value: int,
        filler_address: str,
        max_fee: int,
        priority_fee: int,
    ) -> int:
        tx = TransactionRequest(
            chain_id=chain_id,
            to=to,
            data=data,
            value=value,
            from_address=filler_address,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
        )
        try:
            return int(await self.client.estimate_gas(chain_id, tx))
        except Exception as e:
            raise SubmissionError(
                f"Gas estimation failed on chain {chain_id}: {e}",
                details={"value": value},
            ) from e

    def _reject(self, reason: RejectionReason, message: str, **details) -> SettlementRejection:
        logger.info("Settlement rejected", reason=reason.value, detail=message, **details)
        return SettlementRejection(reason=reason, message=message, details=details)

    async def quote(
        self,
        request: BroadcastRequest,
        fill_data: str,
        filler_address: str,
    ) -> QuoteOutcome:
        """
        Size a fill of ``request`` on its mandate chain.

        Args:
            request: Validated broadcast request.
            fill_data: ABI-encoded Tribunal ``fill`` call.
            filler_address: Address that signs and pays for the fill.
        """
        chain_id = request.mandate_chain_id
        mandate = request.compact.mandate
        dispensation_usd = request.context.dispensation_usd_amount

        if not self.config.supports(chain_id):
            return self._reject(
                RejectionReason.UNSUPPORTED_CHAIN, f"Unsupported chain ID: {chain_id}"
            )

        tokens = self.config.tokens[chain_id]
        if not tokens.is_supported(mandate.token):
            return self._reject(
                RejectionReason.UNSUPPORTED_TOKEN,
                "Unsupported mandate token",
                dispensation_usd=dispensation_usd,
            )

        try:
            price = self.prices.get_price(chain_id)
        except StalePriceError as e:
            return self._reject(RejectionReason.STALE_PRICE, e.message)
        except PriceUnavailableError as e:
            return self._reject(RejectionReason.PRICE_UNAVAILABLE, e.message)
        logger.debug("Current ETH price", chain_id=chain_id, price=price)

        minimum_amount = to_int(mandate.minimum_amount)
        simulation_settlement = minimum_amount * SIMULATION_SETTLEMENT_PCT // 100

        token_balance = await retrieve_token_balance(
            self.client, chain_id, mandate.token, filler_address
        )
        if token_balance < minimum_amount:
            return self._reject(
                RejectionReason.INSUFFICIENT_TOKEN_BALANCE,
                "Token balance is less than minimum required settlement amount",
                dispensation_usd=dispensation_usd,
            )
        if token_balance < simulation_settlement:
            return self._reject(
                RejectionReason.INSUFFICIENT_TOKEN_BALANCE,
                "Token balance is less than simulation settlement amount",
                dispensation_usd=dispensation_usd,
            )

        simulation_value = self.calculate_fill_value(request, simulation_settlement)
        native_balance = await retrieve_token_balance(
            self.client, chain_id, ZERO_ADDRESS, filler_address
        )
        if native_balance < simulation_value:
            return self._reject(
                RejectionReason.INSUFFICIENT_NATIVE_FOR_SIMULATION,
                "ETH balance is less than simulation value",
                dispensation_usd=dispensation_usd,
            )

        block = await self.client.get_latest_block(chain_id)
        if not block.base_fee_per_gas:
            return self._reject(
                RejectionReason.MISSING_BASE_FEE,
                "Could not get base fee from latest block",
                dispensation_usd=dispensation_usd,
            )

        priority_fee = self.config.priority_fees[chain_id]
        max_fee = max_fee_per_gas(block.base_fee_per_gas, priority_fee)

        logger.debug("Performing initial simulation to get gas estimate")
        estimated_gas = await self._estimate(
            chain_id, mandate.tribunal, fill_data, simulation_value,
            filler_address, max_fee, priority_fee,
        )
        gas_usd = self.gas_cost_usd(estimated_gas, max_fee, price)
        logger.debug(
            "Got gas estimate",
            estimated_gas=estimated_gas,
            gas_with_buffer=buffered_gas(estimated_gas),
        )

        settlement_amount = self.get_max_settlement_amount(
            request, estimated_gas=estimated_gas, max_fee=max_fee, price=price
        )
        logger.debug("Settlement", amount=settlement_amount, minimum=minimum_amount)

        if settlement_amount <= minimum_amount:
            return self._reject(
                RejectionReason.UNPROFITABLE,
                "Fill estimated to be unprofitable after execution costs",
                dispensation_usd=dispensation_usd,
                gas_cost_usd=float(gas_usd),
            )

        if token_balance < settlement_amount:
            return self._reject(
                RejectionReason.INSUFFICIENT_TOKEN_BALANCE,
                "Token balance is less than settlement amount",
                dispensation_usd=dispensation_usd,
            )

        value = self.calculate_fill_value(request, settlement_amount)
        final_estimated_gas = await self._estimate(
            chain_id, mandate.tribunal, fill_data, value,
            filler_address, max_fee, priority_fee,
        )
        gas_limit = buffered_gas(final_estimated_gas)
        logger.debug(
            "Got final gas estimate",
            final_estimated_gas=final_estimated_gas,
            final_gas_with_buffer=gas_limit,
        )

        required_balance = value + max_fee * gas_limit
        if native_balance < required_balance:
            shortage = Decimal(required_balance - native_balance) / _WEI_PER_ETH
            return self._reject(
                RejectionReason.INSUFFICIENT_NATIVE_BALANCE,
                f"Insufficient ETH balance. Need {Decimal(required_balance) / _WEI_PER_ETH} ETH "
                f"but only have {Decimal(native_balance) / _WEI_PER_ETH} ETH "
                f"(short {shortage:.6f} ETH)",
                dispensation_usd=dispensation_usd,
                gas_cost_usd=float(gas_usd),
            )

        logger.debug(
            "Account balance exceeds required balance",
            native_balance=native_balance,
            required_balance=required_balance,
        )

        return SettlementQuote(
            chain_id=chain_id,
            to=mandate.tribunal,
            data=fill_data,
            value=value,
            settlement_amount=settlement_amount,
            minimum_amount=minimum_amount,
            estimated_gas=final_estimated_gas,
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
            gas_cost_usd=float(self.gas_cost_usd(final_estimated_gas, max_fee, price)),
        )
