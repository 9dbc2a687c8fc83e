"""Helpers shared by protocol fillers for common chain reads."""

from __future__ import annotations

from .client import ChainClient
from .models import ZERO_ADDRESS


def is_zero_address(address: str) -> bool:
    """Return ``True`` for the native-asset sentinel address."""

    return address.lower() == ZERO_ADDRESS


async def retrieve_token_balance(
    client: ChainClient,
    chain_id: int,
    token: str,
    owner: str,
) -> int:
    """Balance of ``owner`` in ``token`` on ``chain_id``.

    The zero address stands for the chain's native asset.
    """

    if is_zero_address(token):
        return await client.get_balance(chain_id, owner)

    erc20 = client.contract(chain_id, "ERC20", token)
    return int(await erc20.call("balanceOf", owner))


__all__ = ["is_zero_address", "retrieve_token_balance"]
