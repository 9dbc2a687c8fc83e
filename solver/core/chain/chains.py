"""
Chain identification helpers.

Protocol metadata and allow/block lists refer to chains by name
("base", "optimism"); contracts and transactions use integer chain ids.
"""

from typing import Dict, Optional, Union


CHAIN_NAME_TO_ID: Dict[str, int] = {
    "ethereum": 1,
    "optimism": 10,
    "unichain": 130,
    "base": 8453,
    "arbitrum": 42161,
    "sepolia": 11155111,
    "basesepolia": 84532,
    "optimismsepolia": 11155420,
    "arbitrumsepolia": 421614,
}

CHAIN_ID_TO_NAME: Dict[int, str] = {v: k for k, v in CHAIN_NAME_TO_ID.items()}


def chain_id_for(chain: Union[str, int]) -> int:
    """
    Resolve a chain name or id to a chain id.

    Raises:
        ValueError: unknown chain name.
    """
    if isinstance(chain, int):
        return chain
    text = str(chain).strip().lower().replace("-", "")
    if text.isdigit():
        return int(text)
    if text not in CHAIN_NAME_TO_ID:
        raise ValueError(f"Unknown chain name: {chain}")
    return CHAIN_NAME_TO_ID[text]


def chain_name_for(chain_id: int) -> Optional[str]:
    return CHAIN_ID_TO_NAME.get(int(chain_id))
