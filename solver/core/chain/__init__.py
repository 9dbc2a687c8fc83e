"""
Chain Client boundary

- ChainClient / ContractBinding: protocols consumed by the solving engine
- Web3ChainClient: web3.py implementation with a local signer
- retrieve_token_balance: native or ERC-20 balance lookup
- chain_id_for / chain_name_for: chain name <-> id mapping
"""

from .client import (
    ChainClient,
    ContractBinding,
    Web3ChainClient,
    Web3ContractBinding,
)
from .models import (
    ZERO_ADDRESS,
    Block,
    EventLog,
    TransactionReceipt,
    TransactionRequest,
    bytes32_to_address,
)
from .chains import CHAIN_ID_TO_NAME, CHAIN_NAME_TO_ID, chain_id_for, chain_name_for
from .utils import is_zero_address, retrieve_token_balance

__all__ = [
    "ChainClient",
    "ContractBinding",
    "Web3ChainClient",
    "Web3ContractBinding",
    "ZERO_ADDRESS",
    "Block",
    "EventLog",
    "TransactionReceipt",
    "TransactionRequest",
    "bytes32_to_address",
    "CHAIN_ID_TO_NAME",
    "CHAIN_NAME_TO_ID",
    "chain_id_for",
    "chain_name_for",
    "is_zero_address",
    "retrieve_token_balance",
]
