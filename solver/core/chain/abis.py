"""
Minimal contract ABIs for the contracts the solver talks to.

Only the functions and events the solver encodes or reads are listed.
"""

from typing import Any, Dict, List


def _tuple(name: str, components: List[Dict[str, Any]], type_: str = "tuple") -> Dict[str, Any]:
    return {"name": name, "type": type_, "components": components}


def _field(name: str, type_: str, indexed: bool = None) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"name": name, "type": type_}
    if indexed is not None:
        entry["indexed"] = indexed
    return entry


_COMPACT_COMPONENTS = [
    _field("arbiter", "address"),
    _field("sponsor", "address"),
    _field("nonce", "uint256"),
    _field("expires", "uint256"),
    _field("id", "uint256"),
    _field("amount", "uint256"),
]

_CLAIM_COMPONENTS = [
    _field("chainId", "uint256"),
    _tuple("compact", _COMPACT_COMPONENTS),
    _field("sponsorSignature", "bytes"),
    _field("allocatorSignature", "bytes"),
]

_MANDATE_COMPONENTS = [
    _field("recipient", "address"),
    _field("expires", "uint256"),
    _field("token", "address"),
    _field("minimumAmount", "uint256"),
    _field("baselinePriorityFee", "uint256"),
    _field("scalingFactor", "uint256"),
    _field("salt", "bytes32"),
]

TRIBUNAL_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "fill",
        "stateMutability": "payable",
        "inputs": [
            _tuple("claim", _CLAIM_COMPONENTS),
            _tuple("mandate", _MANDATE_COMPONENTS),
            _field("claimant", "address"),
        ],
        "outputs": [
            _field("mandateHash", "bytes32"),
            _field("settlementAmount", "uint256"),
            _field("claimAmount", "uint256"),
        ],
    },
    {
        "type": "function",
        "name": "filled",
        "stateMutability": "view",
        "inputs": [_field("claimHash", "bytes32")],
        "outputs": [_field("", "bool")],
    },
]

THE_COMPACT_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "hasConsumedAllocatorNonce",
        "stateMutability": "view",
        "inputs": [_field("nonce", "uint256"), _field("allocator", "address")],
        "outputs": [_field("", "bool")],
    },
    {
        "type": "function",
        "name": "getRegistrationStatus",
        "stateMutability": "view",
        "inputs": [
            _field("sponsor", "address"),
            _field("claimHash", "bytes32"),
            _field("typehash", "bytes32"),
        ],
        "outputs": [_field("isActive", "bool"), _field("expires", "uint256")],
    },
]

ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [_field("account", "address")],
        "outputs": [_field("", "uint256")],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [_field("spender", "address"), _field("amount", "uint256")],
        "outputs": [_field("", "bool")],
    },
]

_OUTPUT_COMPONENTS = [
    _field("token", "bytes32"),
    _field("amount", "uint256"),
    _field("recipient", "bytes32"),
    _field("chainId", "uint256"),
]

_FILL_INSTRUCTION_COMPONENTS = [
    _field("destinationChainId", "uint256"),
    _field("destinationSettler", "bytes32"),
    _field("originData", "bytes"),
]

HYPERLANE7683_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "fill",
        "stateMutability": "payable",
        "inputs": [
            _field("_orderId", "bytes32"),
            _field("_originData", "bytes"),
            _field("_fillerData", "bytes"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "orderStatus",
        "stateMutability": "view",
        "inputs": [_field("orderId", "bytes32")],
        "outputs": [_field("", "bytes32")],
    },
    {
        "type": "event",
        "name": "Open",
        "anonymous": False,
        "inputs": [
            _field("orderId", "bytes32", indexed=True),
            {
                "name": "resolvedOrder",
                "type": "tuple",
                "indexed": False,
                "components": [
                    _field("user", "address"),
                    _field("originChainId", "uint256"),
                    _field("openDeadline", "uint32"),
                    _field("fillDeadline", "uint32"),
                    _field("orderId", "bytes32"),
                    _tuple("maxSpent", _OUTPUT_COMPONENTS, "tuple[]"),
                    _tuple("minReceived", _OUTPUT_COMPONENTS, "tuple[]"),
                    _tuple("fillInstructions", _FILL_INSTRUCTION_COMPONENTS, "tuple[]"),
                ],
            },
        ],
    },
]

INTENT_SOURCE_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "withdrawRewards",
        "stateMutability": "nonpayable",
        "inputs": [_field("_hash", "bytes32")],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "IntentCreated",
        "anonymous": False,
        "inputs": [
            _field("_hash", "bytes32", indexed=True),
            _field("_creator", "address", indexed=False),
            _field("_destinationChain", "uint256", indexed=True),
            _field("_targets", "address[]", indexed=False),
            _field("_data", "bytes[]", indexed=False),
            _field("_rewardTokens", "address[]", indexed=False),
            _field("_rewardAmounts", "uint256[]", indexed=False),
            _field("_expiryTime", "uint256", indexed=True),
            _field("nonce", "bytes32", indexed=False),
            _field("_prover", "address", indexed=False),
        ],
    },
]

ECO_ADAPTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "fetchFee",
        "stateMutability": "view",
        "inputs": [
            _field("_sourceChainID", "uint256"),
            _field("_hashes", "bytes32[]"),
            _field("_claimants", "address[]"),
            _field("_prover", "address"),
        ],
        "outputs": [_field("", "uint256")],
    },
    {
        "type": "function",
        "name": "fulfillHyperInstant",
        "stateMutability": "payable",
        "inputs": [
            _field("_sourceChainID", "uint256"),
            _field("_targets", "address[]"),
            _field("_data", "bytes[]"),
            _field("_expiryTime", "uint256"),
            _field("_nonce", "bytes32"),
            _field("_claimant", "address"),
            _field("_expectedHash", "bytes32"),
            _field("_prover", "address"),
        ],
        "outputs": [_field("", "bytes[]")],
    },
]

HYPER_PROVER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "provenIntents",
        "stateMutability": "view",
        "inputs": [_field("", "bytes32")],
        "outputs": [_field("", "address")],
    },
]

ABIS: Dict[str, List[Dict[str, Any]]] = {
    "Tribunal": TRIBUNAL_ABI,
    "TheCompact": THE_COMPACT_ABI,
    "ERC20": ERC20_ABI,
    "Hyperlane7683": HYPERLANE7683_ABI,
    "IntentSource": INTENT_SOURCE_ABI,
    "EcoAdapter": ECO_ADAPTER_ABI,
    "HyperProver": HYPER_PROVER_ABI,
}
