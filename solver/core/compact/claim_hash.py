"""
Claim hash derivation.

The claim hash is the EIP-712 struct hash of a Compact carrying a Mandate
witness, computed exactly as The Compact and Tribunal compute it on-chain:

    witnessHash = keccak256(abi.encode(MANDATE_TYPEHASH, chainId, tribunal,
                  recipient, expires, token, minimumAmount,
                  baselinePriorityFee, scalingFactor, salt))
    claimHash   = keccak256(abi.encode(COMPACT_TYPEHASH, arbiter, sponsor,
                  nonce, expires, id, amount, witnessHash))
"""

from typing import Any, Union

from eth_abi import encode
from eth_utils import keccak, to_bytes, to_checksum_address

from ..errors import ClaimHashError
from .models import CompactMessage, Mandate, to_int


MANDATE_TYPESTRING = (
    "Mandate(uint256 chainId,address tribunal,address recipient,uint256 expires,"
    "address token,uint256 minimumAmount,uint256 baselinePriorityFee,"
    "uint256 scalingFactor,bytes32 salt)"
)
COMPACT_TYPESTRING = (
    "Compact(address arbiter,address sponsor,uint256 nonce,uint256 expires,"
    "uint256 id,uint256 amount,Mandate mandate)" + MANDATE_TYPESTRING
)

MANDATE_TYPEHASH = keccak(text=MANDATE_TYPESTRING)
COMPACT_TYPEHASH = keccak(text=COMPACT_TYPESTRING)

# Typehash a sponsor registers a claim hash under on The Compact
COMPACT_REGISTRATION_TYPEHASH = "0x27f09e0bb8ce2ae63380578af7af85055d3ada248c502e2378b85bc3d05ee0b0"

EIP712_DOMAIN_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
THE_COMPACT_NAME = "The Compact"
THE_COMPACT_VERSION = "0"


def _uint(name: str, value: Any, nonzero: bool = False) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ClaimHashError(f"Missing required field {name}")
    try:
        number = to_int(value)
    except (TypeError, ValueError) as e:
        raise ClaimHashError(f"Field {name} is not an integer: {value!r}") from e
    if number < 0:
        raise ClaimHashError(f"Field {name} must not be negative")
    if nonzero and number == 0:
        raise ClaimHashError(f"Field {name} must be non-zero")
    return number


def _address(name: str, value: Any) -> str:
    if not value:
        raise ClaimHashError(f"Missing required field {name}")
    try:
        return to_checksum_address(str(value).lower())
    except ValueError as e:
        raise ClaimHashError(f"Field {name} is not an address: {value!r}") from e


def _bytes32(name: str, value: Any) -> bytes:
    if not value:
        raise ClaimHashError(f"Missing required field {name}")
    raw = value if isinstance(value, bytes) else to_bytes(hexstr=str(value))
    if len(raw) != 32:
        raise ClaimHashError(f"Field {name} must be 32 bytes")
    return raw


def derive_witness_hash(mandate: Mandate) -> bytes:
    """Struct hash of the mandate witness."""
    encoded = encode(
        [
            "bytes32",  # MANDATE_TYPEHASH
            "uint256",  # chainId
            "address",  # tribunal
            "address",  # recipient
            "uint256",  # expires
            "address",  # token
            "uint256",  # minimumAmount
            "uint256",  # baselinePriorityFee
            "uint256",  # scalingFactor
            "bytes32",  # salt
        ],
        [
            MANDATE_TYPEHASH,
            _uint("mandate.chainId", mandate.chain_id, nonzero=True),
            _address("mandate.tribunal", mandate.tribunal),
            _address("mandate.recipient", mandate.recipient),
            _uint("mandate.expires", mandate.expires, nonzero=True),
            _address("mandate.token", mandate.token),
            _uint("mandate.minimumAmount", mandate.minimum_amount),
            _uint("mandate.baselinePriorityFee", mandate.baseline_priority_fee),
            _uint("mandate.scalingFactor", mandate.scaling_factor),
            _bytes32("mandate.salt", mandate.salt),
        ],
    )
    return keccak(encoded)


def derive_claim_hash(compact: CompactMessage) -> str:
    """Claim hash of a compact, as a 0x-prefixed hex string.

    Raises:
        ClaimHashError: a mandatory field is missing, malformed or zero.
    """
    witness_hash = derive_witness_hash(compact.mandate)

    encoded = encode(
        [
            "bytes32",  # COMPACT_TYPEHASH
            "address",  # arbiter
            "address",  # sponsor
            "uint256",  # nonce
            "uint256",  # expires
            "uint256",  # id
            "uint256",  # amount
            "bytes32",  # witnessHash
        ],
        [
            COMPACT_TYPEHASH,
            _address("arbiter", compact.arbiter),
            _address("sponsor", compact.sponsor),
            _uint("nonce", compact.nonce),
            _uint("expires", compact.expires, nonzero=True),
            _uint("id", compact.id, nonzero=True),
            _uint("amount", compact.amount, nonzero=True),
            witness_hash,
        ],
    )
    return "0x" + keccak(encoded).hex()


def domain_separator(chain_id: int, verifying_contract: str) -> bytes:
    """EIP-712 domain separator of The Compact on ``chain_id``."""
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=THE_COMPACT_NAME),
                keccak(text=THE_COMPACT_VERSION),
                int(chain_id),
                to_checksum_address(verifying_contract.lower()),
            ],
        )
    )


def domain_prefix(chain_id: int, verifying_contract: str) -> str:
    """``0x1901 || domainSeparator``: the bytes prepended to a claim hash before signing."""
    return "0x1901" + domain_separator(chain_id, verifying_contract).hex()


def claim_hash_bytes(claim_hash: Union[str, bytes]) -> bytes:
    if isinstance(claim_hash, bytes):
        return claim_hash
    return to_bytes(hexstr=claim_hash)
