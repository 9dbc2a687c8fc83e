"""
Tests for claim hash derivation and the signing domain.
"""

import pytest
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address

from conftest import THE_COMPACT, build_payload
from solver.core.compact.claim_hash import (
    COMPACT_TYPEHASH,
    MANDATE_TYPEHASH,
    derive_claim_hash,
    derive_witness_hash,
    domain_prefix,
    domain_separator,
)
from solver.core.compact.models import BroadcastRequest, to_int
from solver.core.errors import ClaimHashError, ErrorCategory


def _compact(**overrides):
    payload = build_payload()
    payload["compact"].update(overrides)
    return BroadcastRequest.model_validate(payload).compact


def test_claim_hash_is_deterministic_hex():
    compact = _compact()

    first = derive_claim_hash(compact)
    second = derive_claim_hash(compact)

    assert first == second
    assert first.startswith("0x")
    assert len(first) == 66


def test_claim_hash_changes_with_any_field():
    baseline = derive_claim_hash(_compact())

    assert derive_claim_hash(_compact(amount="1000000001")) != baseline
    assert derive_claim_hash(_compact(nonce="0x" + "00" * 31 + "02")) != baseline


def test_mandate_fields_feed_the_witness():
    compact = _compact()
    changed = compact.mandate.model_copy(update={"minimum_amount": "1"})

    assert derive_witness_hash(changed) != derive_witness_hash(compact.mandate)


def test_hex_and_decimal_amounts_hash_the_same():
    decimal = _compact(amount="4096")
    hexadecimal = _compact(amount="0x1000")

    assert derive_claim_hash(decimal) == derive_claim_hash(hexadecimal)


@pytest.mark.parametrize("field", ["expires", "id", "amount"])
def test_zero_mandatory_field_raises(field):
    compact = _compact(**{field: "0"})

    with pytest.raises(ClaimHashError) as exc:
        derive_claim_hash(compact)

    assert exc.value.category == ErrorCategory.VALIDATION
    assert field in exc.value.message


def test_zero_nonce_is_allowed():
    assert derive_claim_hash(_compact(nonce="0x" + "00" * 32)).startswith("0x")


def test_typehashes_are_32_bytes():
    assert len(MANDATE_TYPEHASH) == 32
    assert len(COMPACT_TYPEHASH) == 32
    assert MANDATE_TYPEHASH != COMPACT_TYPEHASH


def test_domain_prefix_is_1901_plus_separator():
    prefix = domain_prefix(10, THE_COMPACT)

    assert prefix == "0x1901" + domain_separator(10, THE_COMPACT).hex()
    assert len(prefix) == 2 + 4 + 64
    assert domain_prefix(8453, THE_COMPACT) != prefix


FIXED_EXPIRES = 1_900_000_000


def _fixed_compact():
    payload = build_payload()
    payload["compact"]["expires"] = str(FIXED_EXPIRES)
    payload["compact"]["mandate"]["expires"] = str(FIXED_EXPIRES - 600)
    return BroadcastRequest.model_validate(payload).compact


def _typed_data(compact, chain_id):
    mandate = compact.mandate
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "Compact": [
                {"name": "arbiter", "type": "address"},
                {"name": "sponsor", "type": "address"},
                {"name": "nonce", "type": "uint256"},
                {"name": "expires", "type": "uint256"},
                {"name": "id", "type": "uint256"},
                {"name": "amount", "type": "uint256"},
                {"name": "mandate", "type": "Mandate"},
            ],
            "Mandate": [
                {"name": "chainId", "type": "uint256"},
                {"name": "tribunal", "type": "address"},
                {"name": "recipient", "type": "address"},
                {"name": "expires", "type": "uint256"},
                {"name": "token", "type": "address"},
                {"name": "minimumAmount", "type": "uint256"},
                {"name": "baselinePriorityFee", "type": "uint256"},
                {"name": "scalingFactor", "type": "uint256"},
                {"name": "salt", "type": "bytes32"},
            ],
        },
        "primaryType": "Compact",
        "domain": {
            "name": "The Compact",
            "version": "0",
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(THE_COMPACT),
        },
        "message": {
            "arbiter": to_checksum_address(compact.arbiter),
            "sponsor": to_checksum_address(compact.sponsor),
            "nonce": to_int(compact.nonce),
            "expires": to_int(compact.expires),
            "id": to_int(compact.id),
            "amount": to_int(compact.amount),
            "mandate": {
                "chainId": mandate.chain_id,
                "tribunal": to_checksum_address(mandate.tribunal),
                "recipient": to_checksum_address(mandate.recipient),
                "expires": to_int(mandate.expires),
                "token": to_checksum_address(mandate.token),
                "minimumAmount": to_int(mandate.minimum_amount),
                "baselinePriorityFee": to_int(mandate.baseline_priority_fee),
                "scalingFactor": to_int(mandate.scaling_factor),
                "salt": bytes.fromhex(mandate.salt[2:]),
            },
        },
    }


def test_claim_hash_matches_eip712_reference_encoder():
    compact = _fixed_compact()

    reference = encode_typed_data(full_message=_typed_data(compact, 10))

    assert derive_claim_hash(compact) == "0x" + reference.body.hex()
    assert domain_separator(10, THE_COMPACT) == reference.header

