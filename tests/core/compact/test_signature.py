"""
Tests for sponsor/allocator signature verification.
"""

import pytest

from conftest import (
    ALLOCATOR_ID,
    ALLOCATOR_KEY,
    ALLOCATOR_SIGNER,
    ORIGIN_CHAIN,
    SPONSOR,
    SPONSOR_KEY,
    build_payload,
    compact_signature,
    sign_payload,
)
from solver.core.compact.claim_hash import COMPACT_REGISTRATION_TYPEHASH, derive_claim_hash
from solver.core.compact.service import RegistrationStatus
from solver.core.compact.signature import (
    AuthFailure,
    extract_allocator_id,
    signing_digest,
    split_signature,
    verify_broadcast_request,
    verify_signature,
)


CLAIM_HASH = "0x" + "5a" * 32


class FakeCompactService:
    def __init__(self, status=None, error=None):
        self.status = status or RegistrationStatus(is_active=False, expires=0)
        self.error = error
        self.calls = []

    async def get_registration_status(self, chain_id, sponsor, claim_hash, typehash):
        self.calls.append((chain_id, sponsor, claim_hash, typehash))
        if self.error is not None:
            raise self.error
        return self.status


def _allocators():
    return {ALLOCATOR_ID: ALLOCATOR_SIGNER}


def _flip_bit(signature: str) -> str:
    raw = bytearray(bytes.fromhex(signature[2:]))
    raw[5] ^= 0x01
    return "0x" + raw.hex()


def test_extract_allocator_id():
    compact_id = (ALLOCATOR_ID << 160) | 0xABCDEF
    assert extract_allocator_id(str(compact_id)) == ALLOCATOR_ID
    assert extract_allocator_id(hex(compact_id)) == ALLOCATOR_ID


def test_extract_allocator_id_masks_to_92_bits():
    compact_id = (1 << 252) | (ALLOCATOR_ID << 160)
    assert extract_allocator_id(compact_id) == ALLOCATOR_ID


def test_compact_and_full_signatures_recover_the_same_signer(metadata):
    prefix = metadata.domain_prefix(ORIGIN_CHAIN)
    digest = signing_digest(CLAIM_HASH, prefix)
    full = SPONSOR_KEY.sign_msg_hash(digest).to_hex()

    assert verify_signature(CLAIM_HASH, compact_signature(SPONSOR_KEY, digest), SPONSOR, prefix)
    assert verify_signature(CLAIM_HASH, full, SPONSOR, prefix)


def test_split_signature_accepts_legacy_v():
    raw = "0x" + "11" * 32 + "22" * 32 + "1c"
    v, r, s = split_signature(raw)
    assert v == 1
    assert r == int("11" * 32, 16)
    assert s == int("22" * 32, 16)


def test_split_signature_rejects_bad_length():
    with pytest.raises(ValueError):
        split_signature("0x" + "11" * 40)


def test_bit_flipped_signature_is_rejected(metadata):
    prefix = metadata.domain_prefix(ORIGIN_CHAIN)
    signature = compact_signature(SPONSOR_KEY, signing_digest(CLAIM_HASH, prefix))

    assert not verify_signature(CLAIM_HASH, _flip_bit(signature), SPONSOR, prefix)


def test_signature_for_another_chain_is_rejected(metadata):
    signature = compact_signature(
        SPONSOR_KEY, signing_digest(CLAIM_HASH, metadata.domain_prefix(8453))
    )
    assert not verify_signature(CLAIM_HASH, signature, SPONSOR, metadata.domain_prefix(ORIGIN_CHAIN))


def test_garbage_signature_returns_false():
    assert not verify_signature(CLAIM_HASH, "0x1234", SPONSOR, "0x1901" + "00" * 32)


async def _verify(request, metadata, service=None):
    request = request.with_claim_hash(_claim_hash(request))
    return await verify_broadcast_request(
        request,
        service or FakeCompactService(),
        metadata.domain_prefix(ORIGIN_CHAIN),
        _allocators(),
    )


def _claim_hash(request):
    return derive_claim_hash(request.compact)


@pytest.mark.asyncio
async def test_valid_sponsor_and_allocator_signatures(make_request, metadata):
    result = await _verify(make_request(), metadata)

    assert result.is_valid
    assert result.error is None
    assert not result.is_onchain_registration


@pytest.mark.asyncio
async def test_missing_sponsor_signature_uses_onchain_registration(make_request, metadata):
    service = FakeCompactService(RegistrationStatus(is_active=True, expires=2**32))

    result = await _verify(make_request(sponsor=False), metadata, service)

    assert result.is_valid
    assert result.is_onchain_registration
    chain_id, sponsor, _, typehash = service.calls[0]
    assert (chain_id, sponsor, typehash) == (ORIGIN_CHAIN, SPONSOR, COMPACT_REGISTRATION_TYPEHASH)


@pytest.mark.asyncio
async def test_missing_sponsor_signature_without_registration(make_request, metadata):
    result = await _verify(make_request(sponsor=False), metadata)

    assert not result.is_valid
    assert result.failure == AuthFailure.SPONSOR
    assert "no active onchain registration" in result.error


@pytest.mark.asyncio
async def test_registration_lookup_error_is_a_result(make_request, metadata):
    service = FakeCompactService(error=ConnectionError("rpc down"))

    result = await _verify(make_request(sponsor=False), metadata, service)

    assert not result.is_valid
    assert result.error == "Failed to check onchain registration status"


@pytest.mark.asyncio
async def test_invalid_allocator_signature(make_request, metadata):
    request = make_request()
    tampered = request.model_copy(
        update={"allocator_signature": _flip_bit(request.allocator_signature)}
    )

    result = await _verify(tampered, metadata)

    assert result.sponsor_valid
    assert not result.allocator_valid
    assert result.failure == AuthFailure.ALLOCATOR
    assert result.error == "Invalid allocator signature"


@pytest.mark.asyncio
async def test_unknown_allocator(make_request, metadata):
    request = make_request()
    request = request.with_claim_hash(_claim_hash(request))

    result = await verify_broadcast_request(
        request, FakeCompactService(), metadata.domain_prefix(ORIGIN_CHAIN), {}
    )

    assert result.failure == AuthFailure.ALLOCATOR
    assert result.error == f"No allocator found for ID: {ALLOCATOR_ID}"


@pytest.mark.asyncio
async def test_both_checks_run_and_sponsor_failure_is_reported(make_request, metadata):
    request = make_request()
    tampered = request.model_copy(
        update={
            "sponsor_signature": _flip_bit(request.sponsor_signature),
            "allocator_signature": _flip_bit(request.allocator_signature),
        }
    )

    result = await _verify(tampered, metadata)

    assert not result.sponsor_valid
    assert not result.allocator_valid
    assert result.failure == AuthFailure.SPONSOR
    assert result.error == "Invalid sponsor signature provided"


@pytest.mark.asyncio
async def test_signatures_from_wrong_keys(metadata):
    request = sign_payload(build_payload(), metadata)
    swapped = request.model_copy(update={"sponsor_signature": request.allocator_signature})

    result = await _verify(swapped, metadata)

    assert result.failure == AuthFailure.SPONSOR
    assert ALLOCATOR_KEY.public_key.to_checksum_address().lower() != SPONSOR


@pytest.mark.asyncio
async def test_one_bit_flipped_claim_hash_fails_sponsor_check(make_request, metadata):
    request = make_request()
    claim_hash = bytearray(bytes.fromhex(_claim_hash(request)[2:]))
    claim_hash[31] ^= 0x01

    result = await verify_broadcast_request(
        request.with_claim_hash("0x" + claim_hash.hex()),
        FakeCompactService(),
        metadata.domain_prefix(ORIGIN_CHAIN),
        _allocators(),
    )

    assert not result.is_valid
    assert not result.sponsor_valid
    assert result.failure == AuthFailure.SPONSOR
