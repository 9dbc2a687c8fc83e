"""Read-only access to The Compact contract."""

from dataclasses import dataclass
from typing import Mapping

import structlog

from ..chain.client import ChainClient, ContractBinding
from ..errors import UnsupportedChainError
from .claim_hash import claim_hash_bytes


logger = structlog.stdlib.get_logger(__name__)


@dataclass(frozen=True)
class RegistrationStatus:
    """On-chain registration of a claim hash by its sponsor."""
    is_active: bool
    expires: int


class TheCompactService:
    """Reads nonce consumption and registration status from The Compact."""

    def __init__(self, client: ChainClient, compact_addresses: Mapping[int, str]):
        self.client = client
        self._addresses = {int(k): v for k, v in compact_addresses.items()}

    def _contract(self, chain_id: int) -> ContractBinding:
        address = self._addresses.get(int(chain_id))
        if not address:
            raise UnsupportedChainError(chain_id)
        return self.client.contract(int(chain_id), "TheCompact", address)

    async def has_consumed_allocator_nonce(self, chain_id: int, nonce: int, allocator: str) -> bool:
        the_compact = self._contract(chain_id)
        return bool(await the_compact.call("hasConsumedAllocatorNonce", int(nonce), allocator))

    async def get_registration_status(
        self,
        chain_id: int,
        sponsor: str,
        claim_hash: str,
        typehash: str,
    ) -> RegistrationStatus:
        logger.debug(
            "Fetching registration status for sponsor",
            sponsor=sponsor,
            claim_hash=claim_hash,
            typehash=typehash,
            chain_id=chain_id,
        )

        the_compact = self._contract(chain_id)
        try:
            is_active, expires = await the_compact.call(
                "getRegistrationStatus",
                sponsor,
                claim_hash_bytes(claim_hash),
                claim_hash_bytes(typehash),
            )
        except Exception as e:
            logger.debug(
                "Error in getRegistrationStatus",
                error=str(e),
                chain_id=chain_id,
                sponsor=sponsor,
                claim_hash=claim_hash,
            )
            raise

        logger.debug("Registration status", is_active=is_active, expires=expires)
        return RegistrationStatus(is_active=bool(is_active), expires=int(expires))
