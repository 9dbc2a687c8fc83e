"""Eco ``IntentCreated`` listeners, one per IntentSource contract."""

from typing import List

from ...core.chain.client import ChainClient
from ...core.chain.models import EventLog
from ...services.events.chain_log_listener import ChainLogSource
from .metadata import EcoMetadata
from .models import IntentCreatedArgs


def parse_intent_created(entry: EventLog) -> IntentCreatedArgs:
    return IntentCreatedArgs.model_validate(entry.args)


def _intent_hash(intent: IntentCreatedArgs) -> str:
    return intent.intent_hash


def create_chain_listeners(
    chain_client: ChainClient, metadata: EcoMetadata, **kwargs
) -> List[ChainLogSource[IntentCreatedArgs]]:
    return [
        ChainLogSource(
            chain_client,
            source.chain_id,
            "IntentSource",
            source.address,
            "IntentCreated",
            parse=parse_intent_created,
            intent_id=_intent_hash,
            chain_name=source.chain_name,
            poll_interval=source.poll_interval,
            confirmation_blocks=source.confirmation_blocks,
            initial_block=source.initial_block,
            processed_ids=source.processed_ids,
            **kwargs,
        )
        for source in metadata.intent_sources
    ]
