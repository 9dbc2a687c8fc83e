"""
Allow/Block Lists

Per-protocol filters on who may be filled and where. Each entry matches a
sender address, destination chain name and recipient address; every field
is either ``"*"`` or a list of accepted values.

An intent is rejected when any of its recipients matches a block entry, or
when the allow list is non-empty and no allow entry matches.
"""

from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Wildcard = Literal["*"]


class AllowBlockListItem(BaseModel):
    """One allow or block entry."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender_address: Union[Wildcard, List[str]] = Field("*", alias="senderAddress")
    destination_domain: Union[Wildcard, List[str]] = Field("*", alias="destinationDomain")
    recipient_address: Union[Wildcard, List[str]] = Field("*", alias="recipientAddress")


class AllowBlockLists(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    allow_list: List[AllowBlockListItem] = Field(default_factory=list, alias="allowList")
    block_list: List[AllowBlockListItem] = Field(default_factory=list, alias="blockList")


@dataclass(frozen=True)
class IntentRoute:
    """The parties and destination an allow/block entry is matched against."""
    sender_address: str
    destination_domain: Optional[str]
    recipient_address: str


def _field_matches(expected: Union[str, List[str]], actual: Optional[str]) -> bool:
    if expected == "*":
        return True
    if actual is None:
        return False
    return actual.lower() in {value.lower() for value in expected}


def _item_matches(item: AllowBlockListItem, route: IntentRoute) -> bool:
    return (
        _field_matches(item.sender_address, route.sender_address)
        and _field_matches(item.destination_domain, route.destination_domain)
        and _field_matches(item.recipient_address, route.recipient_address)
    )


def is_allowed_route(lists: AllowBlockLists, route: IntentRoute) -> bool:
    if any(_item_matches(item, route) for item in lists.block_list):
        return False
    if not lists.allow_list:
        return True
    return any(_item_matches(item, route) for item in lists.allow_list)


def is_allowed_intent(lists: AllowBlockLists, routes: Iterable[IntentRoute]) -> bool:
    """True when every route of an intent passes the lists."""
    return all(is_allowed_route(lists, route) for route in routes)
