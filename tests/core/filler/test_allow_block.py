from solver.core.filler.allow_block import (
    AllowBlockListItem,
    AllowBlockLists,
    IntentRoute,
    is_allowed_intent,
    is_allowed_route,
)


ROUTE = IntentRoute(
    sender_address="0xAAaa000000000000000000000000000000000001",
    destination_domain="base",
    recipient_address="0xbbbb000000000000000000000000000000000002",
)


def test_empty_lists_allow_everything():
    assert is_allowed_route(AllowBlockLists(), ROUTE)


def test_block_entry_matches_case_insensitively():
    lists = AllowBlockLists(
        block_list=[AllowBlockListItem(sender_address=[ROUTE.sender_address.lower()])]
    )
    assert not is_allowed_route(lists, ROUTE)


def test_allow_list_requires_a_match():
    lists = AllowBlockLists(allow_list=[AllowBlockListItem(destination_domain=["optimism"])])
    assert not is_allowed_route(lists, ROUTE)

    lists = AllowBlockLists(allow_list=[AllowBlockListItem(destination_domain=["base"])])
    assert is_allowed_route(lists, ROUTE)


def test_block_wins_over_allow():
    lists = AllowBlockLists(
        allow_list=[AllowBlockListItem()],
        block_list=[AllowBlockListItem(recipient_address=[ROUTE.recipient_address])],
    )
    assert not is_allowed_route(lists, ROUTE)


def test_unknown_destination_only_matches_wildcard():
    route = IntentRoute(ROUTE.sender_address, None, ROUTE.recipient_address)
    lists = AllowBlockLists(allow_list=[AllowBlockListItem(destination_domain=["base"])])

    assert not is_allowed_route(lists, route)
    assert is_allowed_route(AllowBlockLists(allow_list=[AllowBlockListItem()]), route)


def test_intent_is_blocked_when_any_recipient_is_blocked():
    other = IntentRoute(ROUTE.sender_address, "base", "0xcccc000000000000000000000000000000000003")
    lists = AllowBlockLists.model_validate(
        {"blockList": [{"recipientAddress": [other.recipient_address]}]}
    )

    assert not is_allowed_intent(lists, [ROUTE, other])
    assert is_allowed_intent(lists, [ROUTE])
