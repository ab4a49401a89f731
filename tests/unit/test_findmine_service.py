from __future__ import annotations

import asyncio

import pytest

from findmine_mcp.core.errors import FindMineAPIError, FindMineResponseError, InvalidInputError
from findmine_mcp.schemas.upstream import ItemDetail
from findmine_mcp.services.resource_mapper import SYNTHETIC_LOOK_PREFIX


def test_complete_the_look_end_to_end(make_service, fake_client, ctl_payload):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client)

    result = asyncio.run(service.get_complete_the_look("P1", True, False))

    assert result.product is not None
    assert result.product.id == "P1"
    assert len(result.looks) == 1
    assert result.looks[0].id == "L1"
    assert result.looks[0].product_ids == ["P2"]
    assert service.get_product("P1").name == "Shirt"
    assert service.get_product("P2").formatted_price == "$69.99"
    assert service.get_look("L1") is not None
    assert {p.id for p in service.get_all_products()} == {"P1", "P2"}
    assert [look.id for look in service.get_all_looks()] == ["L1"]


def test_repeat_within_ttl_hits_cache(make_service, fake_client, ctl_payload, clock):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client, cache_ttl_ms=1000)

    asyncio.run(service.get_complete_the_look("P1", True, False))
    clock.advance_ms(1000)
    second = asyncio.run(service.get_complete_the_look("P1", True, False))

    assert len(client.calls["complete_the_look"]) == 1
    assert second.looks[0].product_ids == ["P2"]

    clock.advance_ms(1)
    asyncio.run(service.get_complete_the_look("P1", True, False))
    assert len(client.calls["complete_the_look"]) == 2


def test_session_and_customer_do_not_split_the_cache(make_service, fake_client, ctl_payload):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client)

    asyncio.run(service.get_complete_the_look("P1", True, False, session_id="a", customer_id="c1"))
    asyncio.run(service.get_complete_the_look("P1", True, False, session_id="b", customer_id="c2"))

    assert len(client.calls["complete_the_look"]) == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"product_id": "P2"},
        {"color_id": "RED"},
        {"in_stock": False},
        {"on_sale": True},
        {"return_pdp_item": False},
    ],
)
def test_response_shaping_parameters_split_the_cache(make_service, fake_client, ctl_payload, kwargs):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client)
    base = {"product_id": "P1", "in_stock": True, "on_sale": False}

    asyncio.run(service.get_complete_the_look(**base))
    asyncio.run(service.get_complete_the_look(**{**base, **kwargs}))

    assert len(client.calls["complete_the_look"]) == 2


@pytest.mark.parametrize("kwargs", [{"limit": 5}, {"offset": 10}, {"color_id": "RED"}, {"product_id": "P9"}])
def test_visually_similar_pagination_splits_the_cache(make_service, fake_client, kwargs):
    client = fake_client(visually_similar={"products": [{"product_id": "P3"}], "total": 1})
    service = make_service(client)
    base = {"product_id": "P1"}

    asyncio.run(service.get_visually_similar(**base))
    asyncio.run(service.get_visually_similar(**base, session_id="other"))
    asyncio.run(service.get_visually_similar(**{**base, **kwargs}))

    assert len(client.calls["visually_similar"]) == 2


def test_use_cache_false_refreshes_the_entry(make_service, fake_client, ctl_payload):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client)

    asyncio.run(service.get_complete_the_look("P1", True, False))
    client.complete_the_look = {"looks": [{"look_id": "L2", "products": []}]}
    refreshed = asyncio.run(service.get_complete_the_look("P1", True, False, use_cache=False))
    cached = asyncio.run(service.get_complete_the_look("P1", True, False))

    assert [look.id for look in refreshed.looks] == ["L2"]
    assert [look.id for look in cached.looks] == ["L2"]
    assert len(client.calls["complete_the_look"]) == 2


def test_disabled_cache_always_calls_upstream(make_service, fake_client, ctl_payload):
    client = fake_client(complete_the_look=ctl_payload)
    service = make_service(client, cache_enabled=False)

    asyncio.run(service.get_complete_the_look("P1", True, False))
    asyncio.run(service.get_complete_the_look("P1", True, False))

    assert len(client.calls["complete_the_look"]) == 2


def test_bad_look_is_skipped_and_the_rest_survive(make_service, fake_client):
    payload = {
        "looks": [
            {"look_id": "L1", "products": [{"product_id": "P1"}]},
            None,
            {"look_id": "L3", "products": [{"product_id": "P3"}]},
        ]
    }
    service = make_service(fake_client(complete_the_look=payload))

    result = asyncio.run(service.get_complete_the_look("P0", True, False))

    assert [look.id for look in result.looks] == ["L1", "L3"]
    assert service.get_product("P1") is not None
    assert service.get_product("P3") is not None


def test_bad_product_inside_look_is_skipped(make_service, fake_client):
    payload = {
        "looks": [
            {
                "look_id": "L1",
                "products": [{"name": "missing id"}, "garbage", {"product_id": "P2", "name": "Pants"}],
            }
        ]
    }
    service = make_service(fake_client(complete_the_look=payload))

    result = asyncio.run(service.get_complete_the_look("P0", True, False))

    assert result.looks[0].product_ids == ["P2"]
    assert [p.id for p in service.get_all_products()] == ["P2"]


def test_look_without_id_is_stored_under_synthetic_id(make_service, fake_client):
    payload = {"looks": [{"title": "Mystery", "order": ["P1", "P2"]}]}
    service = make_service(fake_client(complete_the_look=payload))

    result = asyncio.run(service.get_complete_the_look("P0", True, False))

    look = result.looks[0]
    assert look.id.startswith(SYNTHETIC_LOOK_PREFIX)
    assert look.product_ids == ["P1", "P2"]
    assert service.get_look(look.id) == look


def test_visually_similar_maps_and_publishes(make_service, fake_client):
    payload = {"products": [{"product_id": "P3", "name": "Tee"}, {"name": "broken"}], "total": 12}
    service = make_service(fake_client(visually_similar=payload))

    result = asyncio.run(service.get_visually_similar("P1", limit=2))

    assert [p.id for p in result.products] == ["P3"]
    assert result.total == 12
    assert service.get_product("P3").name == "Tee"


def test_upstream_errors_propagate(make_service, fake_client):
    error = FindMineAPIError("FindMine API error: boom", status_code=500)
    service = make_service(fake_client(error=error))

    with pytest.raises(FindMineAPIError):
        asyncio.run(service.get_complete_the_look("P1", True, False))
    with pytest.raises(FindMineAPIError):
        asyncio.run(service.track_event("view", "P1"))


def test_empty_product_id_is_rejected_before_upstream(make_service, fake_client):
    client = fake_client()
    service = make_service(client)

    with pytest.raises(InvalidInputError):
        asyncio.run(service.get_complete_the_look("  ", True, False))
    with pytest.raises(InvalidInputError):
        asyncio.run(service.update_item_details([]))

    assert client.calls["complete_the_look"] == []
    assert client.calls["update_item_details"] == []


def test_writes_pass_through_uncached(make_service, fake_client):
    client = fake_client(
        analytics={"success": True, "event_id": 42},
        item_details={
            "success": False,
            "updated_count": 1,
            "failed_count": 1,
            "failures": [{"product_id": "P2", "reason": "unknown product"}],
        },
    )
    service = make_service(client)

    first = asyncio.run(service.track_event("purchase", "P1", price=79.99, quantity=1))
    asyncio.run(service.track_event("purchase", "P1", price=79.99, quantity=1))
    update = asyncio.run(
        service.update_item_details(
            [ItemDetail(product_id="P1", in_stock=True, on_sale=False), ItemDetail(product_id="P2", in_stock=False, on_sale=False)],
            session_id="sess-9",
        )
    )

    assert first.success is True
    assert first.event_id == "42"
    assert len(client.calls["track_event"]) == 2
    assert client.calls["track_event"][0].context.session_id == "test-session"
    assert update.failed_count == 1
    assert update.failures[0].reason == "unknown product"
    assert client.calls["update_item_details"][0].context.session_id == "sess-9"


def test_malformed_write_response_is_a_response_error(make_service, fake_client):
    service = make_service(fake_client(item_details={"updated_count": "many"}))

    with pytest.raises(FindMineResponseError):
        asyncio.run(service.update_item_details([ItemDetail(product_id="P1", in_stock=True, on_sale=False)]))


def test_clean_cache_sweeps_expired_entries(make_service, fake_client, ctl_payload, clock):
    service = make_service(fake_client(complete_the_look=ctl_payload), cache_ttl_ms=1000)

    asyncio.run(service.get_complete_the_look("P1", True, False))
    asyncio.run(service.get_visually_similar("P1"))
    clock.advance_ms(1001)

    assert service.clean_cache() == 2


@pytest.mark.parametrize(
    "reply, failures",
    [
        ({"success": True, "updated_count": 1, "failed_count": 0, "failures": None}, []),
        (
            {"success": False, "updated_count": 0, "failed_count": 1, "failures": [{"product_id": 123, "reason": "x"}]},
            [("123", "x")],
        ),
        (
            {"success": False, "updated_count": None, "failed_count": 1, "failures": [{"product_id": "P1", "product_color_id": 7, "reason": None}]},
            [("P1", "")],
        ),
    ],
)
def test_item_update_reply_tolerates_loose_shapes(make_service, fake_client, reply, failures):
    service = make_service(fake_client(item_details=reply))

    result = asyncio.run(service.update_item_details([ItemDetail(product_id="P1", in_stock=True, on_sale=False)]))

    assert result.success is reply["success"]
    assert result.updated_count == (reply["updated_count"] or 0)
    assert [(f.product_id, f.reason) for f in result.failures] == failures
