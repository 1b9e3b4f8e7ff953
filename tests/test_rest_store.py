import asyncio
import json

import httpx
import pytest
import respx

from halora.store import RealtimeDatabaseClient, StoreError
from halora.store.rest import apply_stream_event, iter_events

BASE = "https://halora-test.firebaseio.com"


@pytest.mark.asyncio
async def test_get_set_update_use_rest_paths():
    async with respx.mock(assert_all_called=True) as router:
        get_route = router.get(f"{BASE}/products.json", params={"auth": "secret"}).mock(
            return_value=httpx.Response(200, json={"P1": {"name": "Serum"}})
        )
        put_route = router.put(f"{BASE}/inventory/P1/V1.json").mock(return_value=httpx.Response(200, json={"stockQty": 5}))
        patch_route = router.patch(f"{BASE}/inventory/P1/V1.json").mock(return_value=httpx.Response(200, json={}))
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.handler)) as session:
            client = RealtimeDatabaseClient(BASE + "/", auth_token="secret", session=session)

            assert await client.get("products") == {"P1": {"name": "Serum"}}
            await client.set("inventory/P1/V1", {"stockQty": 5})
            await client.update("inventory/P1/V1", {"stockQty": 4})

    assert get_route.called
    assert json.loads(put_route.calls.last.request.content) == {"stockQty": 5}
    assert json.loads(patch_route.calls.last.request.content) == {"stockQty": 4}


@pytest.mark.asyncio
async def test_missing_path_reads_as_none():
    async with respx.mock() as router:
        router.get(f"{BASE}/inventory.json").mock(return_value=httpx.Response(200, text="null"))
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.handler)) as session:
            client = RealtimeDatabaseClient(BASE, session=session)
            assert await client.get("inventory") is None


@pytest.mark.asyncio
async def test_http_errors_become_store_errors():
    async with respx.mock() as router:
        router.put(f"{BASE}/inventory/P1/V1.json").mock(
            return_value=httpx.Response(401, json={"error": "Permission denied"})
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.handler)) as session:
            client = RealtimeDatabaseClient(BASE, session=session)
            with pytest.raises(StoreError, match="401: Permission denied"):
                await client.set("inventory/P1/V1", {"stockQty": 1})


@pytest.mark.asyncio
async def test_subscription_delivers_full_snapshots():
    stream = (
        "event: put\n"
        'data: {"path": "/", "data": {"P1": {"V1": {"stockQty": 5}}}}\n'
        "\n"
        "event: keep-alive\n"
        "data: null\n"
        "\n"
        "event: patch\n"
        'data: {"path": "/P1", "data": {"V2": {"stockQty": 1}}}\n'
        "\n"
    )
    seen = []
    done = asyncio.Event()

    async def on_change(value):
        seen.append(value)
        if len(seen) == 2:
            done.set()

    async with respx.mock() as router:
        router.get(f"{BASE}/inventory.json").mock(return_value=httpx.Response(200, text=stream))
        async with httpx.AsyncClient(transport=httpx.MockTransport(router.handler)) as session:
            client = RealtimeDatabaseClient(BASE, session=session, reconnect_delay=60)
            subscription = await client.subscribe("inventory", on_change)
            await asyncio.wait_for(done.wait(), timeout=2)
            subscription.cancel()

    assert seen == [
        {"P1": {"V1": {"stockQty": 5}}},
        {"P1": {"V1": {"stockQty": 5}, "V2": {"stockQty": 1}}},
    ]


@pytest.mark.asyncio
async def test_iter_events_parses_sse_blocks():
    async def lines():
        for line in ["event: put", 'data: {"path": "/", "data": 1}', "", ": comment", "event: cancel", "data: null", ""]:
            yield line

    events = [event async for event in iter_events(lines())]

    assert events == [("put", {"path": "/", "data": 1}), ("cancel", None)]


def test_apply_stream_event_put_and_delete():
    tree = apply_stream_event(None, "put", {"path": "/", "data": {"P1": {"V1": {"stockQty": 5}}}})
    tree = apply_stream_event(tree, "put", {"path": "/P1/V1/stockQty", "data": 2})
    assert tree == {"P1": {"V1": {"stockQty": 2}}}

    tree = apply_stream_event(tree, "put", {"path": "/P1/V1", "data": None})
    assert tree is None
