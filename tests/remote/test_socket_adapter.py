# SPDX-License-Identifier: Apache-2.0
"""
Remote Store — Socket.IO transport.

Driven through `FakeSocketClient`; acks are delivered by the tests, in any
order, or not at all.
"""

import asyncio
import logging

import httpx
import pytest

from store_sdk.remote import (
    ConfigurationError,
    HttpRemoteAdapter,
    NotSupported,
    RemoteAdapterConfig,
    SocketRemoteAdapter,
    TransportError,
    Unavailable,
    ValidationError,
)
from tests.fakes import FakeSocketClient, json_response

pytestmark = pytest.mark.asyncio

HOST = "https://realtime.example.com"


def ok(event, data):
    return {"payload": {"event": event, "data": data}}


async def wait_for_emits(client, n):
    while len(client.emitted) < n:
        await asyncio.sleep(0)


async def test_missing_host_fails_before_any_connection():
    client = FakeSocketClient()
    with pytest.raises(ConfigurationError):
        SocketRemoteAdapter(client=client)
    with pytest.raises(ConfigurationError):
        SocketRemoteAdapter(host="   ", client=client)
    with pytest.raises(ConfigurationError):
        SocketRemoteAdapter(config=RemoteAdapterConfig(namespace="store"), client=client)
    assert client.connect_calls == []


async def test_non_positive_ack_timeout_rejected():
    with pytest.raises(ConfigurationError):
        SocketRemoteAdapter(host=HOST, client=FakeSocketClient(), ack_timeout_s=0)


async def test_event_names_and_payloads(store):
    client = FakeSocketClient(auto_ack=ok)
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    await adapter.find(store, "blogPost", 1)
    await adapter.find_all(store, "blogPost")
    await adapter.find_all(store, "blogPost", "tok")
    await adapter.find_query(store, "blogPost", {"author": 7})
    await adapter.find_many(store, "blogPost", [1, 2])
    await adapter.create_record(store, "blogPost", {"id": 3, "postTitle": "New"})
    await adapter.update_record(store, "blogPost", {"id": 3, "postTitle": "Edited"})
    await adapter.delete_record(store, "blogPost", {"id": 3})

    assert [(event, data) for event, data, _ in client.emitted] == [
        ("blogPost.show", {"id": 1}),
        ("blogPost.index", {}),
        ("blogPost.index", {"since": "tok"}),
        ("blogPost.index", {"author": 7}),
        ("blogPost.index", {"ids": [1, 2]}),
        ("blogPost.create", {"blog_post": {"id": 3, "post_title": "New"}}),
        ("blogPost.update", {"id": 3, "blog_post": {"post_title": "Edited"}}),
        ("blogPost.destroy", {"id": 3}),
    ]


async def test_success_ack_returns_payload(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(auto_ack=ok))
    body = await adapter.find(store, "post", 1)
    assert body == {"event": "post.show", "data": {"id": 1}}


async def test_non_mapping_ack_is_returned_as_is(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(auto_ack=lambda e, d: [1, 2]))
    assert await adapter.find_all(store, "post") == [1, 2]


async def test_connects_once_to_namespace(store):
    client = FakeSocketClient(auto_ack=ok)
    adapter = SocketRemoteAdapter(host=HOST, namespace="store", client=client, transports=["websocket"])

    await asyncio.gather(adapter.find(store, "post", 1), adapter.find(store, "post", 2))

    assert len(client.connect_calls) == 1
    call = client.connect_calls[0]
    assert call["url"] == HOST
    assert call["namespaces"] == ["/store"]
    assert call["transports"] == ["websocket"]
    assert {ns for _, _, ns in client.emitted} == {"/store"}


async def test_acks_correlate_out_of_order(store):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    first = asyncio.ensure_future(adapter.find(store, "post", 1))
    second = asyncio.ensure_future(adapter.find(store, "post", 2))
    await wait_for_emits(client, 2)

    client.ack(1, {"payload": {"id": 2}})
    client.ack(0, {"payload": {"id": 1}})
    assert await first == {"id": 1}
    assert await second == {"id": 2}


async def test_errors_ack_becomes_validation_error(store):
    client = FakeSocketClient(auto_ack=lambda e, d: {"errors": {"post_title": ["can't be blank"]}})
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    with pytest.raises(ValidationError) as exc_info:
        await adapter.create_record(store, "post", {"postTitle": ""})
    assert exc_info.value.errors == {"postTitle": ["can't be blank"]}


async def test_error_ack_with_status_becomes_transport_error(store):
    ack = {"error": "forbidden", "status": 403}
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(auto_ack=lambda e, d: ack))

    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert exc_info.value.status == 403
    assert exc_info.value.body == ack


async def test_error_ack_without_status(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(auto_ack=lambda e, d: {"error": "oops"}))
    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert exc_info.value.status is None


async def test_ack_timeout_fails_operation_and_ignores_late_ack(store, caplog):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client, ack_timeout_s=0.01)

    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert "no acknowledgement" in exc_info.value.body

    with caplog.at_level(logging.WARNING):
        client.ack(0, {"payload": {"id": 1}})
    assert "already settled" in caplog.text


async def test_disconnect_fails_inflight_operations(store):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    pending = asyncio.ensure_future(adapter.find(store, "post", 1))
    await wait_for_emits(client, 1)
    await client.drop("/")

    with pytest.raises(TransportError) as exc_info:
        await pending
    assert "connection lost" in exc_info.value.body


async def test_close_fails_inflight_operations(store):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    pending = asyncio.ensure_future(adapter.find(store, "post", 1))
    await wait_for_emits(client, 1)
    await adapter.close()

    assert not client.connected
    with pytest.raises(TransportError):
        await pending


async def test_connect_failure_is_unavailable(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(fail_connect=True))
    with pytest.raises(Unavailable):
        await adapter.find(store, "post", 1)


async def test_emit_failure_is_transport_error(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(fail_emit=True))
    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert exc_info.value.status is None


async def test_unexpected_emit_error_does_not_leave_operation_in_flight(store):
    client = FakeSocketClient(emit_error=RuntimeError("encoder blew up"))
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert "encoder blew up" in exc_info.value.body
    assert adapter.in_flight == 0


async def test_cancelled_callers_release_their_slots(store):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client)

    tasks = [asyncio.ensure_future(adapter.find(store, "post", i)) for i in range(5)]
    await wait_for_emits(client, 5)
    assert adapter.in_flight == 5

    for task in tasks:
        task.cancel()
    for task in tasks:
        with pytest.raises(asyncio.CancelledError):
            await task
    assert adapter.in_flight == 0

    # A server that answers anyway is harmless.
    client.ack(0, {"payload": {"id": 0}})
    assert adapter.in_flight == 0


async def test_ack_timeout_is_counted(store, metrics):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient(), ack_timeout_s=0.01, metrics=metrics)

    with pytest.raises(TransportError):
        await adapter.find(store, "post", 1)

    (counter,) = metrics.counters
    assert counter["component"] == "remote_socket"
    assert counter["name"] == "ack_timeout"
    assert counter["value"] == 1
    assert counter["extra"] == {"event": "post.show"}


async def test_lost_connection_counts_failed_operations(store, metrics):
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client, metrics=metrics)

    tasks = [asyncio.ensure_future(adapter.find(store, "post", i)) for i in (1, 2)]
    await wait_for_emits(client, 2)
    await client.drop("/")
    await adapter.close()

    for task in tasks:
        with pytest.raises(TransportError):
            await task
    # close() finds nothing left to fail, so only the drop is counted.
    (counter,) = metrics.counters
    assert counter["name"] == "inflight_failed"
    assert counter["value"] == 2
    assert counter["extra"] == {"reason": "connection lost before acknowledgement"}


async def test_broken_counter_sink_does_not_mask_the_error(store):
    class BrokenMetrics:
        def observe(self, **kwargs):
            raise RuntimeError("sink down")

        def counter(self, **kwargs):
            raise RuntimeError("sink down")

    adapter = SocketRemoteAdapter(
        host=HOST, client=FakeSocketClient(), ack_timeout_s=0.01, metrics=BrokenMetrics()
    )
    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert "no acknowledgement" in exc_info.value.body


async def test_context_manager_opens_and_closes():
    client = FakeSocketClient()
    async with SocketRemoteAdapter(host=HOST, client=client) as adapter:
        assert adapter.connected
    assert not client.connected


async def test_relationships_without_fallback_are_not_supported(store):
    adapter = SocketRemoteAdapter(host=HOST, client=FakeSocketClient())
    with pytest.raises(NotSupported):
        await adapter.find_has_many(store, "post", {"id": 1}, "comments")
    with pytest.raises(NotSupported):
        await adapter.find_belongs_to(store, "comment", {"id": 1}, "author")
    with pytest.raises(NotSupported):
        await adapter.request("/anything")


async def test_relationships_delegate_to_http_fallback(store):
    seen = []

    def handler(request):
        seen.append(request)
        return json_response(200, {"comments": []})

    http = HttpRemoteAdapter(
        host="https://api.example.com",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    client = FakeSocketClient()
    adapter = SocketRemoteAdapter(host=HOST, client=client, http_fallback=http)

    assert await adapter.find_has_many(store, "post", {"id": 1}, "comments") == {"comments": []}
    assert str(seen[0].url) == "https://api.example.com/posts/1/comments"
    assert client.emitted == []
