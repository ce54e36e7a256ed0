# SPDX-License-Identifier: Apache-2.0
"""
Remote Store — settlement, gateway validation and instrumentation.

Each operation settles at most once; later settlement attempts are ignored
and logged. Concurrent operations settle independently and in any order.
"""

import asyncio
import logging

import pytest

from store_sdk.core.error_context import get_context
from store_sdk.remote import (
    BadRequest,
    BaseRemoteAdapter,
    Operation,
    OperationContext,
    OperationKind,
    PendingOperation,
    TransportError,
    TransportFailure,
    TransportSuccess,
    ValidationError,
)

pytestmark = pytest.mark.asyncio


class ScriptedAdapter(BaseRemoteAdapter):
    """Settles every operation with a fixed sequence of outcomes."""

    def __init__(self, *outcomes, **kwargs):
        super().__init__(**kwargs)
        self.outcomes = outcomes
        self.sent = []

    async def _do_send(self, operation, pending, *, ctx=None):
        self.sent.append(operation)
        for kind, body, status in self.outcomes:
            if kind == "ok":
                pending.succeed(body)
            else:
                pending.fail(body, status)


class DeferredAdapter(BaseRemoteAdapter):
    """Leaves settlement to the test."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.pending = []

    async def _do_send(self, operation, pending, *, ctx=None):
        self.pending.append(pending)


class ExplodingAdapter(BaseRemoteAdapter):
    async def _do_send(self, operation, pending, *, ctx=None):
        raise RuntimeError("socket went away")


async def test_pending_operation_first_settlement_wins(caplog):
    pending = PendingOperation(Operation(OperationKind.SHOW, "post", id=1))
    assert not pending.settled
    assert pending.succeed({"post": {"id": 1}}) is True

    with caplog.at_level(logging.WARNING):
        assert pending.fail("late", 500) is False
        assert pending.succeed("again") is False

    result = await pending
    assert isinstance(result, TransportSuccess)
    assert result.body == {"post": {"id": 1}}
    assert "already settled" in caplog.text


async def test_pending_operation_failure_is_kept():
    pending = PendingOperation()
    pending.fail("boom", 502)
    pending.succeed("ignored")
    result = await pending.wait()
    assert result == TransportFailure(body="boom", status=502)


async def test_success_then_failure_resolves(store, caplog):
    adapter = ScriptedAdapter(("ok", {"post": {"id": 1}}, None), ("fail", "late", 500))
    with caplog.at_level(logging.WARNING):
        body = await adapter.find(store, "post", 1)
    assert body == {"post": {"id": 1}}
    assert "already settled" in caplog.text


async def test_failure_then_success_rejects(store):
    adapter = ScriptedAdapter(("fail", "bad gateway", 502), ("ok", {"post": {}}, None))
    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert exc_info.value.status == 502
    assert exc_info.value.body == "bad gateway"


async def test_concurrent_operations_settle_out_of_order(store):
    adapter = DeferredAdapter()
    first = asyncio.ensure_future(adapter.find(store, "post", 1))
    second = asyncio.ensure_future(adapter.find(store, "post", 2))
    while len(adapter.pending) < 2:
        await asyncio.sleep(0)

    adapter.pending[1].succeed({"post": {"id": 2}})
    assert await second == {"post": {"id": 2}}
    assert not first.done()

    adapter.pending[0].succeed({"post": {"id": 1}})
    assert await first == {"post": {"id": 1}}


async def test_unexpected_hook_exception_becomes_transport_error(store):
    adapter = ExplodingAdapter()
    with pytest.raises(TransportError) as exc_info:
        await adapter.find(store, "post", 1)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_errors_carry_debugging_context(store):
    adapter = ScriptedAdapter(("fail", {"errors": {"title": ["can't be blank"]}}, 422))
    ctx = OperationContext(request_id="req-42")
    with pytest.raises(ValidationError) as exc_info:
        await adapter.create_record(store, "blogPost", {"title": ""}, ctx=ctx)

    context = get_context(exc_info.value)
    assert context["operation"] == "create"
    assert context["type_key"] == "blogPost"
    assert context["request_id"] == "req-42"
    assert context["component"] == "remote"


async def test_metrics_recorded_per_operation(store, metrics):
    ok = ScriptedAdapter(("ok", {}, None), metrics=metrics)
    await ok.find_all(store, "post")
    failing = ScriptedAdapter(("fail", "nope", 404), metrics=metrics)
    with pytest.raises(TransportError):
        await failing.find(store, "post", 9)

    first, second = metrics.observations
    assert first["op"] == "index" and first["ok"] is True and first["code"] == "OK"
    assert second["op"] == "show" and second["ok"] is False and second["code"] == "TRANSPORT_ERROR"
    assert first["extra"] == {"type_key": "post"}


async def test_broken_metrics_sink_does_not_break_operation(store):
    class BrokenMetrics:
        def observe(self, **_):
            raise RuntimeError("statsd down")

        def counter(self, **_):
            raise RuntimeError("statsd down")

    adapter = ScriptedAdapter(("ok", {"posts": []}, None), metrics=BrokenMetrics())
    assert await adapter.find_all(store, "post") == {"posts": []}


async def test_gateway_rejects_unusable_arguments(store):
    adapter = ScriptedAdapter(("ok", None, None))

    with pytest.raises(BadRequest):
        await adapter.find(store, "post", None)
    with pytest.raises(BadRequest):
        await adapter.find(store, "", 1)
    with pytest.raises(BadRequest):
        await adapter.find_many(store, "post", [])
    with pytest.raises(BadRequest):
        await adapter.find_many(store, "post", "12")
    with pytest.raises(BadRequest):
        await adapter.find_query(store, "post", [("a", 1)])
    with pytest.raises(BadRequest):
        await adapter.update_record(store, "post", {"title": "no id"})
    with pytest.raises(BadRequest):
        await adapter.delete_record(store, "post", {"id": None})

    assert adapter.sent == []


async def test_gateway_builds_operations(store):
    adapter = ScriptedAdapter(("ok", None, None))
    await adapter.find_all(store, "post", "tok-1")
    await adapter.find_all(store, "post")
    await adapter.find_many(store, "post", (1, 2))
    await adapter.find_query(store, "post", {"author": 7})
    await adapter.create_record(store, "blogPost", {"id": 5, "postTitle": "Hi"})
    await adapter.update_record(store, "blogPost", {"id": 5, "postTitle": "Hey"})
    await adapter.delete_record(store, "blogPost", {"id": 5})

    since, plain, many, query, create, update, delete = adapter.sent
    assert since == Operation(OperationKind.INDEX, "post", query={"since": "tok-1"})
    assert plain.query is None
    assert many.kind is OperationKind.FIND_MANY and many.query == {"ids": [1, 2]}
    assert query.kind is OperationKind.FIND_QUERY and query.query == {"author": 7}
    assert create.payload == {"blog_post": {"id": 5, "post_title": "Hi"}}
    assert update.id == 5 and update.payload == {"blog_post": {"post_title": "Hey"}}
    assert delete.kind is OperationKind.DESTROY and delete.id == 5 and delete.payload is None
