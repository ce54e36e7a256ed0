# store_sdk/remote/socket_adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
Socket.IO adapter for the Remote Store Protocol V1.0.

Every store verb becomes one event on a single persistent connection:

    find         "blogPost.show"     {"id": 1}
    find_all     "blogPost.index"    {} or {"since": token}
    find_query   "blogPost.index"    <query>
    find_many    "blogPost.index"    {"ids": [1, 2]}
    create       "blogPost.create"   {"blog_post": {"id": ..., ...}}
    update       "blogPost.update"   {"id": 1, "blog_post": {...}}
    delete       "blogPost.destroy"  {"id": 1}

Event names use the type key verbatim; there is no pluralization or casing
transform, unlike HTTP paths.

The server answers through the Socket.IO acknowledgement of each emit, so
correlation is per call: each emit carries its own ack callback, and acks may
arrive in any order.

    {"payload": {...}}                          -> success, returns payload
    {"errors": {"title": ["can't be blank"]}}   -> ValidationError (422 analog)
    {"error": "...", "status": 403}             -> TransportError(status=403)

Usage
-----
    async with SocketRemoteAdapter(host="https://realtime.example.com", namespace="store") as adapter:
        posts = await adapter.find_all(store, "blogPost")

Connection lifecycle
--------------------
- `host` is mandatory; construction fails with ConfigurationError before any
  client is created.
- `open()` (or `async with`) connects eagerly; operations issued without it
  connect on first use. Concurrent first calls share one connection attempt.
- Reconnection is delegated to python-socketio (exponential backoff, tunable
  through the `reconnection*` arguments). Operations whose ack is lost with
  the connection are failed when the disconnect is observed.
- `close()` disconnects and fails anything still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Set

import socketio
from socketio import exceptions as sio_exceptions

from store_sdk.remote.http_adapter import HttpRemoteAdapter
from store_sdk.remote.remote_base import (
    BaseRemoteAdapter,
    ConfigurationError,
    Destination,
    NotSupported,
    Operation,
    OperationContext,
    OperationKind,
    PendingOperation,
    RemoteAdapterConfig,
    Store,
    Unavailable,
)
from store_sdk.remote.error_translation import UNPROCESSABLE_ENTITY

logger = logging.getLogger(__name__)


class SocketRemoteAdapter(BaseRemoteAdapter):
    """
    RemoteStoreProtocolV1 adapter backed by a python-socketio AsyncClient.

    Relationship loading and raw requests have no socket equivalent. They are
    forwarded to `http_fallback` when one is supplied and raise NotSupported
    otherwise.
    """

    _component = "remote_socket"

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        namespace: Optional[str] = None,
        config: Optional[RemoteAdapterConfig] = None,
        client: Optional[socketio.AsyncClient] = None,
        ack_timeout_s: Optional[float] = None,
        http_fallback: Optional[HttpRemoteAdapter] = None,
        transports: Optional[List[str]] = None,
        socketio_path: str = "socket.io",
        reconnection: bool = True,
        reconnection_attempts: int = 0,
        reconnection_delay: float = 1,
        reconnection_delay_max: float = 5,
        namer=None,
        error_translator=None,
        metrics=None,
    ) -> None:
        resolved_host = config.host if config is not None else host
        if not resolved_host or not str(resolved_host).strip():
            raise ConfigurationError("SocketRemoteAdapter requires a host")
        if ack_timeout_s is not None and ack_timeout_s <= 0:
            raise ConfigurationError("ack_timeout_s must be positive when set")

        super().__init__(
            host=host,
            namespace=namespace,
            config=config,
            namer=namer,
            error_translator=error_translator,
            metrics=metrics,
        )

        self._client = client or socketio.AsyncClient(
            reconnection=reconnection,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay_max,
        )
        self._sio_namespace = "/" + self.namespace if self.namespace else "/"
        self._transports = transports
        self._socketio_path = socketio_path
        self._ack_timeout_s = ack_timeout_s
        self._http_fallback = http_fallback
        self._connect_lock = asyncio.Lock()
        self._inflight: Set[PendingOperation] = set()

        self._client.on("disconnect", self._on_disconnect, namespace=self._sio_namespace)

    async def __aenter__(self) -> "SocketRemoteAdapter":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return bool(getattr(self._client, "connected", False))

    @property
    def socketio_namespace(self) -> str:
        return self._sio_namespace

    @property
    def in_flight(self) -> int:
        """Operations emitted and still waiting for their ack."""
        return len(self._inflight)

    async def open(self) -> None:
        """Connect once; later calls are no-ops while connected."""
        async with self._connect_lock:
            if self.connected:
                return
            logger.debug("connecting to %s namespace=%s", self.host, self._sio_namespace)
            try:
                await self._client.connect(
                    self.host,
                    namespaces=[self._sio_namespace],
                    transports=self._transports,
                    socketio_path=self._socketio_path,
                )
            except sio_exceptions.ConnectionError as e:
                raise Unavailable(
                    f"could not connect to {self.host}",
                    details={"namespace": self._sio_namespace},
                ) from e

    async def close(self) -> None:
        if self.connected:
            await self._client.disconnect()
        self._fail_inflight("adapter closed")

    # ------------------------------------------------------------------ #
    # Naming and payloads
    # ------------------------------------------------------------------ #

    def event_name(self, type_key: str, action: str) -> str:
        return self._namer.event_name(type_key, action)

    def destination(self, operation: Operation) -> Destination:
        return Destination(target=self.event_name(operation.type_key, operation.kind.action))

    @staticmethod
    def payload_for(operation: Operation) -> Dict[str, Any]:
        """
        Event payload for an operation. On update the id sits next to the
        serialized body, never inside it.
        """
        kind = operation.kind
        if kind in (OperationKind.SHOW, OperationKind.DESTROY):
            return {"id": operation.id}
        if kind == OperationKind.UPDATE:
            return {"id": operation.id, **dict(operation.payload or {})}
        if kind == OperationKind.CREATE:
            return dict(operation.payload or {})
        return dict(operation.query or {})

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _finish(self, pending: PendingOperation) -> None:
        self._inflight.discard(pending)

    def _handle_ack(self, pending: PendingOperation, response: Any) -> None:
        self._finish(pending)
        if isinstance(response, Mapping) and ("error" in response or "errors" in response):
            status = response.get("status")
            if not isinstance(status, int) or isinstance(status, bool):
                status = UNPROCESSABLE_ENTITY if isinstance(response.get("errors"), Mapping) else None
            pending.fail(response, status)
        elif isinstance(response, Mapping):
            pending.succeed(response.get("payload"))
        else:
            pending.succeed(response)

    def _abandon(self, pending: PendingOperation) -> None:
        self._finish(pending)

    def _expire(self, pending: PendingOperation, event: str) -> None:
        if pending.settled or pending not in self._inflight:
            return
        self._finish(pending)
        logger.warning("no ack for %s within %.3fs", event, self._ack_timeout_s)
        self._count("ack_timeout", event=event)
        pending.fail(f"no acknowledgement for {event} within {self._ack_timeout_s}s", None)

    def _fail_inflight(self, reason: str) -> None:
        if self._inflight:
            self._count("inflight_failed", len(self._inflight), reason=reason)
        for pending in list(self._inflight):
            self._finish(pending)
            pending.fail(reason, None)

    async def _on_disconnect(self, *args: Any) -> None:
        if self._inflight:
            logger.warning("connection lost with %d operation(s) in flight", len(self._inflight))
        self._fail_inflight("connection lost before acknowledgement")

    async def _do_send(
        self,
        operation: Operation,
        pending: PendingOperation,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        await self.open()

        event = self.destination(operation).target
        payload = self.payload_for(operation)
        timer: Optional[asyncio.TimerHandle] = None

        def on_ack(*args: Any) -> None:
            if timer is not None:
                timer.cancel()
            response = args[0] if len(args) == 1 else (list(args) if args else None)
            self._handle_ack(pending, response)

        self._inflight.add(pending)
        try:
            await self._client.emit(
                event,
                payload,
                namespace=self._sio_namespace,
                callback=on_ack,
            )
        except sio_exceptions.SocketIOError as e:
            self._finish(pending)
            logger.debug("emit %s failed: %r", event, e)
            pending.fail(str(e) or type(e).__name__, None)
            return
        except BaseException:
            self._finish(pending)
            raise

        if self._ack_timeout_s is not None and not pending.settled:
            timer = asyncio.get_running_loop().call_later(
                self._ack_timeout_s, self._expire, pending, event
            )

    # ------------------------------------------------------------------ #
    # HTTP-only surface
    # ------------------------------------------------------------------ #

    def _require_fallback(self, op: str) -> HttpRemoteAdapter:
        if self._http_fallback is None:
            raise NotSupported(
                f"{op} is not available over the socket transport; "
                "supply http_fallback=HttpRemoteAdapter(...) to enable it",
                details={"operation": op},
            )
        return self._http_fallback

    async def request(
        self,
        url: str,
        method: str = "GET",
        *,
        data: Optional[Mapping[str, Any]] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        return await self._require_fallback("request").request(url, method, data=data, ctx=ctx)

    async def find_has_many(
        self,
        store: Store,
        type_key: str,
        record: Any,
        url: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        return await self._require_fallback("find_has_many").find_has_many(store, type_key, record, url, ctx=ctx)

    async def find_belongs_to(
        self,
        store: Store,
        type_key: str,
        record: Any,
        url: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        return await self._require_fallback("find_belongs_to").find_belongs_to(store, type_key, record, url, ctx=ctx)


__all__ = ["SocketRemoteAdapter"]
