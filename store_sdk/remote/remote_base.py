# store_sdk/remote/remote_base.py
# SPDX-License-Identifier: Apache-2.0
"""
Store SDK — Remote Store Adapter Protocol V1.0

Purpose
-------
A transport-neutral gateway between a client-side model store and a remote
persistence backend. The store issues CRUD verbs; an adapter turns each verb
into exactly one transport request (an HTTP call or a Socket.IO event) and
maps the single eventual response back into either a body or a typed error.

    store.find("post", 1)
        -> adapter.find(store, "post", 1)
        -> Operation(kind=show, type_key="post", id=1)
        -> HTTP  GET /posts/1            (HttpRemoteAdapter)
           or    emit "post.show" {...}  (SocketRemoteAdapter)
        -> PendingOperation settled exactly once
        -> body | ValidationError | TransportError

This file provides:

- Typed Python contracts for operations, destinations and transport results
- The normalized error taxonomy shared by every transport
- `PendingOperation`, the at-most-once settlement primitive
- `BaseRemoteAdapter`, which validates inputs, resolves payloads through the
  store's serializer, dispatches to a transport hook, records metrics and
  translates failures

Concrete transports override a single hook, `_do_send`, and settle the
pending operation they are handed. Everything else is shared.

Deliberate Non-Goals
--------------------
- No caching, batching windows, retries or backpressure
- No timeout enforced by the gateway (transports may add their own)
- No record lifecycle management; that belongs to the store
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from store_sdk.core.error_context import attach_context

REMOTE_PROTOCOL_VERSION = "1.0.0"
REMOTE_PROTOCOL_ID = "remote/v1.0"
LOG = logging.getLogger(__name__)

# =============================================================================
# Core Type Definitions
# =============================================================================

RecordID = Union[str, int]


class OperationKind(str, Enum):
    """The seven CRUD-shaped verbs a store can issue."""

    SHOW = "show"
    INDEX = "index"
    FIND_MANY = "find_many"
    FIND_QUERY = "find_query"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"

    @property
    def action(self) -> str:
        """Socket action name; batched and query reads are plain index reads."""
        if self in (OperationKind.FIND_MANY, OperationKind.FIND_QUERY):
            return OperationKind.INDEX.value
        return self.value

    @property
    def is_read(self) -> bool:
        return self in (
            OperationKind.SHOW,
            OperationKind.INDEX,
            OperationKind.FIND_MANY,
            OperationKind.FIND_QUERY,
        )


@dataclass(frozen=True)
class Operation:
    """
    One in-flight request.

    Attributes:
        kind: The verb being performed
        type_key: Identifier of the model kind (e.g. "blogPost")
        id: Record identifier for single-record verbs
        query: Read filter (find_all/find_query/find_many)
        payload: Serialized body for writes
    """
    kind: OperationKind
    type_key: str
    id: Optional[RecordID] = None
    query: Optional[Mapping[str, Any]] = None
    payload: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class Destination:
    """
    Resolved target of an operation.

    Attributes:
        target: URL (HTTP) or event name (socket)
        method: HTTP verb, None for socket destinations
    """
    target: str
    method: Optional[str] = None


@dataclass(frozen=True)
class TransportSuccess:
    body: Any = None


@dataclass(frozen=True)
class TransportFailure:
    """
    A failed transport round trip.

    Attributes:
        body: Raw diagnostic (response text, ack payload, or exception message)
        status: Status code where the transport has one
    """
    body: Any = None
    status: Optional[int] = None


TransportResult = Union[TransportSuccess, TransportFailure]

# =============================================================================
# Normalized Errors
# =============================================================================


class RemoteAdapterError(Exception):
    """
    Base exception for all remote adapter errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (UPPER_SNAKE_CASE)
        status: Transport status code when one is known
        details: Additional JSON-serializable context
    """
    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = dict(details or {})

    def asdict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }


class ValidationError(RemoteAdapterError):
    """
    The backend rejected a record; `errors` maps field name to message(s).

    Field names are already in the store's camelCase form.
    """
    def __init__(self, errors: Mapping[str, Any], message: str = "record is invalid", **kwargs: Any):
        kwargs.setdefault("code", "VALIDATION_FAILED")
        kwargs.setdefault("status", 422)
        super().__init__(message, **kwargs)
        self.errors: Dict[str, Any] = dict(errors)

    def asdict(self) -> Dict[str, Any]:
        data = super().asdict()
        data["errors"] = dict(self.errors)
        return data


class TransportError(RemoteAdapterError):
    """Opaque transport failure; `body` is the raw diagnostic, unchanged."""
    def __init__(self, message: str = "transport request failed", *, body: Any = None, **kwargs: Any):
        kwargs.setdefault("code", "TRANSPORT_ERROR")
        super().__init__(message, **kwargs)
        self.body = body


class ConfigurationError(RemoteAdapterError):
    """Adapter cannot be constructed with the given settings."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "BAD_CONFIG")
        super().__init__(message, **kwargs)


class BadRequest(RemoteAdapterError):
    """Caller passed arguments the gateway cannot turn into a request."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "BAD_REQUEST")
        super().__init__(message, **kwargs)


class NotSupported(RemoteAdapterError):
    """Requested operation is not available on this transport."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_SUPPORTED")
        super().__init__(message, **kwargs)


class Unavailable(RemoteAdapterError):
    """Transport could not be reached (e.g. socket connect failed)."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNAVAILABLE")
        super().__init__(message, **kwargs)

# =============================================================================
# Configuration & Context
# =============================================================================


@dataclass(frozen=True)
class RemoteAdapterConfig:
    """
    Adapter-level settings, fixed at construction.

    Attributes:
        host: Base origin ("https://api.example.com"); required for sockets
        namespace: Path segment (HTTP) or Socket.IO namespace (socket)
        headers: Extra headers applied to every HTTP request
    """
    host: Optional[str] = None
    namespace: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration immediately when constructed."""
        if self.host is not None:
            if not isinstance(self.host, str) or not self.host.strip():
                raise ConfigurationError("RemoteAdapterConfig: host must be a non-empty string")
            object.__setattr__(self, "host", self.host.strip().rstrip("/"))
        if self.namespace is not None:
            if not isinstance(self.namespace, str):
                raise ConfigurationError("RemoteAdapterConfig: namespace must be a string")
            object.__setattr__(self, "namespace", self.namespace.strip("/") or None)
        if self.headers is None:
            object.__setattr__(self, "headers", {})
        if not isinstance(self.headers, Mapping):
            raise ConfigurationError("RemoteAdapterConfig: headers must be a mapping")
        for k, v in self.headers.items():
            if not isinstance(k, str) or not isinstance(v, str):
                raise ConfigurationError(
                    "RemoteAdapterConfig: header names and values must be strings",
                    details={"header": str(k)},
                )
        object.__setattr__(self, "headers", dict(self.headers))

    @classmethod
    def from_env(cls, prefix: str = "STORE_SDK_") -> "RemoteAdapterConfig":
        """
        Build a config from `<prefix>HOST`, `<prefix>NAMESPACE` and
        `<prefix>HEADERS` (a JSON object).
        """
        raw_headers = os.getenv(f"{prefix}HEADERS")
        headers: Mapping[str, str] = {}
        if raw_headers:
            try:
                headers = json.loads(raw_headers)
            except ValueError as e:
                raise ConfigurationError(f"{prefix}HEADERS must be a JSON object") from e
        return cls(
            host=os.getenv(f"{prefix}HOST") or None,
            namespace=os.getenv(f"{prefix}NAMESPACE") or None,
            headers=headers,
        )


@dataclass(frozen=True)
class OperationContext:
    """
    Optional per-call context used for logs, metrics and error details.

    Attributes:
        request_id: Correlation ID for the request chain
        traceparent: W3C Trace Context header
        attrs: Free-form attributes for middleware
    """
    request_id: Optional[str] = None
    traceparent: Optional[str] = None
    attrs: Mapping[str, Any] = None

    def __post_init__(self) -> None:
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})

# =============================================================================
# Collaborator Contracts (store, serializer, metrics, error translation)
# =============================================================================


@runtime_checkable
class Serializer(Protocol):
    """Turns a record into its wire payload by mutating `target`."""
    def serialize_into_hash(
        self,
        target: Dict[str, Any],
        type_key: str,
        record: Any,
        *,
        include_id: bool = False,
    ) -> None: ...


@runtime_checkable
class Store(Protocol):
    """The part of the model store the gateway consumes."""
    def serializer_for(self, type_key: str) -> Serializer: ...


class MetricsSink(Protocol):
    """
    Protocol for metrics collection implementations.

    All metrics must be low-cardinality: operation names, type keys and codes,
    never record ids or payloads.
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class NoopMetrics:
    """No-operation metrics sink for testing or when metrics are disabled."""
    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...


class ErrorTranslator(Protocol):
    """Strategy that turns a transport failure into a normalized error."""
    def translate(self, failure: TransportFailure, *, operation: Optional[Operation] = None) -> RemoteAdapterError: ...

# =============================================================================
# Settlement
# =============================================================================


class PendingOperation:
    """
    Single-settlement handle for one operation.

    Transports call exactly one of `succeed` / `fail`. Only the first call
    has an effect; later calls return False and are logged.
    """

    def __init__(self, operation: Optional[Operation] = None, *, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.operation = operation
        self._loop = loop or asyncio.get_running_loop()
        self._future: "asyncio.Future[TransportResult]" = self._loop.create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def succeed(self, body: Any = None) -> bool:
        return self._settle(TransportSuccess(body))

    def fail(self, body: Any = None, status: Optional[int] = None) -> bool:
        return self._settle(TransportFailure(body=body, status=status))

    def _settle(self, result: TransportResult) -> bool:
        if self._future.done():
            LOG.warning(
                "ignoring %s for already settled operation %s",
                type(result).__name__,
                self.operation.kind.value if self.operation else "<raw>",
            )
            return False
        self._future.set_result(result)
        return True

    async def wait(self) -> TransportResult:
        # shield: a cancelled caller must not cancel the shared future
        return await asyncio.shield(self._future)

    def __await__(self):
        return self.wait().__await__()

# =============================================================================
# Stable Protocol Interface
# =============================================================================


@runtime_checkable
class RemoteStoreProtocolV1(Protocol):
    """
    The adapter surface a model store drives.

    Every method returns the decoded response body or raises a
    RemoteAdapterError subclass. Each call is one transport request.
    """

    async def find(self, store: Store, type_key: str, id: RecordID, *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def find_all(self, store: Store, type_key: str, since_token: Any = None, *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def find_query(self, store: Store, type_key: str, query: Mapping[str, Any], *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def find_many(self, store: Store, type_key: str, ids: Sequence[RecordID], *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def create_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def update_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any: ...

    async def delete_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any: ...

# =============================================================================
# Base Adapter (validation, payload resolution, settlement, metrics)
# =============================================================================


def record_id(record: Any) -> Optional[RecordID]:
    """Read the id of a mapping-style or attribute-style record."""
    if isinstance(record, Mapping):
        return record.get("id")
    return getattr(record, "id", None)


class BaseRemoteAdapter(RemoteStoreProtocolV1):
    """
    Base class for Remote Store Protocol V1.0 adapters.

    Subclasses implement `_do_send(operation, pending, ctx=...)` and settle
    `pending` exactly once. The base class owns validation, serializer calls,
    metrics, logging and error translation.

    Example:
        class LoopbackAdapter(BaseRemoteAdapter):
            async def _do_send(self, operation, pending, *, ctx=None):
                pending.succeed({"echo": operation.payload})
    """

    _component = "remote"

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        namespace: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        config: Optional[RemoteAdapterConfig] = None,
        namer: Any = None,
        error_translator: Optional[ErrorTranslator] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        # Local imports keep remote_base importable from naming/error_translation.
        from store_sdk.remote.error_translation import ActiveModelErrorTranslator
        from store_sdk.remote.naming import ResourceNamer

        if config is None:
            config = RemoteAdapterConfig(host=host, namespace=namespace, headers=headers or {})
        self._config = config
        self._namer = namer or ResourceNamer()
        self._translator: ErrorTranslator = error_translator or ActiveModelErrorTranslator(namer=self._namer)
        self._metrics: MetricsSink = metrics or NoopMetrics()

    @property
    def config(self) -> RemoteAdapterConfig:
        return self._config

    @property
    def host(self) -> Optional[str]:
        return self._config.host

    @property
    def namespace(self) -> Optional[str]:
        return self._config.namespace

    @property
    def namer(self) -> Any:
        return self._namer

    # --- internal helpers (validation and instrumentation) ---

    @staticmethod
    def _require_type_key(type_key: str) -> None:
        if not isinstance(type_key, str) or not type_key.strip():
            raise BadRequest("type_key must be a non-empty string")

    @staticmethod
    def _require_record_id(record: Any, op: str) -> RecordID:
        rid = record_id(record)
        if rid is None or rid == "":
            raise BadRequest(f"{op} requires a record with a non-null id")
        return rid

    @staticmethod
    def _serialize(store: Store, type_key: str, record: Any, *, include_id: bool) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        serializer = store.serializer_for(type_key)
        serializer.serialize_into_hash(data, type_key, record, include_id=include_id)
        return data

    def _record(
        self,
        op: str,
        t0: float,
        ok: bool,
        *,
        code: str = "OK",
        **extra: Any,
    ) -> None:
        try:
            ms = (time.monotonic() - t0) * 1000.0
            self._metrics.observe(
                component=self._component,
                op=op,
                ms=ms,
                ok=ok,
                code=code,
                extra=dict(extra) or None,
            )
        except Exception:
            # Never let metrics recording break the operation
            LOG.debug("metrics sink failed for %s", op, exc_info=True)

    def _count(self, name: str, value: int = 1, **extra: Any) -> None:
        try:
            self._metrics.counter(
                component=self._component,
                name=name,
                value=value,
                extra=dict(extra) or None,
            )
        except Exception:
            LOG.debug("metrics sink failed for counter %s", name, exc_info=True)

    async def _dispatch(self, operation: Operation, ctx: Optional[OperationContext]) -> Any:
        """Send one operation through `_do_send` and await its settlement."""
        LOG.debug("dispatching %s %s id=%s", operation.kind.value, operation.type_key, operation.id)
        return await self._settle(
            operation.kind.value,
            lambda pending: self._do_send(operation, pending, ctx=ctx),
            operation=operation,
            ctx=ctx,
        )

    async def _settle(
        self,
        op: str,
        send: Callable[[PendingOperation], Awaitable[None]],
        *,
        operation: Optional[Operation] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        """
        Run `send` with a fresh PendingOperation and await its single result.

        Success returns the body; failure raises the translated error with
        debugging context attached.
        """
        type_key = operation.type_key if operation else None
        t0 = time.monotonic()
        pending = PendingOperation(operation)

        try:
            try:
                await send(pending)
            except RemoteAdapterError:
                raise
            except Exception as e:
                LOG.exception("transport hook failed for %s %s", op, type_key)
                raise TransportError(f"{op} dispatch failed: {e}", body=str(e)) from e

            try:
                result = await pending
            except asyncio.CancelledError:
                self._abandon(pending)
                raise
            if isinstance(result, TransportSuccess):
                self._record(op, t0, True, type_key=type_key)
                return result.body

            error = self._translator.translate(result, operation=operation)
            LOG.debug("%s %s failed: %s (status=%s)", op, type_key, error.code, result.status)
            raise error

        except RemoteAdapterError as e:
            self._record(op, t0, False, code=e.code or type(e).__name__, type_key=type_key)
            attach_context(
                e,
                component=self._component,
                operation=op,
                type_key=type_key,
                request_id=ctx.request_id if ctx else None,
            )
            raise

    # --- final public APIs ---

    async def find(self, store: Store, type_key: str, id: RecordID, *, ctx: Optional[OperationContext] = None) -> Any:
        """Fetch a single record by id."""
        self._require_type_key(type_key)
        if id is None or id == "":
            raise BadRequest("find requires an id")
        return await self._dispatch(Operation(OperationKind.SHOW, type_key, id=id), ctx)

    async def find_all(self, store: Store, type_key: str, since_token: Any = None, *, ctx: Optional[OperationContext] = None) -> Any:
        """Fetch every record of a type, optionally only those changed since a token."""
        self._require_type_key(type_key)
        query = {"since": since_token} if since_token else None
        return await self._dispatch(Operation(OperationKind.INDEX, type_key, query=query), ctx)

    async def find_query(self, store: Store, type_key: str, query: Mapping[str, Any], *, ctx: Optional[OperationContext] = None) -> Any:
        """Fetch records matching a query; the query is passed through verbatim."""
        self._require_type_key(type_key)
        if not isinstance(query, Mapping):
            raise BadRequest("query must be a mapping")
        return await self._dispatch(Operation(OperationKind.FIND_QUERY, type_key, query=dict(query)), ctx)

    async def find_many(self, store: Store, type_key: str, ids: Sequence[RecordID], *, ctx: Optional[OperationContext] = None) -> Any:
        """Fetch several records in one request (`ids` batched as one parameter)."""
        self._require_type_key(type_key)
        if isinstance(ids, (str, bytes)) or not isinstance(ids, Sequence) or not ids:
            raise BadRequest("ids must be a non-empty sequence")
        return await self._dispatch(Operation(OperationKind.FIND_MANY, type_key, query={"ids": list(ids)}), ctx)

    async def create_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any:
        """Persist a new record; the serialized body includes the id."""
        self._require_type_key(type_key)
        payload = self._serialize(store, type_key, record, include_id=True)
        return await self._dispatch(Operation(OperationKind.CREATE, type_key, payload=payload), ctx)

    async def update_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any:
        """Persist changes; the id travels with the destination, not the body."""
        self._require_type_key(type_key)
        rid = self._require_record_id(record, "update_record")
        payload = self._serialize(store, type_key, record, include_id=False)
        return await self._dispatch(Operation(OperationKind.UPDATE, type_key, id=rid, payload=payload), ctx)

    async def delete_record(self, store: Store, type_key: str, record: Any, *, ctx: Optional[OperationContext] = None) -> Any:
        """Delete a record; no body is sent."""
        self._require_type_key(type_key)
        rid = self._require_record_id(record, "delete_record")
        return await self._dispatch(Operation(OperationKind.DESTROY, type_key, id=rid), ctx)

    # --- hook to implement per transport ---

    def _abandon(self, pending: PendingOperation) -> None:
        """Called when the awaiting caller is cancelled before settlement."""

    async def _do_send(
        self,
        operation: Operation,
        pending: PendingOperation,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Hand the operation to the transport and settle `pending` once."""
        raise NotImplementedError


__all__ = [
    "REMOTE_PROTOCOL_VERSION",
    "REMOTE_PROTOCOL_ID",
    "RecordID",
    "OperationKind",
    "Operation",
    "Destination",
    "TransportSuccess",
    "TransportFailure",
    "TransportResult",
    "RemoteAdapterError",
    "ValidationError",
    "TransportError",
    "ConfigurationError",
    "BadRequest",
    "NotSupported",
    "Unavailable",
    "RemoteAdapterConfig",
    "OperationContext",
    "Serializer",
    "Store",
    "MetricsSink",
    "NoopMetrics",
    "ErrorTranslator",
    "PendingOperation",
    "RemoteStoreProtocolV1",
    "BaseRemoteAdapter",
    "record_id",
]
