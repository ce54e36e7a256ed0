# store_sdk/remote/http_adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
HTTP adapter for the Remote Store Protocol V1.0.

Maps store verbs onto a REST resource layout over `httpx.AsyncClient`:

    find         GET    /<ns>/blog_posts/1
    find_all     GET    /<ns>/blog_posts?since=<token>
    find_query   GET    /<ns>/blog_posts?<query>
    find_many    GET    /<ns>/blog_posts?ids[]=1&ids[]=2
    create       POST   /<ns>/blog_posts        JSON body, id included
    update       PUT    /<ns>/blog_posts/1      JSON body, id omitted
    delete       DELETE /<ns>/blog_posts/1

Usage
-----
    from store_sdk.remote import HttpRemoteAdapter, SerializerRegistry

    store = SerializerRegistry()
    async with HttpRemoteAdapter(
        host="https://api.example.com",
        namespace="api/v1",
        headers={"Authorization": "Bearer ..."},
    ) as adapter:
        post = await adapter.find(store, "blogPost", 1)

Without a host, URLs are root-relative (`/blog_posts/1`); pass a client
created with `base_url=` so httpx can resolve them.

Status 422 responses with an `{"errors": {...}}` body surface as
`ValidationError`; every other failure (status >= 400, unreadable JSON,
network errors) surfaces as `TransportError` with the raw status and body.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from store_sdk.remote.remote_base import (
    BaseRemoteAdapter,
    Destination,
    Operation,
    OperationContext,
    OperationKind,
    PendingOperation,
    RemoteAdapterConfig,
    Store,
    record_id,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
REQUEST_TAG_EXTENSION = "store_sdk.adapter"

_METHODS: Dict[OperationKind, str] = {
    OperationKind.SHOW: "GET",
    OperationKind.INDEX: "GET",
    OperationKind.FIND_MANY: "GET",
    OperationKind.FIND_QUERY: "GET",
    OperationKind.CREATE: "POST",
    OperationKind.UPDATE: "PUT",
    OperationKind.DESTROY: "DELETE",
}


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(data: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Flatten a mapping into query parameters using bracket notation.

        {"ids": [1, 2], "filter": {"tag": "x"}}
        -> [("ids[]", "1"), ("ids[]", "2"), ("filter[tag]", "x")]
    """
    pairs: List[Tuple[str, str]] = []

    def add(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            for k, v in value.items():
                add(f"{prefix}[{k}]", v)
        elif isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                if isinstance(item, (Mapping, list, tuple)):
                    add(f"{prefix}[{i}]", item)
                else:
                    add(f"{prefix}[]", item)
        else:
            pairs.append((prefix, _scalar(value)))

    for key, value in data.items():
        add(str(key), value)
    return pairs


class HttpRemoteAdapter(BaseRemoteAdapter):
    """
    RemoteStoreProtocolV1 adapter backed by an httpx AsyncClient.

    Design notes
    ------------
    - One request per operation; httpx resolves or raises once, and the
      result settles the operation's PendingOperation.
    - Configured headers are applied by a `request` event hook, so they reach
      every request this adapter issues, raw `request()` calls included.
      Requests are tagged through httpx `extensions`; on a shared client the
      hook leaves other adapters' requests alone.
    - The adapter closes the client only if it created it; otherwise
      `aclose()` detaches its hook.
    """

    _component = "remote_http"

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        namespace: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        config: Optional[RemoteAdapterConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        namer=None,
        error_translator=None,
        metrics=None,
    ) -> None:
        super().__init__(
            host=host,
            namespace=namespace,
            headers=headers,
            config=config,
            namer=namer,
            error_translator=error_translator,
            metrics=metrics,
        )
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=timeout) if timeout is not None else httpx.AsyncClient()
        self._client = client
        # Marks requests issued by this adapter; the hook ignores all others.
        self._request_tag = object()
        self._client.event_hooks["request"].append(self._before_send)

    async def __aenter__(self) -> "HttpRemoteAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
            return
        hooks = self._client.event_hooks["request"]
        if self._before_send in hooks:
            hooks.remove(self._before_send)

    # ------------------------------------------------------------------ #
    # Naming
    # ------------------------------------------------------------------ #

    def path_for_type(self, type_key: str) -> str:
        return self._namer.path_for_type(type_key)

    def url_prefix(self, path: Optional[str] = None, parent_url: Optional[str] = None) -> str:
        return self._namer.url_prefix(path, parent_url, host=self.host, namespace=self.namespace)

    def build_url(self, type_key: Optional[str] = None, id: Any = None) -> str:
        return self._namer.build_url(type_key, id, host=self.host, namespace=self.namespace)

    def destination(self, operation: Operation) -> Destination:
        return Destination(
            target=self.build_url(operation.type_key, operation.id),
            method=_METHODS[operation.kind],
        )

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def _before_send(self, request: httpx.Request) -> None:
        if request.extensions.get(REQUEST_TAG_EXTENSION) is not self._request_tag:
            return
        for name, value in self._config.headers.items():
            request.headers[name] = value

    async def _send(
        self,
        url: str,
        method: str,
        data: Optional[Mapping[str, Any]],
        pending: PendingOperation,
    ) -> None:
        method = method.upper()
        headers = {"Accept": "application/json"}
        params = None
        content = None

        if data is not None:
            if method == "GET":
                params = encode_params(data)
            else:
                headers["Content-Type"] = JSON_CONTENT_TYPE
                content = json.dumps(data).encode("utf-8")

        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                content=content,
                headers=headers,
                extensions={REQUEST_TAG_EXTENSION: self._request_tag},
            )
        except httpx.HTTPError as e:
            logger.debug("%s %s raised %r", method, url, e)
            pending.fail(str(e) or type(e).__name__, None)
            return

        if response.is_error:
            pending.fail(response.text, response.status_code)
            return

        if not response.content:
            pending.succeed(None)
            return

        try:
            body = response.json()
        except ValueError:
            logger.debug("%s %s returned a body that is not JSON", method, url)
            pending.fail(response.text, response.status_code)
            return
        pending.succeed(body)

    async def _do_send(
        self,
        operation: Operation,
        pending: PendingOperation,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        dest = self.destination(operation)
        data = operation.query if operation.kind.is_read else operation.payload
        await self._send(dest.target, dest.method, data, pending)

    # ------------------------------------------------------------------ #
    # Raw requests and relationship loading
    # ------------------------------------------------------------------ #

    async def request(
        self,
        url: str,
        method: str = "GET",
        *,
        data: Optional[Mapping[str, Any]] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        """
        Issue an arbitrary request with the same headers, settlement and
        error translation as the CRUD verbs.
        """
        return await self._settle(
            "request",
            lambda pending: self._send(url, method, data, pending),
            ctx=ctx,
        )

    async def find_has_many(
        self,
        store: Store,
        type_key: str,
        record: Any,
        url: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        """Load a has-many relationship from a link supplied by the owner record."""
        self._require_type_key(type_key)
        if self.host and url.startswith("/") and not url.startswith("//"):
            url = self.host + url
        resolved = self.url_prefix(url, self.build_url(type_key, record_id(record)))
        return await self.request(resolved, "GET", ctx=ctx)

    async def find_belongs_to(
        self,
        store: Store,
        type_key: str,
        record: Any,
        url: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Any:
        """Load a belongs-to relationship from a link supplied by the owner record."""
        self._require_type_key(type_key)
        resolved = self.url_prefix(url, self.build_url(type_key, record_id(record)))
        return await self.request(resolved, "GET", ctx=ctx)


__all__ = ["HttpRemoteAdapter", "encode_params", "JSON_CONTENT_TYPE"]
