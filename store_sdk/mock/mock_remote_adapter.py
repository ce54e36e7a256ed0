# store_sdk/mock/mock_remote_adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
Mock remote adapter used in tests, examples and the CLI's `mock` transport.

Implements BaseRemoteAdapter over an in-memory, REST-shaped backend that
answers the way an ActiveModel server would:

    show     {"blog_post": {...}}
    index    {"blog_posts": [...], "meta": {"revision": N}}
    create   {"blog_post": {...}}     (id assigned when absent)
    update   {"blog_post": {...}}
    destroy  None

Settlement is scheduled on the event loop rather than performed inline, so
callers observe the same suspension a real transport causes. Unknown ids
settle as 404 failures; missing required fields settle as 422 failures with
an ActiveModel `errors` body.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from store_sdk.remote.remote_base import (
    BaseRemoteAdapter,
    Operation,
    OperationContext,
    OperationKind,
    PendingOperation,
)

BLANK_MESSAGE = "can't be blank"


def _revision_token(token: Any) -> Optional[int]:
    """Since tokens issued by this backend are revision numbers."""
    if isinstance(token, bool):
        return None
    try:
        return int(str(token).strip())
    except ValueError:
        return None


class MockRemoteAdapter(BaseRemoteAdapter):
    """In-memory backend; one table per type key, ids assigned sequentially."""

    _component = "remote_mock"

    def __init__(
        self,
        *,
        required_fields: Optional[Mapping[str, Sequence[str]]] = None,
        latency_s: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._required = {k: tuple(v) for k, v in (required_fields or {}).items()}
        self._latency_s = max(0.0, float(latency_s))
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._revisions: Dict[Tuple[str, str], int] = {}
        self._revision = 0
        self._ids = itertools.count(1)
        self.sent: List[Operation] = []

    # ----- helpers -----------------------------------------------------------

    def _root(self, type_key: str) -> str:
        return self._namer.underscore(self._namer.decamelize(type_key))

    def _table(self, type_key: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(type_key, {})

    def _touch(self, type_key: str, rid: str) -> None:
        self._revision += 1
        self._revisions[(type_key, rid)] = self._revision

    def _next_id(self, table: Mapping[str, Any]) -> int:
        while True:
            candidate = next(self._ids)
            if str(candidate) not in table:
                return candidate

    def seed(self, type_key: str, *records: Mapping[str, Any]) -> None:
        """Insert wire-shaped (underscored) records directly."""
        table = self._table(type_key)
        for rec in records:
            row = dict(rec)
            if row.get("id") is None:
                row["id"] = self._next_id(table)
            rid = str(row["id"])
            table[rid] = row
            self._touch(type_key, rid)

    def _missing_fields(self, type_key: str, attrs: Mapping[str, Any]) -> Dict[str, List[str]]:
        return {
            field: [BLANK_MESSAGE]
            for field in self._required.get(type_key, ())
            if attrs.get(field) in (None, "")
        }

    def _schedule(self, pending: PendingOperation, outcome: Tuple[bool, Any, Optional[int]]) -> None:
        ok, body, status = outcome
        settle = (lambda: pending.succeed(body)) if ok else (lambda: pending.fail(body, status))
        loop = asyncio.get_running_loop()
        if self._latency_s:
            loop.call_later(self._latency_s, settle)
        else:
            loop.call_soon(settle)

    # ----- backend -----------------------------------------------------------

    def _handle(self, operation: Operation) -> Tuple[bool, Any, Optional[int]]:
        type_key = operation.type_key
        root = self._root(type_key)
        table = self._table(type_key)
        kind = operation.kind

        if kind == OperationKind.SHOW:
            rec = table.get(str(operation.id))
            if rec is None:
                return False, {"error": "not found"}, 404
            return True, {root: copy.deepcopy(rec)}, None

        if kind in (OperationKind.INDEX, OperationKind.FIND_QUERY, OperationKind.FIND_MANY):
            query = dict(operation.query or {})
            rows = list(table.items())
            if kind == OperationKind.INDEX and query.get("since") is not None:
                since = _revision_token(query["since"])
                if since is None:
                    return False, {"error": "invalid since token"}, 400
                rows = [(rid, r) for rid, r in rows if self._revisions.get((type_key, rid), 0) > since]
            elif kind == OperationKind.FIND_MANY:
                wanted = {str(i) for i in query.get("ids", [])}
                rows = [(rid, r) for rid, r in rows if rid in wanted]
            elif kind == OperationKind.FIND_QUERY:
                rows = [
                    (rid, r) for rid, r in rows
                    if all(r.get(k) == v for k, v in query.items())
                ]
            return True, {
                self._namer.pluralize(root): [copy.deepcopy(r) for _, r in rows],
                "meta": {"revision": self._revision},
            }, None

        if kind == OperationKind.CREATE:
            attrs = dict((operation.payload or {}).get(root) or {})
            errors = self._missing_fields(type_key, attrs)
            if errors:
                return False, {"errors": errors}, 422
            if attrs.get("id") is None:
                attrs["id"] = self._next_id(table)
            rid = str(attrs["id"])
            table[rid] = attrs
            self._touch(type_key, rid)
            return True, {root: copy.deepcopy(attrs)}, None

        if kind == OperationKind.UPDATE:
            rid = str(operation.id)
            if rid not in table:
                return False, {"error": "not found"}, 404
            attrs = dict((operation.payload or {}).get(root) or {})
            merged = {**table[rid], **attrs, "id": table[rid]["id"]}
            errors = self._missing_fields(type_key, merged)
            if errors:
                return False, {"errors": errors}, 422
            table[rid] = merged
            self._touch(type_key, rid)
            return True, {root: copy.deepcopy(merged)}, None

        if kind == OperationKind.DESTROY:
            rid = str(operation.id)
            if table.pop(rid, None) is None:
                return False, {"error": "not found"}, 404
            self._touch(type_key, rid)
            return True, None, None

        return False, {"error": f"unsupported operation {kind.value}"}, 400

    async def _do_send(
        self,
        operation: Operation,
        pending: PendingOperation,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        self.sent.append(operation)
        self._schedule(pending, self._handle(operation))


__all__ = ["MockRemoteAdapter", "BLANK_MESSAGE"]
