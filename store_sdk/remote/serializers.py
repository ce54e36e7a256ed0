# store_sdk/remote/serializers.py
# SPDX-License-Identifier: Apache-2.0
"""
Default serializer and a minimal store for driving adapters directly.

`ActiveModelSerializer` produces the root-keyed, underscored payloads an
ActiveModel-style backend expects:

    serializer.serialize_into_hash(data, "blogPost", {"id": 7, "postTitle": "Hi"}, include_id=True)
    data == {"blog_post": {"id": 7, "post_title": "Hi"}}

Stores with richer serialization implement the `Serializer` protocol from
`remote_base` and return their own instances from `serializer_for`.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping, Optional

from store_sdk.remote.naming import ResourceNamer
from store_sdk.remote.remote_base import Serializer


class ActiveModelSerializer:
    """Root key = underscored type key; attribute names underscored."""

    def __init__(self, *, namer: Optional[ResourceNamer] = None) -> None:
        self._namer = namer or ResourceNamer()

    def root_key(self, type_key: str) -> str:
        return self._namer.underscore(self._namer.decamelize(type_key))

    @staticmethod
    def attributes(record: Any) -> Dict[str, Any]:
        if isinstance(record, Mapping):
            return dict(record)
        if dataclasses.is_dataclass(record) and not isinstance(record, type):
            return dataclasses.asdict(record)
        d = getattr(record, "__dict__", None)
        if isinstance(d, dict):
            return {k: v for k, v in d.items() if not k.startswith("_")}
        raise TypeError(f"cannot serialize record of type {type(record)!r}")

    def serialize(self, record: Any, *, include_id: bool = False) -> Dict[str, Any]:
        attrs = self.attributes(record)
        out: Dict[str, Any] = {}
        for key, value in attrs.items():
            if key == "id":
                continue
            out[self._namer.underscore(key)] = value
        if include_id and attrs.get("id") is not None:
            out = {"id": attrs["id"], **out}
        return out

    def serialize_into_hash(
        self,
        target: Dict[str, Any],
        type_key: str,
        record: Any,
        *,
        include_id: bool = False,
    ) -> None:
        target[self.root_key(type_key)] = self.serialize(record, include_id=include_id)


class SerializerRegistry:
    """
    Smallest possible `Store`: per-type serializers with a shared default.
    """

    def __init__(self, default: Optional[Serializer] = None) -> None:
        self._default: Serializer = default or ActiveModelSerializer()
        self._by_type: Dict[str, Serializer] = {}

    def register(self, type_key: str, serializer: Serializer) -> None:
        self._by_type[type_key] = serializer

    def serializer_for(self, type_key: str) -> Serializer:
        return self._by_type.get(type_key, self._default)


__all__ = ["ActiveModelSerializer", "SerializerRegistry"]
