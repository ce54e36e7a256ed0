# SPDX-License-Identifier: Apache-2.0
"""
Remote ex02 — Validation errors and error context

Demonstrates:
  • 422 + {"errors": {...}} surfacing as ValidationError with camelCase fields
  • Other failures surfacing as TransportError with the raw status and body
  • Debugging context attached to errors leaving the gateway
"""

import asyncio

from examples.common.ctx import make_ctx
from examples.common.printing import box, print_kv
from store_sdk.core.error_context import get_context
from store_sdk.mock.mock_remote_adapter import MockRemoteAdapter
from store_sdk.remote import OperationContext, SerializerRegistry, TransportError, ValidationError


async def main():
    box("Remote ex02 — Validation errors")
    store = SerializerRegistry()
    adapter = MockRemoteAdapter(required_fields={"user": ["first_name", "email"]})
    ctx = make_ctx(OperationContext, screen="signup")

    try:
        await adapter.create_record(store, "user", {"firstName": "", "email": "ada@example.com"}, ctx=ctx)
    except ValidationError as e:
        print_kv({"code": e.code, "status": e.status, "errors": e.errors})
        print_kv(get_context(e))

    try:
        await adapter.update_record(store, "user", {"id": 999, "email": "x@example.com"}, ctx=ctx)
    except TransportError as e:
        print_kv({"code": e.code, "status": e.status, "body": e.body})

    print("\n[lesson] ex02: only 422 with an errors mapping is a ValidationError; everything else stays opaque.")


if __name__ == "__main__":
    asyncio.run(main())
