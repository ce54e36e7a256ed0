# SPDX-License-Identifier: Apache-2.0
"""
Remote ex01 — CRUD basics against the in-memory mock adapter

Demonstrates:
  • create / find / update / delete through the gateway
  • find_all with a since token, find_query, find_many
  • Request ids via make_ctx()
"""

import asyncio

from examples.common.ctx import make_ctx
from examples.common.printing import box, print_json, print_kv
from store_sdk.mock.mock_remote_adapter import MockRemoteAdapter
from store_sdk.remote import OperationContext, SerializerRegistry, TransportError


async def main():
    box("Remote ex01 — CRUD basics")
    store = SerializerRegistry()
    adapter = MockRemoteAdapter()
    ctx = make_ctx(OperationContext, screen="ex01")

    created = await adapter.create_record(store, "blogPost", {"postTitle": "Hello", "author": 7}, ctx=ctx)
    print_json(created)
    post_id = created["blog_post"]["id"]

    await adapter.create_record(store, "blogPost", {"postTitle": "Second", "author": 8}, ctx=ctx)
    snapshot = await adapter.find_all(store, "blogPost", ctx=ctx)
    revision = snapshot["meta"]["revision"]
    print_kv({"posts": len(snapshot["blog_posts"]), "revision": revision})

    await adapter.update_record(store, "blogPost", {"id": post_id, "postTitle": "Hello, edited"}, ctx=ctx)
    changed = await adapter.find_all(store, "blogPost", revision, ctx=ctx)
    print_kv({"changed since": revision, "ids": [p["id"] for p in changed["blog_posts"]]})

    by_author = await adapter.find_query(store, "blogPost", {"author": 7}, ctx=ctx)
    print_kv({"by author 7": [p["post_title"] for p in by_author["blog_posts"]]})

    many = await adapter.find_many(store, "blogPost", [post_id, 2], ctx=ctx)
    print_kv({"find_many": [p["id"] for p in many["blog_posts"]]})

    await adapter.delete_record(store, "blogPost", {"id": post_id}, ctx=ctx)
    try:
        await adapter.find(store, "blogPost", post_id, ctx=ctx)
    except TransportError as e:
        print_kv({"after delete": e.code, "status": e.status})

    print("\n[lesson] ex01: every verb is one request; bodies come back exactly as the backend sent them.")


if __name__ == "__main__":
    asyncio.run(main())
