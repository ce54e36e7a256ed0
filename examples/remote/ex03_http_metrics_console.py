# SPDX-License-Identifier: Apache-2.0
"""
Remote ex03 — HTTP adapter with a console metrics sink

Demonstrates:
  • HttpRemoteAdapter over an httpx client (served here by httpx.MockTransport)
  • Headers applied to every request by the pre-send hook
  • Per-operation latency and outcome codes via ConsoleMetrics
"""

import asyncio
import json

import httpx

from examples.common.metrics_console import ConsoleMetrics
from examples.common.printing import box, print_kv
from store_sdk.remote import HttpRemoteAdapter, SerializerRegistry, ValidationError


def fake_server(request: httpx.Request) -> httpx.Response:
    print_kv({"method": request.method, "url": str(request.url), "auth": request.headers.get("Authorization")})
    if request.method == "POST":
        body = json.loads(request.content)
        if not body["blog_post"].get("post_title"):
            return httpx.Response(422, json={"errors": {"post_title": ["can't be blank"]}})
        return httpx.Response(201, json={"blog_post": {"id": 1, **body["blog_post"]}})
    return httpx.Response(200, json={"blog_posts": []})


async def main():
    box("Remote ex03 — HTTP + metrics")
    store = SerializerRegistry()
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_server))
    async with HttpRemoteAdapter(
        host="https://api.example.com",
        namespace="api/v1",
        headers={"Authorization": "Bearer demo"},
        client=client,
        metrics=ConsoleMetrics(name="ex03"),
    ) as adapter:
        await adapter.find_many(store, "blogPost", [1, 2])
        await adapter.create_record(store, "blogPost", {"postTitle": "Hi"})
        try:
            await adapter.create_record(store, "blogPost", {"postTitle": ""})
        except ValidationError as e:
            print_kv({"errors": e.errors})
    await client.aclose()

    print("\n[lesson] ex03: adapters report one observation per operation; failures carry their error code.")


if __name__ == "__main__":
    asyncio.run(main())
