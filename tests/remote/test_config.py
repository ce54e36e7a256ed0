# SPDX-License-Identifier: Apache-2.0
"""
Remote Store — adapter configuration.
"""

import pytest

from store_sdk.remote import ConfigurationError, OperationContext, RemoteAdapterConfig

pytestmark = pytest.mark.asyncio


async def test_host_and_namespace_are_normalized():
    config = RemoteAdapterConfig(host=" https://api.example.com/ ", namespace="/api/v1/")
    assert config.host == "https://api.example.com"
    assert config.namespace == "api/v1"


async def test_empty_namespace_becomes_none():
    assert RemoteAdapterConfig(namespace="/").namespace is None


async def test_defaults():
    config = RemoteAdapterConfig()
    assert config.host is None
    assert config.namespace is None
    assert config.headers == {}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"host": ""},
        {"host": 42},
        {"namespace": 3},
        {"headers": ["Authorization", "x"]},
        {"headers": {"X-Retries": 3}},
    ],
)
async def test_invalid_settings_raise_configuration_error(kwargs):
    with pytest.raises(ConfigurationError) as exc_info:
        RemoteAdapterConfig(**kwargs)
    assert exc_info.value.code == "BAD_CONFIG"


async def test_headers_are_copied():
    headers = {"Authorization": "Bearer abc"}
    config = RemoteAdapterConfig(headers=headers)
    headers["Authorization"] = "changed"
    assert config.headers == {"Authorization": "Bearer abc"}


async def test_from_env(monkeypatch):
    monkeypatch.setenv("STORE_SDK_HOST", "https://env.example.com/")
    monkeypatch.setenv("STORE_SDK_NAMESPACE", "api")
    monkeypatch.setenv("STORE_SDK_HEADERS", '{"X-Token": "t"}')

    config = RemoteAdapterConfig.from_env()
    assert config.host == "https://env.example.com"
    assert config.namespace == "api"
    assert config.headers == {"X-Token": "t"}


async def test_from_env_custom_prefix_and_missing_values(monkeypatch):
    monkeypatch.delenv("BLOG_HOST", raising=False)
    monkeypatch.delenv("BLOG_NAMESPACE", raising=False)
    monkeypatch.delenv("BLOG_HEADERS", raising=False)
    assert RemoteAdapterConfig.from_env("BLOG_") == RemoteAdapterConfig()


async def test_from_env_rejects_malformed_headers(monkeypatch):
    monkeypatch.setenv("STORE_SDK_HEADERS", "{not json")
    with pytest.raises(ConfigurationError):
        RemoteAdapterConfig.from_env()

    monkeypatch.setenv("STORE_SDK_HEADERS", '["a", "b"]')
    with pytest.raises(ConfigurationError):
        RemoteAdapterConfig.from_env()


async def test_operation_context_defaults():
    ctx = OperationContext(request_id="r1")
    assert ctx.attrs == {}
    assert ctx.traceparent is None
