# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the remote store tests.

Adapters here never touch the network: HTTP goes through
`httpx.MockTransport` and the socket adapter drives `tests.fakes.FakeSocketClient`.
"""

from __future__ import annotations

import pytest

from store_sdk.remote import SerializerRegistry
from tests.fakes import RecordingMetrics


@pytest.fixture
def store() -> SerializerRegistry:
    return SerializerRegistry()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()
