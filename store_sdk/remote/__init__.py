# store_sdk/remote/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Remote Store Protocol V1 - Public API

Adapters that carry model-store CRUD verbs over HTTP or Socket.IO, plus the
naming, serialization and error-translation pieces they are built from.
"""

from store_sdk.remote.remote_base import (
    # Protocol version
    REMOTE_PROTOCOL_VERSION,
    REMOTE_PROTOCOL_ID,

    # Core types
    RecordID,
    OperationKind,
    Operation,
    Destination,
    TransportSuccess,
    TransportFailure,
    TransportResult,

    # Error types
    RemoteAdapterError,
    ValidationError,
    TransportError,
    ConfigurationError,
    BadRequest,
    NotSupported,
    Unavailable,

    # Config, context and metrics
    RemoteAdapterConfig,
    OperationContext,
    MetricsSink,
    NoopMetrics,

    # Collaborator contracts
    Serializer,
    Store,
    ErrorTranslator,

    # Settlement and adapters
    PendingOperation,
    RemoteStoreProtocolV1,
    BaseRemoteAdapter,
    record_id,
)
from store_sdk.remote.naming import ResourceNamer
from store_sdk.remote.error_translation import (
    UNPROCESSABLE_ENTITY,
    ActiveModelErrorTranslator,
    PassthroughErrorTranslator,
)
from store_sdk.remote.serializers import ActiveModelSerializer, SerializerRegistry
from store_sdk.remote.http_adapter import HttpRemoteAdapter, encode_params
from store_sdk.remote.socket_adapter import SocketRemoteAdapter

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
    "MetricsSink",
    "NoopMetrics",
    "Serializer",
    "Store",
    "ErrorTranslator",
    "PendingOperation",
    "RemoteStoreProtocolV1",
    "BaseRemoteAdapter",
    "record_id",
    "ResourceNamer",
    "UNPROCESSABLE_ENTITY",
    "ActiveModelErrorTranslator",
    "PassthroughErrorTranslator",
    "ActiveModelSerializer",
    "SerializerRegistry",
    "HttpRemoteAdapter",
    "encode_params",
    "SocketRemoteAdapter",
]

__version__ = REMOTE_PROTOCOL_VERSION
