# store_sdk/remote/error_translation.py
# SPDX-License-Identifier: Apache-2.0
"""
Failure → error translation strategies.

A translator receives the single `TransportFailure` an operation produced and
returns the exception the gateway raises. Translators are plain objects
passed to the adapter (`error_translator=`), so a backend with its own error
envelope swaps the strategy instead of subclassing the adapter.

The default, `ActiveModelErrorTranslator`, understands the Rails/ActiveModel
convention used by both transports:

    HTTP 422
    {"errors": {"first_name": ["can't be blank"], "email": "is taken"}}

    -> ValidationError({"firstName": ["can't be blank"], "email": "is taken"})

Anything else becomes an opaque TransportError that keeps the raw status and
body untouched.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from store_sdk.remote.naming import ResourceNamer
from store_sdk.remote.remote_base import (
    Operation,
    RemoteAdapterError,
    TransportError,
    TransportFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)

UNPROCESSABLE_ENTITY = 422


def _structured_body(body: Any) -> Optional[Mapping[str, Any]]:
    """Return the body as a mapping if it is one or decodes to one."""
    if isinstance(body, Mapping):
        return body
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str) and body.strip():
        try:
            decoded = json.loads(body)
        except ValueError:
            return None
        if isinstance(decoded, Mapping):
            return decoded
    return None


class PassthroughErrorTranslator:
    """Every failure becomes a TransportError; no field structure is extracted."""

    def translate(self, failure: TransportFailure, *, operation: Optional[Operation] = None) -> RemoteAdapterError:
        return _transport_error(failure, operation)


class ActiveModelErrorTranslator:
    """422 + `errors` mapping → ValidationError with camelCased field names."""

    def __init__(self, *, namer: Optional[ResourceNamer] = None) -> None:
        self._namer = namer or ResourceNamer()

    def translate(self, failure: TransportFailure, *, operation: Optional[Operation] = None) -> RemoteAdapterError:
        if failure.status == UNPROCESSABLE_ENTITY:
            body = _structured_body(failure.body)
            errors = body.get("errors") if body is not None else None
            if isinstance(errors, Mapping):
                return ValidationError(
                    {self._namer.camelize(str(key)): messages for key, messages in errors.items()},
                    details=_details(operation),
                )
            logger.debug("422 without an errors mapping; treating as transport error")
        return _transport_error(failure, operation)


def _details(operation: Optional[Operation]) -> Mapping[str, Any]:
    if operation is None:
        return {}
    return {"operation": operation.kind.value, "type_key": operation.type_key}


def _transport_error(failure: TransportFailure, operation: Optional[Operation]) -> TransportError:
    if failure.status is not None:
        message = f"request failed with status {failure.status}"
    else:
        message = "request failed without a response"
    return TransportError(
        message,
        body=failure.body,
        status=failure.status,
        details=_details(operation),
    )


__all__ = [
    "UNPROCESSABLE_ENTITY",
    "ActiveModelErrorTranslator",
    "PassthroughErrorTranslator",
]
