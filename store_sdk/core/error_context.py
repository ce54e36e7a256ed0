# store_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Error context utilities for remote store adapters.

Adapters attach debugging metadata to exceptions as they leave the gateway
(operation name, resource type, request id). The metadata lives in exception
attributes so the original type, message and traceback are untouched.

Typical usage
-------------

    from store_sdk.core.error_context import attach_context

    try:
        body = await adapter.find(store, "post", 1)
    except Exception as exc:
        attach_context(exc, component="app", screen="post_detail")
        raise

Later, in error handlers:

    except RemoteAdapterError as exc:
        context = get_context(exc)
        logger.error(
            "Remote store call failed",
            extra={
                "operation": context.get("operation"),
                "type_key": context.get("type_key"),
            },
        )

Two attributes are set: `__store_context__` (canonical) and
`__<component>_context__` (e.g. `__remote_http_context__`). Repeated calls
merge into the existing mapping; the first `component` wins.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

logger = logging.getLogger(__name__)

_CANONICAL_ATTR = "__store_context__"


def _component_attr(component: str) -> str:
    return f"__{component}_context__"


def attach_context(
    exc: BaseException,
    component: str,
    **context: Any,
) -> None:
    """
    Attach debugging context to an exception.

    Parameters
    ----------
    exc:
        The exception to enrich.

    component:
        Origin of this context, e.g. "remote_http", "remote_socket", "cli".

    **context:
        Arbitrary keys. Common ones: operation, type_key, request_id, status.
        Keys whose value is None are skipped. Never include record payloads.

    Attachment is best-effort: failures are logged at debug level and the
    original exception still propagates.
    """
    try:
        merged: MutableMapping[str, Any] = {}
        existing = getattr(exc, _CANONICAL_ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)

        merged.setdefault("component", component)
        merged.update({k: v for k, v in context.items() if v is not None})

        setattr(exc, _CANONICAL_ATTR, merged)
        setattr(exc, _component_attr(component), merged)

    except Exception as attachment_error:  # noqa: BLE001
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"component": component},
        )


def get_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Retrieve attached context, or an empty dict.

    When `component` is given, the component-specific attribute is tried
    before the canonical one.
    """
    names = [_CANONICAL_ATTR]
    if component:
        names.insert(0, _component_attr(component))
    for name in names:
        ctx = getattr(exc, name, None)
        if isinstance(ctx, Mapping):
            return ctx
    return {}


def has_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> bool:
    """True if non-empty context is attached."""
    return len(get_context(exc, component=component)) > 0


def clear_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> None:
    """
    Remove attached context.

    With `component`, only that component's attribute (plus the canonical
    one) is removed; otherwise every `__<name>_context__` attribute is.
    """
    if component:
        targets = [_CANONICAL_ATTR, _component_attr(component)]
    else:
        targets = [
            attr for attr in list(vars(exc))
            if attr.startswith("__") and attr.endswith("_context__")
        ]
    for attr in targets:
        try:
            if attr in vars(exc):
                delattr(exc, attr)
        except Exception as clear_error:  # noqa: BLE001
            logger.debug(
                "Failed to delete %s from %s: %s",
                attr,
                type(exc).__name__,
                clear_error,
            )


__all__ = [
    "attach_context",
    "get_context",
    "has_context",
    "clear_context",
]
