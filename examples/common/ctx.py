# SPDX-License-Identifier: Apache-2.0
"""
Context helpers for examples.

Usage:
    from store_sdk.remote import OperationContext
    from examples.common.ctx import make_ctx

    ctx = make_ctx(OperationContext, screen="post_list")
"""
from __future__ import annotations

import uuid
from typing import Any, Callable, TypeVar

CtxT = TypeVar("CtxT")

__all__ = ["make_ctx"]


def _default_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:16]}"


def make_ctx(factory: Callable[..., CtxT], *, request_id: str = None, **attrs: Any) -> CtxT:
    """Build an OperationContext with a fresh request id; extra kwargs become attrs."""
    return factory(request_id=request_id or _default_request_id(), attrs=attrs)
