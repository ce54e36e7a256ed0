# SPDX-License-Identifier: Apache-2.0
"""
A simple console MetricsSink for examples and local debugging.

Implements the shape the remote adapters call:
  - observe(component, op, ms, ok, code="OK", extra=None)
  - counter(component, name, value=1, extra=None)
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Optional, TextIO

__all__ = ["ConsoleMetrics"]


class ConsoleMetrics:
    """
    Prints one JSON line per observation.

    Args:
        name:        Optional instance name to include in lines.
        output_file: File-like object to write to (default: stdout).
    """

    def __init__(self, *, name: Optional[str] = None, output_file: Optional[TextIO] = None) -> None:
        self.name = name
        self.output_file = output_file or sys.stdout

    def _emit(self, kind: str, payload: Mapping[str, Any]) -> None:
        line = {"metric": kind, **({"sink": self.name} if self.name else {}), **payload}
        print(json.dumps(line, separators=(",", ":"), default=str), file=self.output_file)

    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._emit(
            "observe",
            {"component": component, "op": op, "ms": round(ms, 3), "ok": ok, "code": code, "extra": dict(extra or {})},
        )

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._emit("counter", {"component": component, "name": name, "value": value, "extra": dict(extra or {})})
