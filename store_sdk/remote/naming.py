# store_sdk/remote/naming.py
# SPDX-License-Identifier: Apache-2.0
"""
Resource naming: resource type → URL path or socket event name.

`ResourceNamer` is stateless and injected into adapters at construction, so
applications with irregular resource names subclass it instead of patching
shared helpers:

    class LegacyNamer(ResourceNamer):
        def pluralize(self, word: str) -> str:
            return word + "_list"

    adapter = HttpRemoteAdapter(host="https://api.example.com", namer=LegacyNamer())

HTTP paths and socket events deliberately follow different rules. HTTP paths
are decamelized, underscored and pluralized (`blogPost` → `blog_posts`);
socket events use the type key verbatim (`blogPost.show`).
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

import inflection

_DECAMELIZE_RE = re.compile(r"([a-z\d])([A-Z])")
_CAMELIZE_SEPARATORS_RE = re.compile(r"[-.\s]+")
_ABSOLUTE_URL_RE = re.compile(r"^https?://")


class ResourceNamer:
    """Pure naming rules shared by the HTTP and socket adapters."""

    # --- string transforms ---

    def decamelize(self, word: str) -> str:
        """`innerHTML` → `inner_html`, `blogPost` → `blog_post`."""
        return _DECAMELIZE_RE.sub(r"\1_\2", word).lower()

    def underscore(self, word: str) -> str:
        return inflection.underscore(word)

    def pluralize(self, word: str) -> str:
        return inflection.pluralize(word)

    def camelize(self, word: str) -> str:
        """`first_name` / `first-name` → `firstName`."""
        if not word:
            return word
        return inflection.camelize(_CAMELIZE_SEPARATORS_RE.sub("_", word), False)

    # --- HTTP paths ---

    def path_for_type(self, type_key: str) -> str:
        return self.pluralize(self.underscore(self.decamelize(type_key)))

    def url_prefix(
        self,
        path: Optional[str] = None,
        parent_url: Optional[str] = None,
        *,
        host: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> str:
        """
        Resolve the base of a URL.

        Without `path` the prefix is `host/namespace` (either may be absent).
        With an absolute `path` and a host, the path is rebased on the host.
        A relative `path` that is not a full http(s) URL hangs off `parent_url`.
        """
        url: List[str] = []

        if path:
            if path.startswith("/"):
                if host:
                    path = path[1:]
                    url.append(host)
            elif not _ABSOLUTE_URL_RE.match(path):
                url.append(parent_url or "")
        else:
            if host:
                url.append(host)
            if namespace:
                url.append(namespace)

        if path:
            url.append(path)

        return "/".join(url)

    def build_url(
        self,
        type_key: Optional[str] = None,
        id: Any = None,
        *,
        host: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> str:
        """
        `[host/][namespace/]<plural type>[/<id>]`; root-relative when no host.
        """
        parts: List[str] = []
        prefix = self.url_prefix(host=host, namespace=namespace)

        if type_key:
            parts.append(self.path_for_type(type_key))
        if id is not None and id != "":
            parts.append(str(id))
        if prefix:
            parts.insert(0, prefix)

        url = "/".join(parts)
        if not host and url:
            url = "/" + url
        return url

    # --- socket events ---

    def event_name(self, type_key: str, action: str) -> str:
        return f"{type_key}.{action}"


__all__ = ["ResourceNamer"]
