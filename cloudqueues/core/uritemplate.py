"""
UriTemplate — the small template dialect used by the queues API routes.

    /queues/{queue_name}/messages?marker={marker}&limit={limit}

Expansion
---------
Path variables are required and percent-encoded as a single segment.
Query variables are optional: a parameter whose variable is unbound (or
None) is dropped from the query string. Values are percent-encoded with no
safe characters, so "a,b" becomes "a%2Cb"; routes that need literal commas
pass a uri_transform to the pipeline.

Matching
--------
match() is the inverse of expand(): given a path (optionally with a prefix
such as "/v1/<tenant>") and query string, it returns the bound variables,
or None when the path does not fit the template.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from urllib.parse import parse_qs, quote, unquote, urlsplit

_VAR_RE = re.compile(r"\{(\w+)\}")


@dataclasses.dataclass(frozen=True)
class UriTemplate:
    template: str

    _path: str = dataclasses.field(init=False, repr=False)
    _query: tuple[tuple[str, str], ...] = dataclasses.field(init=False, repr=False)
    _path_re: re.Pattern[str] = dataclasses.field(init=False, repr=False)

    def __post_init__(self) -> None:
        path, _, query = self.template.partition("?")
        pairs: list[tuple[str, str]] = []
        for part in filter(None, query.split("&")):
            name, _, value = part.partition("=")
            var = _VAR_RE.fullmatch(value)
            if var is None:
                raise ValueError(f"query value must be a single variable: {part!r}")
            pairs.append((name, var.group(1)))

        pattern = ""
        pos = 0
        for m in _VAR_RE.finditer(path):
            pattern += re.escape(path[pos : m.start()])
            pattern += f"(?P<{m.group(1)}>[^/]+)"
            pos = m.end()
        pattern += re.escape(path[pos:])

        object.__setattr__(self, "_path", path)
        object.__setattr__(self, "_query", tuple(pairs))
        object.__setattr__(self, "_path_re", re.compile(pattern + "$"))

    @property
    def variables(self) -> tuple[str, ...]:
        path_vars = tuple(_VAR_RE.findall(self._path))
        return path_vars + tuple(var for _, var in self._query)

    def expand(self, params: Mapping[str, str | None]) -> str:
        """Substitute params; returns a relative "path?query" string."""

        def _segment(m: re.Match[str]) -> str:
            value = params.get(m.group(1))
            if value is None:
                raise ValueError(f"missing path parameter {m.group(1)!r} for {self.template}")
            return quote(value, safe="")

        path = _VAR_RE.sub(_segment, self._path)
        query = "&".join(
            f"{name}={quote(params[var], safe='')}"
            for name, var in self._query
            if params.get(var) is not None
        )
        return f"{path}?{query}" if query else path

    def match(self, uri: str) -> dict[str, str] | None:
        """Bound variables for uri, or None if its path does not fit."""
        parts = urlsplit(uri)
        m = self._path_re.search(parts.path)
        if m is None:
            return None
        bound = {name: unquote(value) for name, value in m.groupdict().items()}
        query = parse_qs(parts.query, keep_blank_values=True)
        for name, var in self._query:
            if name in query:
                bound[var] = query[name][0]
        return bound
