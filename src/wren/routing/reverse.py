"""Reverse routing — handler id to URL.

The index maps each handler to its canonical pattern: the earliest
declared one. Lookups never need the HTTP method.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from wren.errors import MissingArgument, RegexViolation, UnknownHandler
from wren.routing.segments import Param, RegexParam, RoutePattern, Static, Wildcard
from wren.routing.table import RouteTable


class ReverseIndex:
    """Immutable ``handler_id -> canonical RoutePattern`` mapping.

    Usage::

        index = ReverseIndex.build(table)
        index.url_for("articles.show", {"id": 5})   # "articles/5"
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Mapping[str, RoutePattern]) -> None:
        self._patterns: dict[str, RoutePattern] = dict(patterns)

    @classmethod
    def build(cls, table: RouteTable) -> ReverseIndex:
        """Record each handler's earliest-declared pattern as canonical."""
        patterns: dict[str, RoutePattern] = {}
        for entry in table.declared_entries():
            patterns.setdefault(entry.handler_id, entry.pattern)
        return cls(patterns)

    def __contains__(self, handler_id: object) -> bool:
        return handler_id in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def handlers(self) -> list[str]:
        return list(self._patterns)

    def pattern_for(self, handler_id: str) -> RoutePattern:
        try:
            return self._patterns[handler_id]
        except KeyError:
            raise UnknownHandler(handler_id) from None

    def url_for(
        self,
        handler_id: str,
        args: Mapping[str, Any] | None = None,
    ) -> str:
        """Build the path for ``handler_id`` from ``args``.

        Param values are percent-encoded; the wildcard value (key ``"*"``)
        is inserted verbatim. Arguments the pattern does not consume are
        appended as a query string. The result has no leading slash.

        Raises ``UnknownHandler``, ``MissingArgument`` or ``RegexViolation``.
        """
        pattern = self.pattern_for(handler_id)
        values = {name: str(value) for name, value in (args or {}).items()}

        # Validate everything before building anything
        for seg in pattern.segments:
            if isinstance(seg, (Param, RegexParam, Wildcard)) and seg.name not in values:
                raise MissingArgument(handler_id, seg.name, pattern.raw)
            if isinstance(seg, RegexParam) and not seg.accepts(values[seg.name]):
                raise RegexViolation(handler_id, seg.name, values[seg.name], seg.pattern)

        parts: list[str] = []
        for seg in pattern.segments:
            if isinstance(seg, Static):
                parts.append(seg.literal)
            elif isinstance(seg, Wildcard):
                parts.append(values[seg.name])
            else:
                parts.append(quote(values[seg.name], safe=""))

        if pattern.format_param is not None:
            # head, ".", format share the final path token
            tail = "".join(parts[-3:])
            parts = [*parts[:-3], tail]

        path = "/".join(parts)
        if pattern.has_wildcard and not parts[-1]:
            path = path.rstrip("/")

        extra = [(k, v) for k, v in values.items() if k not in pattern.param_names]
        if extra:
            return f"{path}?{urlencode(extra)}"
        return path
