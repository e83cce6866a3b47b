"""Pattern compiler — raw path pattern strings to ``RoutePattern``.

Syntax::

    "articles"                -> Static("articles")
    "articles/:id"            -> Static("articles"), Param("id")
    "articles/:id<[0-9]+>"    -> Static("articles"), RegexParam("id", "[0-9]+")
    "service/:id/proxy/:*"    -> ..., Wildcard()
    "articles/:id.:format"    -> Static("articles"), Param("id"), Static("."), Param("format")
"""

import re

from wren.errors import PatternError
from wren.routing.segments import (
    DYNAMIC_SEGMENTS,
    Param,
    RegexParam,
    RoutePattern,
    Segment,
    Static,
    Wildcard,
)

_NAME_RE = re.compile(r"\w+")

# Final token "<head>.:<name>" where head is non-empty
_FORMAT_SUFFIX_RE = re.compile(r"^(?P<head>.+)\.:(?P<name>[^.:<>/]*)$")


def split_pattern(raw: str) -> list[str]:
    """Split a raw pattern on ``/`` outside of ``<...>`` regex constraints.

    Leading and trailing slashes are ignored, so ``"/users/"`` and
    ``"users"`` split identically.
    """
    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in raw.strip("/"):
        if ch == "<":
            depth += 1
        elif ch == ">" and depth:
            depth -= 1
        if ch == "/" and depth == 0:
            tokens.append("".join(current))
            current = []
            continue
        current.append(ch)
    if depth:
        msg = f"Unterminated regex constraint in pattern {raw!r}"
        raise PatternError(msg)
    if current or tokens:
        tokens.append("".join(current))
    return tokens


def _check_name(name: str, raw: str) -> None:
    if not name:
        msg = f"Empty parameter name in pattern {raw!r}"
        raise PatternError(msg)
    if "/" in name:
        msg = f"Parameter name {name!r} may not contain '/' (pattern {raw!r})"
        raise PatternError(msg)
    if _NAME_RE.fullmatch(name) is None:
        msg = f"Invalid parameter name {name!r} in pattern {raw!r}"
        raise PatternError(msg)


def compile_segment(token: str, raw: str) -> Segment:
    """Classify a single path token."""
    if not token.startswith(":"):
        if not token:
            msg = f"Empty path segment in pattern {raw!r}"
            raise PatternError(msg)
        return Static(token)

    body = token[1:]
    if body == "*":
        return Wildcard()

    if "<" in body:
        name, _, rest = body.partition("<")
        if not rest.endswith(">"):
            msg = f"Malformed regex constraint in {token!r} (pattern {raw!r})"
            raise PatternError(msg)
        _check_name(name, raw)
        regex = rest[:-1]
        try:
            return RegexParam(name, regex)
        except re.error as exc:
            msg = f"Invalid regex <{regex}> for parameter {name!r} in pattern {raw!r}: {exc}"
            raise PatternError(msg) from exc

    _check_name(body, raw)
    return Param(body)


def compile_pattern(raw: str) -> RoutePattern:
    """Compile a raw path pattern into a ``RoutePattern``.

    Raises ``PatternError`` for wildcards that are not last, empty or
    invalid parameter names, broken regex constraints, and duplicate
    parameter names.
    """
    tokens = split_pattern(raw)
    segments: list[Segment] = []
    format_param: str | None = None

    for i, token in enumerate(tokens):
        is_last = i == len(tokens) - 1
        suffix = _FORMAT_SUFFIX_RE.match(token) if is_last else None
        if suffix is not None:
            head = compile_segment(suffix.group("head"), raw)
            if isinstance(head, Wildcard):
                msg = f"A format suffix cannot follow a wildcard (pattern {raw!r})"
                raise PatternError(msg)
            format_param = suffix.group("name")
            _check_name(format_param, raw)
            segments.extend((head, Static("."), Param(format_param)))
            continue

        seg = compile_segment(token, raw)
        if isinstance(seg, Wildcard) and not is_last:
            msg = f"Wildcard ':*' must be the last segment (pattern {raw!r})"
            raise PatternError(msg)
        segments.append(seg)

    names = [s.name for s in segments if isinstance(s, DYNAMIC_SEGMENTS)]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        msg = f"Duplicate parameter name(s) {', '.join(duplicates)} in pattern {raw!r}"
        raise PatternError(msg)

    return RoutePattern(raw=raw, segments=tuple(segments), format_param=format_param)
