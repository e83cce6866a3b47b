"""Path pattern segments and compiled patterns.

A pattern like ``articles/:id<[0-9]+>.:format`` compiles to::

    RoutePattern(
        raw="articles/:id<[0-9]+>.:format",
        segments=(Static("articles"), RegexParam("id", "[0-9]+"), Static("."), Param("format")),
        format_param="format",
    )
"""

import re
from dataclasses import dataclass, field

# Reserved parameter name for the wildcard's captured remainder
WILDCARD_NAME = "*"


@dataclass(frozen=True, slots=True)
class Static:
    """A literal segment matched by exact equality."""

    literal: str


@dataclass(frozen=True, slots=True)
class Param:
    """A named segment matching exactly one non-empty token."""

    name: str


@dataclass(frozen=True, slots=True)
class RegexParam:
    """A named segment matching one token that fully matches ``pattern``."""

    name: str
    pattern: str
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", re.compile(self.pattern))

    def accepts(self, value: str) -> bool:
        return self.regex.fullmatch(value) is not None


@dataclass(frozen=True, slots=True)
class Wildcard:
    """Consumes all remaining path tokens, including embedded ``/``."""

    name: str = WILDCARD_NAME


type Segment = Static | Param | RegexParam | Wildcard

DYNAMIC_SEGMENTS = (Param, RegexParam, Wildcard)


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """An ordered sequence of segments compiled from ``raw``.

    When ``format_param`` is set, the last three segments are the head of
    the final path token, ``Static(".")`` and ``Param(format_param)``.
    """

    raw: str
    segments: tuple[Segment, ...]
    format_param: str | None = None

    @property
    def has_wildcard(self) -> bool:
        return bool(self.segments) and isinstance(self.segments[-1], Wildcard)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.segments if isinstance(s, DYNAMIC_SEGMENTS))

    def leading_literals(self) -> tuple[str, ...]:
        """Return the literals of the leading run of Static segments."""
        literals: list[str] = []
        for seg in self.segments:
            if not isinstance(seg, Static):
                break
            literals.append(seg.literal)
        return tuple(literals)

    def __str__(self) -> str:
        return self.raw
