"""CSRF gate — decides whether a matched request needs a token check.

Only the per-route decision lives here. Token generation, extraction,
and comparison belong to the CSRF middleware of the dispatch layer,
which asks the gate before validating::

    gate = CsrfGate()
    match = table.match(request.method, request.path)
    if match is not None and gate.requires_check(match.entry, request.method):
        validate_token(request)
"""

from dataclasses import dataclass

from wren.routing.route import RouteEntry

# Methods that never mutate state and therefore never need a token
SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})


@dataclass(frozen=True, slots=True)
class CsrfGate:
    """Per-request CSRF enforcement decision based on the route's opt-out flag."""

    safe_methods: frozenset[str] = SAFE_METHODS

    def requires_check(self, entry: RouteEntry, method: str) -> bool:
        """Return True iff ``method`` is unsafe and the route did not opt out."""
        if method.upper() in self.safe_methods:
            return False
        return not entry.skip_csrf
