"""Kida integration — ``url_for`` as a template global.

Binds a registry's reverse index into a kida Environment so templates
can link to handlers by id::

    <a href="{{ url_for('articles.show', id=article.id) }}">...</a>
"""

from typing import Any

from kida import Environment

from wren.registry import RouteRegistry


def install_url_for(env: Environment, registry: RouteRegistry, name: str = "url_for") -> None:
    """Register ``url_for(handler_id, **args)`` as a global on ``env``.

    Reverse routing errors propagate to the template render call.
    """

    def url_for(handler: Any, **args: Any) -> str:
        return registry.url_for(handler, args)

    env.add_global(name, url_for)
