"""Registry import resolution — ``"module:attribute"`` strings to RouteRegistry instances."""

import importlib

from wren.registry import RouteRegistry


def resolve_registry(import_string: str) -> RouteRegistry:
    """Resolve an import string to a ``RouteRegistry``.

    Accepts ``"module:attribute"`` format. When the attribute portion is
    omitted, defaults to ``"routes"``. Factory functions are called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a ``RouteRegistry``.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "routes"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, RouteRegistry):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, RouteRegistry):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a wren.RouteRegistry"
        raise TypeError(msg)

    return obj
