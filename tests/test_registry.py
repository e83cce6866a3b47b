"""Tests for wren.registry — startup pipeline, snapshots, admin API."""

import logging
import threading
from pathlib import Path

import pytest

from wren.config import RoutingConfig
from wren.errors import ConfigurationError, MissingArgument, NotFound, PatternError
from wren.registry import RouteRegistry
from wren.routing import cache
from wren.routing.declarations import RouteSet
from wren.routing.route import Priority


def _articles() -> RouteSet:
    routes = RouteSet("articles")

    @routes.get("articles", handler_id="articles.index")
    def index() -> str:
        return "index"

    @routes.get("articles/new", handler_id="articles.new", priority=Priority.FIRST)
    def new() -> str:
        return "new"

    @routes.get("articles/:id", "articles/:id.:format", handler_id="articles.show")
    def show(id: str, format: str = "html") -> str:
        return id

    @routes.post("articles", handler_id="articles.create")
    def create() -> str:
        return "created"

    return routes


def _api() -> RouteSet:
    routes = RouteSet("api")

    @routes.post("api/webhook", handler_id="api.webhook", skip_csrf=True)
    def webhook() -> str:
        return "ok"

    @routes.get("service/:id/proxy/:*", handler_id="api.proxy")
    def proxy(id: str) -> str:
        return id

    return routes


def _registry(**config: object) -> RouteRegistry:
    registry = RouteRegistry(RoutingConfig(log_routes=False, **config))  # type: ignore[arg-type]
    registry.include(_articles())
    registry.include(_api())
    return registry


class TestFreeze:
    def test_match_freezes_lazily(self) -> None:
        registry = _registry()
        match = registry.match("GET", "/articles/new")
        assert match is not None
        assert match.handler_id == "articles.new"

    def test_include_after_freeze_rejected(self) -> None:
        registry = _registry()
        registry.freeze()
        with pytest.raises(ConfigurationError, match="frozen"):
            registry.include(RouteSet("late"))

    def test_pattern_error_aborts_freeze(self) -> None:
        broken = RouteSet("broken")
        broken.add("GET", "files/:*/edit", handler_id="files.edit")
        registry = RouteRegistry(RoutingConfig(log_routes=False))
        registry.include(broken)
        with pytest.raises(PatternError, match="files.edit"):
            registry.freeze()
        # Still unfrozen; nothing is served from a broken table
        with pytest.raises(PatternError):
            registry.match("GET", "/files/a/edit")

    def test_unpublished_snapshot_raises_runtime_error(self) -> None:
        registry = _registry()
        with pytest.raises(RuntimeError, match="freeze"):
            registry._published()
        registry.freeze()
        assert registry._published().table.compiled

    def test_removal_freezes_first(self) -> None:
        registry = _registry()
        registry.remove_by_handler("api.proxy")
        assert registry.match("GET", "/service/1/proxy/x") is None
        assert registry.match("GET", "/articles/new") is not None

    def test_concurrent_freeze_compiles_once(self) -> None:
        registry = _registry()
        tables = []

        def worker() -> None:
            tables.append(registry.table)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(t is tables[0] for t in tables)

    def test_conflicting_handler_ids_across_sets(self) -> None:
        first = RouteSet("a")
        first.get("x", handler_id="dup")(lambda: "a")
        second = RouteSet("b")
        second.get("y", handler_id="dup")(lambda: "b")
        registry = RouteRegistry(RoutingConfig(log_routes=False))
        registry.include(first)
        registry.include(second)
        with pytest.raises(ConfigurationError, match="already bound"):
            registry.freeze()

    def test_startup_log_lists_table_in_match_order(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        registry = RouteRegistry()
        registry.include(_articles())
        with caplog.at_level(logging.INFO, logger="wren.routing"):
            registry.freeze()
        lines = [r.getMessage().strip() for r in caplog.records if r.name == "wren.routing"]
        assert lines[0] == "Routes:"
        get_lines = [line for line in lines[1:] if line.startswith("GET")]
        assert get_lines[0].split()[1] == "/articles/new"
        assert get_lines[-1].split()[1] == "/articles/:id"


class TestMatching:
    def test_resolve_not_found(self) -> None:
        with pytest.raises(NotFound):
            _registry().resolve("GET", "/nothing")

    def test_wildcard(self) -> None:
        match = _registry().match("GET", "/service/123/proxy/http://foo.com/bar")
        assert match is not None
        assert match.path_params == {"id": "123", "*": "http://foo.com/bar"}

    def test_head_follows_get(self) -> None:
        match = _registry().match("HEAD", "/articles/5")
        assert match is not None
        assert match.handler_id == "articles.show"
        assert match.suppress_body is True

    def test_handler_lookup(self) -> None:
        registry = _registry()
        match = registry.resolve("GET", "/articles/5")
        assert registry.handler(match.handler_id)(**match.path_params) == "5"

    def test_csrf(self) -> None:
        registry = _registry()
        create = registry.resolve("POST", "/articles")
        webhook = registry.resolve("POST", "/api/webhook")
        assert registry.requires_csrf_check(create, "POST") is True
        assert registry.requires_csrf_check(webhook, "POST") is False
        assert registry.requires_csrf_check(registry.resolve("GET", "/articles"), "GET") is False

    def test_routes_excludes_implicit_head(self) -> None:
        routes = _registry().routes
        assert all(not e.implicit_head for e in routes)
        assert len(routes) == 7


class TestUrlFor:
    def test_prefixes_base_url(self) -> None:
        assert _registry().url_for("articles.show", id=5) == "/articles/5"

    def test_custom_base_url(self) -> None:
        registry = _registry(base_url="/blog/")
        assert registry.url_for("articles.show", {"id": 5}) == "/blog/articles/5"

    def test_by_handler_object(self) -> None:
        routes = RouteSet()

        @routes.get("ping")
        def ping() -> str:
            return "pong"

        registry = RouteRegistry(RoutingConfig(log_routes=False))
        registry.include(routes)
        assert registry.url_for(ping) == "/ping"

    def test_missing_argument(self) -> None:
        with pytest.raises(MissingArgument):
            _registry().url_for("articles.show")


class TestAdmin:
    def test_remove_by_prefix(self) -> None:
        registry = _registry()
        registry.remove_by_prefix("/articles")
        assert registry.match("GET", "/articles/5") is None
        assert registry.match("POST", "/api/webhook") is not None

    def test_remove_by_prefix_twice(self) -> None:
        registry = _registry()
        registry.remove_by_prefix("articles")
        once = registry.table.partitions
        registry.remove_by_prefix("articles")
        assert registry.table.partitions == once

    def test_remove_by_handler_updates_reverse_index(self) -> None:
        registry = _registry()
        registry.remove_by_handler("articles.show")
        assert registry.match("GET", "/articles/5") is None
        assert "articles.show" not in registry.index

    def test_old_snapshot_untouched(self) -> None:
        registry = _registry()
        before = registry.table
        registry.remove_by_prefix("articles")
        assert before.match("GET", "/articles/5") is not None
        assert registry.table is not before


class TestCache:
    def test_rebuild_writes_cache(self, tmp_path: Path) -> None:
        path = tmp_path / "routes.cache"
        registry = _registry(cache_path=path)
        registry.freeze()
        record = cache.load(path)
        assert record is not None
        assert record.fingerprint == registry.fingerprint()

    def test_cache_hit_matches_identically(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "routes.cache"
        fresh = _registry(cache_path=path)
        fresh.freeze()

        cached = _registry(cache_path=path)
        with caplog.at_level(logging.INFO, logger="wren.routing"):
            cached.freeze()

        assert "Using cached route table" in caplog.text
        for method, p in (
            ("GET", "/articles/new"),
            ("GET", "/articles/7.json"),
            ("POST", "/api/webhook"),
            ("HEAD", "/articles"),
        ):
            assert cached.match(method, p) == fresh.match(method, p)
        assert cached.url_for("articles.show", id=1) == fresh.url_for("articles.show", id=1)

    def test_changed_declarations_rebuild(self, tmp_path: Path) -> None:
        path = tmp_path / "routes.cache"
        _registry(cache_path=path).freeze()

        registry = RouteRegistry(RoutingConfig(cache_path=path, log_routes=False))
        registry.include(_articles())
        assert registry.match("POST", "/api/webhook") is None
        record = cache.load(path)
        assert record is not None
        assert record.fingerprint == registry.fingerprint()

    def test_corrupt_cache_rebuilds(self, tmp_path: Path) -> None:
        path = tmp_path / "routes.cache"
        path.write_bytes(b"garbage")
        registry = _registry(cache_path=path)
        assert registry.match("GET", "/articles/new") is not None

    def test_wrong_shape_cache_rebuilds(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "routes.cache"
        registry = _registry(cache_path=path)
        header = f"wren-routes {cache.CACHE_FORMAT_VERSION} {registry.fingerprint()}\n"
        path.write_bytes(header.encode() + b'{"tie_break":"discovery","partitions":[]}')

        with caplog.at_level(logging.WARNING, logger="wren.cache"):
            match = registry.match("GET", "/articles/42")

        assert match is not None
        assert match.handler_id == "articles.show"
        assert "recompiled" in caplog.text
        record = cache.load(path)
        assert record is not None
        assert cache.try_use_cache(registry.fingerprint(), record) is not None

    def test_unwritable_cache_still_serves(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        registry = _registry(cache_path=blocker / "routes.cache")
        assert registry.match("GET", "/articles/new") is not None
