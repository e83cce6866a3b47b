"""Tests for wren.routing.reverse — handler id to URL."""

import pytest

from wren.errors import MissingArgument, RegexViolation, ReverseRoutingError, UnknownHandler
from wren.routing.compiler import compile_pattern
from wren.routing.reverse import ReverseIndex
from wren.routing.route import RouteEntry
from wren.routing.table import RouteTable


def _index(*routes: tuple[str, str, str]) -> ReverseIndex:
    table = RouteTable()
    for method, pattern, handler_id in routes:
        table.register(RouteEntry(method, compile_pattern(pattern), handler_id))
    table.compile()
    return ReverseIndex.build(table)


class TestBuild:
    def test_canonical_is_first_declared(self) -> None:
        index = _index(
            ("GET", "articles/:id", "articles.show"),
            ("GET", "articles/:id.:format", "articles.show"),
        )
        assert index.pattern_for("articles.show").raw == "articles/:id"

    def test_canonical_ignores_match_order(self) -> None:
        # The format variant is matched first but declared second
        index = _index(
            ("GET", "posts/:id", "posts.show"),
            ("GET", "posts/:id.:format", "posts.show"),
        )
        assert index.url_for("posts.show", {"id": 3}) == "posts/3"

    def test_handlers_from_all_methods(self) -> None:
        index = _index(("GET", "a", "a"), ("POST", "b", "b"))
        assert sorted(index.handlers()) == ["a", "b"]
        assert "b" in index
        assert len(index) == 2


class TestUrlFor:
    def test_param_substitution(self) -> None:
        index = _index(("GET", "articles/:id", "articles.show"))
        assert index.url_for("articles.show", {"id": 5}) == "articles/5"

    def test_static_only(self) -> None:
        index = _index(("GET", "/articles/new", "articles.new"))
        assert index.url_for("articles.new") == "articles/new"

    def test_root(self) -> None:
        index = _index(("GET", "/", "home"))
        assert index.url_for("home") == ""

    def test_values_are_encoded(self) -> None:
        index = _index(("GET", "tags/:name", "tags.show"))
        assert index.url_for("tags.show", {"name": "a b/c"}) == "tags/a%20b%2Fc"

    def test_wildcard_is_verbatim(self) -> None:
        index = _index(("GET", "service/:id/proxy/:*", "proxy"))
        url = index.url_for("proxy", {"id": 123, "*": "http://foo.com/bar"})
        assert url == "service/123/proxy/http://foo.com/bar"

    def test_empty_wildcard(self) -> None:
        index = _index(("GET", "files/:*", "files"))
        assert index.url_for("files", {"*": ""}) == "files"

    def test_format_suffix(self) -> None:
        index = _index(("GET", "feeds/:name.:format", "feeds.show"))
        assert index.url_for("feeds.show", {"name": "news", "format": "rss"}) == "feeds/news.rss"

    def test_regex_param_accepted(self) -> None:
        index = _index(("GET", "articles/:id<[0-9]+>", "articles.show"))
        assert index.url_for("articles.show", {"id": 42}) == "articles/42"

    def test_extra_args_become_query_string(self) -> None:
        index = _index(("GET", "articles/:id", "articles.show"))
        url = index.url_for("articles.show", {"id": 1, "page": 2, "q": "a b"})
        assert url == "articles/1?page=2&q=a+b"


class TestUrlForErrors:
    def test_missing_argument(self) -> None:
        index = _index(("GET", "articles/:id", "articles.show"))
        with pytest.raises(MissingArgument) as exc_info:
            index.url_for("articles.show", {})
        assert exc_info.value.name == "id"

    def test_unknown_handler(self) -> None:
        index = _index(("GET", "articles/:id", "articles.show"))
        with pytest.raises(UnknownHandler, match="articles.edit"):
            index.url_for("articles.edit", {"id": 1})

    def test_regex_violation(self) -> None:
        index = _index(("GET", "articles/:id<[0-9]+>", "articles.show"))
        with pytest.raises(RegexViolation) as exc_info:
            index.url_for("articles.show", {"id": "abc"})
        assert exc_info.value.regex == "[0-9]+"

    def test_errors_are_recoverable(self) -> None:
        for cls in (MissingArgument, RegexViolation, UnknownHandler):
            assert issubclass(cls, ReverseRoutingError)


class TestRoundTrip:
    def test_generated_url_matches_back(self) -> None:
        table = RouteTable()
        for pattern, handler_id in (
            ("articles/:id<[0-9]+>", "articles.show"),
            ("tags/:name", "tags.show"),
            ("service/:id/proxy/:*", "proxy"),
        ):
            table.register(RouteEntry("GET", compile_pattern(pattern), handler_id))
        table.compile()
        index = ReverseIndex.build(table)

        cases = {
            "articles.show": {"id": "17"},
            "tags.show": {"name": "c++ & rust"},
            "proxy": {"id": "9", "*": "a/b/c"},
        }
        for handler_id, args in cases.items():
            match = table.match("GET", index.url_for(handler_id, args))
            assert match is not None
            assert match.handler_id == handler_id
            assert match.path_params == args
