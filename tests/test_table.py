"""Tests for waymark.routing.table — registration, lookup, overwrite."""

import pytest

from waymark.errors import ConfigurationError
from waymark.routing.handlers import CallableHandler
from waymark.routing.route import Route
from waymark.routing.table import RouteTable


def _first() -> str:
    return "first"


def _second() -> str:
    return "second"


def _route(path: str, method: str = "GET", handler=_first, name: str | None = None) -> Route:
    return Route(method=method, path=path, handler=CallableHandler(handler), name=name)


class TestRouteTableMatch:
    def test_static(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        match = table.match("GET", "/users")
        assert match is not None
        assert match.route.path == "/users"
        assert match.path_params == {}

    def test_root(self) -> None:
        table = RouteTable()
        table.add(_route("/"))
        assert table.match("GET", "/") is not None

    def test_trailing_slash_ignored(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        assert table.match("GET", "/users/") is not None

    def test_params(self) -> None:
        table = RouteTable()
        table.add(_route("/user/{id}/post/{postId}"))
        match = table.match("GET", "/user/42/post/7")
        assert match is not None
        assert match.path_params == {"id": "42", "postId": "7"}

    def test_method_is_case_insensitive(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        assert table.match("get", "/users") is not None

    def test_unknown_method(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        assert table.match("POST", "/users") is None

    def test_unknown_path(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        assert table.match("GET", "/posts") is None

    def test_empty_table(self) -> None:
        assert RouteTable().match("GET", "/") is None

    def test_registration_order_wins(self) -> None:
        table = RouteTable()
        table.add(_route("/users/{id}", handler=_first))
        table.add(_route("/users/me", handler=_second))
        match = table.match("GET", "/users/me")
        assert match is not None
        assert match.route.handler.func is _first

    def test_segment_count_must_agree(self) -> None:
        table = RouteTable()
        table.add(_route("/users/{id}"))
        assert table.match("GET", "/users/1/2") is None


class TestRouteTableOverwrite:
    def test_last_registration_wins(self) -> None:
        table = RouteTable()
        table.add(_route("/users", handler=_first))
        table.add(_route("/users", handler=_second))
        assert len(table) == 1
        match = table.match("GET", "/users")
        assert match is not None
        assert match.route.handler.func is _second

    def test_overwrite_keeps_position(self) -> None:
        table = RouteTable()
        table.add(_route("/a/{x}", handler=_first))
        table.add(_route("/a/b", handler=_first))
        table.add(_route("/a/{y}", handler=_second))
        assert [r.path for r in table.routes] == ["/a/{y}", "/a/b"]

    def test_same_pattern_different_method_kept(self) -> None:
        table = RouteTable()
        table.add(_route("/users", "GET"))
        table.add(_route("/users", "POST"))
        assert len(table) == 2

    def test_trailing_slash_variants_collide(self) -> None:
        table = RouteTable()
        table.add(_route("/users", handler=_first))
        table.add(_route("/users/", handler=_second))
        assert len(table) == 1


class TestRouteTableCompile:
    def test_add_after_compile(self) -> None:
        table = RouteTable()
        table.compile()
        with pytest.raises(ConfigurationError):
            table.add(_route("/users"))

    def test_compile_seals_routes(self) -> None:
        table = RouteTable()
        route = table.add(_route("/users"))
        table.compile()
        assert table.compiled
        with pytest.raises(ConfigurationError):
            route.named("late")

    def test_compile_idempotent(self) -> None:
        table = RouteTable()
        table.compile()
        table.compile()
        assert table.compiled


class TestRouteTableIntrospection:
    def test_allowed_methods(self) -> None:
        table = RouteTable()
        table.add(_route("/users", "GET"))
        table.add(_route("/users", "POST"))
        table.add(_route("/posts", "DELETE"))
        assert table.allowed_methods("/users/") == frozenset({"GET", "POST"})
        assert table.allowed_methods("/nothing") == frozenset()

    def test_find_by_name(self) -> None:
        table = RouteTable()
        route = table.add(_route("/users", name="users"))
        assert table.find("users") is route
        assert table.find("missing") is None
        assert "users" in table
        assert "missing" not in table
