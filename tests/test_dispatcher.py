"""Tests for waymark.dispatcher — the full lookup/gate/bind/invoke pipeline."""

import logging

import pytest

from sample_controllers import BookController
from waymark.config import RouterConfig
from waymark.dispatcher import Dispatcher, Failure, Success
from waymark.middleware.chain import MiddlewareChain
from waymark.request import Request
from waymark.routing.handlers import CallableHandler, ControllerAction
from waymark.routing.route import Route
from waymark.routing.table import RouteTable


class Gate:
    """Middleware that records its name and returns a fixed answer."""

    def __init__(self, calls: list[str], name: str, answer: bool = True) -> None:
        self.calls = calls
        self.name = name
        self.answer = answer

    def handle(self, request: Request) -> bool:
        self.calls.append(self.name)
        return self.answer


def _dispatcher(*routes: Route, config: RouterConfig | None = None, registry=None) -> Dispatcher:
    table = RouteTable()
    for route in routes:
        table.add(route)
    return Dispatcher(table, MiddlewareChain(registry), config)


def _get(path: str, **query: str) -> Request:
    return Request.build("GET", path, query)


class TestDispatchSuccess:
    def test_trailing_slash(self) -> None:
        d = _dispatcher(Route("GET", "/users", CallableHandler(lambda: "users")))
        assert d.dispatch(_get("/users")) == Success("users")
        assert d.dispatch(_get("/users/")) == Success("users")

    def test_root(self) -> None:
        d = _dispatcher(Route("GET", "/", CallableHandler(lambda: "home")))
        assert d.dispatch(_get("/")) == Success("home")

    def test_params_bound_by_name_not_position(self) -> None:
        def view(postId: int, id: int) -> tuple:
            return postId, id

        d = _dispatcher(Route("GET", "/user/{id}/post/{postId}", CallableHandler(view)))
        outcome = d.dispatch(_get("/user/42/post/7"))
        assert outcome == Success((7, 42))

    def test_query_and_default(self) -> None:
        def view(q: str, page: int = 1) -> tuple:
            return q, page

        d = _dispatcher(Route("GET", "/search", CallableHandler(view)))
        assert d.dispatch(_get("/search", q="dune")) == Success(("dune", 1))
        assert d.dispatch(_get("/search", q="dune", page="3")) == Success(("dune", 3))

    def test_bool_coercion(self) -> None:
        def view(active: bool) -> bool:
            return active

        d = _dispatcher(Route("GET", "/filter", CallableHandler(view)))
        assert d.dispatch(_get("/filter", active="yes")) == Success(True)
        assert d.dispatch(_get("/filter", active="nah")) == Success(False)

    def test_controller_action(self) -> None:
        d = _dispatcher(Route("GET", "/books/{id}", ControllerAction(BookController, "show")))
        assert d.dispatch(_get("/books/9")) == Success({"show": 9})

    def test_controller_by_import_path(self) -> None:
        handler = ControllerAction("sample_controllers.BookController", "index")
        d = _dispatcher(Route("GET", "/books", handler))
        assert d.dispatch(_get("/books")) == Success("books.index")

    def test_input_receives_body(self) -> None:
        d = _dispatcher(Route("POST", "/books", ControllerAction(BookController, "store")))
        request = Request.build("POST", "/books", body={"title": "Dune"})
        assert d.dispatch(request) == Success({"stored": {"title": "Dune"}})

    def test_request_injected(self) -> None:
        def view(request: Request) -> str:
            return request.path

        d = _dispatcher(Route("GET", "/who", CallableHandler(view)))
        assert d.dispatch(_get("/who/")) == Success("/who")

    def test_none_return_is_success(self) -> None:
        d = _dispatcher(Route("GET", "/noop", CallableHandler(lambda: None)))
        outcome = d.dispatch(_get("/noop"))
        assert outcome.ok
        assert outcome == Success(None)


class TestDispatchLookupFailures:
    def test_unknown_path(self) -> None:
        d = _dispatcher(Route("GET", "/users", CallableHandler(lambda: "users")))
        outcome = d.dispatch(_get("/posts"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 404
        assert not outcome.ok

    def test_method_restriction_runs_nothing(self) -> None:
        calls: list[str] = []

        def view() -> str:
            calls.append("handler")
            return "created"

        route = Route("POST", "/users", CallableHandler(view), middleware=(Gate(calls, "gate"),))
        d = _dispatcher(route)
        outcome = d.dispatch(_get("/users"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 404
        assert calls == []

    def test_method_not_allowed_when_enabled(self) -> None:
        d = _dispatcher(
            Route("POST", "/users", CallableHandler(lambda: "created")),
            Route("PUT", "/users", CallableHandler(lambda: "replaced")),
            config=RouterConfig(method_not_allowed=True),
        )
        outcome = d.dispatch(_get("/users"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 405
        assert ("Allow", "POST, PUT") in outcome.headers

    def test_method_not_allowed_still_404_for_unknown_path(self) -> None:
        d = _dispatcher(
            Route("POST", "/users", CallableHandler(lambda: "created")),
            config=RouterConfig(method_not_allowed=True),
        )
        outcome = d.dispatch(_get("/nowhere"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 404


class TestDispatchMiddleware:
    def test_gates_run_in_order(self) -> None:
        calls: list[str] = []

        def view() -> str:
            calls.append("handler")
            return "ok"

        route = Route(
            "GET", "/", CallableHandler(view), middleware=(Gate(calls, "a"), Gate(calls, "b"))
        )
        assert _dispatcher(route).dispatch(_get("/")) == Success("ok")
        assert calls == ["a", "b", "handler"]

    def test_short_circuit(self) -> None:
        calls: list[str] = []

        def view() -> str:
            calls.append("handler")
            return "ok"

        route = Route(
            "GET",
            "/",
            CallableHandler(view),
            middleware=(Gate(calls, "a", answer=False), Gate(calls, "b")),
        )
        outcome = _dispatcher(route).dispatch(_get("/"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 403
        assert calls == ["a"]

    def test_named_middleware(self) -> None:
        route = Route("GET", "/", CallableHandler(lambda: "ok"), middleware=("deny",))
        d = _dispatcher(route, registry={"deny": lambda: Gate([], "deny", answer=False)})
        outcome = d.dispatch(_get("/"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 403

    def test_unknown_middleware_is_501(self) -> None:
        route = Route("GET", "/", CallableHandler(lambda: "ok"), middleware=("ghost",))
        outcome = _dispatcher(route).dispatch(_get("/"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 501

    def test_middleware_without_handle_is_405(self) -> None:
        route = Route("GET", "/", CallableHandler(lambda: "ok"), middleware=(object(),))
        outcome = _dispatcher(route).dispatch(_get("/"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 405


class TestDispatchControllerFailures:
    def test_missing_controller_is_400(self) -> None:
        handler = ControllerAction("sample_controllers.Nope", "index")
        outcome = _dispatcher(Route("GET", "/x", handler)).dispatch(_get("/x"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 400

    def test_missing_action_is_405(self) -> None:
        handler = ControllerAction(BookController, "publish")
        outcome = _dispatcher(Route("GET", "/x", handler)).dispatch(_get("/x"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 405

    def test_private_action_is_405(self) -> None:
        handler = ControllerAction(BookController, "_private")
        outcome = _dispatcher(Route("GET", "/x", handler)).dispatch(_get("/x"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 405


class TestDispatchBindingFailures:
    def test_missing_param_handler_not_run(self) -> None:
        calls: list[str] = []

        def view(x) -> None:
            calls.append("handler")

        outcome = _dispatcher(Route("GET", "/p", CallableHandler(view))).dispatch(_get("/p"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 400
        assert "'x'" in outcome.message
        assert calls == []

    def test_bad_number_is_400(self) -> None:
        d = _dispatcher(Route("GET", "/books/{id}", ControllerAction(BookController, "show")))
        outcome = d.dispatch(_get("/books/abc"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 400


class TestDispatchHandlerFailures:
    def test_http_error_propagates_status(self) -> None:
        d = _dispatcher(Route("GET", "/locked", ControllerAction(BookController, "locked")))
        outcome = d.dispatch(_get("/locked"))
        assert outcome == Failure(status=423, message="Locked")

    def test_unexpected_exception_is_500(self, caplog: pytest.LogCaptureFixture) -> None:
        d = _dispatcher(Route("GET", "/broken", ControllerAction(BookController, "broken")))
        with caplog.at_level(logging.ERROR, logger="waymark.dispatch"):
            outcome = d.dispatch(_get("/broken"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 500
        assert outcome.message == "Internal Server Error"
        assert "database exploded" not in outcome.message
        assert any("500 GET /broken" in r.getMessage() for r in caplog.records)

    def test_debug_includes_exception(self) -> None:
        d = _dispatcher(
            Route("GET", "/broken", ControllerAction(BookController, "broken")),
            config=RouterConfig(debug=True),
        )
        outcome = d.dispatch(_get("/broken"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 500
        assert "database exploded" in outcome.message

    def test_error_without_detail_gets_default_message(self) -> None:
        from waymark.errors import HTTPError

        def view() -> None:
            raise HTTPError(status=418)

        outcome = _dispatcher(Route("GET", "/tea", CallableHandler(view))).dispatch(_get("/tea"))
        assert outcome == Failure(status=418, message="Error 418")


class TestDispatchAsync:
    @pytest.mark.anyio
    async def test_sync_handler_offloaded(self) -> None:
        d = _dispatcher(Route("GET", "/books/{id}", ControllerAction(BookController, "show")))
        assert await d.dispatch_async(_get("/books/3")) == Success({"show": 3})

    @pytest.mark.anyio
    async def test_sync_handler_inline(self) -> None:
        d = _dispatcher(
            Route("GET", "/ping", CallableHandler(lambda: "pong")),
            config=RouterConfig(offload_sync_handlers=False),
        )
        assert await d.dispatch_async(_get("/ping")) == Success("pong")

    @pytest.mark.anyio
    async def test_coroutine_handler_awaited(self) -> None:
        async def view(id: int) -> dict:
            return {"id": id}

        d = _dispatcher(Route("GET", "/items/{id}", CallableHandler(view)))
        assert await d.dispatch_async(_get("/items/5")) == Success({"id": 5})

    @pytest.mark.anyio
    async def test_async_failure(self) -> None:
        async def view() -> None:
            raise RuntimeError("boom")

        d = _dispatcher(Route("GET", "/boom", CallableHandler(view)))
        outcome = await d.dispatch_async(_get("/boom"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 500

    @pytest.mark.anyio
    async def test_async_not_found(self) -> None:
        outcome = await _dispatcher().dispatch_async(_get("/"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 404


class AsyncDeny:
    async def handle(self, request: Request) -> bool:
        return False


class AsyncAllow:
    async def handle(self, request: Request) -> bool:
        return True


class TestDispatchAsyncMiddleware:
    def _secret_route(self, calls: list[str], gate: type) -> Route:
        def secret() -> str:
            calls.append("handler")
            return "secret"

        return Route("GET", "/admin", CallableHandler(secret), middleware=(gate,))

    def test_async_deny_blocks_sync_dispatch(self) -> None:
        calls: list[str] = []
        outcome = _dispatcher(self._secret_route(calls, AsyncDeny)).dispatch(_get("/admin"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 403
        assert calls == []

    def test_async_allow_still_blocked_in_sync_dispatch(self) -> None:
        calls: list[str] = []
        outcome = _dispatcher(self._secret_route(calls, AsyncAllow)).dispatch(_get("/admin"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 403
        assert calls == []

    @pytest.mark.anyio
    async def test_async_deny_blocks_async_dispatch(self) -> None:
        calls: list[str] = []
        d = _dispatcher(self._secret_route(calls, AsyncDeny))
        outcome = await d.dispatch_async(_get("/admin"))
        assert isinstance(outcome, Failure)
        assert outcome.status == 403
        assert calls == []

    @pytest.mark.anyio
    async def test_async_allow_passes_async_dispatch(self) -> None:
        calls: list[str] = []
        d = _dispatcher(self._secret_route(calls, AsyncAllow))
        assert await d.dispatch_async(_get("/admin")) == Success("secret")
        assert calls == ["handler"]


class TestDispatchAsyncAwaitables:
    @pytest.mark.anyio
    async def test_sync_wrapper_returning_coroutine_is_awaited(self) -> None:
        async def compute(id: int) -> int:
            return id * 2

        def view(id: int):
            return compute(id)

        d = _dispatcher(Route("GET", "/double/{id}", CallableHandler(view)))
        assert await d.dispatch_async(_get("/double/21")) == Success(42)
