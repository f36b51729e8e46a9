"""Tests for application wiring in main.py."""

import pytest
from fastapi import FastAPI
from fastapi.routing import APIRoute

pytestmark = pytest.mark.unit


def _route(app: FastAPI, path: str) -> APIRoute:
    return next(r for r in app.routes if isinstance(r, APIRoute) and r.path == path)


class TestAppWiring:
    @pytest.mark.parametrize("path", ["/api/webhooks/clerk", "/health", "/ready"])
    async def test_routes_declare_no_validated_parameters(self, app: FastAPI, path):
        route = _route(app, path)
        dependant = route.dependant

        assert route.body_field is None
        assert dependant.query_params == []
        assert dependant.path_params == []

    async def test_only_the_last_resort_handler_is_registered(self, app: FastAPI):
        from main import global_exception_handler

        custom = {
            exc: handler
            for exc, handler in app.exception_handlers.items()
            if getattr(handler, "__module__", "") == "main"
        }

        assert custom == {Exception: global_exception_handler}
