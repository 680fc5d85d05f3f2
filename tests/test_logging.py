"""
Tests for structured logging and request id propagation.
"""

import asyncio
import json
import logging
import sys

from wealth_rm.observability import (
    CorrelationIdMiddleware,
    HumanFormatter,
    JSONFormatter,
    RequestContext,
    configure_logging,
    get_request_id,
)


def _record(msg="ranked clients", **extra):
    record = logging.LogRecord("wealth_rm.clients.ranking", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "wealth_rm.clients.ranking"
        assert data["message"] == "ranked clients"
        assert data["timestamp"].endswith("Z")
        assert "request_id" not in data

    def test_extra_fields_included(self):
        data = json.loads(JSONFormatter().format(_record(returned=12, semantic_mode=True)))
        assert data["returned"] == 12
        assert data["semantic_mode"] is True
        assert "pathname" not in data

    def test_request_id_from_context(self):
        with RequestContext(request_id="req-abc"):
            data = json.loads(JSONFormatter().format(_record()))
        assert data["request_id"] == "req-abc"

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestHumanFormatter:
    def test_line_shape(self):
        with RequestContext(request_id="req-0123456789abcdef"):
            line = HumanFormatter().format(_record())
        assert "[INFO] wealth_rm.clients.ranking: [req-01234567] ranked clients" in line


class TestRequestContext:
    def test_unbinds_on_exit(self):
        assert get_request_id() is None
        with RequestContext() as ctx:
            assert get_request_id() == ctx.request_id
            assert ctx.request_id.startswith("req-")
        assert get_request_id() is None

    def test_nested_restores_outer(self):
        with RequestContext(request_id="req-outer"):
            with RequestContext(request_id="req-inner"):
                assert get_request_id() == "req-inner"
            assert get_request_id() == "req-outer"


class TestConfigureLogging:
    def test_replaces_root_handlers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("DEBUG", json_format=True)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)

            configure_logging("warning", json_format=False)
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[0].formatter, HumanFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestCorrelationIdMiddleware:
    def test_binds_header_request_id(self):
        seen = []

        async def inner(scope, receive, send):
            seen.append(get_request_id())

        middleware = CorrelationIdMiddleware(inner)
        scope = {"type": "http", "headers": [(b"x-request-id", b"req-from-header")]}
        asyncio.run(middleware(scope, None, None))
        assert seen == ["req-from-header"]

    def test_generates_request_id(self):
        seen = []

        async def inner(scope, receive, send):
            seen.append(get_request_id())

        asyncio.run(CorrelationIdMiddleware(inner)({"type": "http", "headers": []}, None, None))
        assert seen[0].startswith("req-")

    def test_non_http_passthrough(self):
        seen = []

        async def inner(scope, receive, send):
            seen.append(get_request_id())

        asyncio.run(CorrelationIdMiddleware(inner)({"type": "lifespan"}, None, None))
        assert seen == [None]
