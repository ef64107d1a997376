"""Tests for structured logging context."""

import logging

import pytest
import structlog

from chatstore.logging import (
    add_request_context,
    clear_request_context,
    configure_logging,
    get_request_id,
    operation_context,
    set_request_context,
)


class TestRequestContext:
    """Tests for context variable injection."""

    def test_context_is_added_to_events(self):
        set_request_context("req-1", actor_id="user_a")
        with operation_context("invites.consume"):
            event = add_request_context(None, "info", {"event": "x"})

        assert event == {
            "event": "x",
            "request_id": "req-1",
            "actor_id": "user_a",
            "operation": "invites.consume",
        }

    def test_empty_context_adds_nothing(self):
        assert add_request_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_explicit_operation_field_wins(self):
        with operation_context("outer"):
            event = add_request_context(None, "info", {"event": "x", "operation": "explicit"})
        assert event["operation"] == "explicit"

    def test_operation_context_nests_and_restores(self):
        with operation_context("outer"):
            with operation_context("inner"):
                assert add_request_context(None, "info", {})["operation"] == "inner"
            assert add_request_context(None, "info", {})["operation"] == "outer"
        assert "operation" not in add_request_context(None, "info", {})

    def test_clear(self):
        set_request_context("req-1", actor_id="user_a")
        clear_request_context()
        assert get_request_id() is None
        assert add_request_context(None, "info", {}) == {}


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        structlog.reset_defaults()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_output_includes_context(self, capsys):
        configure_logging(json_format=True)
        set_request_context("req-9")

        structlog.get_logger("chatstore.test").info("invite_consumed", code_length=12)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        assert '"event": "invite_consumed"' in line
        assert '"request_id": "req-9"' in line
        assert '"code_length": 12' in line

    def test_driver_loggers_quieted(self):
        configure_logging(json_format=False, level=logging.DEBUG)
        assert logging.getLogger("cassandra").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG
