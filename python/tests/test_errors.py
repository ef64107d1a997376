"""Tests for store error definitions.

Verifies:
- Every exception carries its error code and message
- require_text strips and rejects blank input
"""

import pytest

from chatstore.errors import (
    ConfigMissingError,
    ErrorCode,
    InvalidInputError,
    InviteCodeCollisionError,
    StoreError,
    require_text,
)


class TestStoreErrors:
    """Tests for exception attributes."""

    def test_invalid_input(self):
        err = InvalidInputError("conversation_id is required")
        assert err.code == ErrorCode.E_INVALID_INPUT
        assert err.message == "conversation_id is required"
        assert str(err) == "conversation_id is required"

    def test_invite_collision_reports_attempts(self):
        err = InviteCodeCollisionError(5)
        assert err.code == ErrorCode.E_INVITE_CODE_COLLISION
        assert err.attempts == 5
        assert "5 attempts" in err.message

    def test_config_missing(self):
        assert ConfigMissingError().code == ErrorCode.E_CONFIG_MISSING

    def test_all_are_store_errors(self):
        for err in (InvalidInputError(), InviteCodeCollisionError(1), ConfigMissingError()):
            assert isinstance(err, StoreError)

    def test_codes_are_strings(self):
        for code in ErrorCode:
            assert code.value == code.name


class TestRequireText:
    """Tests for require_text."""

    def test_strips(self):
        assert require_text("  general ", "conversation_id") == "general"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_rejects_blank(self, value):
        with pytest.raises(InvalidInputError, match="conversation_id is required"):
            require_text(value, "conversation_id")
