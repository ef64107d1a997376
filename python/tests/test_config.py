"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from chatstore.config import Environment, ServerLimits, get_settings
from tests.helpers import make_settings


class TestDefaults:
    """Tests for default values."""

    def test_store_defaults(self):
        s = make_settings()
        assert s.chatstore_env == Environment.TEST
        assert s.scylla_port == 9042
        assert s.scylla_keyspace == "chat"
        assert s.scylla_fetch_size == 5000
        assert s.contact_point_list == []

    def test_server_limit_defaults(self):
        assert make_settings().server_limits == ServerLimits()
        assert ServerLimits() == ServerLimits(
            avatar_max_bytes=5 * 1024 * 1024,
            upload_max_bytes=20 * 1024 * 1024,
            voice_max_bitrate_bps=96_000,
        )

    def test_report_page_size_default(self):
        assert make_settings().report_page_size == 100


class TestOverrides:
    """Tests for environment-style overrides."""

    def test_contact_points_are_split_and_trimmed(self):
        s = make_settings(SCYLLA_CONTACT_POINTS=" 10.0.0.1, 10.0.0.2 ,,")
        assert s.contact_point_list == ["10.0.0.1", "10.0.0.2"]

    def test_server_limits_follow_settings(self):
        s = make_settings(DEFAULT_AVATAR_MAX_BYTES=1, DEFAULT_UPLOAD_MAX_BYTES=2, DEFAULT_VOICE_MAX_BITRATE_BPS=3)
        assert s.server_limits == ServerLimits(avatar_max_bytes=1, upload_max_bytes=2, voice_max_bitrate_bps=3)

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CHATSTORE_ENV", "test")
        monkeypatch.setenv("SCYLLA_KEYSPACE", "chat_test")
        assert get_settings().scylla_keyspace == "chat_test"


class TestValidation:
    """Tests for cross-field validation."""

    def test_username_without_password_rejected(self):
        with pytest.raises(ValidationError, match="SCYLLA_USERNAME and SCYLLA_PASSWORD"):
            make_settings(SCYLLA_USERNAME="chat")

    def test_credentials_together_accepted(self):
        s = make_settings(SCYLLA_USERNAME="chat", SCYLLA_PASSWORD="secret")
        assert s.scylla_username == "chat"

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_deployed_environments_require_contact_points(self, env):
        with pytest.raises(ValidationError, match="SCYLLA_CONTACT_POINTS is required"):
            make_settings(CHATSTORE_ENV=env)

    def test_prod_with_contact_points_accepted(self):
        s = make_settings(CHATSTORE_ENV="prod", SCYLLA_CONTACT_POINTS="10.0.0.1")
        assert s.chatstore_env == Environment.PROD

    def test_fetch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(SCYLLA_FETCH_SIZE=0)
