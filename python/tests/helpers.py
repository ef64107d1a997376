"""Test helpers shared across test modules.

Provides:
- Settings construction without .env or ambient defaults
- Payload builders for reports and messages
"""

from chatstore.config import Settings
from chatstore.schemas import NewMessage, NewReport


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {"CHATSTORE_ENV": "test", "LOG_JSON": "false"}
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def new_report(message_id: str, reporter: str, **fields) -> NewReport:
    """A report on a message in #general sent by user_sender."""
    return NewReport(
        message_id=message_id,
        conversation_id="general",
        reporter_server_user_id=reporter,
        message_text=f"text of {message_id}",
        message_sender_server_id="user_sender",
        **fields,
    )


def new_message(conversation_id: str = "general", sender_server_id: str = "user_sender", **fields) -> NewMessage:
    fields.setdefault("text", "hello")
    return NewMessage(conversation_id=conversation_id, sender_server_id=sender_server_id, **fields)
