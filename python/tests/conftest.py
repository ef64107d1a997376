"""Pytest configuration and fixtures for chatstore tests.

Test isolation strategy:
- Every test gets a fresh InMemoryStoreClient; nothing is shared between tests
- The fake yields to the event loop on every call, so asyncio.gather over
  store operations produces real interleavings and real CAS conflicts
- Races at an exact point are staged with add_conditional_write_hook
- Settings are built explicitly (no .env) and the settings cache is cleared
"""

from collections.abc import Generator

import pytest

from chatstore.config import Settings, clear_settings_cache
from chatstore.logging import clear_request_context
from chatstore.store import InMemoryStoreClient
from chatstore.stores import Stores, build_stores
from tests.helpers import make_settings, new_message


@pytest.fixture(autouse=True)
def isolate_context() -> Generator[None, None, None]:
    """Reset cached settings and logging context around every test."""
    clear_settings_cache()
    clear_request_context()
    yield
    clear_request_context()
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client() -> InMemoryStoreClient:
    return InMemoryStoreClient()


@pytest.fixture
def stores(client: InMemoryStoreClient, settings: Settings) -> Stores:
    return build_stores(client, settings)


@pytest.fixture
def message_factory(stores: Stores):
    """Insert a message with sensible defaults; returns the stored record."""

    async def create(
        conversation_id: str = "general",
        sender_server_id: str = "user_sender",
        text: str | None = "hello",
        **fields,
    ):
        return await stores.messages.insert(
            new_message(conversation_id, sender_server_id, text=text, **fields)
        )

    return create
