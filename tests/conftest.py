"""Shared test fixtures."""

from datetime import datetime, timezone
from typing import Callable
from unittest.mock import AsyncMock

import pytest

from account_linker.core import AdapterKind, ContentAdapter, Item, Link, LinkStore, Upstream


@pytest.fixture
def make_item() -> Callable[..., Item]:
    """Factory for items timestamped in seconds since the epoch."""

    def factory(seconds: int, body: str = "Just a comment") -> Item:
        return Item(
            author="alice",
            title="Some topic",
            url=f"https://www.linux.org.ru/forum/talks/1?cid={seconds}",
            body=body,
            timestamp=datetime.fromtimestamp(seconds, tz=timezone.utc),
        )

    return factory


@pytest.fixture
def make_link() -> Callable[..., Link]:
    """Factory for unverified Matrix -> linux.org.ru links."""

    def factory(linked_user_id: str = "alice", user_id: str = "@alice:matrix.org", chat_id: str = "!room:matrix.org") -> Link:
        return Link(
            upstream_kind="Matrix",
            chat_id=chat_id,
            user_id=user_id,
            adapter_kind=AdapterKind.LINUX_ORG_RU,
            linked_user_id=linked_user_id,
        )

    return factory


@pytest.fixture
def adapter() -> AsyncMock:
    mock = AsyncMock(spec=ContentAdapter)
    mock.kind = AdapterKind.LINUX_ORG_RU
    mock.poll.return_value = []
    return mock


@pytest.fixture
def store() -> AsyncMock:
    mock = AsyncMock(spec=LinkStore)
    mock.load_verified.return_value = []
    mock.upsert.return_value = 1
    return mock


@pytest.fixture
def upstream() -> AsyncMock:
    mock = AsyncMock(spec=Upstream)
    mock.kind = "Matrix"
    mock.check_commands.return_value = []
    return mock
