"""Tests for core entities."""

from datetime import datetime, timezone

import pytest

from account_linker.core import EPOCH, AdapterKind, Item, Link


def test_link_equality_ignores_state() -> None:
    """Links with the same identity are equal regardless of id, progress and verification."""
    first = Link(
        upstream_kind="Matrix",
        chat_id="!room:matrix.org",
        user_id="@alice:matrix.org",
        adapter_kind=AdapterKind.LINUX_ORG_RU,
        linked_user_id="alice",
    )
    second = Link(
        upstream_kind="Matrix",
        chat_id="!room:matrix.org",
        user_id="@alice:matrix.org",
        adapter_kind=AdapterKind.LINUX_ORG_RU,
        linked_user_id="alice",
        last_update=datetime(2020, 1, 1, tzinfo=timezone.utc),
        verified=True,
        id=42,
        persisted=True,
    )

    assert first == second
    assert hash(first) == hash(second)
    assert first.key == second.key


def test_link_equality_uses_linked_user(make_link) -> None:
    """Links differing only in the linked account are different links."""
    assert make_link("alice") != make_link("bob")


def test_new_link_is_fresh(make_link) -> None:
    link = make_link()

    assert link.last_update == EPOCH
    assert link.is_fresh
    assert not link.verified
    assert link.id is None


def test_adapter_kind_parse_is_exact() -> None:
    assert AdapterKind.parse("LinuxOrgRu") is AdapterKind.LINUX_ORG_RU
    assert AdapterKind.parse("linuxorgru") is None
    assert AdapterKind.parse("Reddit") is None
    assert str(AdapterKind.LINUX_ORG_RU) == "LinuxOrgRu"


def test_item_contains_is_case_sensitive(make_item) -> None:
    item = make_item(10, "Well, I love lor-bot! Really.")

    assert item.contains("I love lor-bot!")
    assert not item.contains("i love lor-bot!")


def test_item_validation() -> None:
    """Test item validation."""
    with pytest.raises(ValueError, match="timezone-aware"):
        Item(
            author="alice",
            title="Topic",
            url="https://www.linux.org.ru/",
            body="text",
            timestamp=datetime(2020, 1, 1),
        )


def test_item_renderings(make_item) -> None:
    item = make_item(10, "a < b")

    assert item.as_text() == "alice posted comment: 'a < b'"
    html = item.as_html()
    assert "<b>alice</b>" in html
    assert "a &lt; b" in html
    assert 'href="https://www.linux.org.ru/forum/talks/1?cid=10"' in html
