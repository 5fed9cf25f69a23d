"""Tests for command parsing."""

import logging

import pytest

from account_linker.core import (
    AdapterKind,
    ExplainCommand,
    LinkCommand,
    UnlinkAllCommand,
    UnlinkCommand,
    parse_command,
)

ROOM = "!room:matrix.org"
USER = "@alice:matrix.org"


def parse(text: str):
    return parse_command(text, upstream_kind="Matrix", chat_id=ROOM, user_id=USER)


def test_parse_link() -> None:
    command = parse("link LinuxOrgRu alice")

    assert isinstance(command, LinkCommand)
    link = command.link
    assert link.upstream_kind == "Matrix"
    assert link.chat_id == ROOM
    assert link.user_id == USER
    assert link.adapter_kind is AdapterKind.LINUX_ORG_RU
    assert link.linked_user_id == "alice"
    assert not link.verified


def test_parse_unlink() -> None:
    command = parse("unlink LinuxOrgRu alice")

    assert isinstance(command, UnlinkCommand)
    assert command.link.linked_user_id == "alice"


def test_parse_unlinkall() -> None:
    assert parse("unlinkall") == UnlinkAllCommand(upstream_kind="Matrix", user_id=USER)


def test_parse_explain_keeps_command_text() -> None:
    command = parse("explain tar -xzvf  file.tgz")

    assert command == ExplainCommand(chat_id=ROOM, user_id=USER, command="tar -xzvf  file.tgz")


@pytest.mark.parametrize("text", ["", "   ", "hello there", "Link LinuxOrgRu alice", "UNLINKALL"])
def test_unrecognized_text_is_ignored(text: str) -> None:
    assert parse(text) is None


def test_unknown_adapter_is_dropped_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert parse("link Reddit alice") is None

    assert "Unknown adapter kind" in caplog.text


@pytest.mark.parametrize("text", ["link", "link LinuxOrgRu", "unlink LinuxOrgRu", "explain"])
def test_missing_arguments_are_dropped(text: str) -> None:
    assert parse(text) is None
