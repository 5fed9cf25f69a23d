"""Parsing of chat text into link commands.

Grammar (tokens are case-sensitive, separated by whitespace):

    link <adapterKind> <specifier>
    unlink <adapterKind> <specifier>
    unlinkall
    explain <shell command...>
"""

import logging
from typing import Optional

from account_linker.core.entities import (
    AdapterKind,
    Command,
    ExplainCommand,
    Link,
    LinkCommand,
    UnlinkAllCommand,
    UnlinkCommand,
)

LOGGER = logging.getLogger(__name__)


def parse_command(text: str, upstream_kind: str, chat_id: str, user_id: str) -> Optional[Command]:
    """Build a command from message text, or None if it is not one."""
    arguments = text.split()
    if not arguments:
        return None

    verb, arguments = arguments[0], arguments[1:]

    if verb == "link" or verb == "unlink":
        link = _link_from_arguments(arguments, upstream_kind, chat_id, user_id)
        if link is None:
            LOGGER.warning("Couldn't parse command: %s", text)
            return None
        return LinkCommand(link) if verb == "link" else UnlinkCommand(link)

    if verb == "unlinkall":
        return UnlinkAllCommand(upstream_kind=upstream_kind, user_id=user_id)

    if verb == "explain":
        # Keep the original spacing of the shell command after the verb
        command = text.strip()[len(verb):].strip()
        if not command:
            LOGGER.warning("Couldn't parse command: %s", text)
            return None
        return ExplainCommand(chat_id=chat_id, user_id=user_id, command=command)

    return None


def _link_from_arguments(
    arguments: list[str], upstream_kind: str, chat_id: str, user_id: str
) -> Optional[Link]:
    if len(arguments) < 2:
        return None

    adapter_kind = AdapterKind.parse(arguments[0])
    if adapter_kind is None:
        LOGGER.warning("Unknown adapter kind: %s", arguments[0])
        return None

    return Link(
        upstream_kind=upstream_kind,
        chat_id=chat_id,
        user_id=user_id,
        adapter_kind=adapter_kind,
        linked_user_id=arguments[1],
    )
