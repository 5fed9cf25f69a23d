"""Core domain layer."""

from account_linker.core.commands import parse_command
from account_linker.core.entities import (
    CHALLENGE,
    EPOCH,
    AdapterKind,
    Command,
    ExplainCommand,
    Item,
    Link,
    LinkCommand,
    PollResult,
    UnlinkAllCommand,
    UnlinkCommand,
)
from account_linker.core.errors import (
    AdapterError,
    ConfigError,
    ExplainError,
    LinkerError,
    StoreError,
    UpstreamError,
)
from account_linker.core.interfaces import ContentAdapter, Explainer, LinkStore, Upstream
from account_linker.core.registry import LinkRegistry, owned_by, same_link
from account_linker.core.state_machine import LinkStateMachine

__all__ = [
    "CHALLENGE",
    "EPOCH",
    "AdapterKind",
    "Command",
    "LinkCommand",
    "UnlinkCommand",
    "UnlinkAllCommand",
    "ExplainCommand",
    "Item",
    "Link",
    "PollResult",
    "LinkerError",
    "AdapterError",
    "UpstreamError",
    "StoreError",
    "ExplainError",
    "ConfigError",
    "ContentAdapter",
    "Upstream",
    "LinkStore",
    "Explainer",
    "LinkRegistry",
    "LinkStateMachine",
    "same_link",
    "owned_by",
    "parse_command",
]
