"""Core domain entities."""

import html
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


# Phrase a user must post on the adapter side to prove they own the account
CHALLENGE = "I love lor-bot!"

# High-water mark of a link that was never polled
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class AdapterKind(str, Enum):
    """Content source a link points to."""

    LINUX_ORG_RU = "LinuxOrgRu"

    @classmethod
    def parse(cls, token: str) -> Optional["AdapterKind"]:
        """Return the adapter kind for an exact token, or None if unknown."""
        for kind in cls:
            if kind.value == token:
                return kind
        return None

    def __str__(self) -> str:
        return self.value


@dataclass
class Link:
    """Binding between an upstream user and an adapter account.

    Two links are the same link when their upstream identity, adapter kind
    and linked account match. Durable id, progress and verification state do
    not take part in comparisons.
    """

    upstream_kind: str
    chat_id: str
    user_id: str
    adapter_kind: AdapterKind
    linked_user_id: str
    last_update: datetime = field(default=EPOCH, compare=False)
    verified: bool = field(default=False, compare=False)
    id: Optional[int] = field(default=None, compare=False)
    persisted: bool = field(default=False, compare=False)

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def key(self) -> tuple[str, str, str, str, str]:
        """Natural key used for deduplication and durable upserts."""
        return (
            self.upstream_kind,
            self.chat_id,
            self.user_id,
            self.adapter_kind.value,
            self.linked_user_id,
        )

    @property
    def is_fresh(self) -> bool:
        """True until the first successful poll sets a baseline."""
        return self.last_update == EPOCH

    def describe(self) -> str:
        return f"{self.user_id} -> {self.adapter_kind}:{self.linked_user_id} ({self.upstream_kind}/{self.chat_id})"


@dataclass
class Item:
    """Unit of content fetched from an adapter."""

    author: str
    title: str
    url: str
    body: str
    timestamp: datetime
    body_html: str = ""

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("Timestamp must be timezone-aware")

    def contains(self, phrase: str) -> bool:
        """Exact, case-sensitive substring search over the body."""
        return phrase in self.body

    def as_text(self) -> str:
        """Plain-text rendering for chat notifications."""
        return f"{self.author} posted comment: '{self.body}'"

    def as_html(self) -> str:
        """HTML rendering for chat clients that support formatted bodies."""
        body = self.body_html or html.escape(self.body)
        title = html.escape(self.title or self.url)
        return (
            f"<b>{html.escape(self.author)}</b> commented in "
            f'<a href="{html.escape(self.url, quote=True)}">{title}</a>:'
            f"<blockquote>{body}</blockquote>"
        )


@dataclass(frozen=True)
class LinkCommand:
    """Request to create a link."""

    link: Link


@dataclass(frozen=True)
class UnlinkCommand:
    """Request to remove exactly one link."""

    link: Link


@dataclass(frozen=True)
class UnlinkAllCommand:
    """Request to remove every link of a user on one upstream."""

    upstream_kind: str
    user_id: str


@dataclass(frozen=True)
class ExplainCommand:
    """Request to explain a shell command in the chat it came from."""

    chat_id: str
    user_id: str
    command: str


Command = Union[LinkCommand, UnlinkCommand, UnlinkAllCommand, ExplainCommand]


@dataclass
class PollResult:
    """Outcome of polling one link."""

    new_items: list[Item] = field(default_factory=list)
    verified_now: bool = False
