"""Core interfaces for adapters."""

from abc import ABC, abstractmethod

from account_linker.core.entities import AdapterKind, Command, Item, Link


class ContentAdapter(ABC):
    """Interface for polling a content source for one account's activity."""

    kind: AdapterKind

    @abstractmethod
    async def poll(self, specifier: str) -> list[Item]:
        """Fetch recent items of the given account.

        Raises:
            AdapterError: if the source could not be reached or parsed
        """
        pass


class Upstream(ABC):
    """Interface for the chat platform users link accounts from."""

    kind: str

    @abstractmethod
    async def connect(self) -> None:
        """Authenticate. No-op when already connected."""
        pass

    @abstractmethod
    async def check_commands(self) -> list[Command]:
        """Return commands received since the previous call, in arrival order."""
        pass

    @abstractmethod
    async def push_update(self, chat_id: str, item: Item) -> None:
        """Relay one content item into a chat."""
        pass

    @abstractmethod
    async def report_duplicate(self, link: Link) -> None:
        """Tell the user the requested link already exists."""
        pass

    @abstractmethod
    async def report_pending_verification(self, link: Link) -> None:
        """Tell the user what to post, and where, to verify the link."""
        pass

    @abstractmethod
    async def report_verified(self, link: Link) -> None:
        """Tell the user the link is now active."""
        pass

    @abstractmethod
    async def reply(self, chat_id: str, text: str) -> None:
        """Post a plain text message into a chat."""
        pass


class LinkStore(ABC):
    """Interface for durable storage of verified links."""

    @abstractmethod
    async def load_verified(self) -> list[Link]:
        """Return every persisted link."""
        pass

    @abstractmethod
    async def upsert(self, link: Link) -> int:
        """Insert or update a link by its natural key and return its row id."""
        pass

    @abstractmethod
    async def delete(self, link: Link) -> None:
        """Delete a link by its natural key."""
        pass


class Explainer(ABC):
    """Interface for explaining shell commands."""

    @abstractmethod
    async def explain(self, command: str) -> str:
        """Return a human readable explanation of the command."""
        pass

