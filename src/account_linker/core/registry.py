"""Live set of links with a durable mirror for verified ones."""

import logging
from typing import Callable, Iterator, Optional

from account_linker.core.entities import Link
from account_linker.core.errors import StoreError
from account_linker.core.interfaces import LinkStore

LOGGER = logging.getLogger(__name__)

LinkPredicate = Callable[[Link], bool]


def same_link(candidate: Link) -> LinkPredicate:
    """Match links equal to the candidate."""
    return lambda link: link == candidate


def owned_by(upstream_kind: str, user_id: str) -> LinkPredicate:
    """Match every link a user created on an upstream."""
    return lambda link: link.upstream_kind == upstream_kind and link.user_id == user_id


class LinkRegistry:
    """Hold links in memory and mediate their persistence.

    Unverified links live only in memory. A link is written to the store
    once it becomes verified; if that write fails the link is kept as
    pending and retried by ``retry_pending``.
    """

    def __init__(self, store: LinkStore) -> None:
        self.store = store
        self._links: list[Link] = []

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[Link]:
        return iter(list(self._links))

    def __contains__(self, link: object) -> bool:
        return link in self._links

    async def load(self) -> int:
        """Load verified links from the store.

        Returns:
            Number of links loaded
        """
        links = await self.store.load_verified()
        loaded = 0
        for link in links:
            link.verified = True
            link.persisted = True
            if self.find_duplicate(link) is None:
                self._links.append(link)
                loaded += 1
        LOGGER.info("Loaded %d verified links from store", loaded)
        return loaded

    def find_duplicate(self, candidate: Link) -> Optional[Link]:
        """Return the registered link equal to the candidate, if any."""
        for link in self._links:
            if link == candidate:
                return link
        return None

    def add(self, link: Link) -> None:
        """Register a link in memory only."""
        self._links.append(link)
        LOGGER.info("Added link %s", link.describe())

    def links_for(self, upstream_kind: str) -> list[Link]:
        """Links created from the given upstream, in registration order."""
        return [link for link in self._links if link.upstream_kind == upstream_kind]

    def pending(self) -> list[Link]:
        """Verified links whose durable write has not succeeded yet."""
        return [link for link in self._links if link.verified and not link.persisted]

    async def persist(self, link: Link) -> bool:
        """Write a newly verified link to the store.

        Returns:
            True if the link is now persisted
        """
        try:
            link.id = await self.store.upsert(link)
        except StoreError as e:
            LOGGER.error("Could not persist link %s: %s", link.describe(), e)
            return False
        link.persisted = True
        LOGGER.info("Persisted link %s with id %s", link.describe(), link.id)
        return True

    async def retry_pending(self) -> int:
        """Retry persistence of verified links whose write failed before."""
        succeeded = 0
        for link in self.pending():
            if await self.persist(link):
                succeeded += 1
        return succeeded

    async def save_progress(self, link: Link) -> None:
        """Write the high-water mark of a persisted link."""
        if not link.persisted:
            return
        try:
            await self.store.upsert(link)
        except StoreError as e:
            LOGGER.warning("Could not save progress of %s: %s", link.describe(), e)

    async def remove(self, predicate: LinkPredicate) -> list[Link]:
        """Remove every matching link from memory and from the store.

        Returns:
            Removed links
        """
        removed = [link for link in self._links if predicate(link)]
        if not removed:
            return []

        self._links = [link for link in self._links if not predicate(link)]

        for link in removed:
            LOGGER.info("Removed link %s", link.describe())
            # Unverified links were never written; pending ones may have been
            if not link.verified:
                continue
            try:
                await self.store.delete(link)
            except StoreError as e:
                LOGGER.error("Could not delete link %s from store: %s", link.describe(), e)

        return removed
