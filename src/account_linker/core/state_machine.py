"""Per-link poll, verification and new-content detection."""

import logging

from account_linker.core.entities import CHALLENGE, Item, Link, PollResult
from account_linker.core.errors import AdapterError
from account_linker.core.interfaces import ContentAdapter

LOGGER = logging.getLogger(__name__)


class LinkStateMachine:
    """Drive one link through a poll cycle.

    A link starts unverified and becomes verified once any fetched item
    contains the challenge phrase. Verification never reverts.

    The link's ``last_update`` is the high-water mark of content already
    seen. On the first successful poll it is set to the newest item without
    reporting anything, so a fresh link only ever relays content produced
    after it was registered.
    """

    def __init__(self, challenge: str = CHALLENGE) -> None:
        self.challenge = challenge

    async def poll(self, link: Link, adapter: ContentAdapter) -> PollResult:
        """Poll the adapter for a link and update its state in place."""
        try:
            items = await adapter.poll(link.linked_user_id)
        except AdapterError as e:
            LOGGER.warning("Polling %s failed: %s", link.describe(), e)
            return PollResult()
        except Exception:
            LOGGER.exception("Unexpected error while polling %s", link.describe())
            return PollResult()

        if not items:
            return PollResult()

        latest = max(item.timestamp for item in items)

        # The proof may be older than the baseline, so scan everything fetched
        verified_now = False
        if not link.verified and self._has_challenge(items):
            link.verified = True
            verified_now = True
            LOGGER.info("Link %s verified", link.describe())

        if latest == link.last_update:
            return PollResult(verified_now=verified_now)

        if link.is_fresh:
            link.last_update = latest
            LOGGER.debug("Baseline for %s set to %s", link.describe(), latest.isoformat())
            return PollResult(verified_now=verified_now)

        previous = link.last_update
        new_items = sorted(
            (item for item in items if item.timestamp > previous),
            key=lambda item: item.timestamp,
        )
        link.last_update = max(previous, latest)

        return PollResult(new_items=new_items, verified_now=verified_now)

    def _has_challenge(self, items: list[Item]) -> bool:
        return any(item.contains(self.challenge) for item in items)
