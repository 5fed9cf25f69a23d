"""Business logic use cases."""

import asyncio
import logging
from typing import Optional

from account_linker.core import (
    AdapterKind,
    Command,
    ContentAdapter,
    ExplainCommand,
    Explainer,
    Link,
    LinkCommand,
    LinkerError,
    LinkRegistry,
    LinkStateMachine,
    PollResult,
    UnlinkAllCommand,
    UnlinkCommand,
    Upstream,
    owned_by,
    same_link,
)

LOGGER = logging.getLogger(__name__)


class Reconciler:
    """Control loop turning upstream commands into links and links into notifications.

    One cycle handles every upstream in turn: commands are applied to the
    registry first, then the upstream's links are polled concurrently and
    the resulting side effects (persistence, notifications) are applied one
    link at a time.
    """

    def __init__(
        self,
        upstreams: list[Upstream],
        adapters: dict[AdapterKind, ContentAdapter],
        registry: LinkRegistry,
        state_machine: Optional[LinkStateMachine] = None,
        explainer: Optional[Explainer] = None,
        max_concurrent_polls: int = 4,
    ) -> None:
        self.upstreams = upstreams
        self.adapters = adapters
        self.registry = registry
        self.state_machine = state_machine or LinkStateMachine()
        self.explainer = explainer
        self.max_concurrent_polls = max(1, max_concurrent_polls)

    async def run_forever(self, interval: float, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run cycles every ``interval`` seconds until the stop event is set."""
        stop_event = stop_event or asyncio.Event()
        LOGGER.info("Starting reconciliation loop, interval %.1fs", interval)

        while not stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception:
                LOGGER.exception("Reconciliation cycle failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

        LOGGER.info("Reconciliation loop stopped")

    async def run_cycle(self) -> None:
        """Run one reconciliation cycle over all upstreams."""
        retried = await self.registry.retry_pending()
        if retried:
            LOGGER.info("Persisted %d previously failed links", retried)

        for upstream in self.upstreams:
            await self.reconcile_upstream(upstream)

        LOGGER.debug("Done polling, %d links registered", len(self.registry))

    async def reconcile_upstream(self, upstream: Upstream) -> None:
        """Apply commands of one upstream, then poll and notify its links."""
        try:
            await upstream.connect()
            commands = await upstream.check_commands()
        except LinkerError as e:
            LOGGER.warning("Skipping upstream %s this cycle: %s", upstream.kind, e)
            return
        except Exception:
            LOGGER.exception("Unexpected error from upstream %s", upstream.kind)
            return

        for command in commands:
            await self.apply_command(upstream, command)

        links = self.registry.links_for(upstream.kind)
        if not links:
            return

        results = await self.poll_links(links)

        for link, result in zip(links, results):
            if result is None:
                continue
            await self.dispatch(upstream, link, result)

    async def apply_command(self, upstream: Upstream, command: Command) -> None:
        """Mutate the registry according to one command."""
        if isinstance(command, LinkCommand):
            candidate = command.link
            existing = self.registry.find_duplicate(candidate)
            if existing is not None:
                LOGGER.info("Duplicate link request %s", candidate.describe())
                await self._notify(upstream.report_duplicate(existing))
                return
            self.registry.add(candidate)
            await self._notify(upstream.report_pending_verification(candidate))

        elif isinstance(command, UnlinkCommand):
            await self.registry.remove(same_link(command.link))

        elif isinstance(command, UnlinkAllCommand):
            await self.registry.remove(owned_by(command.upstream_kind, command.user_id))

        elif isinstance(command, ExplainCommand):
            await self._explain(upstream, command)

        else:
            LOGGER.warning("Ignoring unsupported command %r", command)

    async def poll_links(self, links: list[Link]) -> list[Optional[PollResult]]:
        """Poll links concurrently, bounded by ``max_concurrent_polls``.

        Returns:
            One result per link, None where no adapter serves the link
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_polls)

        async def poll_one(link: Link) -> Optional[PollResult]:
            adapter = self.adapters.get(link.adapter_kind)
            if adapter is None:
                LOGGER.warning("No adapter configured for %s", link.adapter_kind)
                return None
            async with semaphore:
                return await self.state_machine.poll(link, adapter)

        return list(await asyncio.gather(*(poll_one(link) for link in links)))

    async def dispatch(self, upstream: Upstream, link: Link, result: PollResult) -> None:
        """Apply persistence and notification side effects of one poll."""
        if result.verified_now:
            await self.registry.persist(link)
            await self._notify(upstream.report_verified(link))
        elif link.persisted and result.new_items:
            await self.registry.save_progress(link)

        if not link.verified:
            if result.new_items:
                LOGGER.debug(
                    "Suppressing %d items for unverified link %s",
                    len(result.new_items),
                    link.describe(),
                )
            return

        for item in result.new_items:
            await self._notify(upstream.push_update(link.chat_id, item))

    async def _explain(self, upstream: Upstream, command: ExplainCommand) -> None:
        if self.explainer is None:
            LOGGER.debug("Explain is disabled, ignoring %r", command.command)
            return
        try:
            message = await self.explainer.explain(command.command)
        except LinkerError as e:
            LOGGER.warning("Error while trying to explain shell command: %s", e)
            message = f"Couldn't explain command: {e}"
        await self._notify(upstream.reply(command.chat_id, message))

    async def _notify(self, call) -> None:
        """Await an upstream notification, logging failures."""
        try:
            await call
        except LinkerError as e:
            LOGGER.error("Error while sending message: %s", e)
