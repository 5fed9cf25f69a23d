"""CLI entry point for account linker."""

import asyncio
import logging
import signal
from pathlib import Path

import typer

from account_linker.adapters.explain import MankierClient
from account_linker.adapters.sources import LinuxOrgRuSource
from account_linker.adapters.storage import SQLiteLinkStore
from account_linker.adapters.upstreams import MatrixUpstream
from account_linker.config import Settings, get_settings
from account_linker.core import ConfigError, LinkRegistry, LinkStateMachine, StoreError
from account_linker.use_cases import Reconciler

LOGGER = logging.getLogger(__name__)


def setup_logging(level: str, fmt: str) -> None:
    """Configure root logging once for the process."""
    if not isinstance(level, str):
        raise ConfigError(f"Log level must be a name such as INFO, got {level!r}")
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric_level, format=fmt)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def main(
    config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config"),
    once: bool = typer.Option(False, "--once", help="Run a single reconciliation cycle and exit"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Link Matrix users to linux.org.ru accounts and relay their new comments."""
    try:
        settings = get_settings(config)
        setup_logging("DEBUG" if debug else settings.log_level, settings.logging.format)
        settings.validate()
        asyncio.run(async_run(settings, once))
    except ConfigError as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(code=1)
    except StoreError as e:
        typer.echo(f"❌ Storage error: {e}", err=True)
        raise typer.Exit(code=1)


def app() -> None:
    """CLI entry point."""
    typer.run(main)


def build_reconciler(settings: Settings, store: SQLiteLinkStore, upstream: MatrixUpstream) -> Reconciler:
    """Wire adapters, registry and upstream into a reconciler."""
    source = LinuxOrgRuSource(timeout=settings.request_timeout)
    explainer = MankierClient(timeout=settings.request_timeout) if settings.explain.enabled else None

    return Reconciler(
        upstreams=[upstream],
        adapters={source.kind: source},
        registry=LinkRegistry(store),
        state_machine=LinkStateMachine(),
        explainer=explainer,
        max_concurrent_polls=settings.max_concurrent_polls,
    )


async def async_run(settings: Settings, once: bool = False) -> None:
    """Async implementation of the bot."""
    store = SQLiteLinkStore(settings.db_path)
    await store.init_db()

    upstream = MatrixUpstream(
        login=settings.matrix.login,
        password=settings.matrix.password,
        homeserver=settings.matrix.homeserver,
        command_prefix=settings.matrix.command_prefix,
        skip_backlog=settings.matrix.skip_backlog,
        timeout=settings.request_timeout,
    )
    reconciler = build_reconciler(settings, store, upstream)

    loaded = await reconciler.registry.load()
    LOGGER.info("Database %s: %d verified links", settings.db_path, loaded)

    try:
        if once:
            await reconciler.run_cycle()
            return

        stop_event = asyncio.Event()
        _install_signal_handlers(stop_event)
        await reconciler.run_forever(settings.poll_interval, stop_event)
    finally:
        await upstream.close()


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not available on Windows event loops; Ctrl+C still interrupts
            LOGGER.debug("Signal handler for %s not installed", sig)


if __name__ == "__main__":
    app()
