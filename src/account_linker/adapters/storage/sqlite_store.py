"""SQLite link store.

Implements the core LinkStore interface on top of aiosqlite.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

import aiosqlite

from account_linker.core import AdapterKind, Link, LinkStore, StoreError

LOGGER = logging.getLogger(__name__)

# Fields:
# - id: row id handed back to the registry
# - upstream_kind, chat_id, user_id: identity on the chat platform
# - adapter_kind, linked_user_id: identity on the content source
# - last_update: ISO-8601 high-water mark of relayed content
SCHEMA_LINKS = """
CREATE TABLE IF NOT EXISTS links (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    upstream_kind   TEXT NOT NULL,
    chat_id         TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    adapter_kind    TEXT NOT NULL,
    linked_user_id  TEXT NOT NULL,
    last_update     TEXT NOT NULL,
    UNIQUE (upstream_kind, chat_id, user_id, adapter_kind, linked_user_id)
)
"""

NATURAL_KEY_WHERE = """
    upstream_kind = ? AND chat_id = ? AND user_id = ?
    AND adapter_kind = ? AND linked_user_id = ?
"""


class SQLiteLinkStore(LinkStore):
    """Persist verified links, keyed by their natural key."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = Path(db_path)

    async def init_db(self) -> None:
        """Create the database file and tables if they do not exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(SCHEMA_LINKS)
                await db.commit()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Could not initialize {self.db_path}: {e}") from e

    async def load_verified(self) -> list[Link]:
        """Return every stored link."""
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    "SELECT id, upstream_kind, chat_id, user_id, adapter_kind, linked_user_id, last_update "
                    "FROM links ORDER BY id"
                ) as cursor:
                    rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not load links: {e}") from e

        links: list[Link] = []
        for row in rows:
            adapter_kind = AdapterKind.parse(row["adapter_kind"])
            if adapter_kind is None:
                LOGGER.warning("Skipping stored link %s with unknown adapter %s", row["id"], row["adapter_kind"])
                continue
            links.append(
                Link(
                    id=row["id"],
                    upstream_kind=row["upstream_kind"],
                    chat_id=row["chat_id"],
                    user_id=row["user_id"],
                    adapter_kind=adapter_kind,
                    linked_user_id=row["linked_user_id"],
                    last_update=_parse_datetime(row["last_update"]),
                    verified=True,
                    persisted=True,
                )
            )
        return links

    async def upsert(self, link: Link) -> int:
        """Insert a link or update its progress, returning the row id.

        The natural key makes repeated writes of the same link idempotent.
        """
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(
                    """
                    INSERT INTO links (
                        upstream_kind, chat_id, user_id, adapter_kind, linked_user_id, last_update
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(upstream_kind, chat_id, user_id, adapter_kind, linked_user_id)
                    DO UPDATE SET last_update = MAX(links.last_update, excluded.last_update)
                    """,
                    (*link.key, _format_datetime(link.last_update)),
                )
                await db.commit()
                async with db.execute(f"SELECT id FROM links WHERE {NATURAL_KEY_WHERE}", link.key) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Could not upsert link: {e}") from e

        if row is None:
            raise StoreError(f"Link {link.describe()} vanished after upsert")
        return int(row[0])

    async def delete(self, link: Link) -> None:
        """Delete a link by its natural key. Missing rows are ignored."""
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(f"DELETE FROM links WHERE {NATURAL_KEY_WHERE}", link.key)
                await db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not delete link: {e}") from e


def _format_datetime(value: datetime) -> str:
    # Fixed-width UTC strings compare correctly as text, which MAX() relies on
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
