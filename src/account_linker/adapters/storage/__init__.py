"""Durable link storage adapters."""

from account_linker.adapters.storage.sqlite_store import SQLiteLinkStore

__all__ = ["SQLiteLinkStore"]
