"""Shell command explanation adapters."""

from account_linker.adapters.explain.mankier_client import MankierClient

__all__ = ["MankierClient"]
