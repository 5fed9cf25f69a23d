"""Content source adapters."""

from account_linker.adapters.sources.linux_org_ru import LinuxOrgRuSource

__all__ = ["LinuxOrgRuSource"]
