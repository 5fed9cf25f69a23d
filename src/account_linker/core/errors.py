"""Error hierarchy shared by the core and adapters."""


class LinkerError(Exception):
    """Base class for all account linker errors."""


class AdapterError(LinkerError):
    """Content source could not be polled."""


class UpstreamError(LinkerError):
    """Chat platform call failed."""


class StoreError(LinkerError):
    """Durable link store operation failed."""


class ExplainError(LinkerError):
    """Shell command explanation could not be retrieved."""


class ConfigError(LinkerError):
    """Configuration is missing or invalid."""
