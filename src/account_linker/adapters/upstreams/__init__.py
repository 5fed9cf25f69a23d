"""Chat platform adapters."""

from account_linker.adapters.upstreams.matrix import MatrixUpstream

__all__ = ["MatrixUpstream"]
