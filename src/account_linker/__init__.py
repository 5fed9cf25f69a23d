"""Link chat accounts to forum accounts and relay their new posts."""

__version__ = "0.1.0"
