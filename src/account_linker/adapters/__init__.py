"""Adapters connecting the core to external services."""
