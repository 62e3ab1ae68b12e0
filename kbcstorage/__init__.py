"""Request building blocks and Storage API payload helpers for tables, tokens and workspaces."""

__version__ = "0.1.0"