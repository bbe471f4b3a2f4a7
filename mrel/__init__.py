"""mrel: coordinated releases for multi-package workspaces."""

__version__ = "0.4.0"
