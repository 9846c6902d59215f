"""collabsync: typed RPC, scoped cache and mutation coordination for workspaces."""

__version__ = "0.1.0"
