"""NDIS provider back office - editing sessions, pending changes and commit reconciliation."""

__version__ = "0.1.0"
