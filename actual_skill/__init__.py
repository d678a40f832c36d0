"""Actual Budget ledger tools for conversational agents."""

__version__ = "1.2.0"
