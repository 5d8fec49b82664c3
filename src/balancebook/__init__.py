"""Bookkeeping ledger with cash account sync and balance sheet aggregation."""

__version__ = "0.1.0"
