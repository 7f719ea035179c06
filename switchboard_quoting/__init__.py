"""Switchboard quoting engine: configuration-driven line items, reconciliation and quote totals."""

__version__ = "1.0.0"
