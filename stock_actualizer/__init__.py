"""Reconcile in-stock Postgres products with MoySklad stock-entry documents."""

__version__ = "0.1.0"
