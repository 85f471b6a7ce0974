"""Postgres adapters."""
