"""MoySklad adapters for stock-entry documents."""

from stock_actualizer.adapters.moysklad.client import MoySkladDocumentClient

__all__ = ["MoySkladDocumentClient"]
