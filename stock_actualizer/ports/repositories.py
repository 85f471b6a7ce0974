"""DIP Ports – repositories for Postgres access.

SRP: define needs; implementations live under adapters/postgres.
"""
from stock_actualizer.domain.models import Product


class ProductRepository:
    def collect_products(self, page_size: int, offset: int) -> list[Product]:
        """In-stock products in a stable order, ``page_size`` rows from ``offset``."""
        raise NotImplementedError
