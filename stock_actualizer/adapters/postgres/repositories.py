"""Postgres Adapters – DIP implementations for repositories.

SRP: keep SQL isolated here. Services see only ports.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from time import monotonic, sleep
from typing import Optional

import psycopg2
from psycopg2 import sql

from stock_actualizer.config import Config
from stock_actualizer.domain.models import Product
from stock_actualizer.errors import DataAccessError, StartupError
from stock_actualizer.ports.repositories import ProductRepository
from stock_actualizer.util.cancel import CancelToken

logger = logging.getLogger(__name__)

COLLECT_PRODUCTS_SQL = """
    SELECT
        mp.id,
        mp.product_id,
        pp.marketplace_id,
        pp.stock_quantity
    FROM
        {mapping} AS mp
    JOIN
        {product} AS pp ON mp.product_id = pp.id
    WHERE
        pp.stock_quantity > 0
    ORDER BY
        mp.id
    LIMIT %s
    OFFSET %s
"""


def _table(name: str) -> sql.Identifier:
    return sql.Identifier(*name.split("."))


def pg_connect(config: Config):
    conn = psycopg2.connect(config.database_url)
    conn.autocommit = True
    return conn


def wait_for_pg(config: Config, max_wait_s: Optional[int] = None) -> None:
    """Block until Postgres accepts a connection; StartupError after ``max_wait_s``."""
    limit = config.pg_wait_s if max_wait_s is None else max_wait_s
    start = monotonic()
    while True:
        try:
            conn = psycopg2.connect(config.database_url)
            conn.close()
            return
        except psycopg2.Error as exc:
            if monotonic() - start > limit:
                raise StartupError("DATABASE_UNREACHABLE", f"Can't connect to database: {exc}") from exc
            sleep(1)


def row_to_product(row) -> Product:
    try:
        external_id, product_id, marketplace_id, quantity = row
        return Product(
            external_id=str(external_id),
            product_id=int(product_id),
            marketplace_id=int(marketplace_id),
            stock_quantity=Decimal(str(quantity)),
        )
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise DataAccessError("ROW_DECODE_FAILED", f"Can't collect products rows: {exc}", row=repr(row)) from exc


class PgProductRepository(ProductRepository):
    def __init__(self, conn, config: Config, token: Optional[CancelToken] = None) -> None:
        self.conn = conn
        self.config = config
        self.token = token or CancelToken()
        self._query = sql.SQL(COLLECT_PRODUCTS_SQL).format(
            mapping=_table(config.mapping_table),
            product=_table(config.product_table),
        )

    def _connection(self):
        if getattr(self.conn, "closed", 0):
            logger.warning("DB_RECONNECT | reason=connection_closed")
            try:
                self.conn = pg_connect(self.config)
            except psycopg2.Error as exc:
                raise DataAccessError("CONNECT_FAILED", f"Can't reconnect to database: {exc}") from exc
        return self.conn

    def collect_products(self, page_size: int, offset: int) -> list[Product]:
        self.token.raise_if_cancelled()
        try:
            with self._connection().cursor() as cur:
                cur.execute(self._query, (page_size, offset))
                rows = cur.fetchall()
        except psycopg2.Error as exc:
            raise DataAccessError(
                "QUERY_FAILED", f"Can't collect products: {exc}", page_size=page_size, offset=offset
            ) from exc
        return [row_to_product(row) for row in rows]
