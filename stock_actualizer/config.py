"""SRP: one place to parse and hold configuration.

Keep it simple; no side effects beyond reading environment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from stock_actualizer.errors import StartupError


@dataclass(frozen=True)
class Config:
    """DIP: business consumes Config, not raw env.

    Identifiers default to the production organization and stores.
    """

    # MoySklad
    access_token: str = ""
    base_url: str = "https://api.moysklad.ru/api/remap/1.2"
    http_timeout_s: float = 30.0
    rate_limit_per_s: float = 15.0
    rate_limit_burst: float = 45.0

    # Postgres
    database_url: str = ""
    pg_wait_s: int = 30
    mapping_table: str = "moysklad.products"
    product_table: str = "public.provider_product"

    # Reconciliation
    polling_minutes: float = 45.0
    page_size: int = 1
    document_capacity: int = 999
    organization_id: str = "be54bdc2-1448-11ef-0a80-16c50012f572"
    default_store_id: str = "640078d9-1eff-11ef-0a80-0c94001ca0fc"
    store_routes: str = "3=6f237006-1eff-11ef-0a80-0665001bf5c6"  # "<marketplace>=<store>,..."

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            access_token=os.getenv("MOYSKLAD_TOKEN", ""),
            base_url=os.getenv("MOYSKLAD_BASE_URL", cls.base_url).rstrip("/"),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
            rate_limit_per_s=float(os.getenv("RATE_LIMIT_PER_SECOND", "15")),
            rate_limit_burst=float(os.getenv("RATE_LIMIT_BURST", "45")),
            database_url=os.getenv("DATABASE_URL", ""),
            pg_wait_s=int(os.getenv("PG_WAIT_SECONDS", "30")),
            mapping_table=os.getenv("MAPPING_TABLE", cls.mapping_table),
            product_table=os.getenv("PRODUCT_TABLE", cls.product_table),
            polling_minutes=float(os.getenv("POLLING_MINUTES", "45")),
            page_size=int(os.getenv("PAGE_SIZE", "1")),
            document_capacity=int(os.getenv("DOCUMENT_CAPACITY", "999")),
            organization_id=os.getenv("ORGANIZATION_ID", cls.organization_id),
            default_store_id=os.getenv("DEFAULT_STORE_ID", cls.default_store_id),
            store_routes=os.getenv("STORE_ROUTES", cls.store_routes),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def polling_interval_s(self) -> float:
        return self.polling_minutes * 60

    def parsed_store_routes(self) -> dict[int, str]:
        routes: dict[int, str] = {}
        for chunk in self.store_routes.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            marketplace, sep, store = chunk.partition("=")
            if not sep or not store.strip():
                raise StartupError("INVALID_CONFIG", f"Bad STORE_ROUTES entry: {chunk!r}")
            try:
                key = int(marketplace)
            except ValueError as exc:
                raise StartupError("INVALID_CONFIG", f"Bad marketplace id in STORE_ROUTES: {chunk!r}") from exc
            if key in routes:
                raise StartupError("INVALID_CONFIG", f"Marketplace {key} routed twice in STORE_ROUTES")
            routes[key] = store.strip()
        return routes

    def validate(self) -> None:
        """Raise StartupError for anything that makes the process unable to start."""
        if not self.access_token:
            raise StartupError("MISSING_CREDENTIAL", "MOYSKLAD_TOKEN is not set")
        if not self.database_url:
            raise StartupError("MISSING_DATABASE_URL", "DATABASE_URL is not set")
        if self.page_size < 1:
            raise StartupError("INVALID_CONFIG", "PAGE_SIZE must be positive", page_size=self.page_size)
        if self.document_capacity < 1:
            raise StartupError(
                "INVALID_CONFIG", "DOCUMENT_CAPACITY must be positive", document_capacity=self.document_capacity
            )
        if self.polling_minutes <= 0:
            raise StartupError("INVALID_CONFIG", "POLLING_MINUTES must be positive")
        if self.rate_limit_per_s <= 0 or self.rate_limit_burst < 1:
            raise StartupError(
                "INVALID_CONFIG",
                "RATE_LIMIT_PER_SECOND must be positive and RATE_LIMIT_BURST at least 1",
                rate_limit_per_s=self.rate_limit_per_s,
                rate_limit_burst=self.rate_limit_burst,
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise StartupError("INVALID_CONFIG", f"Unknown LOG_LEVEL {self.log_level!r}")
        if not self.organization_id or not self.default_store_id:
            raise StartupError("INVALID_CONFIG", "ORGANIZATION_ID and DEFAULT_STORE_ID are required")
        self.parsed_store_routes()
