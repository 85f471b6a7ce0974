"""Policies – OCP: deployment-specific choices kept out of the algorithm.

Contains StoreRouting (marketplace → store).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from stock_actualizer.config import Config


@dataclass(frozen=True)
class StoreRouting:
    """Exactly one store per marketplace id; everything unrouted goes to the default store."""

    default_store_id: str
    routes: Mapping[int, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, cfg: Config) -> "StoreRouting":
        return cls(default_store_id=cfg.default_store_id, routes=cfg.parsed_store_routes())

    def store_for(self, marketplace_id: int) -> str:
        return self.routes.get(marketplace_id, self.default_store_id)

    @property
    def known_stores(self) -> list[str]:
        """Default store first, then routed stores in declaration order."""
        out = [self.default_store_id]
        for store_id in self.routes.values():
            if store_id not in out:
                out.append(store_id)
        return out
