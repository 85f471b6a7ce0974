"""Reconciler – SRP: run one convergence pass from the first page to the first empty page.

DIP: depends on the product repository and document client ports.
Stages: IDLE → PAGING → MATCHING → ALLOCATING → PAGING ... → DONE.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from time import monotonic
from typing import Optional

from stock_actualizer.config import Config
from stock_actualizer.domain.models import DocumentSnapshot
from stock_actualizer.domain.policies import StoreRouting
from stock_actualizer.ports.documents import DocumentClient
from stock_actualizer.ports.repositories import ProductRepository
from stock_actualizer.services.allocator import AllocationReport, DocumentAllocator
from stock_actualizer.services.matcher import PositionMatcher
from stock_actualizer.util.cancel import CancelToken

logger = logging.getLogger(__name__)


class PassStage(str, Enum):
    IDLE = "IDLE"
    PAGING = "PAGING"
    MATCHING = "MATCHING"
    ALLOCATING = "ALLOCATING"
    DONE = "DONE"


@dataclass
class PassReport:
    pages_fetched: int = 0
    products_seen: int = 0
    positions_updated: int = 0
    positions_created: int = 0
    documents_created: int = 0
    duration_s: float = 0.0

    def add(self, allocation: AllocationReport) -> None:
        self.positions_updated += allocation.positions_updated
        self.positions_created += allocation.positions_created
        self.documents_created += allocation.documents_created


class Reconciler:
    """Orchestrates paging, matching and allocation. No HTTP or SQL here."""

    def __init__(
        self,
        config: Config,
        products: ProductRepository,
        client: DocumentClient,
        token: Optional[CancelToken] = None,
        routing: Optional[StoreRouting] = None,
    ) -> None:
        self.config = config
        self.products = products
        self.client = client
        self.token = token or CancelToken()
        self.routing = routing or StoreRouting.from_config(config)
        self.matcher = PositionMatcher()
        self.allocator = DocumentAllocator(
            client,
            self.routing,
            organization_id=config.organization_id,
            capacity=config.document_capacity,
        )
        self.stage = PassStage.IDLE
        self.offset = 0

    def _bootstrap(self, report: PassReport) -> None:
        """Open one empty document per known store."""
        for store_id in self.routing.known_stores:
            self.client.create_document(self.config.organization_id, store_id)
            report.documents_created += 1
        logger.info("DOCUMENTS_BOOTSTRAPPED | stores=%s", ",".join(self.routing.known_stores))

    def _snapshot(self, first_page: bool, report: PassReport) -> DocumentSnapshot:
        documents = self.client.list_documents()
        if first_page and not documents:
            self._bootstrap(report)
            documents = self.client.list_documents()
        for document in documents:
            self.token.raise_if_cancelled()
            document.positions = self.client.get_positions(document.id)
        return DocumentSnapshot(documents)

    def run(self) -> PassReport:
        page_size = self.config.page_size
        report = PassReport()
        started = monotonic()
        self.offset = 0
        logger.info("PASS_STARTED | page_size=%d", page_size)
        try:
            while True:
                self.stage = PassStage.PAGING
                self.token.raise_if_cancelled()
                page = self.products.collect_products(page_size, self.offset)
                report.pages_fetched += 1
                if not page:
                    break
                report.products_seen += len(page)

                self.stage = PassStage.MATCHING
                snapshot = self._snapshot(first_page=self.offset == 0, report=report)
                result = self.matcher.match(page, snapshot)
                logger.debug(
                    "PAGE_MATCHED | offset=%d | products=%d | matched=%d | unmatched=%d | documents=%d",
                    self.offset,
                    len(page),
                    len(result.matched),
                    len(result.unmatched),
                    len(snapshot),
                )

                self.stage = PassStage.ALLOCATING
                report.add(self.allocator.apply(result, snapshot))

                self.offset += page_size
        finally:
            report.duration_s = monotonic() - started
        self.stage = PassStage.DONE
        logger.info(
            "PASS_COMPLETED | pages=%d | products=%d | updated=%d | created=%d | documents_created=%d | duration=%.2fs",
            report.pages_fetched,
            report.products_seen,
            report.positions_updated,
            report.positions_created,
            report.documents_created,
            report.duration_s,
        )
        return report
