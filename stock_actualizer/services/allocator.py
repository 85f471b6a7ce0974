"""Document Allocator – SRP: push quantities for matched products, place the rest.

DIP: depends on the DocumentClient port and the store routing policy.

Placement is store-aware: an unmatched product goes into the first document,
in listing order, that belongs to its store and still has room. When none
has room a new document is created for (organization, store). Everything
created is recorded into the page snapshot right away, so later products in
the same page see it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from stock_actualizer.domain.models import DocumentSnapshot, Product, StockEntryDocument
from stock_actualizer.domain.policies import StoreRouting
from stock_actualizer.ports.documents import DocumentClient
from stock_actualizer.services.matcher import MatchResult

logger = logging.getLogger(__name__)


@dataclass
class AllocationReport:
    positions_updated: int = 0
    positions_created: int = 0
    documents_created: int = 0


class DocumentAllocator:
    def __init__(
        self,
        client: DocumentClient,
        routing: StoreRouting,
        organization_id: str,
        capacity: int,
    ) -> None:
        self.client = client
        self.routing = routing
        self.organization_id = organization_id
        self.capacity = capacity

    def apply(self, result: MatchResult, snapshot: DocumentSnapshot) -> AllocationReport:
        report = AllocationReport()
        for match in result.matched:
            # no quantity comparison; the update is pushed every pass
            self.client.update_position(
                match.document_id,
                match.position_id,
                match.product.external_id,
                match.product.stock_quantity,
            )
            report.positions_updated += 1
        for product in result.unmatched:
            self.place(product, snapshot, report)
        return report

    def _with_room(self, snapshot: DocumentSnapshot, store_id: str) -> Optional[StockEntryDocument]:
        for document in snapshot:
            if document.store_id == store_id and document.has_room(self.capacity):
                return document
        return None

    def place(self, product: Product, snapshot: DocumentSnapshot, report: AllocationReport) -> None:
        # a duplicate row earlier in this page may already have placed it
        found = snapshot.find(product.external_id)
        if found is not None:
            document, position = found
            self.client.update_position(document.id, position.id, product.external_id, product.stock_quantity)
            report.positions_updated += 1
            return

        store_id = self.routing.store_for(product.marketplace_id)
        document = self._with_room(snapshot, store_id)
        if document is None:
            document = self.client.create_document(self.organization_id, store_id)
            snapshot.add_document(document)
            report.documents_created += 1
            logger.info(
                "DOCUMENT_OPENED | id=%s | store=%s | reason=no_capacity | product=%s",
                document.id,
                store_id,
                product.external_id,
            )

        position = self.client.create_position(document.id, product.external_id, product.stock_quantity)
        position.document_id = document.id
        if not position.assortment_id:
            position.assortment_id = product.external_id
        snapshot.record_position(position)
        report.positions_created += 1
        logger.debug(
            "POSITION_CREATED | document=%s | position=%s | product=%s | quantity=%s",
            document.id,
            position.id,
            product.external_id,
            product.stock_quantity,
        )
