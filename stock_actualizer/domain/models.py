"""Domain model – products, stock-entry documents and their positions.

Plain dataclasses. Adapters build them; services read and record into them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class Product:
    """Snapshot of one in-stock product row. Never mutated."""

    external_id: str  # MoySklad product UUID
    product_id: int
    marketplace_id: int
    stock_quantity: Decimal


@dataclass
class Position:
    id: str
    document_id: str
    assortment_id: str
    quantity: Decimal


@dataclass
class StockEntryDocument:
    """An "enter" document.

    positions_count is the size reported by the listing, positions is what
    was loaded for the current page.
    """

    id: str
    organization_id: str
    store_id: str
    positions_count: int = 0
    positions: list[Position] = field(default_factory=list)

    @property
    def size(self) -> int:
        return max(self.positions_count, len(self.positions))

    def has_room(self, capacity: int) -> bool:
        return self.size < capacity


@dataclass
class DocumentSnapshot:
    """Documents and positions as seen by one page, in listing order."""

    documents: list[StockEntryDocument] = field(default_factory=list)

    def __iter__(self) -> Iterator[StockEntryDocument]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def find(self, assortment_id: str) -> Optional[Tuple[StockEntryDocument, Position]]:
        """First match wins: documents in order, then positions in order."""
        for document in self.documents:
            for position in document.positions:
                if position.assortment_id == assortment_id:
                    return document, position
        return None

    def get(self, document_id: str) -> Optional[StockEntryDocument]:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    def add_document(self, document: StockEntryDocument) -> None:
        self.documents.append(document)

    def record_position(self, position: Position) -> None:
        document = self.get(position.document_id)
        if document is None:
            raise KeyError(position.document_id)
        document.positions.append(position)
        document.positions_count = max(document.positions_count + 1, len(document.positions))

