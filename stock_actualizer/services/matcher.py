"""Position Matcher – SRP: split a page into products with a position and products without.

Pure: reads the snapshot, never talks to MoySklad.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from stock_actualizer.domain.models import DocumentSnapshot, Product


@dataclass(frozen=True)
class Match:
    product: Product
    document_id: str
    position_id: str


@dataclass
class MatchResult:
    matched: list[Match] = field(default_factory=list)
    unmatched: list[Product] = field(default_factory=list)


class PositionMatcher:
    def match(self, products: Iterable[Product], snapshot: DocumentSnapshot) -> MatchResult:
        result = MatchResult()
        for product in products:
            found = snapshot.find(product.external_id)
            if found is None:
                result.unmatched.append(product)
                continue
            document, position = found
            result.matched.append(Match(product, document.id, position.id))
        return result
