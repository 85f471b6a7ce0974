"""MoySklad payloads – SRP: build request bodies and decode response rows.

References between resources are meta objects whose href ends with the UUID.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from urllib.parse import urlsplit

from stock_actualizer.domain.models import Position, StockEntryDocument

MEDIA_TYPE = "application/json"


def entity_href(base_url: str, entity: str, entity_id: str) -> str:
    return f"{base_url.rstrip('/')}/entity/{entity}/{entity_id}"


def id_from_href(href: str) -> str:
    path = urlsplit(href).path.rstrip("/")
    return path.rsplit("/", 1)[-1]


def meta(base_url: str, entity: str, entity_id: str) -> dict[str, Any]:
    return {
        "meta": {
            "href": entity_href(base_url, entity, entity_id),
            "type": entity,
            "mediaType": MEDIA_TYPE,
        }
    }


def enter_body(base_url: str, organization_id: str, store_id: str) -> dict[str, Any]:
    return {
        "organization": meta(base_url, "organization", organization_id),
        "store": meta(base_url, "store", store_id),
    }


def position_body(base_url: str, external_id: str, quantity: Decimal) -> dict[str, Any]:
    return {
        "quantity": float(quantity),
        "assortment": meta(base_url, "product", external_id),
    }


def _ref_id(row: Mapping[str, Any], key: str) -> str:
    ref = row.get(key) or {}
    href = (ref.get("meta") or {}).get("href")
    return id_from_href(href) if href else ""


def parse_document(row: Mapping[str, Any]) -> StockEntryDocument:
    positions_meta = (row.get("positions") or {}).get("meta") or {}
    return StockEntryDocument(
        id=str(row["id"]),
        organization_id=_ref_id(row, "organization"),
        store_id=_ref_id(row, "store"),
        positions_count=int(positions_meta.get("size") or 0),
    )


def parse_position(document_id: str, row: Mapping[str, Any]) -> Position:
    try:
        quantity = Decimal(str(row.get("quantity", 0)))
    except InvalidOperation as exc:
        raise ValueError(f"bad quantity {row.get('quantity')!r}") from exc
    return Position(
        id=str(row["id"]),
        document_id=document_id,
        assortment_id=_ref_id(row, "assortment"),
        quantity=quantity,
    )
