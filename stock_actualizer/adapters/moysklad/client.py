"""MoySklad Client – DIP adapter for DocumentClient.

Talks to the "enter" (stock-entry) resource and its positions over
authenticated HTTPS. Every failure surfaces as RemoteServiceError carrying the
remote payload verbatim; nothing is retried here.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Iterator, Mapping, Optional, TypeVar

import requests

from stock_actualizer.adapters.moysklad import payloads
from stock_actualizer.config import Config
from stock_actualizer.domain.models import Position, StockEntryDocument
from stock_actualizer.errors import RemoteServiceError
from stock_actualizer.ports.documents import DocumentClient
from stock_actualizer.util.cancel import CancelToken
from stock_actualizer.util.rate_limit import TokenBucket

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENTER = "entity/enter"
PAGE_LIMIT = 1000


def build_session(access_token: str) -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json;charset=utf-8",
            "Accept-Encoding": "gzip",
            "Content-Type": "application/json",
        }
    )
    return session


def _decode_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class MoySkladDocumentClient(DocumentClient):
    """SRP: only concern is the wire conversation with MoySklad."""

    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
        token: Optional[CancelToken] = None,
        limiter: Optional[TokenBucket] = None,
    ) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.http_timeout_s
        self.session = session or build_session(config.access_token)
        self.token = token or CancelToken()
        self.limiter = limiter

    @classmethod
    def from_config(cls, config: Config, token: Optional[CancelToken] = None) -> "MoySkladDocumentClient":
        limiter = TokenBucket(rate=config.rate_limit_per_s, burst=config.rate_limit_burst)
        return cls(config, token=token, limiter=limiter)

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        self.token.raise_if_cancelled()
        if self.limiter is not None:
            self.limiter.acquire()
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.request(method, url, params=params, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteServiceError(f"Transport failure: {exc}", method=method, url=url) from exc

        if not response.ok:
            raise RemoteServiceError(
                "MoySklad request failed",
                status=response.status_code,
                body=_decode_body(response),
                method=method,
                url=url,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "MoySklad returned a non-JSON body",
                status=response.status_code,
                body=response.text,
                method=method,
                url=url,
            ) from exc

    def _rows(self, path: str) -> Iterator[Mapping[str, Any]]:
        offset = 0
        while True:
            data = self._request("GET", path, params={"limit": PAGE_LIMIT, "offset": offset})
            if not isinstance(data, dict):
                raise RemoteServiceError(f"Malformed list payload for {path}", body=data)
            rows = data.get("rows") or []
            meta = data.get("meta") or {}
            if not isinstance(rows, list) or not isinstance(meta, dict):
                raise RemoteServiceError(f"Malformed list payload for {path}", body=data)
            try:
                size = int(meta.get("size") or 0)
            except (TypeError, ValueError) as exc:
                raise RemoteServiceError(f"Malformed list payload for {path}: bad size", body=data) from exc
            yield from rows
            offset += len(rows)
            if not rows or offset >= size:
                return

    def _parse(self, what: str, fn: Callable[[], T], raw: Any = None) -> T:
        try:
            return fn()
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise RemoteServiceError(f"Malformed {what} payload: {exc}", body=raw) from exc

    def list_documents(self) -> list[StockEntryDocument]:
        rows = list(self._rows(ENTER))
        documents = self._parse("document list", lambda: [payloads.parse_document(r) for r in rows])
        logger.debug("DOCUMENTS_LISTED | count=%d", len(documents))
        return documents

    def get_positions(self, document_id: str) -> list[Position]:
        rows = list(self._rows(f"{ENTER}/{document_id}/positions"))
        return self._parse("position list", lambda: [payloads.parse_position(document_id, r) for r in rows])

    def create_document(self, organization_id: str, store_id: str) -> StockEntryDocument:
        body = payloads.enter_body(self.base_url, organization_id, store_id)
        data = self._request("POST", ENTER, body=body)
        document = self._parse("document", lambda: payloads.parse_document(data), data)
        logger.info("DOCUMENT_CREATED | id=%s | organization=%s | store=%s", document.id, organization_id, store_id)
        return document

    def create_position(self, document_id: str, external_id: str, quantity: Decimal) -> Position:
        body = payloads.position_body(self.base_url, external_id, quantity)
        data = self._request("POST", f"{ENTER}/{document_id}/positions", body=body)
        # the positions endpoint answers with an array even for a single object
        return self._parse(
            "position",
            lambda: payloads.parse_position(document_id, data[0] if isinstance(data, list) else data),
            data,
        )

    def update_position(
        self, document_id: str, position_id: str, external_id: str, quantity: Decimal
    ) -> Position:
        body = payloads.position_body(self.base_url, external_id, quantity)
        data = self._request("PUT", f"{ENTER}/{document_id}/positions/{position_id}", body=body)
        return self._parse("position", lambda: payloads.parse_position(document_id, data), data)
