"""Tests for the MoySklad adapter: wire shape, pagination and error surfacing."""

import json
from decimal import Decimal

import pytest
import requests

from stock_actualizer.adapters.moysklad import payloads
from stock_actualizer.adapters.moysklad.client import MoySkladDocumentClient, build_session
from stock_actualizer.errors import PassCancelled, RemoteServiceError
from stock_actualizer.util.cancel import CancelToken

BASE = "https://api.moysklad.ru/api/remap/1.2"


def make_response(status=200, payload=None, text=None):
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    response._content = (text if text is not None else json.dumps(payload)).encode("utf-8")
    return response


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, params=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "params": params, "json": json, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def ref(entity, entity_id):
    return {"meta": {"href": f"{BASE}/entity/{entity}/{entity_id}", "type": entity}}


def enter_row(doc_id, store="s-1", size=0):
    return {
        "id": doc_id,
        "organization": ref("organization", "org-1"),
        "store": ref("store", store),
        "positions": {"meta": {"href": f"{BASE}/entity/enter/{doc_id}/positions", "size": size}},
    }


def position_row(pos_id, product, quantity):
    return {"id": pos_id, "quantity": quantity, "assortment": ref("product", product)}


@pytest.fixture
def make_client(cfg):
    def _make(*responses, token=None):
        session = FakeSession(*responses)
        return MoySkladDocumentClient(cfg, session=session, token=token), session

    return _make


class TestListing:
    def test_list_documents_follows_offsets(self, make_client):
        client, session = make_client(
            make_response(payload={"meta": {"size": 3}, "rows": [enter_row("d1", size=999), enter_row("d2")]}),
            make_response(payload={"meta": {"size": 3}, "rows": [enter_row("d3", store="s-2")]}),
        )

        documents = client.list_documents()

        assert [d.id for d in documents] == ["d1", "d2", "d3"]
        assert documents[0].positions_count == 999
        assert documents[2].store_id == "s-2"
        assert documents[0].organization_id == "org-1"
        assert [r["params"]["offset"] for r in session.requests] == [0, 2]
        assert session.requests[0]["url"] == f"{BASE}/entity/enter"

    def test_empty_listing(self, make_client):
        client, session = make_client(make_response(payload={"meta": {"size": 0}, "rows": []}))

        assert client.list_documents() == []
        assert len(session.requests) == 1

    def test_get_positions_follows_offsets(self, make_client):
        client, session = make_client(
            make_response(
                payload={"meta": {"size": 3}, "rows": [position_row("p1", "a", 1), position_row("p2", "b", 2)]}
            ),
            make_response(payload={"meta": {"size": 3}, "rows": [position_row("p3", "c", 3)]}),
        )

        positions = client.get_positions("d1")

        assert [p.assortment_id for p in positions] == ["a", "b", "c"]
        assert [r["params"]["offset"] for r in session.requests] == [0, 2]
        assert {r["url"] for r in session.requests} == {f"{BASE}/entity/enter/d1/positions"}

    def test_get_positions_resolves_assortment_ids(self, make_client):
        client, session = make_client(
            make_response(payload={"meta": {"size": 1}, "rows": [position_row("p1", "prod-uuid", 4.5)]})
        )

        (position,) = client.get_positions("d1")

        assert position.assortment_id == "prod-uuid"
        assert position.document_id == "d1"
        assert position.quantity == Decimal("4.5")
        assert session.requests[0]["url"] == f"{BASE}/entity/enter/d1/positions"


class TestMutations:
    def test_create_document_body(self, make_client):
        client, session = make_client(make_response(payload=enter_row("new-doc", store="s-9")))

        document = client.create_document("org-1", "s-9")

        sent = session.requests[0]
        assert sent["method"] == "POST"
        assert sent["json"]["organization"]["meta"]["href"] == f"{BASE}/entity/organization/org-1"
        assert sent["json"]["store"]["meta"] == {
            "href": f"{BASE}/entity/store/s-9",
            "type": "store",
            "mediaType": "application/json",
        }
        assert document.id == "new-doc"
        assert document.store_id == "s-9"

    def test_create_position_accepts_array_answer(self, make_client):
        client, session = make_client(make_response(payload=[position_row("p1", "prod-1", 3)]))

        position = client.create_position("d1", "prod-1", Decimal("3"))

        sent = session.requests[0]
        assert sent["url"] == f"{BASE}/entity/enter/d1/positions"
        assert sent["json"] == {
            "quantity": 3.0,
            "assortment": {
                "meta": {"href": f"{BASE}/entity/product/prod-1", "type": "product", "mediaType": "application/json"}
            },
        }
        assert position.id == "p1"

    def test_update_position_uses_put(self, make_client):
        client, session = make_client(make_response(payload=position_row("p1", "prod-1", 8)))

        position = client.update_position("d1", "p1", "prod-1", Decimal("8"))

        sent = session.requests[0]
        assert sent["method"] == "PUT"
        assert sent["url"] == f"{BASE}/entity/enter/d1/positions/p1"
        assert sent["json"]["quantity"] == 8.0
        assert position.quantity == Decimal("8")


class TestErrors:
    def test_error_payload_kept_verbatim(self, make_client):
        body = {"errors": [{"error": "Ошибка аутентификации", "code": 1056}]}
        client, _ = make_client(make_response(status=401, payload=body))

        with pytest.raises(RemoteServiceError) as info:
            client.list_documents()

        assert info.value.status == 401
        assert info.value.body == body
        assert info.value.messages == ["Ошибка аутентификации"]
        assert info.value.method == "GET"
        assert "status=401" in str(info.value)

    def test_non_json_error_body(self, make_client):
        client, _ = make_client(make_response(status=502, text="<html>Bad gateway</html>"))

        with pytest.raises(RemoteServiceError) as info:
            client.create_document("org", "store")

        assert info.value.body == "<html>Bad gateway</html>"
        assert info.value.messages == []

    def test_transport_failure(self, make_client):
        client, _ = make_client(requests.ConnectionError("connection reset"))

        with pytest.raises(RemoteServiceError) as info:
            client.get_positions("d1")

        assert info.value.status is None
        assert isinstance(info.value.__cause__, requests.ConnectionError)

    def test_malformed_success_payload(self, make_client):
        client, _ = make_client(make_response(payload={"meta": {"size": 1}, "rows": [{"name": "no id"}]}))

        with pytest.raises(RemoteServiceError, match="Malformed"):
            client.list_documents()

    @pytest.mark.parametrize(
        "payload",
        [
            {"meta": {"size": "two"}, "rows": [enter_row("d1")]},
            {"meta": {"size": [2]}, "rows": [enter_row("d1")]},
            {"meta": "size=2", "rows": [enter_row("d1")]},
            {"meta": {"size": 1}, "rows": {"id": "d1"}},
            [enter_row("d1")],
        ],
    )
    def test_malformed_listing_envelope(self, make_client, payload):
        client, _ = make_client(make_response(payload=payload))

        with pytest.raises(RemoteServiceError, match="Malformed list payload") as info:
            client.list_documents()

        assert info.value.body == payload

    def test_numeric_string_size_is_accepted(self, make_client):
        client, session = make_client(make_response(payload={"meta": {"size": "1"}, "rows": [enter_row("d1")]}))

        assert [d.id for d in client.list_documents()] == ["d1"]
        assert len(session.requests) == 1

    def test_cancelled_token_blocks_request(self, make_client):
        token = CancelToken()
        token.cancel()
        client, session = make_client(token=token)

        with pytest.raises(PassCancelled):
            client.list_documents()
        assert session.requests == []


class TestSessionAndPayloads:
    def test_session_headers(self):
        session = build_session("secret")

        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["Accept-Encoding"] == "gzip"

    def test_close_closes_session(self, make_client):
        client, session = make_client()

        client.close()

        assert session.closed

    @pytest.mark.parametrize(
        "href,expected",
        [
            (f"{BASE}/entity/product/abc-123", "abc-123"),
            (f"{BASE}/entity/product/abc-123/", "abc-123"),
            (f"{BASE}/entity/variant/v-1?expand=product", "v-1"),
        ],
    )
    def test_id_from_href(self, href, expected):
        assert payloads.id_from_href(href) == expected

    def test_entity_href_trims_slash(self):
        assert payloads.entity_href(BASE + "/", "store", "s") == f"{BASE}/entity/store/s"
