"""DIP Port – DocumentClient.

Speak in the language of the domain. The infrastructure implements.
"""
from decimal import Decimal

from stock_actualizer.domain.models import Position, StockEntryDocument


class DocumentClient:
    """ISP: the five calls reconciliation needs against stock-entry documents.

    Implementations raise RemoteServiceError with the remote payload attached.
    """

    def list_documents(self) -> list[StockEntryDocument]:
        raise NotImplementedError

    def get_positions(self, document_id: str) -> list[Position]:
        raise NotImplementedError

    def create_document(self, organization_id: str, store_id: str) -> StockEntryDocument:
        raise NotImplementedError

    def create_position(self, document_id: str, external_id: str, quantity: Decimal) -> Position:
        raise NotImplementedError

    def update_position(
        self, document_id: str, position_id: str, external_id: str, quantity: Decimal
    ) -> Position:
        raise NotImplementedError
