from .documents import Document, DocumentLine, DocumentSequence
from .payments import PaymentRecord
from .inventory import Product, StockMovement
from .loyalty import PointAccount, PointHistoryEntry
from .counterparties import Counterparty

__all__ = [
    'Document', 'DocumentLine', 'DocumentSequence',
    'PaymentRecord',
    'Product', 'StockMovement',
    'PointAccount', 'PointHistoryEntry',
    'Counterparty',
]
