from .base import (
    Repositories,
    DocumentRepository,
    PaymentRepository,
    ProductRepository,
    MovementRepository,
    SequenceRepository,
    PointRepository,
    CounterpartyRepository,
)
from .sql import get_repositories

__all__ = [
    'Repositories',
    'DocumentRepository',
    'PaymentRepository',
    'ProductRepository',
    'MovementRepository',
    'SequenceRepository',
    'PointRepository',
    'CounterpartyRepository',
    'get_repositories',
]
