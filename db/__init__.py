"""
Database module for tariff and service retrieval.

This module provides the read-only database access layer for:
- Contracted tariffs (tariffe)
- Requested and monthly-fee services used by reconciliation
"""

from .database import get_db_connection, init_connection_pool, close_connection_pool
from .tariff_repository import TariffRepository
from .service_repository import ServiceRepository

__all__ = [
    'get_db_connection',
    'init_connection_pool',
    'close_connection_pool',
    'TariffRepository',
    'ServiceRepository',
]
