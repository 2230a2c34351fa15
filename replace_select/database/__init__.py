"""Data store access and transactional orchestration."""

from .odbc_client import OdbcDataStoreClient
from .transactional_orchestrator import TransactionalOrchestrator

__all__ = ['OdbcDataStoreClient', 'TransactionalOrchestrator']
