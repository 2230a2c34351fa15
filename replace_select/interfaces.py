"""
Abstract interfaces for the REPLACE ... SELECT transfer engine.

This module defines the contract the engine expects from the data store client
so that the network implementation can be swapped (ODBC, test doubles) through
dependency injection.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Sequence

from .models import ColumnSpec


class DataStoreClientInterface(ABC):
    """
    Abstract interface for the data store the engine reads from and writes to.

    Every call is a blocking request/response. Failures are raised, never
    returned: ClientProtocolError for reads and transaction control, WriteError
    for rejected page writes.
    """

    @abstractmethod
    def describe(self, table: str) -> List[ColumnSpec]:
        """
        Describe a table.

        Args:
            table: Table name (without cluster prefix)

        Returns:
            Column specifications in table creation order

        Raises:
            ClientProtocolError: If the table cannot be described
        """
        pass

    @abstractmethod
    def query(self, sql: str) -> List[Dict[str, Any]]:
        """
        Execute a SELECT statement.

        Args:
            sql: Complete SELECT statement

        Returns:
            Rows as ordered mappings of output column/alias name to value

        Raises:
            ClientProtocolError: If the statement fails
        """
        pass

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start an explicit transaction."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction."""
        pass

    @abstractmethod
    def write_page(self, table: str, columns: Sequence[str],
                   rows: Sequence[Sequence[Any]]) -> None:
        """
        Write one page of converted rows with replace semantics.

        Args:
            table: Target table, optionally cluster-qualified
            columns: Target column names in write order
            rows: Wire-ready literal values, index-aligned with columns

        Raises:
            WriteError: If the data store rejects the page
        """
        pass
