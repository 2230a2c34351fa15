"""
pyodbc implementation of the data store client.

Talks to the search daemon's SQL listener through an ODBC driver. The connection
runs in autocommit mode and transactions are driven with explicit BEGIN, COMMIT
and ROLLBACK statements, matching how the daemon scopes REPLACE batches.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import pyodbc

from ..exceptions import ClientProtocolError, WriteError
from ..interfaces import DataStoreClientInterface
from ..models import ColumnSpec
from ..processing.value_converter import render_literal


SQL_EXCERPT_LENGTH = 500


class OdbcDataStoreClient(DataStoreClientInterface):
    """
    Blocking data store client over a single pyodbc connection.

    Usage:
        with OdbcDataStoreClient(connection_string) as client:
            client.describe('products')
    """

    def __init__(self, connection_string: str, connection_timeout: int = 30,
                 query_timeout: int = 0):
        """
        Initialize client. The connection is opened lazily.

        Args:
            connection_string: ODBC connection string
            connection_timeout: Login timeout in seconds
            query_timeout: Per-statement timeout in seconds (0 = driver default)
        """
        self.connection_string = connection_string
        self.connection_timeout = connection_timeout
        self.query_timeout = query_timeout
        self.logger = logging.getLogger(__name__)
        self._connection: Optional[pyodbc.Connection] = None

    def __enter__(self) -> 'OdbcDataStoreClient':
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def connect(self) -> pyodbc.Connection:
        """
        Open the connection if it is not open yet.

        Raises:
            ClientProtocolError: If the connection cannot be established
        """
        if self._connection is None:
            try:
                self._connection = pyodbc.connect(
                    self.connection_string,
                    autocommit=True,  # Transactions are explicit statements
                    timeout=self.connection_timeout
                )
                self._connection.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
                self._connection.setdecoding(pyodbc.SQL_WCHAR, encoding='utf-8')
                self._connection.setencoding(encoding='utf-8')
                if self.query_timeout:
                    self._connection.timeout = self.query_timeout
            except pyodbc.Error as e:
                self.logger.error(f"Database connection failed: {e}")
                raise ClientProtocolError(f"Failed to connect to database: {e}") from e
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            except pyodbc.Error as e:
                self.logger.warning(f"Error closing connection: {e}")
            finally:
                self._connection = None

    def describe(self, table: str) -> List[ColumnSpec]:
        rows = self.query(f"DESC {table}")
        try:
            return [ColumnSpec.from_describe_row(row) for row in rows]
        except (KeyError, ValueError) as e:
            raise ClientProtocolError(f"Unexpected DESC {table} response: {e}") from e

    def query(self, sql: str) -> List[Dict[str, Any]]:
        cursor = None
        try:
            cursor = self.connect().cursor()
            cursor.execute(sql)
            if cursor.description is None:
                return []
            names = [column[0] for column in cursor.description]
            return [dict(zip(names, row)) for row in cursor.fetchall()]
        except pyodbc.Error as e:
            raise ClientProtocolError(f"Query failed: {e} ({sql[:SQL_EXCERPT_LENGTH]})") from e
        finally:
            if cursor is not None:
                cursor.close()

    def begin_transaction(self) -> None:
        self._execute_control("BEGIN")

    def commit(self) -> None:
        self._execute_control("COMMIT")

    def rollback(self) -> None:
        self._execute_control("ROLLBACK")

    def write_page(self, table: str, columns: Sequence[str],
                   rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return

        sql = self.build_replace_sql(table, columns, rows)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"REPLACE {len(rows)} rows into {table}: {sql[:SQL_EXCERPT_LENGTH]}")

        cursor = None
        try:
            cursor = self.connect().cursor()
            cursor.execute(sql)
        except pyodbc.Error as e:
            raise WriteError(
                f"Batch REPLACE failed for {len(rows)} rows: {e}. SQL: {sql[:SQL_EXCERPT_LENGTH]}",
                row_count=len(rows)
            ) from e
        finally:
            if cursor is not None:
                cursor.close()

    @staticmethod
    def build_replace_sql(table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
        """
        Build one multi-row REPLACE statement from converted rows.

        Args:
            table: Target table, optionally cluster-qualified
            columns: Target column names in write order
            rows: Converted values, index-aligned with columns

        Returns:
            REPLACE INTO table (c1,c2) VALUES (...),(...)
        """
        values = ','.join(
            '(' + ','.join(render_literal(value) for value in row) + ')'
            for row in rows
        )
        return f"REPLACE INTO {table} ({','.join(columns)}) VALUES {values}"

    def _execute_control(self, statement: str) -> None:
        cursor = None
        try:
            cursor = self.connect().cursor()
            cursor.execute(statement)
            self.logger.debug(f"{statement} executed")
        except pyodbc.Error as e:
            raise ClientProtocolError(f"{statement} failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
