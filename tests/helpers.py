"""In-memory data store used by tests.

FakeDataStore implements DataStoreClientInterface over a list of source rows and
a dict of described schemas. Every call is recorded in `calls` so tests can
assert on the exact sequence of BEGIN/query/write/COMMIT/ROLLBACK.
"""
import re
from typing import Any, Dict, List, Optional, Sequence

from replace_select.exceptions import ClientProtocolError, WriteError
from replace_select.interfaces import DataStoreClientInterface
from replace_select.models import ColumnSpec


_PAGE_PATTERN = re.compile(r'LIMIT\s+(\d+)(?:\s+OFFSET\s+(\d+))?', re.IGNORECASE)


def columns(*specs) -> List[ColumnSpec]:
    """Build ColumnSpecs from (name, type) pairs."""
    return [ColumnSpec(name=name, declared_type=declared_type) for name, declared_type in specs]


class FakeDataStore(DataStoreClientInterface):
    """Records every call and serves pages by parsing LIMIT/OFFSET."""

    def __init__(self, schemas: Optional[Dict[str, List[ColumnSpec]]] = None,
                 rows: Optional[List[Dict[str, Any]]] = None):
        self.schemas = schemas or {}
        self.rows = rows or []
        self.calls: List[tuple] = []
        self.queries: List[str] = []
        self.writes: List[tuple] = []
        self.target_rows: Dict[Any, tuple] = {}
        self.fail_on: Dict[str, BaseException] = {}
        self.fail_write_on_page: Optional[int] = None
        self.write_error_text = "index 'target' rejected the batch"

    def describe(self, table: str) -> List[ColumnSpec]:
        self.calls.append(('describe', table))
        self._maybe_fail('describe')
        if table not in self.schemas:
            raise ClientProtocolError(f"no such table '{table}'")
        return list(self.schemas[table])

    def query(self, sql: str) -> List[Dict[str, Any]]:
        self.calls.append(('query', sql))
        self.queries.append(sql)
        self._maybe_fail('query')

        matches = _PAGE_PATTERN.findall(sql)
        if not matches:
            return [dict(row) for row in self.rows]
        limit, offset = matches[-1]
        start = int(offset or 0)
        return [dict(row) for row in self.rows[start:start + int(limit)]]

    def begin_transaction(self) -> None:
        self.calls.append(('begin',))
        self._maybe_fail('begin_transaction')

    def commit(self) -> None:
        self.calls.append(('commit',))
        self._maybe_fail('commit')

    def rollback(self) -> None:
        self.calls.append(('rollback',))
        self._maybe_fail('rollback')

    def write_page(self, table: str, columns: Sequence[str],
                   rows: Sequence[Sequence[Any]]) -> None:
        self.calls.append(('write', table, list(columns), len(rows)))
        page_number = len(self.writes) + 1
        if self.fail_write_on_page == page_number:
            raise WriteError(f"Batch REPLACE failed: {self.write_error_text}", row_count=len(rows))
        self.writes.append((table, list(columns), [list(row) for row in rows]))
        for row in rows:
            # replace semantics keyed by the first column
            self.target_rows[row[0]] = tuple(row)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def page_queries(self) -> List[str]:
        """Queries other than the LIMIT 1 probe."""
        return [sql for sql in self.queries if ' OFFSET ' in sql.upper()]

    def _maybe_fail(self, method: str) -> None:
        if method in self.fail_on:
            raise self.fail_on[method]


def product_rows(count: int) -> List[Dict[str, Any]]:
    return [
        {'id': i, 'title': f'Product {i}', 'price': round(9.99 + i, 2)}
        for i in range(1, count + 1)
    ]


def product_store(count: int = 2) -> FakeDataStore:
    """Source and target with (id bigint, title text, price float)."""
    schema = columns(('id', 'bigint'), ('title', 'text'), ('price', 'float'))
    return FakeDataStore(
        schemas={'products': schema, 'products_copy': list(schema)},
        rows=product_rows(count)
    )
