"""
Parse `REPLACE INTO [cluster:]table [(columns)] SELECT ...` statements.
"""

import re
import logging
from typing import List, Optional

from ..exceptions import StatementParseError
from ..models import ReplaceSelectRequest
from .select_query import strip_identifier_quotes


logger = logging.getLogger(__name__)

_TABLE = r'`?\w+`?(?:\s*:\s*`?\w+`?)?'

_MATCH_PATTERN = re.compile(
    rf'^\s*REPLACE\s+INTO\s+{_TABLE}\s*(?:\([^)]+\))?\s*SELECT\s+.*?\s+FROM\s+\S+',
    re.IGNORECASE | re.DOTALL
)
_TARGET_PATTERN = re.compile(
    rf'REPLACE\s+INTO\s+({_TABLE})\s*(?:\(([^)]*)\))?',
    re.IGNORECASE
)
_SELECT_PATTERN = re.compile(
    rf'REPLACE\s+INTO\s+{_TABLE}\s*(?:\([^)]*\))?\s*(SELECT\s+.+?)(?:\s*/\*.*?\*/\s*)?;?\s*$',
    re.IGNORECASE | re.DOTALL
)


def matches_replace_select(sql: str) -> bool:
    """Return True when sql looks like a REPLACE INTO ... SELECT statement."""
    return bool(sql) and _MATCH_PATTERN.match(sql) is not None


def parse_column_list(column_list: str) -> List[str]:
    """Split a target column list, removing quotes around each name."""
    if not column_list or not column_list.strip():
        raise StatementParseError("Empty column list in REPLACE INTO")

    columns = []
    for raw in column_list.split(','):
        if not raw.strip():
            raise StatementParseError("Empty column name in column list")
        name = strip_identifier_quotes(raw)
        if not name:
            raise StatementParseError("Column name contains only quotes")
        columns.append(name)
    return columns


def parse_replace_select(sql: str, batch_size: Optional[int] = None) -> ReplaceSelectRequest:
    """
    Parse a REPLACE INTO ... SELECT statement into a request.

    Args:
        sql: Complete statement, optionally followed by a comment and/or semicolon
        batch_size: Page size requested for this run, or None for the configured default

    Returns:
        Validated ReplaceSelectRequest

    Raises:
        StatementParseError: If the statement cannot be parsed or is invalid
    """
    if not sql or not sql.strip():
        raise StatementParseError("Statement is empty")

    target_match = _TARGET_PATTERN.search(sql)
    if not target_match:
        raise StatementParseError("Cannot extract target table from statement")

    cluster = None
    table_spec = target_match.group(1)
    if ':' in table_spec:
        cluster, table = table_spec.split(':', 1)
        cluster = strip_identifier_quotes(cluster)
    else:
        table = table_spec
    table = strip_identifier_quotes(table)
    if not table:
        raise StatementParseError("Empty target table name after parsing")

    column_list = None
    if target_match.group(2) is not None:
        column_list = parse_column_list(target_match.group(2))

    select_match = _SELECT_PATTERN.search(sql)
    if not select_match:
        raise StatementParseError("Cannot extract SELECT query from statement")

    request = ReplaceSelectRequest(
        target_table=table,
        select_query=select_match.group(1).strip(),
        column_list=column_list,
        batch_size=batch_size,
        cluster=cluster or None
    )
    request.validate()

    logger.debug(f"Parsed REPLACE SELECT into {request.target_table_with_cluster}: "
                 f"columns={column_list}, select={request.select_query}")
    return request
