"""
SELECT clause rewriting for probing and offset pagination.

The caller's SELECT is an opaque, independently valid statement. This module finds
its top-level ORDER BY, LIMIT/OFFSET and OPTION clauses without being fooled by
string literals or parenthesised expressions (MATCH('... order by ...'),
sub-selects, function arguments), and rebuilds the statement with a different
LIMIT while never emitting a second LIMIT keyword.
"""

import re
import logging
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)

_QUOTES = ("'", '"', '`')

_OPTION_PATTERN = re.compile(r'\sOPTION\s', re.IGNORECASE)
_LIMIT_PATTERN = re.compile(
    r'\s+LIMIT\s+(\d+)\s*(?:,\s*(\d+)|\s+OFFSET\s+(\d+))?\s*$',
    re.IGNORECASE
)
_ORDER_BY_PATTERN = re.compile(r'\bORDER\s+BY\b', re.IGNORECASE)
_WITHIN_GROUP_PATTERN = re.compile(r'\bWITHIN\s+GROUP\s*$', re.IGNORECASE)
_SELECT_PATTERN = re.compile(r'^\s*SELECT\s+', re.IGNORECASE)
_FROM_PATTERN = re.compile(r'\sFROM\s', re.IGNORECASE)
_ALIAS_PATTERN = re.compile(r'\s+AS\s+(`?\w+`?)\s*$', re.IGNORECASE)
_IDENTIFIER_PATTERN = re.compile(r'^`?\w+`?(?:\.`?\w+`?)?$')
_STAR_SOURCE_PATTERN = re.compile(
    r'^\s*SELECT\s+\*\s+FROM\s+(`?\w+`?)\s*(?:$|(?:WHERE|GROUP|ORDER|LIMIT|OPTION|FACET)\b)',
    re.IGNORECASE | re.DOTALL
)


def mask_nested(sql: str) -> str:
    """
    Blank out quoted literals and parenthesised content, preserving length.

    Top-level text is kept as-is, so positions found in the masked string are
    valid positions in the unmasked string. Outermost parentheses are kept so the shape
    of function calls stays recognisable.
    """
    masked = []
    quote = None
    escaped = False
    depth = 0

    for char in sql:
        if quote:
            masked.append(' ')
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == quote:
                quote = None
            continue

        if char in _QUOTES:
            quote = char
            masked.append(' ')
        elif char == '(':
            masked.append('(' if depth == 0 else ' ')
            depth += 1
        elif char == ')':
            depth = max(depth - 1, 0)
            masked.append(')' if depth == 0 else ' ')
        else:
            masked.append(char if depth == 0 else ' ')

    return ''.join(masked)


def split_top_level(text: str, masked: str, separator: str = ',') -> List[str]:
    """Split text on separators that appear at top level in its masked form."""
    parts = []
    start = 0
    for index, char in enumerate(masked):
        if char == separator:
            parts.append(text[start:index].strip())
            start = index + 1
    parts.append(text[start:].strip())
    return parts


def has_top_level_order_by(masked: str) -> bool:
    """True when a masked statement orders its result (WITHIN GROUP ORDER BY only orders groups)."""
    for match in _ORDER_BY_PATTERN.finditer(masked):
        if not _WITHIN_GROUP_PATTERN.search(masked[:match.start()]):
            return True
    return False


def strip_identifier_quotes(name: str) -> str:
    return name.strip().strip('`"\'')


class SelectQuery:
    """
    A caller-supplied SELECT statement with its trailing clauses located.

    Attributes:
        sql: Normalised statement (trimmed, trailing semicolon removed)
        base: Statement without its trailing LIMIT/OFFSET and OPTION clauses
        limit: Caller's LIMIT, or None
        offset: Caller's OFFSET (0 when absent)
        option_clause: Caller's trailing OPTION clause, or empty string
        has_order_by: Whether the caller ordered the result at top level
    """

    def __init__(self, sql: str):
        self.sql = sql.strip().rstrip(';').strip()
        masked = mask_nested(self.sql)

        self.option_clause = ''
        head_end = len(self.sql)
        option_matches = list(_OPTION_PATTERN.finditer(masked))
        if option_matches:
            head_end = option_matches[-1].start()
            self.option_clause = self.sql[head_end:].strip()

        masked_head = masked[:head_end]
        self.limit: Optional[int] = None
        self.offset = 0
        base_end = head_end

        limit_match = _LIMIT_PATTERN.search(masked_head)
        if limit_match:
            first, second, offset = limit_match.groups()
            if second is not None:
                # LIMIT offset, count
                self.offset = int(first)
                self.limit = int(second)
            else:
                self.limit = int(first)
                self.offset = int(offset) if offset is not None else 0
            base_end = limit_match.start()

        self.base = self.sql[:base_end].rstrip()
        self._masked_base = masked[:base_end]
        self.has_order_by = has_top_level_order_by(self._masked_base)

    def __str__(self) -> str:
        return self.sql

    def with_limit(self, limit: int, offset: int = 0, ensure_order_by: bool = False,
                   order_column: str = 'id', force_offset: bool = False) -> str:
        """
        Rebuild the statement with the given LIMIT and OFFSET.

        Args:
            limit: Row count for the LIMIT clause
            offset: Absolute offset (already including the caller's own offset)
            ensure_order_by: Inject ORDER BY <order_column> ASC when the caller has none
            order_column: Column used for the injected ordering
            force_offset: Emit OFFSET even when it is zero

        Returns:
            SQL statement with exactly one LIMIT clause
        """
        parts = [self.base]
        if ensure_order_by and not self.has_order_by:
            parts.append(f"ORDER BY {order_column} ASC")

        limit_clause = f"LIMIT {limit}"
        if offset or force_offset:
            limit_clause += f" OFFSET {offset}"
        parts.append(limit_clause)

        if self.option_clause:
            parts.append(self.option_clause)
        return ' '.join(parts)

    def probe_query(self) -> str:
        """Statement returning the first row the caller's clause would return."""
        return self.with_limit(1, self.offset)

    def page_query(self, limit: int, offset: int, order_column: str = 'id') -> str:
        """
        Statement fetching one page under a stable order.

        Args:
            limit: Page size
            offset: Rows already consumed by earlier pages
            order_column: Column ordered by when the caller gave no ORDER BY

        Returns:
            SQL statement for the page
        """
        sql = self.with_limit(limit, self.offset + offset, ensure_order_by=True,
                              order_column=order_column, force_offset=True)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Page query: {sql}")
        return sql

    def projection(self) -> List[Tuple[str, str]]:
        """
        Parse the select list into (expression, output name) pairs.

        `expr AS alias` yields the alias; a plain or table-qualified column yields
        the bare column name; any other expression is named by its own text.
        """
        masked = mask_nested(self.sql)
        select_match = _SELECT_PATTERN.match(masked)
        from_match = _FROM_PATTERN.search(masked)
        if not select_match or not from_match or from_match.start() < select_match.end():
            return []

        start, end = select_match.end(), from_match.start()
        items = split_top_level(self.sql[start:end], masked[start:end])

        projection = []
        for item in items:
            if not item:
                continue
            alias_match = _ALIAS_PATTERN.search(mask_nested(item))
            if alias_match:
                expression = item[:alias_match.start()].strip()
                name = strip_identifier_quotes(item[alias_match.start(1):alias_match.end(1)])
            elif _IDENTIFIER_PATTERN.match(item):
                expression = item
                name = strip_identifier_quotes(item.split('.')[-1])
            else:
                expression = item
                name = item
            projection.append((expression, name))
        return projection

    def output_names(self) -> Optional[List[str]]:
        """Output column names of the select list, or None when it uses `*`."""
        projection = self.projection()
        if not projection or any(expression.endswith('*') for expression, _ in projection):
            return None
        return [name for _, name in projection]

    def star_source_table(self) -> Optional[str]:
        """Source table of a bare `SELECT * FROM table ...`, or None."""
        match = _STAR_SOURCE_PATTERN.match(self.sql)
        if not match:
            return None
        return strip_identifier_quotes(match.group(1))
