"""Statement parsing and SELECT clause rewriting."""

from .select_query import SelectQuery, mask_nested
from .statement_parser import matches_replace_select, parse_replace_select

__all__ = ['SelectQuery', 'mask_nested', 'matches_replace_select', 'parse_replace_select']
