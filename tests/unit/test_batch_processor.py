"""
Unit tests for BatchProcessor pagination, row conversion and failure reporting.
"""

import math

import pytest

from replace_select.exceptions import ClientProtocolError, RowConversionError, WriteError
from replace_select.models import ReplaceSelectRequest, TargetSchema
from replace_select.processing.batch_processor import BatchProcessor

from helpers import columns, product_store


PRODUCT_SCHEMA = TargetSchema(tuple(columns(('id', 'bigint'), ('title', 'text'), ('price', 'float'))))


def make_processor(store, select="SELECT id, title, price FROM products", batch_size=1000,
                   column_list=None, schema=PRODUCT_SCHEMA, **kwargs):
    request = ReplaceSelectRequest('products_copy', select, column_list=column_list, batch_size=batch_size)
    return BatchProcessor(store, request, schema, batch_size=batch_size, **kwargs)


class TestPagination:

    def test_two_rows_single_page(self, store):
        processor = make_processor(store)
        assert processor.execute() == 2
        assert processor.get_batches_processed() == 1
        assert store.writes == [
            ('products_copy', ['id', 'title', 'price'], [[1, "'Product 1'", 10.99], [2, "'Product 2'", 11.99]])
        ]

    @pytest.mark.parametrize("rows, page_size", [(10, 3), (10, 5), (7, 7), (1, 1000), (25, 4)])
    def test_page_count(self, rows, page_size):
        store = product_store(rows)
        processor = make_processor(store, batch_size=page_size)

        assert processor.execute() == rows
        assert len(store.writes) == math.ceil(rows / page_size)
        empty_pages = len(store.page_queries()) - len(store.writes)
        assert 0 <= empty_pages <= 3

    def test_exact_multiple_ends_after_three_empty_pages(self):
        store = product_store(6)
        processor = make_processor(store, batch_size=3)
        processor.execute()
        assert len(store.page_queries()) == 2 + 3

    def test_max_empty_batches_is_configurable(self):
        store = product_store(4)
        make_processor(store, batch_size=2, max_empty_batches=1).execute()
        assert len(store.page_queries()) == 2 + 1

    def test_empty_source_is_success(self):
        store = product_store(0)
        processor = make_processor(store)
        assert processor.execute() == 0
        assert store.writes == []

    def test_offset_advances_by_rows_returned(self):
        store = product_store(5)
        make_processor(store, batch_size=2).execute()
        offsets = [int(sql.rsplit('OFFSET', 1)[1]) for sql in store.page_queries()]
        assert offsets[:3] == [0, 2, 4]

    def test_default_order_injected(self, store):
        make_processor(store).execute()
        assert all('ORDER BY id ASC' in sql for sql in store.page_queries())

    def test_caller_order_reused(self, store):
        make_processor(store, select="SELECT id, title, price FROM products ORDER BY price DESC").execute()
        for sql in store.page_queries():
            assert 'ORDER BY price DESC' in sql
            assert 'ORDER BY id' not in sql

    def test_one_write_per_page(self):
        store = product_store(9)
        make_processor(store, batch_size=4).execute()
        assert [len(rows) for _, _, rows in store.writes] == [4, 4, 1]

    def test_writes_to_cluster_qualified_table(self, store):
        request = ReplaceSelectRequest('products_copy', "SELECT id, title, price FROM products", cluster='c1')
        BatchProcessor(store, request, PRODUCT_SCHEMA).execute()
        assert store.writes[0][0] == '`c1`:products_copy'


class TestUserLimit:

    def test_limit_bounds_total(self):
        store = product_store(20)
        processor = make_processor(store, select="SELECT id, title, price FROM products LIMIT 7", batch_size=3)
        assert processor.execute() == 7
        assert [len(rows) for _, _, rows in store.writes] == [3, 3, 1]

    def test_never_requests_more_than_limit(self):
        store = product_store(20)
        make_processor(store, select="SELECT id, title, price FROM products LIMIT 7", batch_size=3).execute()
        requested = [int(sql.split('LIMIT')[1].split()[0]) for sql in store.page_queries()]
        assert sum(requested) <= 7
        assert all(sql.upper().count('LIMIT') == 1 for sql in store.page_queries())

    def test_limit_larger_than_source(self):
        store = product_store(4)
        processor = make_processor(store, select="SELECT id, title, price FROM products LIMIT 100", batch_size=10)
        assert processor.execute() == 4

    def test_limit_with_offset(self):
        store = product_store(10)
        processor = make_processor(store, select="SELECT id, title, price FROM products LIMIT 3 OFFSET 4",
                                   batch_size=2)
        assert processor.execute() == 3
        written_ids = [row[0] for _, _, rows in store.writes for row in rows]
        assert written_ids == [5, 6, 7]


class TestProcessRow:

    def test_positional_conversion(self, store):
        processor = make_processor(store)
        assert processor.process_row({'a': '7', 'b': None, 'c': True}) == [7, "''", 1.0]

    def test_shape_mismatch(self, store):
        processor = make_processor(store)
        with pytest.raises(RowConversionError, match="2 fields"):
            processor.process_row({'id': 1, 'title': 'x'})

    def test_conversion_failure_names_column(self, store):
        processor = make_processor(store)
        with pytest.raises(RowConversionError) as exc_info:
            processor.process_row({'id': 'abc', 'title': 'x', 'price': 1})
        assert exc_info.value.field_name == 'id'
        assert exc_info.value.source_value == 'abc'
        assert exc_info.value.target_type == 'bigint'

    def test_column_list_matches_by_name(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, select="SELECT id, price FROM products",
                                   column_list=['price', 'id'], schema=schema)
        assert processor.process_row({'id': 3, 'price': '2.5'}) == [2.5, 3]

    def test_column_list_matches_aliases(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, select="SELECT doc AS id, cost AS price FROM products",
                                   column_list=['price', 'id'], schema=schema)
        assert processor.process_row({'id': 3, 'price': '2.5'}) == [2.5, 3]

    def test_column_list_matches_names_case_insensitively(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, select="SELECT ID, Price FROM products",
                                   column_list=['PRICE', 'Id'], schema=schema)
        assert processor.process_row({'ID': 3, 'Price': '2.5'}) == [2.5, 3]

    def test_column_list_falls_back_to_position(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, select="SELECT cost, doc FROM products",
                                   column_list=['price', 'id'], schema=schema)
        assert processor.process_row({'cost': '2.5', 'doc': 3}) == [2.5, 3]

    def test_column_list_with_other_output_names_is_positional(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, select="SELECT id, title FROM products",
                                   column_list=['price', 'id'], schema=schema)
        assert processor.process_row({'id': '2.5', 'title': 3}) == [2.5, 3]

    def test_no_column_list_ignores_names(self, store):
        schema = TargetSchema(tuple(columns(('price', 'float'), ('id', 'bigint'))))
        processor = make_processor(store, schema=schema)
        assert processor.process_row({'id': 3, 'price': 2}) == [3.0, 2]


class TestFailures:

    def test_write_failure_reports_rows_written(self):
        store = product_store(9)
        store.fail_write_on_page = 2
        processor = make_processor(store, batch_size=3)

        with pytest.raises(WriteError) as exc_info:
            processor.execute()
        assert exc_info.value.records_processed == 3
        assert processor.get_total_processed() == 3

    def test_conversion_failure_mid_run(self):
        store = product_store(6)
        store.rows[4]['price'] = 'n/a'
        processor = make_processor(store, batch_size=2)

        with pytest.raises(RowConversionError) as exc_info:
            processor.execute()
        assert exc_info.value.records_processed == 4
        assert len(store.writes) == 2

    def test_infinite_float_fails_before_write(self, store):
        store.rows[1]['price'] = float('inf')
        with pytest.raises(RowConversionError) as exc_info:
            make_processor(store).execute()
        assert exc_info.value.field_name == 'price'
        assert store.writes == []

    def test_query_failure(self, store):
        store.fail_on['query'] = ClientProtocolError("connection reset")
        with pytest.raises(ClientProtocolError) as exc_info:
            make_processor(store).execute()
        assert exc_info.value.records_processed == 0

    def test_wrong_response_structure(self, store):
        store.query = lambda sql: {'data': []}
        with pytest.raises(ClientProtocolError, match="Wrong response structure"):
            make_processor(store).execute()

    def test_wrong_row_structure(self, store):
        store.query = lambda sql: [(1, 'a', 2.0)]
        with pytest.raises(ClientProtocolError, match="Wrong row structure"):
            make_processor(store).execute()


class TestStatistics:

    def test_run_stats(self):
        store = product_store(5)
        processor = make_processor(store, batch_size=2, debug=True)
        processor.execute()

        stats = processor.get_processing_statistics()
        assert stats.total_rows == 5
        assert stats.total_batches == 3
        assert [b.row_count for b in stats.batches] == [2, 2, 1]
        assert [b.batch_number for b in stats.batches] == [1, 2, 3]
        assert stats.avg_batch_size == pytest.approx(5 / 3)

    def test_idempotent_rerun(self):
        store = product_store(7)
        first = make_processor(store, batch_size=3).execute()
        snapshot = dict(store.target_rows)
        second = make_processor(store, batch_size=3).execute()

        assert first == second == 7
        assert store.target_rows == snapshot

    def test_invalid_batch_size(self, store):
        request = ReplaceSelectRequest('products_copy', "SELECT id FROM products")
        with pytest.raises(ValueError):
            BatchProcessor(store, request, PRODUCT_SCHEMA, batch_size=-1)
