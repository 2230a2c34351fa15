"""
Unit tests for per-type value conversion and SQL literal rendering.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from replace_select.processing.value_converter import convert_value, quote_string, render_literal


class TestBoundaryValues:
    """Documented boundary conversions."""

    def test_int32_max_is_unchanged(self):
        assert convert_value(2147483647, 'int') == 2147483647
        assert convert_value('2147483647', 'int') == 2147483647

    def test_float_into_integer_truncates(self):
        assert convert_value(99.99, 'int') == 99
        assert convert_value('99.99', 'bigint') == 99
        assert convert_value(-2.7, 'int') == -2

    def test_booleans_into_float(self):
        assert convert_value(True, 'float') == 1.0
        assert convert_value(False, 'float') == 0.0

    def test_empty_string_into_integer(self):
        assert convert_value('', 'int') == 0

    def test_list_into_json(self):
        assert convert_value([1, 2, 3], 'json') == "'[1,2,3]'"


class TestInteger:

    def test_bool_and_none(self):
        assert convert_value(True, 'int') == 1
        assert convert_value(False, 'uint') == 0
        assert convert_value(None, 'bigint') == 0

    def test_decimal_truncates(self):
        assert convert_value(Decimal('12.9'), 'bigint') == 12

    def test_python_int_beyond_64_bits_passes_through(self):
        huge = 2 ** 70
        assert convert_value(huge, 'bigint') == huge

    def test_string_beyond_64_bits_kept_as_digits(self):
        digits = '123456789012345678901234567890'
        assert convert_value(digits, 'bigint') == digits

    def test_exponent_string(self):
        assert convert_value('1e3', 'int') == 1000

    def test_non_numeric_string_fails(self):
        with pytest.raises(ValueError):
            convert_value('abc', 'int')

    def test_list_fails(self):
        with pytest.raises(TypeError):
            convert_value([1], 'int')

    def test_nan_fails(self):
        with pytest.raises(ValueError):
            convert_value(float('nan'), 'int')


class TestFloat:

    def test_numbers(self):
        assert convert_value(3, 'float') == 3.0
        assert convert_value(Decimal('2.5'), 'float') == 2.5
        assert convert_value('29.99', 'float') == 29.99

    def test_empty_and_none(self):
        assert convert_value('', 'float') == 0.0
        assert convert_value(None, 'float') == 0.0

    def test_non_numeric_string_fails(self):
        with pytest.raises(ValueError):
            convert_value('cheap', 'float')

    @pytest.mark.parametrize("value", [float('inf'), float('-inf'), float('nan'), '1e400', Decimal('Infinity')])
    def test_non_finite_fails(self, value):
        with pytest.raises(ValueError):
            convert_value(value, 'float')


class TestBoolean:

    @pytest.mark.parametrize("value", [True, 1, 5, 'yes', 'TRUE', '1', 'anything', [0]])
    def test_truthy(self, value):
        assert convert_value(value, 'bool') == 1

    @pytest.mark.parametrize("value", [False, 0, None, '', '0', 'false', 'No', 'OFF', '0.0', []])
    def test_falsy(self, value):
        assert convert_value(value, 'bool') == 0


class TestText:

    def test_plain_string_is_quoted(self):
        assert convert_value('Phone', 'text') == "'Phone'"

    def test_quotes_and_backslashes_are_escaped(self):
        assert convert_value("it's a \\ test", 'string') == "'it\\'s a \\\\ test'"

    def test_scalars_rendered_as_text(self):
        assert convert_value(42, 'text') == "'42'"
        assert convert_value(True, 'text') == "'1'"
        assert convert_value(None, 'text') == "''"
        assert convert_value(b'bytes', 'text') == "'bytes'"

    def test_objects_use_their_string_form(self):
        class Sku:
            def __str__(self):
                return 'SKU-1'
        assert convert_value(Sku(), 'text') == "'SKU-1'"

    def test_composites_rendered_as_json(self):
        assert convert_value({'a': 1}, 'text') == "'{\"a\":1}'"


class TestJson:

    def test_string_passes_as_is(self):
        assert convert_value('{"a": 1}', 'json') == "'{\"a\": 1}'"

    def test_dict_is_serialised_compactly(self):
        assert convert_value({'a': [1, 2]}, 'json') == "'{\"a\":[1,2]}'"

    def test_embedded_quote_is_escaped(self):
        assert convert_value({'name': "O'Brien"}, 'json') == "'{\"name\":\"O\\'Brien\"}'"


class TestMulti:

    def test_list(self):
        assert convert_value([1, 2, 3], 'multi') == '(1,2,3)'

    def test_tuple_and_empty(self):
        assert convert_value((4, 5), 'multi64') == '(4,5)'
        assert convert_value([], 'multi') == '()'
        assert convert_value(None, 'multi') == '()'
        assert convert_value('', 'multi') == '()'

    def test_comma_joined_string(self):
        assert convert_value('1, 2,3', 'multi') == '(1,2,3)'

    def test_json_array_string(self):
        assert convert_value('[7,8]', 'multi') == '(7,8)'

    def test_single_number(self):
        assert convert_value(9, 'multi') == '(9)'

    def test_float_vector(self):
        assert convert_value([0.5, 1.25], 'float_vector') == '(0.5,1.25)'

    def test_non_finite_element_fails(self):
        with pytest.raises(ValueError):
            convert_value([1.5, float('inf')], 'float_vector')

    def test_non_numeric_element_fails(self):
        with pytest.raises(ValueError):
            convert_value(['a', 'b'], 'multi')


class TestTimestamp:

    def test_int_and_numeric_string(self):
        assert convert_value(1700000000, 'timestamp') == 1700000000
        assert convert_value('1700000000', 'timestamp') == 1700000000

    def test_float_truncates(self):
        assert convert_value(1700000000.9, 'timestamp') == 1700000000

    def test_datetime_becomes_epoch_seconds(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert convert_value(moment, 'timestamp') == 1704067200

    def test_naive_datetime_is_utc(self):
        assert convert_value(datetime(2024, 1, 1), 'timestamp') == 1704067200

    def test_date_becomes_epoch_seconds(self):
        assert convert_value(date(2024, 1, 1), 'timestamp') == 1704067200

    def test_date_string_is_quoted(self):
        assert convert_value('2024-01-01 10:00:00', 'timestamp') == "'2024-01-01 10:00:00'"

    def test_empty_is_zero(self):
        assert convert_value('', 'timestamp') == 0
        assert convert_value(None, 'timestamp') == 0


class TestUnknownAndRendering:

    def test_unknown_type_is_quoted_text(self):
        assert convert_value(12, 'geopoint') == "'12'"

    def test_quote_string(self):
        assert quote_string("a'b") == "'a\\'b'"

    def test_render_literal(self):
        assert render_literal(29.99) == '29.99'
        assert render_literal(1.0) == '1.0'
        assert render_literal(5) == '5'
        assert render_literal("'x'") == "'x'"
