"""
Tests for the tagged value format exchanged with page scripts.
"""

import math
import re
from datetime import UTC, datetime

import pytest

from browser_client.exceptions import Error
from browser_client.js_value import parse_result, serialize_argument


def test_special_numbers_are_tagged():
	assert serialize_argument(math.nan)['value'] == {'v': 'NaN'}
	assert serialize_argument(math.inf)['value'] == {'v': 'Infinity'}
	assert serialize_argument(-math.inf)['value'] == {'v': '-Infinity'}
	assert serialize_argument(-0.0)['value'] == {'v': '-0'}
	assert serialize_argument(None)['value'] == {'v': 'null'}


def test_big_integers_use_bigint():
	assert serialize_argument(2**60)['value'] == {'bi': str(2**60)}
	assert serialize_argument(42)['value'] == {'n': 42}
	assert parse_result({'bi': '1152921504606846976'}) == 2**60


def test_bool_is_not_serialized_as_number():
	assert serialize_argument(True)['value'] == {'b': True}


def test_dates_are_utc_iso():
	value = serialize_argument(datetime(2024, 5, 1, 12, 30))['value']
	assert value == {'d': '2024-05-01T12:30:00Z'}
	assert parse_result(value) == datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def test_regex_flags_survive():
	value = serialize_argument(re.compile('ab+c', re.IGNORECASE | re.MULTILINE))['value']
	assert value == {'r': {'p': 'ab+c', 'f': 'im'}}
	parsed = parse_result(value)
	assert parsed.pattern == 'ab+c'
	assert parsed.flags & re.IGNORECASE


def test_cyclic_structures_use_refs():
	cyclic: dict = {'name': 'root'}
	cyclic['self'] = cyclic

	value = serialize_argument(cyclic)['value']
	assert value['o'][1] == {'k': 'self', 'v': {'ref': value['id']}}

	parsed = parse_result(value)
	assert parsed['self'] is parsed


def test_nested_containers_parse():
	value = {'a': [{'n': 1}, {'s': 'two'}, {'o': [{'k': 'x', 'v': {'v': 'undefined'}}], 'id': 3}], 'id': 2}
	assert parse_result(value) == [1, 'two', {'x': None}]


def test_errors_from_page_become_error_values():
	parsed = parse_result({'e': {'m': 'boom', 'n': 'TypeError', 's': 'at x'}})
	assert isinstance(parsed, Error)
	assert parsed.message == 'boom'
	assert parsed.name == 'TypeError'


def test_unserializable_value_raises():
	with pytest.raises(Error, match='cannot be passed'):
		serialize_argument(object())


async def test_evaluate_sends_serialized_argument(page, driver):
	driver.handlers['Frame.evaluateExpression'] = lambda message: {'value': {'n': 3}}

	assert await page.evaluate('([a, b]) => a + b', [1, 2]) == 3

	params = driver.calls('Frame.evaluateExpression')[0]['params']
	assert params['expression'] == '([a, b]) => a + b'
	assert params['arg'] == {'value': {'a': [{'n': 1}, {'n': 2}], 'id': 1}, 'handles': []}
