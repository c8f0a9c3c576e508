"""Tagged value format used to pass arguments to and results from page scripts.

Every value is a one-key (or two-key, for containers) object:

	{'v': 'undefined' | 'null' | 'NaN' | 'Infinity' | '-Infinity' | '-0'}
	{'b': bool} {'n': number} {'s': str} {'bi': '123'} {'d': iso-date} {'u': url}
	{'r': {'p': pattern, 'f': flags}} {'e': {'m': message, 'n': name, 's': stack}}
	{'a': [...], 'id': n} {'o': [{'k': key, 'v': value}], 'id': n} {'ref': n} {'h': handle index}

Containers carry an `id` so cyclic structures can refer back to themselves with
`ref`.
"""

import math
import re
from datetime import UTC, datetime
from re import Pattern
from typing import TYPE_CHECKING, Any
from urllib.parse import ParseResult, urlunparse

from browser_client.exceptions import Error

if TYPE_CHECKING:
	from browser_client.page.js_handle import JSHandle

_REGEX_FLAGS = (
	(re.IGNORECASE, 'i'),
	(re.MULTILINE, 'm'),
	(re.DOTALL, 's'),
)


class _VisitorInfo:
	def __init__(self) -> None:
		self.visited: dict[int, int] = {}
		self.last_id = 0

	def visit(self, obj: Any) -> int:
		self.last_id += 1
		self.visited[id(obj)] = self.last_id
		return self.last_id


def serialize_argument(arg: Any = None) -> dict[str, Any]:
	"""Serialize `arg` into `{'value': ..., 'handles': [...]}` for an evaluate call."""
	handles: list[JSHandle] = []
	value = serialize_value(arg, handles, _VisitorInfo())
	return {'value': value, 'handles': handles}


def serialize_value(value: Any, handles: list['JSHandle'], visitor: _VisitorInfo) -> Any:
	from browser_client.page.js_handle import JSHandle

	if isinstance(value, JSHandle):
		handles.append(value)
		return {'h': len(handles) - 1}
	if value is None:
		return {'v': 'null'}
	if isinstance(value, float):
		if math.isnan(value):
			return {'v': 'NaN'}
		if value == math.inf:
			return {'v': 'Infinity'}
		if value == -math.inf:
			return {'v': '-Infinity'}
		if value == 0 and math.copysign(1, value) < 0:
			return {'v': '-0'}
	if isinstance(value, bool):
		return {'b': value}
	if isinstance(value, int) and not -(2**53) < value < 2**53:
		return {'bi': str(value)}
	if isinstance(value, (int, float)):
		return {'n': value}
	if isinstance(value, str):
		return {'s': value}
	if isinstance(value, datetime):
		if value.tzinfo is None:
			value = value.replace(tzinfo=UTC)
		return {'d': value.astimezone(UTC).isoformat().replace('+00:00', 'Z')}
	if isinstance(value, ParseResult):
		return {'u': urlunparse(value)}
	if isinstance(value, Pattern):
		flags = ''.join(flag for bit, flag in _REGEX_FLAGS if value.flags & bit)
		return {'r': {'p': value.pattern, 'f': flags}}
	if isinstance(value, Exception):
		return {'e': {'m': str(value), 'n': type(value).__name__, 's': ''}}

	if id(value) in visitor.visited:
		return {'ref': visitor.visited[id(value)]}
	if isinstance(value, (list, tuple)):
		ref_id = visitor.visit(value)
		return {'a': [serialize_value(item, handles, visitor) for item in value], 'id': ref_id}
	if isinstance(value, dict):
		ref_id = visitor.visit(value)
		return {
			'o': [{'k': str(key), 'v': serialize_value(item, handles, visitor)} for key, item in value.items()],
			'id': ref_id,
		}
	raise Error(f'Unexpected value of type {type(value).__name__} cannot be passed to the page')


def parse_result(value: Any) -> Any:
	return parse_value(value, {})


def parse_value(value: Any, refs: dict[int, Any]) -> Any:
	if value is None:
		return None
	if not isinstance(value, dict):
		return value

	if 'ref' in value:
		return refs[value['ref']]
	if 'v' in value:
		special = value['v']
		if special in ('undefined', 'null'):
			return None
		if special == 'NaN':
			return math.nan
		if special == 'Infinity':
			return math.inf
		if special == '-Infinity':
			return -math.inf
		if special == '-0':
			return -0.0
		return None
	if 'b' in value:
		return value['b']
	if 'n' in value:
		return value['n']
	if 's' in value:
		return value['s']
	if 'bi' in value:
		return int(value['bi'])
	if 'd' in value:
		return datetime.fromisoformat(value['d'].replace('Z', '+00:00'))
	if 'u' in value:
		return value['u']
	if 'r' in value:
		flags = 0
		for bit, flag in _REGEX_FLAGS:
			if flag in value['r'].get('f', ''):
				flags |= bit
		return re.compile(value['r']['p'], flags)
	if 'e' in value:
		error = value['e']
		return Error(error.get('m', ''), name=error.get('n'), stack=error.get('s'))
	if 'a' in value:
		items: list[Any] = []
		refs[value.get('id', 0)] = items
		items.extend(parse_value(item, refs) for item in value['a'])
		return items
	if 'o' in value:
		obj: dict[str, Any] = {}
		refs[value.get('id', 0)] = obj
		for entry in value['o']:
			obj[entry['k']] = parse_value(entry['v'], refs)
		return obj
	if 'h' in value:
		raise Error('Handles cannot be returned by value; use evaluate_handle instead')
	raise Error(f'Unexpected serialized value: {value!r}')
