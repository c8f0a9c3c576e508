from collections import defaultdict

from browser_client.network.views import HeaderEntry


class RawHeaders:
	"""Ordered header list with case-insensitive lookup.

	Duplicate names are kept in the array form. The mapping form joins them with
	`, `, except `set-cookie` whose values are joined with newlines.
	"""

	def __init__(self, headers: list[HeaderEntry]) -> None:
		self._headers_array = headers
		self._headers_map: dict[str, list[str]] = defaultdict(list)
		for header in headers:
			self._headers_map[header['name'].lower()].append(header['value'])

	@staticmethod
	def from_dict(headers: dict[str, str]) -> 'RawHeaders':
		return RawHeaders([{'name': name, 'value': value} for name, value in headers.items()])

	def get(self, name: str) -> str | None:
		values = self.get_all(name)
		if not values:
			return None
		separator = '\n' if name.lower() == 'set-cookie' else ', '
		return separator.join(values)

	def get_all(self, name: str) -> list[str]:
		return list(self._headers_map.get(name.lower(), []))

	def headers(self) -> dict[str, str]:
		result: dict[str, str] = {}
		for name in self._headers_map:
			value = self.get(name)
			if value is not None:
				result[name] = value
		return result

	def headers_array(self) -> list[HeaderEntry]:
		return [{'name': header['name'], 'value': header['value']} for header in self._headers_array]


def serialize_headers(headers: dict[str, str]) -> list[HeaderEntry]:
	return [{'name': name, 'value': str(value)} for name, value in headers.items()]
