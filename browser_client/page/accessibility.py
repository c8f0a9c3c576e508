"""Legacy accessibility tree snapshot.

Kept for old callers only. It must be switched on with
`BROWSER_CLIENT_LEGACY_ACCESSIBILITY=true` and warns on every use.
"""

import warnings
from typing import TYPE_CHECKING, Any, Optional

from browser_client.config import CONFIG
from browser_client.exceptions import Error
from browser_client.transport.connection import Channel

if TYPE_CHECKING:
	from browser_client.page.js_handle import ElementHandle


def _parse_node(node: dict[str, Any] | None) -> dict[str, Any] | None:
	if node is None:
		return None
	result = dict(node)
	if 'checked' in result:
		result['checked'] = {'checked': True, 'unchecked': False}.get(result['checked'], result['checked'])
	if 'pressed' in result:
		result['pressed'] = {'pressed': True, 'released': False}.get(result['pressed'], result['pressed'])
	if 'valueNumber' in result:
		result['value'] = result.pop('valueNumber')
	elif 'valueString' in result:
		result['value'] = result.pop('valueString')
	if 'children' in result:
		result['children'] = [_parse_node(child) for child in result['children']]
	return result


class Accessibility:
	def __init__(self, channel: Channel) -> None:
		self._channel = channel

	async def snapshot(self, interesting_only: bool | None = None, root: Optional['ElementHandle'] = None) -> dict[str, Any] | None:
		warnings.warn(
			'page.accessibility.snapshot() is deprecated and will be removed',
			DeprecationWarning,
			stacklevel=2,
		)
		if not CONFIG.BROWSER_CLIENT_LEGACY_ACCESSIBILITY:
			raise Error('The legacy accessibility snapshot is disabled. Set BROWSER_CLIENT_LEGACY_ACCESSIBILITY=true to enable it.')
		params: dict[str, Any] = {'interestingOnly': True if interesting_only is None else interesting_only}
		if root is not None:
			params['root'] = root
		return _parse_node(await self._channel.send('accessibilitySnapshot', params))
