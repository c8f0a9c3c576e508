import re
from pathlib import Path
from typing import Any

from browser_client.exceptions import Error
from browser_client.page.locator import set_test_id_attribute_name
from browser_client.transport.connection import ChannelOwner
from browser_client.utils import locals_to_params

_ENGINE_NAME_RE = re.compile(r'[a-zA-Z_0-9-]+')


class Selectors(ChannelOwner):
	"""Custom selector engines, shared by every browser of a client."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._registered: dict[str, str] = {}
		self._test_id_attribute: str | None = None

	async def register(
		self,
		name: str,
		script: str | None = None,
		path: str | Path | None = None,
		content_script: bool | None = None,
	) -> None:
		"""Register a selector engine usable as `name=...` in selectors.

		The script must evaluate to an object with `query(root, selector)` and
		`queryAll(root, selector)` methods.
		"""
		if not _ENGINE_NAME_RE.fullmatch(name):
			raise Error('Selector engine name may only contain [a-zA-Z_0-9-] characters')
		if name in self._registered:
			raise Error(f'"{name}" selector engine has been already registered')
		if path is not None:
			source = Path(path).read_text() + f'\n//# sourceURL={Path(path).as_posix()}'
		elif script is not None:
			source = script
		else:
			raise Error('Either source or path should be specified')

		# Reserve the name before awaiting so a concurrent duplicate fails.
		self._registered[name] = source
		try:
			await self._channel.send(
				'register', locals_to_params({'name': name, 'source': source, 'content_script': content_script})
			)
		except Error:
			del self._registered[name]
			raise

	def set_test_id_attribute(self, attribute_name: str) -> None:
		self._test_id_attribute = attribute_name
		set_test_id_attribute_name(attribute_name)
		self._channel.send_no_reply('setTestIdAttributeName', {'testIdAttributeName': attribute_name})
