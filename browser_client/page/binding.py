import inspect
import logging
from collections.abc import Callable
from typing import Any

from browser_client.js_value import parse_result, serialize_argument
from browser_client.transport.connection import ChannelOwner

logger = logging.getLogger(__name__)


class BindingCall(ChannelOwner):
	"""One invocation of a function exposed with `expose_binding` / `expose_function`."""

	async def call(self, func: Callable[..., Any]) -> None:
		frame = self._initializer['frame']
		source = {'context': frame._page.context, 'page': frame._page, 'frame': frame}
		try:
			if self._initializer.get('handle'):
				result = func(source, self._initializer['handle'])
			else:
				args = [parse_result(arg) for arg in self._initializer.get('args', [])]
				result = func(source, *args)
			if inspect.isawaitable(result):
				result = await result
			await self._channel.send('resolve', {'result': serialize_argument(result)})
		except Exception as e:
			logger.debug(f'Exposed binding {self._initializer.get("name")!r} raised {type(e).__name__}: {e}')
			await self._channel.send('reject', {'error': {'error': {'name': type(e).__name__, 'message': str(e), 'stack': ''}}})
