import logging
from typing import TYPE_CHECKING, Any

from browser_client.browser.views import BrowserContextOptions
from browser_client.events import BrowserEvent
from browser_client.exceptions import Error, TargetClosedError, is_target_closed_error
from browser_client.transport.connection import ChannelOwner
from browser_client.utils import locals_to_params

if TYPE_CHECKING:
	from browser_client.browser.browser_type import BrowserType
	from browser_client.browser.context import BrowserContext
	from browser_client.page.page import Page

logger = logging.getLogger(__name__)


class Browser(ChannelOwner):
	"""A launched or connected browser process.

	`BrowserEvent.DISCONNECTED` fires exactly once, whether the browser was closed,
	crashed, or the connection to it was lost.
	"""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._browser_type: BrowserType = parent  # type: ignore[assignment]
		self._contexts: list[BrowserContext] = []
		self._is_connected = True
		self._should_close_connection_on_close = False
		self._close_reason: str | None = None
		self._event_handlers['close'] = lambda params: self._did_close()

	def __repr__(self) -> str:
		return f'<Browser type={self._browser_type.name!r} version={self.version!r}>'

	def _closed_error(self) -> TargetClosedError | None:
		if not self._is_connected:
			return TargetClosedError(self._close_reason or 'Browser has been closed')
		return super()._closed_error()

	def _on_connection_closed(self, reason: str | None) -> None:
		self._close_reason = self._close_reason or reason
		self._did_close()

	def _did_close(self) -> None:
		if not self._is_connected:
			return
		self._is_connected = False
		for context in list(self._contexts):
			context._close_reason = context._close_reason or self._close_reason
			context._on_close()
		logger.debug(f'🛑 Browser disconnected: {self._browser_type.name}')
		self.emit(BrowserEvent.DISCONNECTED, self)

	@property
	def contexts(self) -> list['BrowserContext']:
		return list(self._contexts)

	@property
	def browser_type(self) -> 'BrowserType':
		return self._browser_type

	@property
	def version(self) -> str:
		return self._initializer['version']

	def is_connected(self) -> bool:
		return self._is_connected

	async def new_context(self, **options: Any) -> 'BrowserContext':
		"""Create an isolated context. Keyword options are validated as `BrowserContextOptions`.

		Device descriptors from `client.devices` can be splatted in directly:

		```python
		context = await browser.new_context(**client.devices['iPhone 13'], locale='de-DE')
		```
		"""
		context_options = BrowserContextOptions(**options)
		context: BrowserContext = await self._channel.send('newContext', context_options.to_protocol())
		context._setup(context_options, self)
		await context._start_har_recording()
		return context

	async def new_page(self, **options: Any) -> 'Page':
		"""A page in a fresh context that is closed together with the page."""
		context = await self.new_context(**options)
		page = await context.new_page()
		page._owned_context = context
		context._owner_page = page
		return page

	async def close(self, reason: str | None = None) -> None:
		self._close_reason = reason
		try:
			if self._should_close_connection_on_close:
				await self._connection.stop()
			else:
				await self._channel.send('close', locals_to_params({'reason': reason}))
		except Error as e:
			if not is_target_closed_error(e):
				raise
		self._did_close()
