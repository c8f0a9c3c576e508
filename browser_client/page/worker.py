from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from browser_client.config import CONFIG
from browser_client.events import Event, WorkerEvent
from browser_client.exceptions import TargetClosedError
from browser_client.js_value import parse_result, serialize_argument
from browser_client.transport.connection import ChannelOwner
from browser_client.waiter import Waiter

if TYPE_CHECKING:
	from browser_client.browser.context import BrowserContext
	from browser_client.page.js_handle import JSHandle
	from browser_client.page.page import Page


class Worker(ChannelOwner):
	"""A dedicated web worker of a page (or a service worker of a context)."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._page: Page | None = None
		self._context: BrowserContext | None = None
		self._closed = False
		self._event_handlers['close'] = self._on_close

	def __repr__(self) -> str:
		return f'<Worker url={self.url!r}>'

	def _on_close(self, params: dict[str, Any]) -> None:
		self._closed = True
		if self._page:
			self._page._workers.discard(self)
		self.emit(WorkerEvent.CLOSE, self)

	@property
	def url(self) -> str:
		return self._initializer['url']

	async def evaluate(self, expression: str, arg: Any = None) -> Any:
		return parse_result(
			await self._channel.send('evaluateExpression', {'expression': expression, 'arg': serialize_argument(arg)})
		)

	async def evaluate_handle(self, expression: str, arg: Any = None) -> 'JSHandle':
		return await self._channel.send('evaluateExpressionHandle', {'expression': expression, 'arg': serialize_argument(arg)})

	async def wait_for_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> Any:
		if timeout is None:
			owner = self._page or self._context
			timeout = owner._timeout_settings.timeout() if owner else CONFIG.BROWSER_CLIENT_DEFAULT_TIMEOUT
		waiter = Waiter(f'worker.wait_for_event({event.name})')
		waiter.reject_on_timeout(timeout, f'Timeout {timeout:.0f}ms exceeded while waiting for event "{event.name}"')
		if event is not WorkerEvent.CLOSE:
			waiter.reject_on_event(self, WorkerEvent.CLOSE, lambda: TargetClosedError('Worker has been closed'))
		waiter.wait_for_event(self, event, predicate)
		return await waiter.result()
