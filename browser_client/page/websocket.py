import base64
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from browser_client.events import Event, PageEvent, WebSocketEvent
from browser_client.exceptions import Error, TargetClosedError
from browser_client.transport.connection import ChannelOwner
from browser_client.waiter import EventContextManager, Waiter

if TYPE_CHECKING:
	from browser_client.page.page import Page

# Opcode of binary frames, whose payload arrives base64-encoded.
_BINARY_OPCODE = 2


class WebSocket(ChannelOwner):
	"""A WebSocket opened by a page. Observe-only: frames cannot be modified."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._is_closed = False
		self._page: Page = parent  # type: ignore[assignment]
		self._event_handlers.update(
			{
				'frameSent': lambda params: self._on_frame(WebSocketEvent.FRAME_SENT, params),
				'frameReceived': lambda params: self._on_frame(WebSocketEvent.FRAME_RECEIVED, params),
				'socketError': lambda params: self.emit(WebSocketEvent.SOCKET_ERROR, params['error']),
				'close': self._on_close,
			}
		)

	def __repr__(self) -> str:
		return f'<WebSocket url={self.url!r}>'

	@property
	def url(self) -> str:
		return self._initializer['url']

	def is_closed(self) -> bool:
		return self._is_closed

	def _on_frame(self, event: Event[str | bytes], params: dict[str, Any]) -> None:
		payload: str | bytes = params['data']
		if params.get('opcode') == _BINARY_OPCODE:
			payload = base64.b64decode(params['data'])
		self.emit(event, payload)

	def _on_close(self, params: dict[str, Any]) -> None:
		self._is_closed = True
		self.emit(WebSocketEvent.CLOSE, self)

	def _build_waiter(self, event: Event[Any], predicate: Callable[[Any], bool] | None, timeout: float | None) -> Waiter:
		if timeout is None:
			timeout = self._page._timeout_settings.timeout()
		waiter = Waiter(f'web_socket.expect_event({event.name})')
		waiter.reject_on_timeout(timeout, f'Timeout {timeout:.0f}ms exceeded while waiting for event "{event.name}"')
		if event is not WebSocketEvent.CLOSE:
			waiter.reject_on_event(self, WebSocketEvent.CLOSE, Error('Socket closed'))
		if event is not WebSocketEvent.SOCKET_ERROR:
			waiter.reject_on_event(self, WebSocketEvent.SOCKET_ERROR, Error('Socket error'))
		waiter.reject_on_event(self._page, PageEvent.CLOSE, lambda: TargetClosedError(self._page._close_reason))
		waiter.wait_for_event(self, event, predicate)
		return waiter

	async def wait_for_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> Any:
		return await self._build_waiter(event, predicate, timeout).result()

	def expect_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> EventContextManager[Any]:
		return EventContextManager(self._build_waiter(event, predicate, timeout))
