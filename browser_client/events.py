"""Typed publish/subscribe for driver-backed objects.

Every owner (browser, context, page, web socket, worker) is an `EventEmitter`
with its own bubus `EventBus`. Events are identified by `Event[T]` descriptors
instead of bare strings, so a handler registered for `PageEvent.DIALOG` is
statically known to receive a `Dialog`:

```python
subscription = page.on(PageEvent.DIALOG, handle_dialog)
...
subscription.dispose()
```

Each descriptor owns a `ChannelEvent` subclass (`PageDialogEvent`, ...) that is
dispatched on the owner's bus. The bus delivers payloads in emission order per
owner. Plain callables run on the bus; coroutine handlers are scheduled as tasks
in the same order so a slow handler never holds up the bus.
"""

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from bubus import BaseEvent, EventBus
from pydantic import create_model

from browser_client.utils import create_task_with_error_handling

if TYPE_CHECKING:
	from browser_client.browser.browser import Browser
	from browser_client.browser.context import BrowserContext
	from browser_client.network.request import Request
	from browser_client.network.response import Response
	from browser_client.page.console import ConsoleMessage
	from browser_client.page.dialog import Dialog
	from browser_client.page.download import Download
	from browser_client.page.file_chooser import FileChooser
	from browser_client.page.frame import Frame
	from browser_client.page.page import Page
	from browser_client.page.web_error import WebError
	from browser_client.page.websocket import WebSocket
	from browser_client.page.worker import Worker

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ChannelEvent(BaseEvent[None]):
	"""Notification raised by a driver-backed object. Handlers receive `payload`."""

	payload: Any = None
	# Position in the owner's emission order, used to skip events older than a subscription
	sequence: int = 0


def _event_class(class_name: str) -> type[ChannelEvent]:
	return create_model(class_name, __base__=ChannelEvent, __module__=__name__)


def _camel(name: str) -> str:
	return ''.join(part.capitalize() for part in name.lower().split('_'))


class Event(Generic[T]):
	"""Descriptor for one kind of notification carrying a payload of type T."""

	__slots__ = ('name', 'event_class')

	def __init__(self, name: str, class_name: str | None = None) -> None:
		self.name = name
		self.event_class = _event_class(class_name or f'{_camel(name)}Event')

	def __set_name__(self, owner: type, attribute: str) -> None:
		group = owner.__name__.removesuffix('Event')
		self.event_class = _event_class(f'{group}{_camel(attribute)}Event')

	def __repr__(self) -> str:
		return f'Event({self.name!r})'


class BrowserEvent:
	DISCONNECTED: 'Event[Browser]' = Event('disconnected')


class ContextEvent:
	PAGE: 'Event[Page]' = Event('page')
	CLOSE: 'Event[BrowserContext]' = Event('close')
	CONSOLE: 'Event[ConsoleMessage]' = Event('console')
	DIALOG: 'Event[Dialog]' = Event('dialog')
	REQUEST: 'Event[Request]' = Event('request')
	RESPONSE: 'Event[Response]' = Event('response')
	REQUEST_FINISHED: 'Event[Request]' = Event('requestfinished')
	REQUEST_FAILED: 'Event[Request]' = Event('requestfailed')
	WEB_ERROR: 'Event[WebError]' = Event('weberror')


class PageEvent:
	CLOSE: 'Event[Page]' = Event('close')
	CRASH: 'Event[Page]' = Event('crash')
	CONSOLE: 'Event[ConsoleMessage]' = Event('console')
	DIALOG: 'Event[Dialog]' = Event('dialog')
	DOWNLOAD: 'Event[Download]' = Event('download')
	FILE_CHOOSER: 'Event[FileChooser]' = Event('filechooser')
	FRAME_ATTACHED: 'Event[Frame]' = Event('frameattached')
	FRAME_DETACHED: 'Event[Frame]' = Event('framedetached')
	FRAME_NAVIGATED: 'Event[Frame]' = Event('framenavigated')
	LOAD: 'Event[Page]' = Event('load')
	DOM_CONTENT_LOADED: 'Event[Page]' = Event('domcontentloaded')
	PAGE_ERROR: 'Event[Exception]' = Event('pageerror')
	POPUP: 'Event[Page]' = Event('popup')
	REQUEST: 'Event[Request]' = Event('request')
	RESPONSE: 'Event[Response]' = Event('response')
	REQUEST_FINISHED: 'Event[Request]' = Event('requestfinished')
	REQUEST_FAILED: 'Event[Request]' = Event('requestfailed')
	WEB_SOCKET: 'Event[WebSocket]' = Event('websocket')
	WORKER: 'Event[Worker]' = Event('worker')


class WebSocketEvent:
	CLOSE: 'Event[WebSocket]' = Event('close')
	FRAME_SENT: 'Event[str | bytes]' = Event('framesent')
	FRAME_RECEIVED: 'Event[str | bytes]' = Event('framereceived')
	SOCKET_ERROR: 'Event[str]' = Event('socketerror')


class WorkerEvent:
	CLOSE: 'Event[Worker]' = Event('close')


class Subscription(Generic[T]):
	"""Token returned by `EventEmitter.on`; `dispose()` unsubscribes."""

	def __init__(self, emitter: 'EventEmitter', event: Event[T], handler: Callable[[T], Any], once: bool = False) -> None:
		self.emitter = emitter
		self.event = event
		self.handler = handler
		self.once = once
		self.active = True
		self._since = emitter._emitted

		async def deliver(bus_event: ChannelEvent) -> None:
			if not self.active or bus_event.sequence <= self._since:
				return
			if self.once:
				self.dispose()
			try:
				result = handler(bus_event.payload)
			except Exception as e:
				logger.error(f'Error in {event.name} handler {getattr(handler, "__name__", "")}: {e}', exc_info=e)
				return
			if inspect.isawaitable(result):
				create_task_with_error_handling(_await(result), name=f'{event.name}_handler', logger_instance=logger)

		# bubus tells handlers apart by name
		deliver.__name__ = deliver.__qualname__ = f'{getattr(handler, "__name__", type(handler).__name__)}_{id(self):x}'
		self.bus_handler = deliver

	def dispose(self) -> None:
		self.emitter.off(self)

	def __repr__(self) -> str:
		state = 'active' if self.active else 'disposed'
		return f'Subscription({self.event.name}, {getattr(self.handler, "__name__", self.handler)}, {state})'


class EventEmitter:
	def __init__(self) -> None:
		self._event_bus: EventBus | None = None
		self._emitted = 0

	@property
	def event_bus(self) -> EventBus:
		"""The owner's bus, created with the first subscription."""
		if self._event_bus is None:
			self._event_bus = EventBus()
		return self._event_bus

	def on(self, event: Event[T], handler: Callable[[T], Any]) -> Subscription[T]:
		"""Register `handler` for `event` and return its unsubscribe token."""
		return self._subscribe(Subscription(self, event, handler))

	def once(self, event: Event[T], handler: Callable[[T], Any]) -> Subscription[T]:
		"""Register `handler` for the next `event` only."""
		return self._subscribe(Subscription(self, event, handler, once=True))

	def _subscribe(self, subscription: Subscription[T]) -> Subscription[T]:
		self.event_bus.on(subscription.event.event_class, subscription.bus_handler)
		self._on_listeners_changed(subscription.event)
		return subscription

	def off(self, subscription: Subscription[Any]) -> None:
		if not subscription.active:
			return
		subscription.active = False
		if self._event_bus is None:
			return
		key = subscription.event.event_class.__name__
		handlers = self._event_bus.handlers.get(key, [])
		if subscription.bus_handler not in handlers:
			return
		# Rebind instead of mutating so an in-flight dispatch keeps its handler list
		self._event_bus.handlers[key] = [h for h in handlers if h is not subscription.bus_handler]
		self._on_listeners_changed(subscription.event)

	def listener_count(self, event: Event[Any]) -> int:
		if self._event_bus is None:
			return 0
		return len(self._event_bus.handlers.get(event.event_class.__name__, []))

	def emit(self, event: Event[T], payload: T) -> bool:
		"""Dispatch `payload` to every handler of `event` on the owner's bus.

		Returns:
			True if at least one handler was registered
		"""
		self._emitted += 1
		if not self.listener_count(event):
			return False
		self.event_bus.dispatch(event.event_class(payload=payload, sequence=self._emitted))
		return True

	def _stop_event_bus(self) -> None:
		"""Deliver what is queued, then shut the bus down."""
		bus, self._event_bus = self._event_bus, None
		if bus is None:
			return
		create_task_with_error_handling(bus.stop(clear=True, timeout=5), name='event_bus_stop', logger_instance=logger)

	def _on_listeners_changed(self, event: Event[Any]) -> None:
		pass


async def _await(awaitable: Any) -> Any:
	return await awaitable
