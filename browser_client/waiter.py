import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from browser_client.events import Event, EventEmitter, Subscription
from browser_client.exceptions import Error, TimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Waiter:
	"""Races one awaited outcome against any number of failure conditions.

	Every subscription and timer registered through the waiter is released when
	the result settles or the awaiting task is cancelled.
	"""

	def __init__(self, description: str) -> None:
		self.description = description
		self._result: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
		self._subscriptions: list[Subscription[Any]] = []
		self._timers: list[asyncio.TimerHandle] = []
		self._logs: list[str] = []

	def log(self, message: str) -> None:
		self._logs.append(message)
		logger.debug(f'[{self.description}] {message}')

	def reject_on_timeout(self, timeout: float | None, message: str) -> None:
		"""Fail with TimeoutError after `timeout` milliseconds. 0 or None waits forever."""
		if not timeout:
			return
		loop = asyncio.get_running_loop()
		self._timers.append(loop.call_later(timeout / 1000, self._reject, TimeoutError(message)))

	def reject_on_event(
		self,
		emitter: EventEmitter,
		event: Event[T],
		error: Error | Callable[[], Error],
		predicate: Callable[[T], bool] | None = None,
	) -> None:
		def _listener(payload: T) -> None:
			if predicate and not predicate(payload):
				return
			self._reject(error() if callable(error) else error)

		self._subscriptions.append(emitter.on(event, _listener))

	def reject_immediately(self, error: Error) -> None:
		self._reject(error)

	def wait_for_event(self, emitter: EventEmitter, event: Event[T], predicate: Callable[[T], bool] | None = None) -> None:
		def _listener(payload: T) -> None:
			if self._result.done():
				return
			try:
				if predicate and not predicate(payload):
					return
			except Exception as e:
				self._reject(e)
				return
			self._result.set_result(payload)
			self._cleanup()

		self._subscriptions.append(emitter.on(event, _listener))

	def wait_for_future(self, future: 'asyncio.Future[T]') -> None:
		def _done(f: 'asyncio.Future[T]') -> None:
			if self._result.done():
				return
			if f.cancelled():
				self._result.cancel()
			elif f.exception() is not None:
				self._reject(f.exception())
			else:
				self._result.set_result(f.result())
			self._cleanup()

		future.add_done_callback(_done)

	async def result(self) -> Any:
		try:
			return await self._result
		except TimeoutError as e:
			raise TimeoutError(e.message + _format_logs(self._logs)) from None
		finally:
			self._cleanup()

	def _reject(self, error: BaseException) -> None:
		if not self._result.done():
			self._result.set_exception(error)
		self._cleanup()

	def _cleanup(self) -> None:
		for subscription in self._subscriptions:
			subscription.dispose()
		self._subscriptions.clear()
		for timer in self._timers:
			timer.cancel()
		self._timers.clear()


def _format_logs(logs: list[str]) -> str:
	if not logs:
		return ''
	header = ' logs '
	width = 60
	left = (width - len(header)) // 2
	right = width - len(header) - left
	return '\n' + '=' * left + header + '=' * right + '\n' + '\n'.join(logs) + '\n' + '=' * width


class EventInfo(Generic[T]):
	"""Handle yielded by `expect_event`; await `.value` for the matched payload."""

	def __init__(self, waiter: Waiter) -> None:
		self._waiter = waiter
		self._task: asyncio.Task[T] = asyncio.ensure_future(waiter.result())

	@property
	async def value(self) -> T:
		return await self._task

	def is_done(self) -> bool:
		return self._task.done()

	def cancel(self) -> None:
		self._task.cancel()
		self._waiter._cleanup()


class EventContextManager(Generic[T]):
	"""`async with owner.expect_event(...) as info:` runs the body, then waits for the event."""

	def __init__(self, waiter: Waiter) -> None:
		self._waiter = waiter
		self._info: EventInfo[T] | None = None

	async def __aenter__(self) -> EventInfo[T]:
		self._info = EventInfo(self._waiter)
		return self._info

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		assert self._info is not None
		if exc_type is not None:
			self._info.cancel()
			return
		await self._info.value
