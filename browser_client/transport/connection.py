"""Mirror of the driver's object graph.

The driver creates every browser-side object (browser types, browsers, contexts,
pages, requests, ...) and announces it with a `__create__` event. `Connection`
keeps a client-side `ChannelOwner` for each guid, routes replies to the pending
command futures and hands every other event to the addressed owner.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from browser_client.config import CONFIG
from browser_client.events import EventEmitter
from browser_client.exceptions import Error, TargetClosedError, TimeoutError
from browser_client.transport.transport import Transport
from browser_client.transport.views import (
	ADOPT_METHOD,
	CREATE_METHOD,
	DISPOSE_METHOD,
	AdoptObjectParams,
	CommandMetadata,
	CreateObjectParams,
	DisposeObjectParams,
	ProtocolCommand,
	ProtocolEvent,
	ProtocolReply,
	SerializedError,
)
from browser_client.utils import create_task_with_error_handling, format_call_log

if TYPE_CHECKING:
	from browser_client.client import BrowserClient, LocalUtils

logger = logging.getLogger(__name__)
protocol_logger = logging.getLogger('browser_client.protocol')


class Channel:
	"""Sends commands on behalf of one `ChannelOwner`."""

	def __init__(self, connection: 'Connection', owner: 'ChannelOwner') -> None:
		self._connection = connection
		self._owner = owner

	async def send(self, method: str, params: dict[str, Any] | None = None) -> Any:
		"""Send a command and return its result.

		A result object with a single key is unwrapped, so `{"value": 3}` comes back as `3`;
		an empty result comes back as None.
		"""
		result = await self._connection.send_message_to_server(self._owner, method, params)
		if not result:
			return None
		if isinstance(result, dict) and len(result) == 1:
			return next(iter(result.values()))
		return result

	async def send_return_as_dict(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
		result = await self._connection.send_message_to_server(self._owner, method, params)
		return result or {}

	def send_no_reply(self, method: str, params: dict[str, Any] | None = None) -> None:
		"""Fire a command whose outcome nobody awaits. Failures on closed targets are ignored."""

		async def _send() -> None:
			try:
				await self._connection.send_message_to_server(self._owner, method, params)
			except TargetClosedError:
				pass

		create_task_with_error_handling(_send(), name=f'{self._owner._type}.{method}', logger_instance=logger)


class ChannelOwner(EventEmitter):
	"""Base class of every client object backed by a driver object."""

	def __init__(
		self,
		parent: 'ChannelOwner | Connection',
		type_: str,
		guid: str,
		initializer: dict[str, Any],
	) -> None:
		super().__init__()
		self._type = type_
		self._guid = guid
		self._initializer = initializer
		if isinstance(parent, ChannelOwner):
			self._connection: Connection = parent._connection
			self._parent: ChannelOwner | None = parent
		else:
			self._connection = parent
			self._parent = None
		self._objects: dict[str, ChannelOwner] = {}
		self._channel = Channel(self._connection, self)
		self._was_disposed = False
		self._dispose_reason: str | None = None
		self._event_handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}

		self._connection._objects[guid] = self
		if self._parent:
			self._parent._objects[guid] = self

	@property
	def guid(self) -> str:
		return self._guid

	@property
	def type(self) -> str:
		return self._type

	@property
	def initializer(self) -> dict[str, Any]:
		return self._initializer

	def _dispatch_event(self, method: str, params: dict[str, Any]) -> None:
		handler = self._event_handlers.get(method)
		if handler is None:
			logger.debug(f'No handler for {self._type}.{method}')
			return
		handler(params)

	def _adopt(self, child: 'ChannelOwner') -> None:
		if child._parent:
			child._parent._objects.pop(child._guid, None)
		self._objects[child._guid] = child
		child._parent = self

	def _dispose(self, reason: str | None = None) -> None:
		if self._parent:
			self._parent._objects.pop(self._guid, None)
		self._connection._objects.pop(self._guid, None)
		self._was_disposed = True
		self._dispose_reason = reason
		for child in list(self._objects.values()):
			child._dispose(reason)
		self._objects.clear()
		self._stop_event_bus()

	def _closed_error(self) -> TargetClosedError | None:
		"""The error to fail new commands with, or None while the target is usable."""
		if self._was_disposed:
			return TargetClosedError(f'{self._type} has been disposed' + (f': {self._dispose_reason}' if self._dispose_reason else ''))
		if self._parent:
			return self._parent._closed_error()
		return None

	def _on_connection_closed(self, reason: str | None) -> None:
		"""Called for every live object when the transport goes away."""
		pass

	def __repr__(self) -> str:
		return f'<{type(self).__name__} guid={self._guid}>'


class RootChannelOwner(ChannelOwner):
	"""The implicit object with guid '' that receives the handshake."""

	def __init__(self, connection: 'Connection') -> None:
		super().__init__(connection, 'Root', '', {})

	async def initialize(self) -> 'BrowserClient':
		return await self._channel.send('initialize', {'sdkLanguage': 'python'})


class _PendingCommand:
	__slots__ = ('future', 'method', 'owner_type')

	def __init__(self, future: 'asyncio.Future[Any]', method: str, owner_type: str) -> None:
		self.future = future
		self.method = method
		self.owner_type = owner_type


class Connection:
	"""Multiplexes commands, replies and events for one driver session."""

	def __init__(self, transport: Transport, is_remote: bool = False) -> None:
		self._transport = transport
		self._transport.on_message = self.dispatch
		self._transport.on_close = self._on_transport_close
		self.is_remote = is_remote
		self._objects: dict[str, ChannelOwner] = {}
		self._callbacks: dict[int, _PendingCommand] = {}
		self._last_id = 0
		self._closed_error: TargetClosedError | None = None
		self._root_object = RootChannelOwner(self)
		self.local_utils: Optional['LocalUtils'] = None
		self.on_close_callbacks: list[Callable[[str | None], None]] = []

	@property
	def is_closed(self) -> bool:
		return self._closed_error is not None

	async def run(self) -> 'BrowserClient':
		"""Connect the transport and perform the handshake."""
		await self._transport.connect()
		client = await self._root_object.initialize()
		self.local_utils = client._local_utils
		return client

	async def stop(self) -> None:
		await self._transport.close()

	def get_object(self, guid: str) -> ChannelOwner | None:
		return self._objects.get(guid)

	async def send_message_to_server(self, owner: ChannelOwner, method: str, params: dict[str, Any] | None) -> Any:
		if self._closed_error:
			raise TargetClosedError(self._closed_error.message)
		closed_error = owner._closed_error()
		if closed_error:
			raise closed_error

		self._last_id += 1
		command_id = self._last_id
		command = ProtocolCommand(
			id=command_id,
			guid=owner._guid,
			method=method,
			params=self._replace_channels_with_guids(_strip_none(params or {})),
			metadata=CommandMetadata(wall_time=int(time.time() * 1000), api_name=f'{owner._type}.{method}'),
		)
		future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
		self._callbacks[command_id] = _PendingCommand(future, method, owner._type)

		message = command.to_wire()
		if CONFIG.BROWSER_CLIENT_DEBUG_PROTOCOL:
			protocol_logger.debug(f'SEND ► {message}')
		try:
			self._transport.send(message)
		except Error:
			self._callbacks.pop(command_id, None)
			raise TargetClosedError(self._closed_error.message if self._closed_error else 'Driver transport is closed')

		try:
			return await future
		finally:
			self._callbacks.pop(command_id, None)

	def dispatch(self, message: dict[str, Any]) -> None:
		if self._closed_error:
			return
		if CONFIG.BROWSER_CLIENT_DEBUG_PROTOCOL:
			protocol_logger.debug(f'◀ RECV {message}')

		if message.get('id'):
			try:
				reply = ProtocolReply.model_validate(message)
			except ValidationError as e:
				logger.error(f'Dropping invalid driver reply: {e}')
				return
			self._dispatch_reply(reply)
			return

		try:
			event = ProtocolEvent.model_validate(message)
		except ValidationError as e:
			logger.error(f'Dropping invalid driver message: {e}')
			return
		params = event.params or {}

		if event.method == CREATE_METHOD:
			parent = self._objects.get(event.guid)
			if parent is None:
				logger.error(f'Cannot create object under unknown parent {event.guid}')
				return
			self._create_remote_object(parent, CreateObjectParams.model_validate(params))
			return

		owner = self._objects.get(event.guid)
		if owner is None:
			logger.debug(f'Event {event.method} for unknown object {event.guid}')
			return

		if event.method == ADOPT_METHOD:
			child = self._objects.get(AdoptObjectParams.model_validate(params).guid)
			if child is not None:
				owner._adopt(child)
			return
		if event.method == DISPOSE_METHOD:
			owner._dispose(DisposeObjectParams.model_validate(params).reason)
			return

		try:
			owner._dispatch_event(event.method, self._replace_guids_with_channels(params))
		except Exception as e:
			logger.error(f'Error handling {owner._type}.{event.method}: {type(e).__name__}: {e}', exc_info=e)

	def _dispatch_reply(self, reply: ProtocolReply) -> None:
		pending = self._callbacks.pop(reply.id, None)
		if pending is None:
			logger.debug(f'Reply for unknown command id {reply.id}')
			return
		if pending.future.done():
			return
		if reply.error is not None and not reply.result:
			error = parse_error(reply.error.error, reply.log)
			pending.future.set_exception(error)
			return
		pending.future.set_result(self._replace_guids_with_channels(reply.result))

	def _create_remote_object(self, parent: ChannelOwner, params: CreateObjectParams) -> ChannelOwner | None:
		from browser_client.transport.object_factory import create_remote_object

		initializer = self._replace_guids_with_channels(params.initializer)
		return create_remote_object(parent, params.type, params.guid, initializer)

	def _replace_guids_with_channels(self, payload: Any) -> Any:
		if payload is None:
			return None
		if isinstance(payload, list):
			return [self._replace_guids_with_channels(item) for item in payload]
		if isinstance(payload, dict):
			guid = payload.get('guid')
			if len(payload) == 1 and isinstance(guid, str) and guid in self._objects:
				return self._objects[guid]
			return {key: self._replace_guids_with_channels(value) for key, value in payload.items()}
		return payload

	def _replace_channels_with_guids(self, payload: Any) -> Any:
		if isinstance(payload, ChannelOwner):
			return {'guid': payload._guid}
		if isinstance(payload, list):
			return [self._replace_channels_with_guids(item) for item in payload]
		if isinstance(payload, dict):
			return {key: self._replace_channels_with_guids(value) for key, value in payload.items()}
		return payload

	def _on_transport_close(self, reason: str | None) -> None:
		if self._closed_error:
			return
		message = reason or 'Connection closed'
		self._closed_error = TargetClosedError(message)
		logger.debug(f'🔌 Driver connection closed: {message}')
		for pending in list(self._callbacks.values()):
			if not pending.future.done():
				pending.future.set_exception(TargetClosedError(message))
		self._callbacks.clear()
		for owner in list(self._objects.values()):
			try:
				owner._on_connection_closed(message)
			except Exception as e:
				logger.error(f'Error closing {owner!r}: {type(e).__name__}: {e}', exc_info=e)
		for callback in self.on_close_callbacks:
			callback(message)


def parse_error(error: SerializedError, log: list[str] | None = None) -> Error:
	"""Map a driver error payload to the matching client exception."""
	message = (error.message or 'Unknown driver error') + format_call_log(log)
	if error.name == 'TimeoutError':
		return TimeoutError(message, name=error.name, stack=error.stack)
	if error.name == 'TargetClosedError' or _looks_like_target_closed(error.message):
		return TargetClosedError(message)
	return Error(message, name=error.name, stack=error.stack)


def _looks_like_target_closed(message: str | None) -> bool:
	if not message:
		return False
	return any(
		marker in message
		for marker in (
			'Target closed',
			'Target page, context or browser has been closed',
			'Browser has been closed',
		)
	)


def _strip_none(params: dict[str, Any]) -> dict[str, Any]:
	return {key: value for key, value in params.items() if value is not None}
