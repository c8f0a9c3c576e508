"""Byte-level transports between the client and the driver."""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import aiohttp

from browser_client.config import CONFIG
from browser_client.exceptions import Error

logger = logging.getLogger(__name__)


class Transport(ABC):
	"""Delivers JSON messages to the driver and hands incoming ones to `on_message`."""

	def __init__(self) -> None:
		self.on_message: Callable[[dict[str, Any]], None] = lambda message: None
		self.on_close: Callable[[str | None], None] = lambda reason: None
		self._closed = False

	@abstractmethod
	async def connect(self) -> None: ...

	@abstractmethod
	def send(self, message: dict[str, Any]) -> None:
		"""Queue `message` for delivery. Must not block."""
		...

	@abstractmethod
	async def close(self) -> None: ...

	def _notify_closed(self, reason: str | None) -> None:
		if self._closed:
			return
		self._closed = True
		self.on_close(reason)


class PipeTransport(Transport):
	"""Talks to a driver subprocess over stdin/stdout.

	Each message is UTF-8 JSON prefixed with its length as a 4-byte little-endian
	integer.
	"""

	def __init__(self, command: list[str] | None = None, env: dict[str, str] | None = None) -> None:
		super().__init__()
		self.command = command or CONFIG.BROWSER_CLIENT_DRIVER_PATH
		self.env = env
		self._proc: asyncio.subprocess.Process | None = None
		self._read_task: asyncio.Task[None] | None = None

	async def connect(self) -> None:
		env = {**os.environ, 'PW_LANG_NAME': 'python', **(self.env or {})}
		try:
			self._proc = await asyncio.create_subprocess_exec(
				*self.command,
				stdin=asyncio.subprocess.PIPE,
				stdout=asyncio.subprocess.PIPE,
				stderr=None,
				env=env,
			)
		except FileNotFoundError:
			raise Error(
				f'Driver executable not found: {self.command[0]!r}. Set BROWSER_CLIENT_DRIVER_PATH to the driver command line.'
			)
		logger.debug(f'🚀 Driver started (pid={self._proc.pid}): {" ".join(self.command)}')
		self._read_task = asyncio.create_task(self._read_loop(), name='driver_pipe_reader')

	async def _read_loop(self) -> None:
		assert self._proc and self._proc.stdout
		reason: str | None = None
		while True:
			try:
				header = await self._proc.stdout.readexactly(4)
				length = int.from_bytes(header, byteorder='little')
				data = await self._proc.stdout.readexactly(length)
			except asyncio.IncompleteReadError:
				reason = 'Driver process exited'
				break
			except asyncio.CancelledError:
				reason = 'Transport closed'
				break
			try:
				message = json.loads(data)
			except json.JSONDecodeError as e:
				logger.error(f'Dropping malformed driver message: {e}')
				continue
			self.on_message(message)
		self._notify_closed(reason)

	def send(self, message: dict[str, Any]) -> None:
		if self._closed or not self._proc or not self._proc.stdin:
			raise Error('Driver transport is closed')
		data = json.dumps(message).encode()
		self._proc.stdin.write(len(data).to_bytes(4, byteorder='little') + data)

	async def close(self) -> None:
		if not self._proc:
			return
		if self._proc.stdin and not self._proc.stdin.is_closing():
			self._proc.stdin.close()
		try:
			await asyncio.wait_for(self._proc.wait(), timeout=10)
		except TimeoutError:
			logger.warning('Driver did not exit after stdin was closed, killing it')
			self._proc.kill()
			await self._proc.wait()
		if self._read_task:
			try:
				await self._read_task
			except Exception as e:
				logger.debug(f'Driver reader finished with {type(e).__name__}: {e}')
		self._notify_closed('Transport closed')


class WebSocketTransport(Transport):
	"""Talks to a remote driver endpoint, one JSON document per text frame."""

	def __init__(
		self,
		ws_endpoint: str,
		headers: dict[str, str] | None = None,
		timeout: float | None = None,
	) -> None:
		super().__init__()
		self.ws_endpoint = ws_endpoint
		self.headers = headers or {}
		self.timeout = timeout
		self._session: aiohttp.ClientSession | None = None
		self._ws: aiohttp.ClientWebSocketResponse | None = None
		self._outgoing: asyncio.Queue[str | None] = asyncio.Queue()
		self._tasks: list[asyncio.Task[None]] = []

	async def connect(self) -> None:
		self._session = aiohttp.ClientSession(
			timeout=aiohttp.ClientTimeout(total=None, connect=(self.timeout / 1000) if self.timeout else None)
		)
		try:
			self._ws = await self._session.ws_connect(self.ws_endpoint, headers=self.headers, max_msg_size=256 * 1024 * 1024)
		except (aiohttp.ClientError, OSError, ValueError, TimeoutError) as e:
			await self._session.close()
			raise Error(f'Failed to connect to {self.ws_endpoint}: {e}')
		logger.debug(f'🔌 Connected to remote driver at {self.ws_endpoint}')
		self._tasks = [
			asyncio.create_task(self._read_loop(), name='driver_ws_reader'),
			asyncio.create_task(self._write_loop(), name='driver_ws_writer'),
		]

	async def _read_loop(self) -> None:
		assert self._ws
		reason = 'Remote driver closed the connection'
		async for frame in self._ws:
			if frame.type == aiohttp.WSMsgType.TEXT:
				try:
					message = json.loads(frame.data)
				except json.JSONDecodeError as e:
					logger.error(f'Dropping malformed driver message: {e}')
					continue
				self.on_message(message)
			elif frame.type == aiohttp.WSMsgType.ERROR:
				reason = f'Remote driver connection failed: {self._ws.exception()}'
				break
		if self._ws.close_code is not None and self._ws.close_code != 1000:
			reason = f'Remote driver closed the connection (code {self._ws.close_code})'
		self._outgoing.put_nowait(None)
		self._notify_closed(reason)

	async def _write_loop(self) -> None:
		assert self._ws
		while True:
			data = await self._outgoing.get()
			if data is None or self._ws.closed:
				return
			try:
				await self._ws.send_str(data)
			except (aiohttp.ClientError, ConnectionResetError) as e:
				logger.debug(f'Stopped writing to remote driver: {e}')
				return

	def send(self, message: dict[str, Any]) -> None:
		if self._closed:
			raise Error('Driver transport is closed')
		self._outgoing.put_nowait(json.dumps(message))

	async def close(self) -> None:
		self._outgoing.put_nowait(None)
		if self._ws:
			await self._ws.close()
		for task in self._tasks:
			try:
				await task
			except Exception as e:
				logger.debug(f'WebSocket task finished with {type(e).__name__}: {e}')
		if self._session:
			await self._session.close()
		self._notify_closed('Transport closed')
