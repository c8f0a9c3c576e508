"""
Shared fixtures: an in-process scripted driver that speaks the JSON protocol.

FakeDriver implements Transport. It records every command, answers from per-method
handlers keyed as 'Type.method', creates and disposes remote objects, and emits
events, so the whole client object graph can be exercised without a browser.
"""

import asyncio
import inspect
import os
from collections.abc import Callable
from typing import Any

os.environ.setdefault('BROWSER_CLIENT_SETUP_LOGGING', 'false')

import pytest

from browser_client.client import BrowserClient
from browser_client.transport.connection import Connection
from browser_client.transport.transport import Transport


class DriverError(Exception):
	"""Raised by a handler to make FakeDriver reply with a protocol error."""

	def __init__(self, message: str, name: str = 'Error') -> None:
		super().__init__(message)
		self.message = message
		self.name = name


def ref(guid: str) -> dict[str, str]:
	return {'guid': guid}


async def delivered() -> None:
	"""Give the owners' event buses time to hand queued events to their handlers."""
	await asyncio.sleep(0.05)


class FakeDriver(Transport):
	def __init__(self, pre_launched_browser: bool = False) -> None:
		super().__init__()
		self.sent: list[dict[str, Any]] = []
		self.types: dict[str, str] = {'': 'Root'}
		self.parents: dict[str, str] = {}
		self.urls: dict[str, str] = {}
		self.handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}
		self.pre_launched_browser = pre_launched_browser
		self._counter = 0
		self._tasks: set[asyncio.Task[Any]] = set()
		self.handlers.update(
			{
				'Root.initialize': self._initialize,
				'BrowserType.launch': self._launch,
				'Browser.newContext': self._new_context,
				'Browser.close': self._close_browser,
				'BrowserContext.newPage': self._new_page,
				'BrowserContext.close': self._close_context,
				'Page.close': self._close_page,
			}
		)

	# --- Transport ---------------------------------------------------------

	async def connect(self) -> None:
		pass

	def send(self, message: dict[str, Any]) -> None:
		self.sent.append(message)
		asyncio.get_running_loop().call_soon(self._handle, message)

	async def close(self) -> None:
		self._notify_closed('Transport closed')

	def _handle(self, message: dict[str, Any]) -> None:
		if self._closed:
			return
		key = f'{self.types.get(message["guid"], "?")}.{message["method"]}'
		handler = self.handlers.get(key)
		try:
			result = handler(message) if handler else {}
		except DriverError as e:
			self._reply_error(message['id'], e)
			return
		if inspect.isawaitable(result):
			task = asyncio.ensure_future(self._reply_later(message['id'], result))
			self._tasks.add(task)
			task.add_done_callback(self._tasks.discard)
			return
		self.on_message({'id': message['id'], 'result': result or {}})

	async def _reply_later(self, command_id: int, awaitable: Any) -> None:
		try:
			result = await awaitable
		except DriverError as e:
			self._reply_error(command_id, e)
			return
		if not self._closed:
			self.on_message({'id': command_id, 'result': result or {}})

	def _reply_error(self, command_id: int, error: DriverError) -> None:
		self.on_message(
			{'id': command_id, 'error': {'error': {'name': error.name, 'message': error.message, 'stack': ''}}, 'log': []}
		)

	# --- Object graph helpers -------------------------------------------------

	def create(self, parent: str, type_: str, initializer: dict[str, Any] | None = None, guid: str | None = None) -> str:
		if guid is None:
			self._counter += 1
			guid = f'{type_.lower()}@{self._counter}'
		self.types[guid] = type_
		self.parents[guid] = parent
		self.on_message(
			{'guid': parent, 'method': '__create__', 'params': {'type': type_, 'guid': guid, 'initializer': initializer or {}}}
		)
		return guid

	def emit(self, guid: str, method: str, params: dict[str, Any] | None = None) -> None:
		self.on_message({'guid': guid, 'method': method, 'params': params or {}})

	def dispose(self, guid: str, reason: str | None = None) -> None:
		self.on_message({'guid': guid, 'method': '__dispose__', 'params': {'reason': reason} if reason else {}})

	def calls(self, key: str) -> list[dict[str, Any]]:
		"""Commands sent as 'Type.method'."""
		type_, method = key.split('.')
		return [m for m in self.sent if m['method'] == method and self.types.get(m['guid']) == type_]

	def guid_of(self, type_: str) -> str:
		"""Most recently created object of `type_`."""
		return [guid for guid, t in self.types.items() if t == type_][-1]

	def create_request(self, frame: str, url: str, method: str = 'GET', **extra: Any) -> str:
		initializer = {
			'url': url,
			'method': method,
			'headers': extra.pop('headers', []),
			'resourceType': extra.pop('resource_type', 'document'),
			'frame': ref(frame),
			'isNavigationRequest': extra.pop('is_navigation_request', True),
			**extra,
		}
		request = self.create(frame, 'Request', initializer)
		self.urls[request] = url
		return request

	def create_response(self, request: str, status: int = 200, headers: list[dict[str, str]] | None = None) -> str:
		return self.create(
			request,
			'Response',
			{
				'url': self.urls[request],
				'status': status,
				'statusText': 'OK' if status == 200 else '',
				'headers': headers or [],
				'request': ref(request),
				'timing': {'startTime': 1.0},
			},
		)

	# --- Default handlers ---------------------------------------------------

	def _initialize(self, message: dict[str, Any]) -> dict[str, Any]:
		utils = self.create('', 'LocalUtils', {'deviceDescriptors': [_IPHONE]}, guid='localUtils')
		selectors = self.create('', 'Selectors', {}, guid='selectors')
		browser_types = {
			name: self.create('', 'BrowserType', {'name': name, 'executablePath': f'/opt/{name}/{name}'}, guid=name)
			for name in ('chromium', 'firefox', 'webkit')
		}
		initializer: dict[str, Any] = {name: ref(guid) for name, guid in browser_types.items()}
		initializer['selectors'] = ref(selectors)
		initializer['utils'] = ref(utils)
		if self.pre_launched_browser:
			initializer['preLaunchedBrowser'] = ref(self.create('chromium', 'Browser', {'version': '120.0.0', 'name': 'chromium'}))
		playwright = self.create('', 'Playwright', initializer, guid='Playwright')
		return {'playwright': ref(playwright)}

	def _launch(self, message: dict[str, Any]) -> dict[str, Any]:
		return {'browser': ref(self.create(message['guid'], 'Browser', {'version': '120.0.0', 'name': 'chromium'}))}

	def _new_context(self, message: dict[str, Any]) -> dict[str, Any]:
		tracing = self.create(message['guid'], 'Tracing', {})
		return {'context': ref(self.create(message['guid'], 'BrowserContext', {'tracing': ref(tracing)}))}

	def _new_page(self, message: dict[str, Any]) -> dict[str, Any]:
		context = message['guid']
		frame = self.create(context, 'Frame', {'url': 'about:blank', 'name': '', 'loadStates': ['load']})
		page = self.create(context, 'Page', {'mainFrame': ref(frame), 'viewportSize': {'width': 1280, 'height': 720}, 'isClosed': False})
		self.emit(context, 'page', {'page': ref(page)})
		return {'page': ref(page)}

	def _close_browser(self, message: dict[str, Any]) -> None:
		self.emit(message['guid'], 'close')

	def _close_context(self, message: dict[str, Any]) -> None:
		context = message['guid']
		for guid, type_ in list(self.types.items()):
			if type_ == 'Page' and self.parents.get(guid) == context:
				self.emit(guid, 'close')
		self.emit(context, 'close')

	def _close_page(self, message: dict[str, Any]) -> None:
		self.emit(message['guid'], 'close')


_IPHONE = {
	'name': 'iPhone 13',
	'descriptor': {
		'userAgent': 'Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X)',
		'viewport': {'width': 390, 'height': 664},
		'deviceScaleFactor': 3,
		'isMobile': True,
		'hasTouch': True,
		'defaultBrowserType': 'webkit',
	},
}


@pytest.fixture
def driver() -> FakeDriver:
	return FakeDriver()


@pytest.fixture
async def client(driver: FakeDriver):
	connection = Connection(driver)
	browser_client: BrowserClient = await connection.run()
	yield browser_client
	await connection.stop()


@pytest.fixture
async def browser(client: BrowserClient):
	return await client.chromium.launch()


@pytest.fixture
async def context(browser):
	return await browser.new_context()


@pytest.fixture
async def page(context):
	return await context.new_page()
