"""
Tests for the driver connection: handshake, reply/error mapping, the remote object graph
and what happens to pending and new commands once the transport goes away.
"""

import asyncio
import logging

import pytest
from conftest import DriverError, FakeDriver, delivered, ref

from browser_client.client import BrowserClient
from browser_client.exceptions import Error, TargetClosedError, TimeoutError
from browser_client.transport.connection import ChannelOwner, Connection


async def test_handshake_resolves_client_root(client: BrowserClient, driver: FakeDriver):
	"""initialize is sent to the root object and its reply becomes the BrowserClient."""
	initialize = driver.sent[0]
	assert initialize['guid'] == ''
	assert initialize['method'] == 'initialize'
	assert initialize['params'] == {'sdkLanguage': 'python'}
	assert initialize['metadata']['apiName'] == 'Root.initialize'

	assert client.chromium.name == 'chromium'
	assert client.firefox.executable_path == '/opt/firefox/firefox'
	assert client['webkit'] is client.webkit
	with pytest.raises(KeyError):
		client['opera']


async def test_devices_are_parsed_into_context_options(client: BrowserClient):
	"""Device descriptors from LocalUtils use snake_case keys usable as new_context kwargs."""
	iphone = client.devices['iPhone 13']
	assert iphone['is_mobile'] is True
	assert iphone['viewport'] == {'width': 390, 'height': 664}
	assert iphone['default_browser_type'] == 'webkit'


async def test_command_ids_increase_and_none_params_are_stripped(page, driver: FakeDriver):
	await page.goto('https://example.com', referer=None)

	goto = driver.calls('Frame.goto')[-1]
	assert goto['params']['url'] == 'https://example.com'
	assert 'referer' not in goto['params']
	ids = [message['id'] for message in driver.sent]
	assert ids == sorted(ids)
	assert len(set(ids)) == len(ids)


async def test_driver_timeout_maps_to_timeout_error(page, driver: FakeDriver):
	def timeout(message):
		raise DriverError('Timeout 10ms exceeded.', name='TimeoutError')

	driver.handlers['Frame.click'] = timeout
	with pytest.raises(TimeoutError, match='Timeout 10ms exceeded'):
		await page.click('#missing', timeout=10)


async def test_driver_errors_map_to_target_closed_by_message(page, driver: FakeDriver):
	def closed(message):
		raise DriverError('Target page, context or browser has been closed')

	driver.handlers['Frame.title'] = closed
	with pytest.raises(TargetClosedError):
		await page.title()


async def test_other_driver_errors_map_to_error(page, driver: FakeDriver):
	def broken(message):
		raise DriverError('SyntaxError: Unexpected token', name='Error')

	driver.handlers['Frame.evaluateExpression'] = broken
	with pytest.raises(Error) as exc_info:
		await page.evaluate('1 +')
	assert not isinstance(exc_info.value, (TimeoutError, TargetClosedError))
	assert 'Unexpected token' in exc_info.value.message


async def test_pending_commands_fail_when_transport_closes(page, driver: FakeDriver):
	"""A command still waiting for its reply fails with TargetClosedError carrying the reason."""
	never = asyncio.get_running_loop().create_future()
	driver.handlers['Frame.title'] = lambda message: never

	title_task = asyncio.create_task(page.title())
	await asyncio.sleep(0.01)
	driver._notify_closed('driver crashed')

	with pytest.raises(TargetClosedError, match='driver crashed'):
		await title_task
	assert page.is_closed()

	# New commands fail immediately, without reaching the transport
	sent_before = len(driver.sent)
	with pytest.raises(TargetClosedError):
		await page.title()
	assert len(driver.sent) == sent_before
	never.cancel()


async def test_disposed_object_fails_immediately(page, driver: FakeDriver):
	request = driver.create_request(page.main_frame.guid, 'https://example.com/')
	response_guid = driver.create_response(request)
	response = page._connection.get_object(response_guid)

	driver.dispose(request, reason='navigated away')

	assert page._connection.get_object(response_guid) is None
	with pytest.raises(TargetClosedError, match='disposed'):
		await response.body()


async def test_unknown_types_are_tracked_without_client_class(client: BrowserClient, driver: FakeDriver):
	guid = driver.create('', 'AndroidDevice', {'model': 'Pixel'})
	owner = client._connection.get_object(guid)
	assert type(owner) is ChannelOwner
	assert owner.initializer == {'model': 'Pixel'}

	# Children of an unknown object still get created
	child = driver.create(guid, 'JSHandle', {'preview': 'JSHandle@node'})
	assert client._connection.get_object(child) is not None


async def test_adopt_moves_object_to_new_parent(browser, context, driver: FakeDriver):
	"""Tracing is created under the browser and can be adopted by its context."""
	tracing_guid = context.tracing.guid
	assert tracing_guid in browser._objects

	driver.emit(context.guid, '__adopt__', {'guid': tracing_guid})

	assert tracing_guid in context._objects
	assert tracing_guid not in browser._objects
	assert context.tracing._parent is context


async def test_guid_references_in_events_become_objects(page, driver: FakeDriver):
	seen = []
	from browser_client.events import PageEvent

	page.on(PageEvent.REQUEST, seen.append)
	request = driver.create_request(page.main_frame.guid, 'https://example.com/api')
	driver.emit(driver.parents[page.guid], 'request', {'request': ref(request), 'page': ref(page.guid)})
	await delivered()

	assert len(seen) == 1
	assert seen[0].url == 'https://example.com/api'
	assert seen[0].frame is page.main_frame


async def test_malformed_reply_is_dropped(page, driver: FakeDriver, caplog):
	sent_before = len(driver.sent)
	with caplog.at_level(logging.ERROR):
		driver.on_message({'id': 9999, 'error': 'not an error object'})

	assert 'Dropping invalid driver reply' in caplog.text
	assert len(driver.sent) == sent_before
	# The connection keeps serving commands
	driver.handlers['Frame.title'] = lambda message: {'value': 'Still alive'}
	assert await page.title() == 'Still alive'


async def test_async_client_stops_connection_on_exit():
	from browser_client.client import async_client

	driver = FakeDriver()
	async with async_client(driver) as client:
		assert isinstance(client, BrowserClient)
	assert client._connection.is_closed


async def test_remote_connection_is_flagged():
	driver = FakeDriver()
	connection = Connection(driver, is_remote=True)
	client = await connection.run()
	assert client._connection.is_remote
	await connection.stop()
