"""
Tests for typed event subscriptions on the owners' event buses, and for event waiters.
"""

import asyncio
import base64
import logging
from typing import get_args

import pytest
from conftest import FakeDriver, delivered, ref

from browser_client.events import ChannelEvent, ContextEvent, Event, EventEmitter, PageEvent, WebSocketEvent
from browser_client.exceptions import Error, TargetClosedError, TimeoutError
from browser_client.page.console import ConsoleMessageType
from browser_client.waiter import Waiter

PING: Event[int] = Event('ping')


def test_each_event_has_its_own_bus_event_class():
	assert PageEvent.DIALOG.event_class.__name__ == 'PageDialogEvent'
	assert ContextEvent.REQUEST_FINISHED.event_class.__name__ == 'ContextRequestFinishedEvent'
	assert PING.event_class.__name__ == 'PingEvent'
	assert issubclass(PageEvent.CLOSE.event_class, ChannelEvent)
	assert PageEvent.CLOSE.event_class is not ContextEvent.CLOSE.event_class


async def test_handlers_receive_payloads_in_order():
	emitter = EventEmitter()
	received = []
	emitter.on(PING, lambda value: received.append(('first', value)))
	emitter.on(PING, lambda value: received.append(('second', value)))

	assert emitter.emit(PING, 1)
	emitter.emit(PING, 2)
	await delivered()

	assert received == [('first', 1), ('second', 1), ('first', 2), ('second', 2)]


async def test_listeners_are_registered_on_the_bus():
	emitter = EventEmitter()
	subscription = emitter.on(PING, lambda value: None)

	assert len(emitter.event_bus.handlers['PingEvent']) == 1
	assert emitter.listener_count(PING) == 1
	subscription.dispose()
	assert emitter.listener_count(PING) == 0


async def test_emit_without_handlers_returns_false():
	assert EventEmitter().emit(PING, 1) is False


async def test_late_subscriber_misses_earlier_events():
	emitter = EventEmitter()
	early, late = [], []
	emitter.on(PING, early.append)
	emitter.emit(PING, 1)
	emitter.on(PING, late.append)
	emitter.emit(PING, 2)
	await delivered()

	assert early == [1, 2]
	assert late == [2]


async def test_once_and_dispose():
	emitter = EventEmitter()
	once, always = [], []
	emitter.once(PING, once.append)
	subscription = emitter.on(PING, always.append)

	emitter.emit(PING, 1)
	emitter.emit(PING, 2)
	await delivered()
	subscription.dispose()
	emitter.emit(PING, 3)
	await delivered()

	assert once == [1]
	assert always == [1, 2]
	assert not subscription.active
	assert emitter.listener_count(PING) == 0


async def test_failing_handler_does_not_stop_others(caplog):
	emitter = EventEmitter()
	received = []

	def broken(value):
		raise RuntimeError('handler bug')

	emitter.on(PING, broken)
	emitter.on(PING, received.append)
	with caplog.at_level(logging.ERROR):
		emitter.emit(PING, 7)
		await delivered()

	assert received == [7]
	assert 'handler bug' in caplog.text


async def test_coroutine_handlers_are_scheduled():
	emitter = EventEmitter()
	received = []

	async def handler(value):
		await asyncio.sleep(0)
		received.append(value)

	emitter.on(PING, handler)
	emitter.emit(PING, 1)
	assert received == []
	await delivered()
	assert received == [1]


async def test_waiter_times_out_with_logs():
	waiter = Waiter('test.wait')
	waiter.log('waiting for ping')
	waiter.reject_on_timeout(20, 'Timeout 20ms exceeded.')
	waiter.wait_for_event(EventEmitter(), PING)

	with pytest.raises(TimeoutError) as exc_info:
		await waiter.result()
	assert 'Timeout 20ms exceeded.' in exc_info.value.message
	assert 'waiting for ping' in exc_info.value.message


async def test_waiter_releases_subscriptions():
	emitter = EventEmitter()
	waiter = Waiter('test.wait')
	waiter.wait_for_event(emitter, PING, lambda value: value > 1)
	waiter.reject_on_event(emitter, Event('boom'), Error('boom'))

	emitter.emit(PING, 1)
	emitter.emit(PING, 2)

	assert await waiter.result() == 2
	assert emitter.listener_count(PING) == 0


async def test_predicate_error_rejects_waiter():
	emitter = EventEmitter()
	waiter = Waiter('test.wait')
	waiter.wait_for_event(emitter, PING, lambda value: 1 / value > 0)

	emitter.emit(PING, 0)
	with pytest.raises(ZeroDivisionError):
		await waiter.result()


async def test_page_wait_for_event_times_out(page):
	with pytest.raises(TimeoutError, match='Timeout 30ms exceeded while waiting for event "popup"'):
		await page.wait_for_event(PageEvent.POPUP, timeout=30)


async def test_page_default_timeout_applies_to_waits(page):
	page.set_default_timeout(25)
	with pytest.raises(TimeoutError, match='25ms'):
		await page.wait_for_event(PageEvent.DOWNLOAD)


async def test_page_close_rejects_pending_wait(page):
	waiting = asyncio.create_task(page.wait_for_event(PageEvent.POPUP))
	await asyncio.sleep(0)
	await page.close(reason='done')

	with pytest.raises(TargetClosedError, match='done'):
		await waiting


async def test_page_crash_rejects_pending_wait(page, driver: FakeDriver):
	waiting = asyncio.create_task(page.wait_for_event(PageEvent.DOWNLOAD))
	await asyncio.sleep(0)
	driver.emit(page.guid, 'crash')

	with pytest.raises(Error, match='Page crashed'):
		await waiting


async def test_expect_event_cancels_wait_when_body_raises(page):
	with pytest.raises(RuntimeError):
		async with page.expect_event(PageEvent.POPUP) as popup_info:
			raise RuntimeError('click failed')
	await asyncio.sleep(0)
	assert popup_info.is_done()
	assert page.listener_count(PageEvent.POPUP) == 0


async def test_expect_event_with_predicate(context, page, driver: FakeDriver):
	async with page.expect_request(lambda request: request.method == 'POST') as request_info:
		for method in ('GET', 'POST'):
			request = driver.create_request(page.main_frame.guid, 'https://example.com/api', method)
			driver.emit(context.guid, 'request', {'request': ref(request), 'page': ref(page.guid)})

	request = await request_info.value
	assert request.method == 'POST'


async def test_file_chooser_listener_toggles_interception(page, driver: FakeDriver):
	subscription = page.on(PageEvent.FILE_CHOOSER, lambda chooser: None)
	await asyncio.sleep(0)
	subscription.dispose()
	await asyncio.sleep(0)

	calls = driver.calls('Page.setFileChooserInterceptedNoReply')
	assert [call['params'] for call in calls] == [{'intercepted': True}, {'intercepted': False}]


async def test_console_messages_reach_context_and_page(context, page, driver: FakeDriver):
	context_messages, page_messages = [], []
	context.on(ContextEvent.CONSOLE, context_messages.append)
	page.on(PageEvent.CONSOLE, page_messages.append)

	handle = driver.create(page.guid, 'JSHandle', {'preview': '42'})
	driver.emit(
		context.guid,
		'console',
		{
			'type': 'warning',
			'text': 'low disk 42',
			'args': [ref(handle)],
			'location': {'url': 'https://example.com/app.js', 'lineNumber': 10, 'columnNumber': 4},
			'page': ref(page.guid),
		},
	)
	await delivered()

	message = page_messages[0]
	assert context_messages == [message]
	assert message.type == 'warning'
	assert str(message) == 'low disk 42'
	assert message.args == [page._connection.get_object(handle)]
	assert message.location['lineNumber'] == 10
	assert message.page is page


async def test_console_type_is_one_of_the_fixed_tags(context, page, driver: FakeDriver):
	tags = get_args(ConsoleMessageType)
	assert len(tags) == 18
	assert {'log', 'warning', 'startGroupCollapsed', 'endGroup', 'assert', 'timeEnd'} <= set(tags)

	seen = []
	page.on(PageEvent.CONSOLE, lambda message: seen.append(message.type))
	for tag in tags:
		driver.emit(context.guid, 'console', {'type': tag, 'text': tag, 'args': [], 'page': ref(page.guid)})
	await delivered()

	assert seen == list(tags)


async def test_uncaught_page_errors(context, page, driver: FakeDriver):
	web_errors, page_errors = [], []
	context.on(ContextEvent.WEB_ERROR, web_errors.append)
	page.on(PageEvent.PAGE_ERROR, page_errors.append)

	driver.emit(
		context.guid,
		'pageError',
		{'error': {'error': {'name': 'TypeError', 'message': 'cart is undefined', 'stack': 'at app.js:3'}}, 'page': ref(page.guid)},
	)
	await delivered()

	error = page_errors[0]
	assert isinstance(error, Error)
	assert error.name == 'TypeError'
	assert error.message == 'cart is undefined'
	assert web_errors[0].page is page
	assert web_errors[0].error is error


async def test_web_socket_frames_and_close(page, driver: FakeDriver):
	sockets = []
	page.on(PageEvent.WEB_SOCKET, sockets.append)
	guid = driver.create(page.guid, 'WebSocket', {'url': 'wss://example.com/live'})
	driver.emit(page.guid, 'webSocket', {'webSocket': ref(guid)})
	await delivered()

	socket = sockets[0]
	assert socket.url == 'wss://example.com/live'
	sent, received, closed = [], [], []
	socket.on(WebSocketEvent.FRAME_SENT, sent.append)
	socket.on(WebSocketEvent.FRAME_RECEIVED, received.append)
	socket.on(WebSocketEvent.CLOSE, closed.append)

	driver.emit(guid, 'frameSent', {'opcode': 1, 'data': 'subscribe:prices'})
	driver.emit(guid, 'frameReceived', {'opcode': 2, 'data': base64.b64encode(b'\x00\x01').decode()})
	driver.emit(guid, 'close')
	await delivered()

	assert sent == ['subscribe:prices']
	assert received == [b'\x00\x01']
	assert closed == [socket]
	assert socket.is_closed()


async def test_web_socket_close_rejects_frame_wait(page, driver: FakeDriver):
	guid = driver.create(page.guid, 'WebSocket', {'url': 'wss://example.com/live'})
	driver.emit(page.guid, 'webSocket', {'webSocket': ref(guid)})
	socket = page._connection.get_object(guid)

	waiting = asyncio.create_task(socket.wait_for_event(WebSocketEvent.FRAME_RECEIVED, timeout=1000))
	await asyncio.sleep(0)
	driver.emit(guid, 'close')

	with pytest.raises(Error, match='Socket closed'):
		await waiting
