"""
Lifecycle of browsers, contexts and pages: closing cascades down the tree, closed
handles fail with TargetClosedError, disconnect fires once, and files recorded by a
context (HAR, video) are written on close.
"""

import asyncio

import pytest
from conftest import FakeDriver, delivered, ref

from browser_client.browser.browser_type import BrowserType
from browser_client.events import BrowserEvent, ContextEvent, PageEvent
from browser_client.exceptions import Error, TargetClosedError


async def test_browser_close_closes_contexts_and_pages(browser, context, page, driver: FakeDriver):
	await browser.close()

	assert not browser.is_connected()
	assert context not in browser.contexts
	assert page.is_closed()
	assert context.pages == []

	with pytest.raises(TargetClosedError):
		await page.title()
	with pytest.raises(TargetClosedError):
		await context.cookies()
	with pytest.raises(TargetClosedError, match='Browser has been closed'):
		await browser.new_context()


async def test_disconnected_fires_exactly_once(browser, driver: FakeDriver):
	disconnected = []
	browser.on(BrowserEvent.DISCONNECTED, disconnected.append)

	await browser.close()
	# A late close notification and a second close() change nothing
	driver.emit(browser.guid, 'close')
	await browser.close()
	await delivered()

	assert disconnected == [browser]


async def test_connection_loss_disconnects_browser(browser, page, driver: FakeDriver):
	disconnected = []
	browser.on(BrowserEvent.DISCONNECTED, disconnected.append)

	driver._notify_closed('Browser process exited')
	await delivered()

	assert disconnected == [browser]
	assert page.is_closed()
	with pytest.raises(TargetClosedError, match='Browser process exited'):
		await page.goto('https://example.com')


async def test_close_reason_is_reported_to_later_calls(context, page):
	await context.close(reason='test finished')

	with pytest.raises(TargetClosedError, match='test finished'):
		await page.title()


async def test_context_close_is_idempotent(context, driver: FakeDriver):
	closed = []
	context.on(ContextEvent.CLOSE, closed.append)

	await context.close()
	await context.close()
	await delivered()

	assert closed == [context]
	assert len(driver.calls('BrowserContext.close')) == 1


async def test_context_close_tolerates_already_closed_target(context, driver: FakeDriver):
	driver.emit(context.guid, 'close')
	await context.close()
	assert driver.calls('BrowserContext.close') == []


async def test_page_close_emits_close_once(page):
	closed = []
	page.on(PageEvent.CLOSE, closed.append)

	await page.close()
	await page.close()
	await delivered()

	assert closed == [page]
	assert page not in page.context.pages


async def test_page_close_with_before_unload_propagates_target_closed(page, driver: FakeDriver):
	from conftest import DriverError

	def closed(message):
		raise DriverError('Target page, context or browser has been closed')

	driver.handlers['Page.close'] = closed
	# Without run_before_unload the error is swallowed
	await page.close()
	with pytest.raises(TargetClosedError):
		await page.close(run_before_unload=True)


async def test_browser_new_page_owns_its_context(browser, driver: FakeDriver):
	page = await browser.new_page()
	context = page.context

	with pytest.raises(Error, match='Please use browser.new_context'):
		await context.new_page()

	await page.close()

	assert len(driver.calls('BrowserContext.close')) == 1
	assert context not in browser.contexts


async def test_popup_is_emitted_on_opener(context, page, driver: FakeDriver):
	popups = []
	page.on(PageEvent.POPUP, popups.append)

	frame = driver.create(context.guid, 'Frame', {'url': 'about:blank', 'name': '', 'loadStates': []})
	popup_guid = driver.create(
		context.guid, 'Page', {'mainFrame': ref(frame), 'opener': ref(page.guid), 'viewportSize': None, 'isClosed': False}
	)
	driver.emit(context.guid, 'page', {'page': ref(popup_guid)})
	await delivered()

	popup = context.pages[-1]
	assert popups == [popup]
	assert await popup.opener() is page

	await page.close()
	assert await popup.opener() is None


async def test_har_is_exported_before_context_closes(browser, driver: FakeDriver, tmp_path):
	har_path = tmp_path / 'network.har'
	driver.handlers['BrowserContext.harStart'] = lambda message: {'harId': 'har-1'}

	def har_export(message):
		artifact = driver.create(message['guid'], 'Artifact', {'absolutePath': '/tmp/driver/har-1.har'})
		return {'artifact': ref(artifact)}

	driver.handlers['BrowserContext.harExport'] = har_export

	context = await browser.new_context(record_har_path=har_path)
	har_start = driver.calls('BrowserContext.harStart')[0]
	assert har_start['params']['options']['content'] == 'embed'
	assert 'path' not in har_start['params']['options']

	await context.close()

	export = driver.calls('BrowserContext.harExport')[0]
	assert export['params'] == {'harId': 'har-1'}
	save = driver.calls('Artifact.saveAs')[0]
	assert save['params']['path'] == str(har_path.absolute())
	assert len(driver.calls('Artifact.delete')) == 1

	order = [m['method'] for m in driver.sent if m['method'] in ('harExport', 'saveAs', 'close')]
	assert order == ['harExport', 'saveAs', 'close']


async def test_attached_har_content_is_unzipped(browser, driver: FakeDriver, tmp_path):
	har_path = tmp_path / 'network.har'
	driver.handlers['BrowserContext.harStart'] = lambda message: {'harId': 'har-1'}
	driver.handlers['BrowserContext.harExport'] = lambda message: {
		'artifact': ref(driver.create(message['guid'], 'Artifact', {'absolutePath': '/tmp/driver/har-1.zip'}))
	}

	context = await browser.new_context(record_har_path=har_path, record_har_content='attach')
	await context.close()

	assert driver.calls('Artifact.saveAs')[0]['params']['path'] == str(har_path) + '.tmp'
	unzip = driver.calls('LocalUtils.harUnzip')[0]
	assert unzip['params'] == {'zipFile': str(har_path) + '.tmp', 'harFile': str(har_path)}


async def test_video_is_none_without_recording(page):
	assert page.video is None


async def test_video_is_saved_on_context_close(browser, driver: FakeDriver, tmp_path):
	context = await browser.new_context(record_video_dir=tmp_path)
	new_context = driver.calls('Browser.newContext')[0]
	assert new_context['params']['recordVideo']['dir'] == str(tmp_path.absolute())

	page = await context.new_page()
	video_file = str(tmp_path / 'abc.webm')
	artifact = driver.create(page.guid, 'Artifact', {'absolutePath': video_file})
	driver.emit(page.guid, 'video', {'artifact': ref(artifact)})
	driver.handlers['Artifact.pathAfterFinished'] = lambda message: {'value': video_file}

	assert await page.video.path() == tmp_path / 'abc.webm'
	await context.close()

	# Closing the context waits for the recording to be finalized
	assert len(driver.calls('Artifact.pathAfterFinished')) == 1


async def test_concurrent_close_waits_for_video(browser, driver: FakeDriver, tmp_path):
	context = await browser.new_context(record_video_dir=tmp_path)
	page = await context.new_page()
	artifact = driver.create(page.guid, 'Artifact', {'absolutePath': str(tmp_path / 'slow.webm')})
	driver.emit(page.guid, 'video', {'artifact': ref(artifact)})

	finished = asyncio.Event()

	async def path_after_finished(message):
		await finished.wait()
		return {'value': str(tmp_path / 'slow.webm')}

	driver.handlers['Artifact.pathAfterFinished'] = path_after_finished

	first = asyncio.create_task(context.close())
	await asyncio.sleep(0.01)
	second = asyncio.create_task(context.close())
	await asyncio.sleep(0.01)
	assert not first.done()
	assert not second.done()

	finished.set()
	await asyncio.gather(first, second)
	assert len(driver.calls('BrowserContext.close')) == 1
	assert len(driver.calls('Artifact.pathAfterFinished')) == 1


async def test_remote_connect_uses_pre_launched_browser(client, monkeypatch):
	remote = FakeDriver(pre_launched_browser=True)
	created = {}

	def fake_transport(ws_endpoint, headers=None, timeout=None):
		created.update(endpoint=ws_endpoint, headers=headers)
		return remote

	monkeypatch.setattr('browser_client.browser.browser_type.WebSocketTransport', fake_transport)

	browser = await client.chromium.connect('ws://grid:3000/chromium', headers={'x-token': 'abc'})

	assert created['endpoint'] == 'ws://grid:3000/chromium'
	assert created['headers'] == {'x-playwright-browser': 'chromium', 'x-token': 'abc'}
	assert isinstance(browser.browser_type, BrowserType)
	assert browser._connection.is_remote

	await browser.close()
	assert not browser.is_connected()
	assert remote._closed
	assert remote.calls('Browser.close') == []


async def test_remote_connect_without_browser_is_malformed(client, monkeypatch):
	monkeypatch.setattr(
		'browser_client.browser.browser_type.WebSocketTransport', lambda ws_endpoint, headers=None, timeout=None: FakeDriver()
	)
	with pytest.raises(Error, match='Malformed endpoint'):
		await client.chromium.connect('ws://grid:3000/')


async def test_connect_over_cdp_is_chromium_only(client):
	with pytest.raises(Error, match='only supported in Chromium'):
		await client.firefox.connect_over_cdp('http://localhost:9222')


async def test_wait_for_context_close(context):
	waiter = asyncio.create_task(context.wait_for_event(ContextEvent.CLOSE))
	await asyncio.sleep(0)
	await context.close()
	assert await waiter is context
