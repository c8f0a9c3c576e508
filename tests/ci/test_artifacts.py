"""
Tests for downloads and other driver-produced files, locally and over a remote connection.
"""

import base64

import pytest
from conftest import FakeDriver, delivered, ref

from browser_client.events import PageEvent
from browser_client.exceptions import Error
from browser_client.transport.connection import Connection


def start_download(driver: FakeDriver, page, path: str = '/tmp/driver/downloads/abc') -> str:
	artifact = driver.create(page.guid, 'Artifact', {'absolutePath': path})
	driver.emit(
		page.guid,
		'download',
		{'url': 'https://example.com/report.csv', 'suggestedFilename': 'report.csv', 'artifact': ref(artifact)},
	)
	return artifact


async def test_expect_download_and_save(page, driver: FakeDriver, tmp_path):
	driver.handlers['Artifact.pathAfterFinished'] = lambda message: {'value': '/tmp/driver/downloads/abc'}

	async with page.expect_download() as download_info:
		start_download(driver, page)
	download = await download_info.value

	assert download.url == 'https://example.com/report.csv'
	assert download.suggested_filename == 'report.csv'
	assert download.page is page
	assert str(await download.path()) == '/tmp/driver/downloads/abc'

	await download.save_as(tmp_path / download.suggested_filename)
	assert driver.calls('Artifact.saveAs')[0]['params'] == {'path': str((tmp_path / 'report.csv').absolute())}


async def test_download_failure_and_cancel(page, driver: FakeDriver):
	driver.handlers['Artifact.failure'] = lambda message: {'error': 'canceled'}
	downloads = []
	page.on(PageEvent.DOWNLOAD, downloads.append)
	start_download(driver, page)
	await delivered()

	await downloads[0].cancel()
	assert await downloads[0].failure() == 'canceled'
	assert len(driver.calls('Artifact.cancel')) == 1


async def test_artifact_outlives_its_context(context, page, driver: FakeDriver, tmp_path):
	downloads = []
	page.on(PageEvent.DOWNLOAD, downloads.append)
	start_download(driver, page)
	await delivered()

	await context.close()
	await downloads[0].save_as(tmp_path / 'after-close.csv')

	assert len(driver.calls('Artifact.saveAs')) == 1


async def test_remote_download_has_no_path_but_can_be_saved(tmp_path):
	driver = FakeDriver(pre_launched_browser=True)
	connection = Connection(driver, is_remote=True)
	client = await connection.run()
	browser = client.initializer['preLaunchedBrowser']
	page = await browser.new_page()

	chunks = iter([base64.b64encode(b'a,b\n1,2\n').decode(), None])
	driver.handlers['Artifact.saveAsStream'] = lambda message: {'stream': ref(driver.create(message['guid'], 'Stream', {}))}
	driver.handlers['Stream.read'] = lambda message: {'binary': next(chunks)}

	downloads = []
	page.on(PageEvent.DOWNLOAD, downloads.append)
	start_download(driver, page)
	await delivered()
	download = downloads[0]

	with pytest.raises(Error, match='not available when connecting remotely'):
		await download.path()

	await download.save_as(tmp_path / 'nested' / 'report.csv')
	assert (tmp_path / 'nested' / 'report.csv').read_bytes() == b'a,b\n1,2\n'
	assert driver.calls('Artifact.saveAs') == []
	await connection.stop()


async def test_disposed_artifact_fails(page, driver: FakeDriver):
	downloads = []
	page.on(PageEvent.DOWNLOAD, downloads.append)
	artifact = start_download(driver, page)
	driver.dispose(artifact)
	await delivered()

	with pytest.raises(Error, match='disposed'):
		await downloads[0].save_as('/tmp/never.csv')
