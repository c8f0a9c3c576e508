"""
Tests for custom selector engine registration.
"""

import asyncio

import pytest
from conftest import DriverError, FakeDriver

from browser_client.exceptions import Error

ENGINE = '({ query(root, selector) { return root.querySelector(selector); }, queryAll(root, selector) { return [...root.querySelectorAll(selector)]; } })'


async def test_register_engine(client, driver: FakeDriver):
	await client.selectors.register('tag', ENGINE, content_script=True)

	register = driver.calls('Selectors.register')[0]['params']
	assert register == {'name': 'tag', 'source': ENGINE, 'contentScript': True}


async def test_register_from_file(client, driver: FakeDriver, tmp_path):
	script = tmp_path / 'engine.js'
	script.write_text(ENGINE)

	await client.selectors.register('from-file', path=script)

	source = driver.calls('Selectors.register')[0]['params']['source']
	assert source.startswith(ENGINE)
	assert source.endswith(f'//# sourceURL={script.as_posix()}')


async def test_duplicate_name_is_rejected(client, driver: FakeDriver):
	await client.selectors.register('tag', ENGINE)
	with pytest.raises(Error, match='already registered'):
		await client.selectors.register('tag', ENGINE)
	assert len(driver.calls('Selectors.register')) == 1


async def test_concurrent_duplicate_is_rejected(client, driver: FakeDriver):
	results = await asyncio.gather(
		client.selectors.register('tag', ENGINE), client.selectors.register('tag', ENGINE), return_exceptions=True
	)
	assert results[0] is None
	assert isinstance(results[1], Error)


@pytest.mark.parametrize('name', ['has space', 'semi;colon', 'dot.name', ''])
async def test_invalid_names(client, name):
	with pytest.raises(Error, match='may only contain'):
		await client.selectors.register(name, ENGINE)


async def test_failed_registration_releases_name(client, driver: FakeDriver):
	def reject(message):
		raise DriverError('SyntaxError in selector engine')

	driver.handlers['Selectors.register'] = reject
	with pytest.raises(Error, match='SyntaxError'):
		await client.selectors.register('broken', '({')

	del driver.handlers['Selectors.register']
	await client.selectors.register('broken', ENGINE)


async def test_set_test_id_attribute(client, driver: FakeDriver):
	client.selectors.set_test_id_attribute('data-qa')
	await asyncio.sleep(0)
	assert driver.calls('Selectors.setTestIdAttributeName')[0]['params'] == {'testIdAttributeName': 'data-qa'}
