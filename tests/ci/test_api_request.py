"""
Tests for the HTTP client outside the browser, against a local pytest-httpserver.

Standalone contexts keep their own cookie jar; `BrowserContext.request` shares
cookies with the browser context through the driver.
"""

import json

import pytest
from conftest import FakeDriver
from pytest_httpserver import HTTPServer

from browser_client.exceptions import Error, ResponseParseError
from browser_client.network.api_request import APIRequest


@pytest.fixture
async def api(httpserver: HTTPServer):
	context = await APIRequest().new_context(base_url=httpserver.url_for('/'))
	yield context
	await context.dispose()


async def test_get_json_relative_to_base_url(api, httpserver: HTTPServer):
	httpserver.expect_request('/items', query_string='page=2').respond_with_json({'items': [1, 2]})

	response = await api.get('/items', params={'page': 2})

	assert response.ok
	assert response.status == 200
	assert response.headers['content-type'] == 'application/json'
	assert await response.json() == {'items': [1, 2]}
	assert response.url == httpserver.url_for('/items') + '?page=2'


async def test_dict_data_is_sent_as_json(api, httpserver: HTTPServer):
	httpserver.expect_request('/users', method='POST', json={'name': 'Ada'}).respond_with_data('created', status=201)

	response = await api.post('/users', data={'name': 'Ada'})

	assert response.status == 201
	assert await response.text() == 'created'


async def test_form_is_url_encoded(api, httpserver: HTTPServer):
	httpserver.expect_request('/login', method='POST', data='user=ada&remember=true').respond_with_data('ok')

	response = await api.post('/login', form={'user': 'ada', 'remember': True})
	assert await response.text() == 'ok'


async def test_only_one_body_kind_allowed(api):
	with pytest.raises(Error, match='Only one of'):
		await api.post('/x', data='a', form={'b': '1'})


async def test_fail_on_status_code(api, httpserver: HTTPServer):
	httpserver.expect_request('/broken').respond_with_data('boom', status=500)

	with pytest.raises(Error, match='500'):
		await api.get('/broken', fail_on_status_code=True)

	response = await api.get('/broken')
	assert not response.ok
	assert response.status_text == 'Internal Server Error'


async def test_redirects_can_be_disabled(api, httpserver: HTTPServer):
	httpserver.expect_request('/old').respond_with_data('', status=302, headers={'Location': '/new'})
	httpserver.expect_request('/new').respond_with_data('moved here')

	followed = await api.get('/old')
	assert await followed.text() == 'moved here'

	not_followed = await api.get('/old', max_redirects=0)
	assert not_followed.status == 302
	assert not_followed.headers['location'] == '/new'


async def test_invalid_json_raises_parse_error(api, httpserver: HTTPServer):
	httpserver.expect_request('/html').respond_with_data('<html></html>', content_type='text/html')

	response = await api.get('/html')
	with pytest.raises(ResponseParseError):
		await response.json()


async def test_extra_headers_and_user_agent(httpserver: HTTPServer):
	httpserver.expect_request('/whoami', headers={'x-api-key': 'secret', 'user-agent': 'tests/1.0'}).respond_with_data('you')

	async with await APIRequest().new_context(extra_http_headers={'x-api-key': 'secret'}, user_agent='tests/1.0') as api:
		response = await api.get(httpserver.url_for('/whoami'))
		assert await response.text() == 'you'


async def test_dispose_invalidates_context_and_bodies(httpserver: HTTPServer):
	httpserver.expect_request('/data').respond_with_data('payload')
	api = await APIRequest().new_context()
	response = await api.get(httpserver.url_for('/data'))

	await api.dispose(reason='suite finished')

	with pytest.raises(Error, match='suite finished'):
		await response.body()
	with pytest.raises(Error, match='disposed'):
		await api.get(httpserver.url_for('/data'))


async def test_disposed_response_body_fails(api, httpserver: HTTPServer):
	httpserver.expect_request('/data').respond_with_data('payload')
	response = await api.get('/data')
	await response.dispose()
	with pytest.raises(Error, match='Response has been disposed'):
		await response.text()


async def test_standalone_storage_state(api, httpserver: HTTPServer, tmp_path):
	httpserver.expect_request('/session').respond_with_data('', headers={'Set-Cookie': 'sid=abc123; Path=/'})
	await api.get('/session')

	path = tmp_path / 'state' / 'storage.json'
	state = await api.storage_state(path=path)

	assert [(cookie['name'], cookie['value']) for cookie in state['cookies']] == [('sid', 'abc123')]
	assert json.loads(path.read_text()) == state


async def test_context_request_shares_browser_cookies(context, driver: FakeDriver, httpserver: HTTPServer):
	driver.handlers['BrowserContext.cookies'] = lambda message: {
		'cookies': [{'name': 'sid', 'value': 'from-browser', 'domain': 'localhost', 'path': '/'}]
	}
	httpserver.expect_request('/me', headers={'cookie': 'sid=from-browser'}).respond_with_data(
		'hi', headers={'Set-Cookie': 'theme=dark; Path=/'}
	)

	response = await context.request.get(httpserver.url_for('/me'))

	assert await response.text() == 'hi'
	assert driver.calls('BrowserContext.cookies')[0]['params'] == {'urls': [httpserver.url_for('/me')]}
	added = driver.calls('BrowserContext.addCookies')[0]['params']['cookies']
	assert added[0]['name'] == 'theme'
	assert added[0]['value'] == 'dark'


async def test_context_request_is_disposed_with_context(context):
	request = context.request
	await context.close()
	with pytest.raises(Error, match='disposed'):
		await request.get('http://localhost/')
