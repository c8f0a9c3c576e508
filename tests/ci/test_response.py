"""
Tests for Request and Response: status semantics, header views, body caching and
parsing, and the request lifecycle notifications.
"""

import asyncio
import base64

import pytest
from conftest import DriverError, FakeDriver, delivered, ref

from browser_client.events import PageEvent
from browser_client.exceptions import Error, ResponseParseError


def make_response(driver: FakeDriver, page, status: int = 200, headers=None, url: str = 'https://example.com/data'):
	request = driver.create_request(page.main_frame.guid, url)
	guid = driver.create_response(request, status=status, headers=headers)
	return page._connection.get_object(guid)


@pytest.mark.parametrize('status,ok', [(199, False), (200, True), (204, True), (299, True), (300, False), (404, False)])
async def test_ok_covers_2xx_only(page, driver: FakeDriver, status, ok):
	response = make_response(driver, page, status=status)
	assert response.ok is ok
	assert response.status == status


async def test_headers_join_duplicates(page, driver: FakeDriver):
	response = make_response(
		driver,
		page,
		headers=[
			{'name': 'Content-Type', 'value': 'text/html'},
			{'name': 'Vary', 'value': 'Accept'},
			{'name': 'vary', 'value': 'Origin'},
			{'name': 'Set-Cookie', 'value': 'a=1'},
			{'name': 'Set-Cookie', 'value': 'b=2'},
		],
	)
	headers = response.headers
	assert headers['content-type'] == 'text/html'
	assert headers['vary'] == 'Accept, Origin'
	assert headers['set-cookie'] == 'a=1\nb=2'


async def test_raw_headers_keep_order_and_case(page, driver: FakeDriver):
	raw = [{'name': 'X-One', 'value': '1'}, {'name': 'x-one', 'value': '2'}]
	driver.handlers['Response.rawResponseHeaders'] = lambda message: {'headers': raw}
	response = make_response(driver, page)

	assert await response.headers_array() == raw
	assert await response.header_value('X-ONE') == '1, 2'
	assert await response.header_values('x-one') == ['1', '2']
	# Fetched once
	await response.all_headers()
	assert len(driver.calls('Response.rawResponseHeaders')) == 1


async def test_body_is_fetched_once(page, driver: FakeDriver):
	driver.handlers['Response.body'] = lambda message: {'binary': base64.b64encode(b'{"items": [1, 2]}').decode()}
	response = make_response(driver, page)

	first, second = await asyncio.gather(response.body(), response.body())
	assert first == second == b'{"items": [1, 2]}'
	assert await response.text() == '{"items": [1, 2]}'
	assert await response.json() == {'items': [1, 2]}
	assert len(driver.calls('Response.body')) == 1


async def test_invalid_json_raises_parse_error(page, driver: FakeDriver):
	driver.handlers['Response.body'] = lambda message: {'binary': base64.b64encode(b'<html>').decode()}
	response = make_response(driver, page)

	with pytest.raises(ResponseParseError):
		await response.json()


async def test_undecodable_body_is_a_parse_error(page, driver: FakeDriver):
	driver.handlers['Response.body'] = lambda message: {'binary': base64.b64encode(b'\xff\xfe\x00').decode()}
	response = make_response(driver, page)

	assert (await response.text()).startswith('��')
	with pytest.raises(ResponseParseError, match='as JSON'):
		await response.json()


async def test_failed_body_fetch_can_be_retried(page, driver: FakeDriver):
	attempts = []

	def body(message):
		attempts.append(message)
		if len(attempts) == 1:
			raise DriverError('Response body is unavailable for redirect responses')
		return {'binary': base64.b64encode(b'ok').decode()}

	driver.handlers['Response.body'] = body
	response = make_response(driver, page)

	with pytest.raises(Error, match='unavailable'):
		await response.body()
	assert await response.body() == b'ok'


async def test_request_lifecycle_events(context, page, driver: FakeDriver):
	events = []
	page.on(PageEvent.REQUEST, lambda request: events.append(('request', request.url)))
	page.on(PageEvent.RESPONSE, lambda response: events.append(('response', response.status)))
	page.on(PageEvent.REQUEST_FINISHED, lambda request: events.append(('finished', request.url)))

	request = driver.create_request(page.main_frame.guid, 'https://example.com/')
	driver.emit(context.guid, 'request', {'request': ref(request), 'page': ref(page.guid)})
	response_guid = driver.create_response(request)
	driver.emit(context.guid, 'response', {'response': ref(response_guid), 'page': ref(page.guid)})
	driver.emit(
		context.guid,
		'requestFinished',
		{'request': ref(request), 'response': ref(response_guid), 'responseEndTiming': 42.5, 'page': ref(page.guid)},
	)
	await delivered()

	assert events == [('request', 'https://example.com/'), ('response', 200), ('finished', 'https://example.com/')]
	response = page._connection.get_object(response_guid)
	driver.handlers['Request.response'] = lambda message: {'response': ref(response_guid)}
	assert await response.finished() is None
	assert response.request.timing['responseEnd'] == 42.5
	assert await response.request.response() is response


async def test_failed_request_reports_failure(context, page, driver: FakeDriver):
	failed = []
	page.on(PageEvent.REQUEST_FAILED, failed.append)

	request = driver.create_request(page.main_frame.guid, 'https://example.com/broken')
	driver.emit(
		context.guid, 'requestFailed', {'request': ref(request), 'failureText': 'net::ERR_FAILED', 'page': ref(page.guid)}
	)
	await delivered()

	assert failed[0].failure == 'net::ERR_FAILED'


async def test_redirect_chain(page, driver: FakeDriver):
	first = driver.create_request(page.main_frame.guid, 'http://example.com/')
	second = driver.create_request(page.main_frame.guid, 'https://example.com/', redirectedFrom=ref(first))

	first_request = page._connection.get_object(first)
	second_request = page._connection.get_object(second)
	assert second_request.redirected_from is first_request
	assert first_request.redirected_to is second_request


async def test_post_data_views(page, driver: FakeDriver):
	form = driver.create_request(
		page.main_frame.guid,
		'https://example.com/login',
		'POST',
		postData=base64.b64encode(b'user=ada&role=admin').decode(),
		headers=[{'name': 'Content-Type', 'value': 'application/x-www-form-urlencoded'}],
	)
	request = page._connection.get_object(form)
	assert request.post_data == 'user=ada&role=admin'
	assert request.post_data_json == {'user': 'ada', 'role': 'admin'}

	api = driver.create_request(page.main_frame.guid, 'https://example.com/api', 'POST', postData=base64.b64encode(b'{"a": 1}').decode())
	assert page._connection.get_object(api).post_data_json == {'a': 1}


async def test_expect_response_by_glob(context, page, driver: FakeDriver):
	async with page.expect_response('**/api/*') as response_info:
		for url in ('https://example.com/style.css', 'https://example.com/api/items'):
			request = driver.create_request(page.main_frame.guid, url)
			response = driver.create_response(request)
			driver.emit(context.guid, 'response', {'response': ref(response), 'page': ref(page.guid)})

	response = await response_info.value
	assert response.url == 'https://example.com/api/items'
