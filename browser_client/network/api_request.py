"""HTTP requests outside the browser, for API testing and test setup.

`APIRequestContext` is backed by `httpx.AsyncClient`. A context created by
`client.request.new_context()` keeps its own cookie jar; `BrowserContext.request`
reads and writes the browser context's cookies instead, so logging in through
the API also logs in the pages.
"""

import json
import logging
from http.cookiejar import Cookie as JarCookie
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union, cast

import httpx

from browser_client.browser.views import (
	Cookie,
	FilePayload,
	HttpCredentials,
	SetCookieParam,
	StorageState,
)
from browser_client.config import CONFIG
from browser_client.exceptions import Error, ResponseParseError, TimeoutError
from browser_client.network.headers import RawHeaders
from browser_client.network.views import HeaderEntry
from browser_client.utils import resolve_url

if TYPE_CHECKING:
	from browser_client.browser.context import BrowserContext
	from browser_client.network.request import Request

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 20


class APIResponse:
	"""Response of an `APIRequestContext` call. The body is read eagerly and kept until `dispose()`."""

	def __init__(self, context: 'APIRequestContext', response: httpx.Response) -> None:
		self._context = context
		self._response = response
		self._raw_headers = RawHeaders([{'name': name, 'value': value} for name, value in response.headers.multi_items()])
		self._disposed = False

	def __repr__(self) -> str:
		return f'<APIResponse url={self.url!r} status={self.status}>'

	@property
	def ok(self) -> bool:
		return 200 <= self.status <= 299

	@property
	def url(self) -> str:
		return str(self._response.url)

	@property
	def status(self) -> int:
		return self._response.status_code

	@property
	def status_text(self) -> str:
		return self._response.reason_phrase

	@property
	def headers(self) -> dict[str, str]:
		return self._raw_headers.headers()

	@property
	def headers_array(self) -> list[HeaderEntry]:
		return self._raw_headers.headers_array()

	async def body(self) -> bytes:
		if self._disposed:
			raise Error('Response has been disposed')
		if self._context._disposed:
			raise Error(f'Request context has been disposed: {self._context._close_reason or "disposed"}')
		return self._response.content

	async def text(self) -> str:
		content = await self.body()
		return content.decode(self._response.encoding or 'utf-8', errors='replace')

	async def json(self) -> Any:
		content = await self.text()
		try:
			return json.loads(content)
		except json.JSONDecodeError as e:
			raise ResponseParseError(f'Failed to parse response body of {self.url} as JSON: {e}') from e

	async def dispose(self) -> None:
		self._disposed = True


class APIRequestContext:
	def __init__(
		self,
		*,
		base_url: str | None = None,
		extra_http_headers: dict[str, str] | None = None,
		http_credentials: HttpCredentials | dict[str, Any] | None = None,
		ignore_https_errors: bool | None = None,
		timeout: float | None = None,
		user_agent: str | None = None,
		storage_state: StorageState | str | Path | None = None,
		browser_context: Union['BrowserContext', None] = None,
	) -> None:
		self._base_url = base_url
		self._timeout = timeout
		self._browser_context = browser_context
		self._disposed = False
		self._close_reason: str | None = None

		headers = dict(extra_http_headers or {})
		if user_agent:
			headers['user-agent'] = user_agent
		auth: httpx.Auth | None = None
		if http_credentials is not None:
			credentials = HttpCredentials.model_validate(http_credentials)
			auth = httpx.BasicAuth(credentials.username, credentials.password)

		self._client = httpx.AsyncClient(
			headers=headers,
			auth=auth,
			verify=not ignore_https_errors,
			max_redirects=DEFAULT_MAX_REDIRECTS,
		)
		if storage_state is not None:
			state = storage_state if isinstance(storage_state, StorageState) else StorageState.load(storage_state)
			for cookie in state.cookies:
				self._client.cookies.set(cookie.name, cookie.value, domain=cookie.domain, path=cookie.path)

	async def __aenter__(self) -> 'APIRequestContext':
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		await self.dispose()

	async def dispose(self, reason: str | None = None) -> None:
		if self._disposed:
			return
		self._disposed = True
		self._close_reason = reason
		await self._client.aclose()

	async def get(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='GET', **kwargs)

	async def head(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='HEAD', **kwargs)

	async def post(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='POST', **kwargs)

	async def put(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='PUT', **kwargs)

	async def patch(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='PATCH', **kwargs)

	async def delete(self, url: str, **kwargs: Any) -> APIResponse:
		return await self.fetch(url, method='DELETE', **kwargs)

	async def fetch(
		self,
		url_or_request: Union[str, 'Request'],
		*,
		params: dict[str, str | float | bool] | None = None,
		method: str | None = None,
		headers: dict[str, str] | None = None,
		data: Any = None,
		form: dict[str, str | float | bool] | None = None,
		multipart: dict[str, str | bytes | FilePayload] | None = None,
		timeout: float | None = None,
		fail_on_status_code: bool | None = None,
		max_redirects: int | None = None,
	) -> APIResponse:
		"""Send an HTTP request.

		Args:
			url_or_request: Target URL, resolved against base_url, or a browser `Request` to replay
			params: Query parameters appended to the URL
			method: HTTP method, defaults to the request's method or GET
			headers: Extra headers for this request only
			data: Body; dicts and lists are sent as JSON
			form: Body sent as application/x-www-form-urlencoded
			multipart: Body sent as multipart/form-data, FilePayload values become file parts
			timeout: Milliseconds, 0 disables the timeout
			fail_on_status_code: Raise Error for statuses other than 2xx and 3xx
			max_redirects: Redirects to follow, 0 disables following
		"""
		if self._disposed:
			raise Error(f'Request context has been disposed: {self._close_reason or "disposed"}')
		if sum(1 for body in (data, form, multipart) if body is not None) > 1:
			raise Error('Only one of data, form or multipart can be specified')
		if max_redirects is not None and max_redirects < 0:
			raise Error('max_redirects must be a non-negative number')

		from browser_client.network.request import Request

		request_headers: dict[str, str] = {}
		if isinstance(url_or_request, Request):
			request = url_or_request
			target = request.url
			method = method or request.method
			request_headers.update(await request.all_headers())
			if data is None and form is None and multipart is None:
				data = request.post_data_buffer
		else:
			target = resolve_url(self._base_url, url_or_request)
		method = (method or 'GET').upper()
		request_headers.update(headers or {})

		content: bytes | str | None = None
		json_body: Any = None
		files: dict[str, Any] | None = None
		form_fields: dict[str, str] | None = None
		if isinstance(data, (bytes, str)):
			content = data
		elif data is not None:
			json_body = data
		if form is not None:
			form_fields = {key: _stringify(value) for key, value in form.items()}
		if multipart is not None:
			form_fields = {}
			files = {}
			for key, value in multipart.items():
				if isinstance(value, FilePayload):
					files[key] = (value.name, value.buffer, value.mime_type)
				elif isinstance(value, bytes):
					files[key] = (key, value, 'application/octet-stream')
				else:
					form_fields[key] = _stringify(value)

		if self._browser_context is not None and not _has_header(request_headers, 'cookie'):
			cookies = await self._browser_context.cookies(target)
			if cookies:
				request_headers['cookie'] = '; '.join(f'{cookie.name}={cookie.value}' for cookie in cookies)

		timeout_ms = timeout if timeout is not None else (self._timeout if self._timeout is not None else CONFIG.BROWSER_CLIENT_DEFAULT_TIMEOUT)
		follow_redirects = max_redirects != 0
		logger.debug(f'🌐 {method} {target}')
		try:
			response = await self._client.request(
				method,
				target,
				params=cast(Any, params),
				headers=request_headers,
				content=content,
				json=json_body,
				data=form_fields,
				files=files,
				timeout=(timeout_ms / 1000) if timeout_ms else None,
				follow_redirects=follow_redirects,
			)
		except httpx.TimeoutException:
			raise TimeoutError(f'Request timed out after {timeout_ms:.0f}ms: {method} {target}')
		except httpx.TooManyRedirects:
			raise Error(f'Max redirect count exceeded: {method} {target}')
		except httpx.HTTPError as e:
			raise Error(f'{method} {target} failed: {type(e).__name__}: {e}')

		if max_redirects is not None and len(response.history) > max_redirects:
			raise Error(f'Max redirect count exceeded: {method} {target}')

		if self._browser_context is not None:
			await self._store_cookies_in_browser_context(response)

		api_response = APIResponse(self, response)
		if fail_on_status_code and not 200 <= api_response.status < 400:
			raise Error(f'{api_response.status} {api_response.status_text}')
		return api_response

	async def _store_cookies_in_browser_context(self, response: httpx.Response) -> None:
		assert self._browser_context is not None
		jar = httpx.Cookies()
		for step in [*response.history, response]:
			jar.extract_cookies(step)
		self._client.cookies.clear()
		cookies = [_jar_cookie_to_param(cookie, str(response.url)) for cookie in jar.jar]
		if cookies:
			await self._browser_context.add_cookies(cookies)

	async def storage_state(self, path: str | Path | None = None) -> dict[str, Any]:
		if self._browser_context is not None:
			return await self._browser_context.storage_state(path=path)
		cookies = [
			Cookie(
				name=cookie.name,
				value=cookie.value or '',
				domain=cookie.domain,
				path=cookie.path,
				expires=cookie.expires if cookie.expires is not None else -1,
				http_only=cookie.has_nonstandard_attr('HttpOnly'),
				secure=cookie.secure,
			)
			for cookie in self._client.cookies.jar
		]
		state = StorageState(cookies=cookies).to_protocol()
		if path is not None:
			Path(path).parent.mkdir(parents=True, exist_ok=True)
			Path(path).write_text(json.dumps(state, indent=2))
		return state


class APIRequest:
	"""Factory for standalone `APIRequestContext`s, exposed as `client.request`."""

	async def new_context(
		self,
		base_url: str | None = None,
		extra_http_headers: dict[str, str] | None = None,
		http_credentials: HttpCredentials | dict[str, Any] | None = None,
		ignore_https_errors: bool | None = None,
		timeout: float | None = None,
		user_agent: str | None = None,
		storage_state: StorageState | str | Path | None = None,
	) -> APIRequestContext:
		return APIRequestContext(
			base_url=base_url,
			extra_http_headers=extra_http_headers,
			http_credentials=http_credentials,
			ignore_https_errors=ignore_https_errors,
			timeout=timeout,
			user_agent=user_agent,
			storage_state=storage_state,
		)


def _stringify(value: Any) -> str:
	if isinstance(value, bool):
		return 'true' if value else 'false'
	return str(value)


def _has_header(headers: dict[str, str], name: str) -> bool:
	return any(key.lower() == name for key in headers)


def _jar_cookie_to_param(cookie: JarCookie, url: str) -> SetCookieParam:
	if cookie.domain_specified and cookie.domain:
		return SetCookieParam(
			name=cookie.name,
			value=cookie.value or '',
			domain=cookie.domain,
			path=cookie.path or '/',
			expires=cookie.expires,
			http_only=cookie.has_nonstandard_attr('HttpOnly'),
			secure=cookie.secure,
		)
	return SetCookieParam(
		name=cookie.name,
		value=cookie.value or '',
		url=url,
		expires=cookie.expires,
		http_only=cookie.has_nonstandard_attr('HttpOnly'),
		secure=cookie.secure,
	)
