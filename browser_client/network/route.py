"""Request interception.

Every intercepted request reaches the client as one `Route`. Handlers registered
with `page.route()` / `context.route()` run newest first; each either resolves
the route (`abort`, `continue_`, `fulfill`) or passes it on with `fallback()`.
A route is resolved exactly once: the resolution is claimed before anything is
sent to the driver, so a second or concurrent attempt raises
`RouteAlreadyHandledError`.
"""

import asyncio
import base64
import inspect
import json
import logging
import mimetypes
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from browser_client.config import CONFIG
from browser_client.exceptions import Error, RouteAlreadyHandledError
from browser_client.network.headers import serialize_headers
from browser_client.network.views import ROUTE_ABORT_ERROR_CODES, FallbackOverrides, RouteAbortErrorCode
from browser_client.transport.connection import ChannelOwner
from browser_client.utils import URLMatch, url_matches

if TYPE_CHECKING:
	from browser_client.browser.context import BrowserContext
	from browser_client.network.api_request import APIResponse
	from browser_client.network.request import Request

logger = logging.getLogger(__name__)

RouteHandlerCallback = Callable[..., Any]

_REGEX_FLAGS = ((re.IGNORECASE, 'i'), (re.MULTILINE, 'm'), (re.DOTALL, 's'))


class Route(ChannelOwner):
	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._handling_future: asyncio.Future[bool] | None = None
		self._resolved = False
		self._context: BrowserContext | None = None
		self._unresolved_timer: asyncio.TimerHandle | None = None

	def __repr__(self) -> str:
		return f'<Route url={self.request.url!r}>'

	@property
	def request(self) -> 'Request':
		return self._initializer['request']

	@property
	def is_resolved(self) -> bool:
		return self._resolved

	def _start_handling(self) -> 'asyncio.Future[bool]':
		self._handling_future = asyncio.get_running_loop().create_future()
		return self._handling_future

	def _report_handled(self, done: bool) -> None:
		future = self._handling_future
		self._handling_future = None
		if future and not future.done():
			future.set_result(done)

	def _check_not_handled(self) -> None:
		if self._resolved or self._handling_future is None:
			raise RouteAlreadyHandledError()

	def _claim(self) -> None:
		"""Take the single resolution slot. Runs before the first await of every resolving call."""
		self._check_not_handled()
		self._resolved = True
		self._cancel_unresolved_timer()

	def _release(self) -> None:
		"""Give the slot back after a resolving call failed before anything reached the driver."""
		self._resolved = False
		self._arm_unresolved_timer()

	def _arm_unresolved_timer(self) -> None:
		timeout = CONFIG.BROWSER_CLIENT_ROUTE_TIMEOUT
		if not timeout or self._unresolved_timer is not None or self._resolved:
			return
		self._unresolved_timer = asyncio.get_running_loop().call_later(timeout / 1000, self._on_unresolved_timeout, timeout)

	def _cancel_unresolved_timer(self) -> None:
		if self._unresolved_timer is not None:
			self._unresolved_timer.cancel()
			self._unresolved_timer = None

	def _on_unresolved_timeout(self, timeout: float) -> None:
		if self._resolved:
			return
		logger.warning(
			f'⚠️ Route for {self.request.method} {self.request.url} was not resolved within {timeout:.0f}ms, aborting it with "timedout"'
		)
		self._resolved = True
		self._channel.send_no_reply('abort', {'errorCode': 'timedout'})
		self._report_handled(True)

	async def abort(self, error_code: RouteAbortErrorCode | None = None) -> None:
		"""Abort the request. `error_code` defaults to 'failed'."""
		if error_code is not None and error_code not in ROUTE_ABORT_ERROR_CODES:
			raise ValueError(f'Unknown route abort error code {error_code!r}. Expected one of: {", ".join(sorted(ROUTE_ABORT_ERROR_CODES))}')
		self._claim()
		await self._channel.send('abort', {'errorCode': error_code or 'failed'})
		self._report_handled(True)

	async def fulfill(
		self,
		status: int | None = None,
		headers: dict[str, str] | None = None,
		body: str | bytes | None = None,
		json: Any = None,
		path: str | Path | None = None,
		content_type: str | None = None,
		response: Optional['APIResponse'] = None,
	) -> None:
		"""Answer the request with a synthesized response.

		Args:
			status: Status code, defaults to the status of `response` or 200
			headers: Response headers, defaults to the headers of `response`
			body: Body as text or bytes
			json: Value serialized as a JSON body, sets the content type to application/json
			path: File whose contents become the body, content type guessed from its name
			content_type: Overrides the Content-Type header
			response: APIResponse to take defaults from
		"""
		self._check_not_handled()
		if json is not None:
			if body is not None:
				raise Error('Can specify either body or json parameters')
			body = _json_dumps(json)
		file_content: bytes | None = None
		if path is not None:
			file_content = Path(path).read_bytes()
			if content_type is None:
				content_type = mimetypes.guess_type(Path(path).name)[0] or 'application/octet-stream'

		self._claim()
		fulfill_status = status
		fulfill_headers: dict[str, str] = {}
		if response is not None:
			fulfill_status = status or response.status
			fulfill_headers = dict(response.headers)
			if body is None and file_content is None:
				try:
					body = await response.body()
				except BaseException:
					self._release()
					raise

		length = 0
		if file_content is not None:
			encoded = base64.b64encode(file_content).decode()
			length = len(file_content)
			is_base64 = True
		elif isinstance(body, str):
			encoded = body
			length = len(body.encode())
			is_base64 = False
		elif isinstance(body, bytes):
			encoded = base64.b64encode(body).decode()
			length = len(body)
			is_base64 = True
		else:
			encoded = ''
			is_base64 = False

		if headers is not None:
			fulfill_headers = dict(headers)
		fulfill_headers = {name.lower(): value for name, value in fulfill_headers.items()}
		if content_type:
			fulfill_headers['content-type'] = content_type
		elif json is not None:
			fulfill_headers['content-type'] = 'application/json'
		if 'content-length' not in fulfill_headers:
			fulfill_headers['content-length'] = str(length)

		await self._channel.send(
			'fulfill',
			{
				'status': fulfill_status or 200,
				'headers': serialize_headers(fulfill_headers),
				'body': encoded,
				'isBase64': is_base64,
			},
		)
		self._report_handled(True)

	async def continue_(
		self,
		url: str | None = None,
		method: str | None = None,
		headers: dict[str, str] | None = None,
		post_data: str | bytes | Any = None,
	) -> None:
		"""Send the request on to the network, optionally modified."""
		self._check_not_handled()
		overrides = _overrides(url, method, headers, post_data)
		self._claim()
		self.request._apply_fallback_overrides(overrides)
		await self._inner_continue(is_fallback=False)
		self._report_handled(True)

	async def fallback(
		self,
		url: str | None = None,
		method: str | None = None,
		headers: dict[str, str] | None = None,
		post_data: str | bytes | Any = None,
	) -> None:
		"""Hand the request to the next matching handler, with the given modifications."""
		self._check_not_handled()
		self.request._apply_fallback_overrides(_overrides(url, method, headers, post_data))
		self._report_handled(False)

	async def fetch(
		self,
		url: str | None = None,
		method: str | None = None,
		headers: dict[str, str] | None = None,
		post_data: str | bytes | Any = None,
		max_redirects: int | None = None,
		timeout: float | None = None,
	) -> 'APIResponse':
		"""Perform the request outside the browser and return the response, e.g. to patch and `fulfill` it."""
		if self._context is None:
			raise Error('Route is not attached to a browser context')
		request = self.request
		overrides = _overrides(url, method, headers, post_data)
		body = overrides.post_data_buffer if overrides.post_data_buffer is not None else request.post_data_buffer
		return await self._context.request.fetch(
			overrides.url or request.url,
			method=overrides.method or request.method,
			headers=overrides.headers if overrides.headers is not None else await request.all_headers(),
			data=body,
			max_redirects=max_redirects,
			timeout=timeout,
		)

	async def _inner_continue(self, is_fallback: bool) -> None:
		overrides = self.request._fallback_overrides
		params: dict[str, Any] = {'isFallback': is_fallback}
		if overrides.url:
			params['url'] = overrides.url
		if overrides.method:
			params['method'] = overrides.method
		if overrides.headers is not None:
			params['headers'] = serialize_headers(overrides.headers)
		if overrides.post_data_buffer is not None:
			params['postData'] = base64.b64encode(overrides.post_data_buffer).decode()
		await self._channel.send('continue', params)

	async def _continue_unhandled(self) -> None:
		"""Let a request that no handler resolved go through."""
		if self._resolved:
			return
		self._resolved = True
		self._cancel_unresolved_timer()
		await self._inner_continue(is_fallback=True)


def _json_dumps(value: Any) -> str:
	return json.dumps(value, separators=(',', ':'))


def _overrides(url: str | None, method: str | None, headers: dict[str, str] | None, post_data: Any) -> FallbackOverrides:
	post_data_buffer: bytes | None = None
	if isinstance(post_data, str):
		post_data_buffer = post_data.encode()
	elif isinstance(post_data, bytes):
		post_data_buffer = post_data
	elif post_data is not None:
		post_data_buffer = _json_dumps(post_data).encode()
	return FallbackOverrides(url=url, method=method, headers=headers, post_data_buffer=post_data_buffer)


class RouteHandler:
	"""One `route()` registration: URL matcher, callback and remaining use count."""

	def __init__(self, base_url: str | None, url: URLMatch, handler: RouteHandlerCallback, times: int | None = None) -> None:
		if times is not None and times <= 0:
			raise ValueError('times must be a positive number')
		self._base_url = base_url
		self.url = url
		self.handler = handler
		self._times = times
		self._handled_count = 0

	def matches(self, request_url: str) -> bool:
		return url_matches(self._base_url, request_url, self.url)

	@property
	def will_expire(self) -> bool:
		return self._times is not None and self._handled_count + 1 >= self._times

	async def handle(self, route: Route) -> bool:
		"""Run the callback. Returns True if it resolved the route, False if it fell back."""
		self._handled_count += 1
		handled = route._start_handling()
		result = _call_with_arity(self.handler, route, route.request)
		if inspect.isawaitable(result):
			await result
		return await handled

	@staticmethod
	def interception_patterns(handlers: list['RouteHandler']) -> list[dict[str, Any]]:
		"""Patterns the driver needs to pause matching requests. A predicate intercepts everything."""
		patterns: list[dict[str, Any]] = []
		for handler in handlers:
			if isinstance(handler.url, str):
				patterns.append({'glob': handler.url})
			elif isinstance(handler.url, re.Pattern):
				flags = ''.join(flag for bit, flag in _REGEX_FLAGS if handler.url.flags & bit)
				patterns.append({'regexSource': handler.url.pattern, 'regexFlags': flags})
			else:
				return [{'glob': '**/*'}]
		return patterns


def _call_with_arity(handler: Callable[..., Any], route: Route, request: 'Request') -> Any:
	try:
		parameters = inspect.signature(handler).parameters
	except (TypeError, ValueError):
		return handler(route, request)
	positional = [p for p in parameters.values() if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
	has_varargs = any(p.kind == p.VAR_POSITIONAL for p in parameters.values())
	if has_varargs or len(positional) >= 2:
		return handler(route, request)
	return handler(route)
