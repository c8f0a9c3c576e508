import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from browser_client.browser.browser import Browser
from browser_client.browser.views import BrowserContextOptions, Cookie, Geolocation, RecordHarOptions, SetCookieParam
from browser_client.events import ContextEvent, Event, PageEvent
from browser_client.exceptions import Error, TargetClosedError, is_target_closed_error
from browser_client.network.api_request import APIRequestContext
from browser_client.network.headers import serialize_headers
from browser_client.network.route import Route, RouteHandler, RouteHandlerCallback
from browser_client.page.console import ConsoleMessage
from browser_client.page.web_error import WebError
from browser_client.transport.connection import ChannelOwner, parse_error
from browser_client.transport.views import SerializedError
from browser_client.utils import TimeoutSettings, URLMatch, create_task_with_error_handling, init_script_source, locals_to_params
from browser_client.waiter import EventContextManager, Waiter

if TYPE_CHECKING:
	from browser_client.browser.tracing import Tracing
	from browser_client.network.request import Request
	from browser_client.network.response import Response
	from browser_client.page.binding import BindingCall
	from browser_client.page.dialog import Dialog
	from browser_client.page.page import Page
	from browser_client.page.video import Video

logger = logging.getLogger(__name__)


class BrowserContext(ChannelOwner):
	"""An isolated browser session: its own cookies, storage, permissions and pages.

	Network, console, dialog and page-error notifications arrive here first and are
	re-emitted on the page they belong to.
	"""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._browser: Browser | None = parent if isinstance(parent, Browser) else None
		self._pages: list[Page] = []
		self._routes: list[RouteHandler] = []
		self._bindings: dict[str, Callable[..., Any]] = {}
		self._timeout_settings = TimeoutSettings()
		self._options = BrowserContextOptions()
		self._owner_page: Page | None = None
		self._tracing: Tracing = initializer['tracing']
		self._request: APIRequestContext | None = None
		self._har_recorders: dict[str, RecordHarOptions] = {}
		self._videos: list[Video] = []
		self._closed_future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
		self._close_task: asyncio.Task[None] | None = None
		self._is_closed = False
		self._close_reason: str | None = None

		self._event_handlers.update(
			{
				'bindingCall': lambda params: self._on_binding(params['binding']),
				'close': lambda params: self._on_close(),
				'console': self._on_console,
				'dialog': lambda params: self._on_dialog(params['dialog']),
				'page': lambda params: self._on_page(params['page']),
				'pageError': self._on_page_error,
				'request': self._on_request,
				'requestFailed': self._on_request_failed,
				'requestFinished': self._on_request_finished,
				'response': self._on_response,
				'route': lambda params: create_task_with_error_handling(
					self._on_route(params['route']), name='context_route', logger_instance=logger
				),
			}
		)

	def __repr__(self) -> str:
		return f'<BrowserContext pages={len(self._pages)}>'

	def _closed_error(self) -> TargetClosedError | None:
		if self._is_closed:
			return TargetClosedError(self._close_reason)
		return super()._closed_error()

	def _on_connection_closed(self, reason: str | None) -> None:
		self._close_reason = self._close_reason or reason
		self._on_close()

	def _setup(self, options: BrowserContextOptions, browser: Optional['Browser']) -> None:
		self._options = options
		if browser is not None:
			self._browser = browser
			browser._contexts.append(self)
		if options.default_browser_type:
			logger.debug(f'Context emulates a device made for {options.default_browser_type}')

	async def _start_har_recording(self) -> None:
		har = self._options.har_options()
		if har is None:
			return
		params = har.to_protocol()
		params.pop('path')
		har_id = await self._channel.send('harStart', {'options': params})
		self._har_recorders[har_id] = har

	# --- Driver notifications ----------------------------------------------

	def _on_page(self, page: 'Page') -> None:
		self._pages.append(page)
		self.emit(ContextEvent.PAGE, page)
		if page._opener and not page._opener.is_closed():
			page._opener.emit(PageEvent.POPUP, page)

	def _on_close(self) -> None:
		if self._is_closed:
			return
		self._is_closed = True
		if self._browser and self in self._browser._contexts:
			self._browser._contexts.remove(self)
		for page in list(self._pages):
			page._close_reason = page._close_reason or self._close_reason
			page._on_close()
		if not self._closed_future.done():
			self._closed_future.set_result(True)
		logger.debug('🗂️ Browser context closed')
		self.emit(ContextEvent.CLOSE, self)

	def _on_console(self, params: dict[str, Any]) -> None:
		page: Page | None = params.get('page')
		message = ConsoleMessage(params, page)
		self.emit(ContextEvent.CONSOLE, message)
		if page:
			page.emit(PageEvent.CONSOLE, message)

	def _on_dialog(self, dialog: 'Dialog') -> None:
		has_listeners = self.emit(ContextEvent.DIALOG, dialog)
		page = dialog.page
		if page:
			has_listeners = page.emit(PageEvent.DIALOG, dialog) or has_listeners
		if not has_listeners:
			create_task_with_error_handling(dialog._auto_resolve(), name='dialog_auto_resolve', logger_instance=logger)

	def _on_page_error(self, params: dict[str, Any]) -> None:
		error = parse_error(SerializedError.model_validate(params['error']['error']))
		page: Page | None = params.get('page')
		self.emit(ContextEvent.WEB_ERROR, WebError(page, error))
		if page:
			page.emit(PageEvent.PAGE_ERROR, error)

	def _on_request(self, params: dict[str, Any]) -> None:
		request: Request = params['request']
		page: Page | None = params.get('page')
		self.emit(ContextEvent.REQUEST, request)
		if page:
			page.emit(PageEvent.REQUEST, request)

	def _on_response(self, params: dict[str, Any]) -> None:
		response: Response = params['response']
		page: Page | None = params.get('page')
		self.emit(ContextEvent.RESPONSE, response)
		if page:
			page.emit(PageEvent.RESPONSE, response)

	def _on_request_failed(self, params: dict[str, Any]) -> None:
		request: Request = params['request']
		page: Page | None = params.get('page')
		request._failure_text = params.get('failureText')
		if params.get('responseEndTiming') is not None:
			request._timing['responseEnd'] = params['responseEndTiming']
		if request._response_object:
			request._response_object._report_finished(request._failure_text)
		self.emit(ContextEvent.REQUEST_FAILED, request)
		if page:
			page.emit(PageEvent.REQUEST_FAILED, request)

	def _on_request_finished(self, params: dict[str, Any]) -> None:
		request: Request = params['request']
		response: Response | None = params.get('response')
		page: Page | None = params.get('page')
		if params.get('responseEndTiming') is not None:
			request._timing['responseEnd'] = params['responseEndTiming']
		if response:
			response._report_finished()
		self.emit(ContextEvent.REQUEST_FINISHED, request)
		if page:
			page.emit(PageEvent.REQUEST_FINISHED, request)

	def _on_binding(self, binding_call: 'BindingCall') -> None:
		func = self._bindings.get(binding_call.initializer['name'])
		if func is None:
			logger.debug(f'No binding registered for {binding_call.initializer["name"]!r}')
			return
		create_task_with_error_handling(binding_call.call(func), name='binding_call', logger_instance=logger)

	async def _on_route(self, route: Route) -> None:
		route._context = self
		route._arm_unresolved_timer()
		for handler in list(self._routes):
			if handler not in self._routes or not handler.matches(route.request.url):
				continue
			if handler.will_expire:
				self._routes.remove(handler)
				self._channel.send_no_reply(
					'setNetworkInterceptionPatterns', {'patterns': RouteHandler.interception_patterns(self._routes)}
				)
			if await handler.handle(route):
				return
		await route._continue_unhandled()

	# --- Properties -------------------------------------------------------

	@property
	def pages(self) -> list['Page']:
		return list(self._pages)

	@property
	def browser(self) -> Optional['Browser']:
		return self._browser

	@property
	def tracing(self) -> 'Tracing':
		return self._tracing

	@property
	def request(self) -> APIRequestContext:
		"""HTTP client sharing this context's cookie jar."""
		if self._request is None:
			self._request = APIRequestContext(
				base_url=self._options.base_url,
				extra_http_headers=self._options.extra_http_headers,
				http_credentials=self._options.http_credentials,
				ignore_https_errors=self._options.ignore_https_errors,
				user_agent=self._options.user_agent,
				browser_context=self,
			)
		return self._request

	def set_default_timeout(self, timeout: float | None) -> None:
		self._timeout_settings.set_default_timeout(timeout)

	def set_default_navigation_timeout(self, timeout: float | None) -> None:
		self._timeout_settings.set_default_navigation_timeout(timeout)

	# --- Pages ------------------------------------------------------------

	async def new_page(self) -> 'Page':
		if self._owner_page:
			raise Error('Please use browser.new_context()')
		return await self._channel.send('newPage')

	async def close(self, reason: str | None = None) -> None:
		"""Close the context and all its pages. Pending HAR files and videos are written first.

		Concurrent and repeated calls wait for the first close to finish.
		"""
		if self._close_task is None:
			self._close_reason = reason
			self._close_task = asyncio.create_task(self._close(reason), name=f'context_close_{self._guid}')
		await asyncio.shield(self._close_task)

	async def _close(self, reason: str | None) -> None:
		try:
			await self._export_har_recordings()
			await self._channel.send('close', locals_to_params({'reason': reason}))
			await self._closed_future
		except Error as e:
			if not is_target_closed_error(e):
				raise
		if self._request is not None:
			await self._request.dispose(reason)
		await self._save_videos()

	async def _export_har_recordings(self) -> None:
		for har_id, har in self._har_recorders.items():
			artifact = await self._channel.send('harExport', {'harId': har_id})
			# Attached content forces a zip on the driver side.
			is_compressed = har.content == 'attach' or har.path.endswith('.zip')
			if is_compressed and not har.path.endswith('.zip'):
				tmp_path = har.path + '.tmp'
				await artifact.save_as(tmp_path)
				await self._connection.local_utils.har_unzip(tmp_path, har.path)
			else:
				await artifact.save_as(har.path)
			await artifact.delete()
			logger.info(f'📼 HAR written to {har.path}')

	async def _save_videos(self) -> None:
		if not self._videos:
			return
		await asyncio.gather(*(video._finish(self._options.record_video_dir) for video in self._videos))

	# --- Cookies, permissions, emulation -----------------------------------

	async def cookies(self, urls: str | Sequence[str] | None = None) -> list[Cookie]:
		if urls is None:
			urls = []
		elif isinstance(urls, str):
			urls = [urls]
		result = await self._channel.send('cookies', {'urls': list(urls)})
		return [Cookie.model_validate(cookie) for cookie in result or []]

	async def add_cookies(self, cookies: Sequence[SetCookieParam | dict[str, Any]]) -> None:
		params = [SetCookieParam.model_validate(cookie).to_protocol() for cookie in cookies]
		await self._channel.send('addCookies', {'cookies': params})

	async def clear_cookies(self, name: str | None = None, domain: str | None = None, path: str | None = None) -> None:
		await self._channel.send('clearCookies', locals_to_params(locals()))

	async def grant_permissions(self, permissions: Sequence[str], origin: str | None = None) -> None:
		await self._channel.send('grantPermissions', locals_to_params({'permissions': list(permissions), 'origin': origin}))

	async def clear_permissions(self) -> None:
		await self._channel.send('clearPermissions')

	async def set_geolocation(self, geolocation: Geolocation | dict[str, float] | None = None) -> None:
		if geolocation is None:
			await self._channel.send('setGeolocation', {})
			return
		await self._channel.send('setGeolocation', {'geolocation': Geolocation.model_validate(geolocation).to_protocol()})

	async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
		await self._channel.send('setExtraHTTPHeaders', {'headers': serialize_headers(headers)})

	async def set_offline(self, offline: bool) -> None:
		await self._channel.send('setOffline', {'offline': offline})

	async def add_init_script(self, script: str | None = None, path: str | Path | None = None) -> None:
		await self._channel.send('addInitScript', {'source': init_script_source(script, path)})

	async def expose_binding(self, name: str, callback: Callable[..., Any], handle: bool | None = None) -> None:
		for page in self._pages:
			if name in page._bindings:
				raise Error(f'Function "{name}" has been already registered in one of the pages')
		if name in self._bindings:
			raise Error(f'Function "{name}" has been already registered')
		self._bindings[name] = callback
		await self._channel.send('exposeBinding', locals_to_params({'name': name, 'needs_handle': handle}))

	async def expose_function(self, name: str, callback: Callable[..., Any]) -> None:
		await self.expose_binding(name, lambda source, *args: callback(*args))

	async def storage_state(self, path: str | Path | None = None) -> dict[str, Any]:
		"""Cookies and local storage of the context, optionally written to `path` as JSON."""
		result = await self._channel.send_return_as_dict('storageState')
		if path is not None:
			Path(path).parent.mkdir(parents=True, exist_ok=True)
			Path(path).write_text(json.dumps(result, indent=2))
		return result

	# --- Interception -----------------------------------------------------

	async def route(self, url: URLMatch, handler: RouteHandlerCallback, times: int | None = None) -> None:
		self._routes.insert(0, RouteHandler(self._options.base_url, url, handler, times))
		await self._update_interception_patterns()

	async def unroute(self, url: URLMatch, handler: RouteHandlerCallback | None = None) -> None:
		self._routes = [r for r in self._routes if r.url != url or (handler is not None and r.handler != handler)]
		await self._update_interception_patterns()

	async def unroute_all(self) -> None:
		self._routes = []
		await self._update_interception_patterns()

	async def _update_interception_patterns(self) -> None:
		await self._channel.send(
			'setNetworkInterceptionPatterns', {'patterns': RouteHandler.interception_patterns(self._routes)}
		)

	# --- Waiting ----------------------------------------------------------

	def _build_waiter(self, event: Event[Any], predicate: Callable[[Any], bool] | None, timeout: float | None) -> Waiter:
		timeout = self._timeout_settings.timeout(timeout)
		waiter = Waiter(f'browser_context.expect_event({event.name})')
		waiter.reject_on_timeout(timeout, f'Timeout {timeout:.0f}ms exceeded while waiting for event "{event.name}"')
		if event is not ContextEvent.CLOSE:
			waiter.reject_on_event(self, ContextEvent.CLOSE, lambda: TargetClosedError(self._close_reason))
		waiter.wait_for_event(self, event, predicate)
		return waiter

	async def wait_for_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> Any:
		return await self._build_waiter(event, predicate, timeout).result()

	def expect_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> EventContextManager[Any]:
		return EventContextManager(self._build_waiter(event, predicate, timeout))

	def expect_page(self, predicate: Callable[['Page'], bool] | None = None, timeout: float | None = None) -> EventContextManager['Page']:
		return self.expect_event(ContextEvent.PAGE, predicate, timeout)
