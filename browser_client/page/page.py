import base64
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from re import Pattern
from typing import TYPE_CHECKING, Any, Literal, Optional

from browser_client.browser.views import (
	ColorScheme,
	FloatRect,
	ForcedColors,
	InputFiles,
	KeyboardModifier,
	LoadState,
	MouseButton,
	Position,
	ReducedMotion,
	ViewportSize,
)
from browser_client.events import Event, PageEvent
from browser_client.exceptions import Error, TargetClosedError, is_target_closed_error
from browser_client.network.headers import serialize_headers
from browser_client.network.route import Route, RouteHandler, RouteHandlerCallback
from browser_client.page.accessibility import Accessibility
from browser_client.page.download import Download
from browser_client.page.file_chooser import FileChooser
from browser_client.page.frame import Frame
from browser_client.page.input import Keyboard, Mouse, Touchscreen
from browser_client.page.locator import Locator, LocatorFactory
from browser_client.page.video import Video
from browser_client.transport.connection import ChannelOwner
from browser_client.utils import (
	TimeoutSettings,
	URLMatch,
	create_task_with_error_handling,
	init_script_source,
	locals_to_params,
	url_matches,
)
from browser_client.waiter import EventContextManager, Waiter

if TYPE_CHECKING:
	from browser_client.browser.context import BrowserContext
	from browser_client.network.request import Request
	from browser_client.network.response import Response
	from browser_client.page.binding import BindingCall
	from browser_client.page.js_handle import ElementHandle, JSHandle
	from browser_client.page.websocket import WebSocket
	from browser_client.page.worker import Worker

logger = logging.getLogger(__name__)


class Page(ChannelOwner, LocatorFactory):
	"""A browser tab. Selector and evaluation methods act on the main frame."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._browser_context: BrowserContext = parent  # type: ignore[assignment]
		self._timeout_settings = TimeoutSettings(self._browser_context._timeout_settings)
		self._main_frame: Frame = initializer['mainFrame']
		self._main_frame._page = self
		self._frames: list[Frame] = [self._main_frame]
		self._viewport_size: ViewportSize | None = (
			ViewportSize.model_validate(initializer['viewportSize']) if initializer.get('viewportSize') else None
		)
		self._opener: Page | None = initializer.get('opener')
		self._is_closed = False
		self._close_reason: str | None = None
		self._workers: set[Worker] = set()
		self._bindings: dict[str, Callable[..., Any]] = {}
		self._routes: list[RouteHandler] = []
		self._owned_context: BrowserContext | None = None
		self._video: Video | None = None
		self._file_chooser_intercepted = False

		self.keyboard = Keyboard(self._channel)
		self.mouse = Mouse(self._channel)
		self.touchscreen = Touchscreen(self._channel)
		self.accessibility = Accessibility(self._channel)

		self._event_handlers.update(
			{
				'bindingCall': lambda params: self._on_binding(params['binding']),
				'close': lambda params: self._on_close(),
				'crash': lambda params: self.emit(PageEvent.CRASH, self),
				'download': self._on_download,
				'fileChooser': self._on_file_chooser,
				'frameAttached': lambda params: self._on_frame_attached(params['frame']),
				'frameDetached': lambda params: self._on_frame_detached(params['frame']),
				'route': lambda params: self._schedule_route(params['route']),
				'video': lambda params: self._force_video()._artifact_ready(params['artifact']),
				'viewportSizeChanged': self._on_viewport_size_changed,
				'webSocket': lambda params: self._on_web_socket(params['webSocket']),
				'worker': lambda params: self._on_worker(params['worker']),
			}
		)
		if initializer.get('isClosed'):
			self._on_close()

	def __repr__(self) -> str:
		return f'<Page url={self.url!r}>'

	def _closed_error(self) -> TargetClosedError | None:
		if self._is_closed:
			return TargetClosedError(self._close_reason)
		return super()._closed_error()

	def _on_connection_closed(self, reason: str | None) -> None:
		self._close_reason = self._close_reason or reason
		self._on_close()

	def _on_close(self) -> None:
		if self._is_closed:
			return
		self._is_closed = True
		self._close_reason = self._close_reason or self._browser_context._close_reason
		if self in self._browser_context._pages:
			self._browser_context._pages.remove(self)
		logger.debug(f'📄 Page closed: {self.url}')
		self.emit(PageEvent.CLOSE, self)

	def _on_frame_attached(self, frame: Frame) -> None:
		frame._page = self
		self._frames.append(frame)
		self.emit(PageEvent.FRAME_ATTACHED, frame)

	def _on_frame_detached(self, frame: Frame) -> None:
		if frame in self._frames:
			self._frames.remove(frame)
		frame._detached = True
		if frame._parent_frame and frame in frame._parent_frame._child_frames:
			frame._parent_frame._child_frames.remove(frame)
		self.emit(PageEvent.FRAME_DETACHED, frame)

	def _on_download(self, params: dict[str, Any]) -> None:
		download = Download(self, params['url'], params['suggestedFilename'], params['artifact'])
		self.emit(PageEvent.DOWNLOAD, download)

	def _on_file_chooser(self, params: dict[str, Any]) -> None:
		self.emit(PageEvent.FILE_CHOOSER, FileChooser(self, params['element'], params['isMultiple']))

	def _on_viewport_size_changed(self, params: dict[str, Any]) -> None:
		size = params.get('viewportSize')
		self._viewport_size = ViewportSize.model_validate(size) if size else None

	def _on_web_socket(self, web_socket: 'WebSocket') -> None:
		web_socket._page = self
		self.emit(PageEvent.WEB_SOCKET, web_socket)

	def _on_worker(self, worker: 'Worker') -> None:
		worker._page = self
		self._workers.add(worker)
		self.emit(PageEvent.WORKER, worker)

	def _on_binding(self, binding_call: 'BindingCall') -> None:
		func = self._bindings.get(binding_call.initializer['name'])
		if func is not None:
			create_task_with_error_handling(binding_call.call(func), name='binding_call', logger_instance=logger)
			return
		self._browser_context._on_binding(binding_call)

	def _schedule_route(self, route: Route) -> None:
		create_task_with_error_handling(self._on_route(route), name='page_route', logger_instance=logger)

	async def _on_route(self, route: Route) -> None:
		route._context = self._browser_context
		route._arm_unresolved_timer()
		for handler in list(self._routes):
			if handler not in self._routes or not handler.matches(route.request.url):
				continue
			if handler.will_expire:
				self._routes.remove(handler)
				self._update_interception_patterns_no_reply()
			if await handler.handle(route):
				return
		await self._browser_context._on_route(route)

	def _on_listeners_changed(self, event: Event[Any]) -> None:
		if event is not PageEvent.FILE_CHOOSER:
			return
		intercepted = self.listener_count(PageEvent.FILE_CHOOSER) > 0
		if intercepted == self._file_chooser_intercepted:
			return
		self._file_chooser_intercepted = intercepted
		self._channel.send_no_reply('setFileChooserInterceptedNoReply', {'intercepted': intercepted})

	def _force_video(self) -> Video:
		if self._video is None:
			self._video = Video(self)
			self._browser_context._videos.append(self._video)
		return self._video

	# --- Properties -------------------------------------------------------

	@property
	def context(self) -> 'BrowserContext':
		return self._browser_context

	@property
	def main_frame(self) -> Frame:
		return self._main_frame

	@property
	def frames(self) -> list[Frame]:
		return list(self._frames)

	@property
	def url(self) -> str:
		return self._main_frame.url

	@property
	def viewport_size(self) -> ViewportSize | None:
		return self._viewport_size

	@property
	def workers(self) -> list['Worker']:
		return list(self._workers)

	@property
	def video(self) -> Video | None:
		"""The page's recording, or None when the context does not record video."""
		if self._browser_context._options.record_video_dir is None:
			return None
		return self._force_video()

	def is_closed(self) -> bool:
		return self._is_closed

	async def opener(self) -> Optional['Page']:
		if self._opener is None or self._opener.is_closed():
			return None
		return self._opener

	def locator(self, selector: str, has_text: str | Pattern[str] | None = None, has: Locator | None = None) -> Locator:
		"""Lazy query against the main frame, resolved again on every action."""
		return self._main_frame.locator(selector, has_text=has_text, has=has)

	def frame(self, name: str | None = None, url: URLMatch | None = None) -> Frame | None:
		"""First frame matching `name` or `url`."""
		if name is None and url is None:
			raise Error('Either name or url matcher should be specified')
		for frame in self._frames:
			if name is not None and frame.name == name:
				return frame
			if url is not None and url_matches(self._browser_context._options.base_url, frame.url, url):
				return frame
		return None

	def set_default_timeout(self, timeout: float | None) -> None:
		self._timeout_settings.set_default_timeout(timeout)

	def set_default_navigation_timeout(self, timeout: float | None) -> None:
		self._timeout_settings.set_default_navigation_timeout(timeout)

	# --- Lifecycle --------------------------------------------------------

	async def close(self, run_before_unload: bool | None = None, reason: str | None = None) -> None:
		"""Close the page. With `run_before_unload`, beforeunload handlers may keep it open."""
		self._close_reason = reason
		try:
			await self._channel.send('close', locals_to_params({'run_before_unload': run_before_unload, 'reason': reason}))
			if self._owned_context:
				await self._owned_context.close()
		except Error as e:
			if not (is_target_closed_error(e) and not run_before_unload):
				raise

	async def bring_to_front(self) -> None:
		await self._channel.send('bringToFront')

	# --- Navigation -------------------------------------------------------

	async def goto(
		self, url: str, timeout: float | None = None, wait_until: LoadState | None = None, referer: str | None = None
	) -> Optional['Response']:
		return await self._main_frame.goto(url, timeout=timeout, wait_until=wait_until, referer=referer)

	async def reload(self, timeout: float | None = None, wait_until: LoadState | None = None) -> Optional['Response']:
		params = locals_to_params(locals())
		params['timeout'] = self._timeout_settings.navigation_timeout(timeout)
		return await self._channel.send('reload', params)

	async def go_back(self, timeout: float | None = None, wait_until: LoadState | None = None) -> Optional['Response']:
		params = locals_to_params(locals())
		params['timeout'] = self._timeout_settings.navigation_timeout(timeout)
		return await self._channel.send('goBack', params)

	async def go_forward(self, timeout: float | None = None, wait_until: LoadState | None = None) -> Optional['Response']:
		params = locals_to_params(locals())
		params['timeout'] = self._timeout_settings.navigation_timeout(timeout)
		return await self._channel.send('goForward', params)

	async def wait_for_load_state(self, state: LoadState | None = None, timeout: float | None = None) -> None:
		await self._main_frame.wait_for_load_state(state, timeout)

	async def wait_for_url(self, url: URLMatch, wait_until: LoadState | None = None, timeout: float | None = None) -> None:
		await self._main_frame.wait_for_url(url, wait_until=wait_until, timeout=timeout)

	async def wait_for_timeout(self, timeout: float) -> None:
		await self._main_frame.wait_for_timeout(timeout)

	async def wait_for_function(
		self, expression: str, arg: Any = None, timeout: float | None = None, polling: float | str | None = None
	) -> 'JSHandle':
		return await self._main_frame.wait_for_function(expression, arg=arg, timeout=timeout, polling=polling)

	# --- Content ----------------------------------------------------------

	async def title(self) -> str:
		return await self._main_frame.title()

	async def content(self) -> str:
		return await self._main_frame.content()

	async def set_content(self, html: str, timeout: float | None = None, wait_until: LoadState | None = None) -> None:
		await self._main_frame.set_content(html, timeout=timeout, wait_until=wait_until)

	async def evaluate(self, expression: str, arg: Any = None) -> Any:
		return await self._main_frame.evaluate(expression, arg)

	async def evaluate_handle(self, expression: str, arg: Any = None) -> 'JSHandle':
		return await self._main_frame.evaluate_handle(expression, arg)

	async def query_selector(self, selector: str, strict: bool | None = None) -> Optional['ElementHandle']:
		return await self._main_frame.query_selector(selector, strict=strict)

	async def query_selector_all(self, selector: str) -> list['ElementHandle']:
		return await self._main_frame.query_selector_all(selector)

	async def wait_for_selector(
		self, selector: str, timeout: float | None = None, state: str | None = None, strict: bool | None = None
	) -> Optional['ElementHandle']:
		return await self._main_frame.wait_for_selector(selector, strict=strict, timeout=timeout, state=state)

	async def add_script_tag(
		self, url: str | None = None, path: str | Path | None = None, content: str | None = None, type: str | None = None
	) -> 'ElementHandle':
		return await self._main_frame.add_script_tag(url=url, path=path, content=content, type=type)

	async def add_style_tag(self, url: str | None = None, path: str | Path | None = None, content: str | None = None) -> 'ElementHandle':
		return await self._main_frame.add_style_tag(url=url, path=path, content=content)

	# --- Element actions (main frame) ----------------------------------------

	async def click(
		self,
		selector: str,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		delay: float | None = None,
		button: MouseButton | None = None,
		click_count: int | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
		strict: bool | None = None,
	) -> None:
		await self._main_frame.click(**_forward(locals()))

	async def dblclick(
		self,
		selector: str,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		delay: float | None = None,
		button: MouseButton | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._main_frame.dblclick(**_forward(locals()))

	async def fill(
		self,
		selector: str,
		value: str,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		force: bool | None = None,
	) -> None:
		await self._main_frame.fill(**_forward(locals()))

	async def type(
		self,
		selector: str,
		text: str,
		delay: float | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
	) -> None:
		await self._main_frame.type(**_forward(locals()))

	async def press(
		self,
		selector: str,
		key: str,
		delay: float | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
	) -> None:
		await self._main_frame.press(**_forward(locals()))

	async def check(
		self,
		selector: str,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._main_frame.check(**_forward(locals()))

	async def uncheck(
		self,
		selector: str,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._main_frame.uncheck(**_forward(locals()))

	async def hover(
		self,
		selector: str,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		force: bool | None = None,
		strict: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._main_frame.hover(**_forward(locals()))

	async def focus(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> None:
		await self._main_frame.focus(selector, strict=strict, timeout=timeout)

	async def select_option(
		self,
		selector: str,
		value: str | Sequence[str] | None = None,
		index: int | Sequence[int] | None = None,
		label: str | Sequence[str] | None = None,
		element: 'ElementHandle | Sequence[ElementHandle] | None' = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		force: bool | None = None,
		strict: bool | None = None,
	) -> list[str]:
		return await self._main_frame.select_option(**_forward(locals()))

	async def set_input_files(
		self,
		selector: str,
		files: InputFiles,
		timeout: float | None = None,
		strict: bool | None = None,
		no_wait_after: bool | None = None,
	) -> None:
		await self._main_frame.set_input_files(selector, files, strict=strict, timeout=timeout, no_wait_after=no_wait_after)

	async def text_content(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str | None:
		return await self._main_frame.text_content(selector, strict=strict, timeout=timeout)

	async def inner_text(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str:
		return await self._main_frame.inner_text(selector, strict=strict, timeout=timeout)

	async def inner_html(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str:
		return await self._main_frame.inner_html(selector, strict=strict, timeout=timeout)

	async def get_attribute(self, selector: str, name: str, strict: bool | None = None, timeout: float | None = None) -> str | None:
		return await self._main_frame.get_attribute(selector, name, strict=strict, timeout=timeout)

	async def is_visible(self, selector: str, strict: bool | None = None) -> bool:
		return await self._main_frame.is_visible(selector, strict=strict)

	async def is_hidden(self, selector: str, strict: bool | None = None) -> bool:
		return await self._main_frame.is_hidden(selector, strict=strict)

	async def is_enabled(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._main_frame.is_enabled(selector, strict=strict, timeout=timeout)

	async def is_disabled(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._main_frame.is_disabled(selector, strict=strict, timeout=timeout)

	async def is_checked(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._main_frame.is_checked(selector, strict=strict, timeout=timeout)

	async def is_editable(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._main_frame.is_editable(selector, strict=strict, timeout=timeout)

	async def dispatch_event(
		self,
		selector: str,
		type: str,
		event_init: dict[str, Any] | None = None,
		timeout: float | None = None,
		strict: bool | None = None,
	) -> None:
		await self._main_frame.dispatch_event(selector, type, event_init=event_init, strict=strict, timeout=timeout)

	# --- Page-level output and emulation -----------------------------------

	async def screenshot(
		self,
		path: str | Path | None = None,
		full_page: bool | None = None,
		clip: FloatRect | dict[str, float] | None = None,
		type: Literal['png', 'jpeg'] | None = None,
		quality: int | None = None,
		omit_background: bool | None = None,
		timeout: float | None = None,
		animations: Literal['allow', 'disabled'] | None = None,
		caret: Literal['hide', 'initial'] | None = None,
		scale: Literal['css', 'device'] | None = None,
	) -> bytes:
		params = locals_to_params(locals())
		params.pop('path', None)
		if isinstance(clip, FloatRect):
			params['clip'] = clip.to_protocol()
		if path is not None and type is None:
			params['type'] = 'jpeg' if Path(path).suffix.lower() in ('.jpg', '.jpeg') else 'png'
		params['timeout'] = self._timeout_settings.timeout(timeout)
		data = base64.b64decode(await self._channel.send('screenshot', params))
		if path is not None:
			Path(path).parent.mkdir(parents=True, exist_ok=True)
			Path(path).write_bytes(data)
		return data

	async def pdf(
		self,
		path: str | Path | None = None,
		scale: float | None = None,
		display_header_footer: bool | None = None,
		header_template: str | None = None,
		footer_template: str | None = None,
		print_background: bool | None = None,
		landscape: bool | None = None,
		page_ranges: str | None = None,
		format: str | None = None,
		width: str | float | None = None,
		height: str | float | None = None,
		prefer_css_page_size: bool | None = None,
		margin: dict[str, str | float] | None = None,
		outline: bool | None = None,
		tagged: bool | None = None,
	) -> bytes:
		params = locals_to_params(locals())
		params.pop('path', None)
		data = base64.b64decode(await self._channel.send('pdf', params))
		if path is not None:
			Path(path).parent.mkdir(parents=True, exist_ok=True)
			Path(path).write_bytes(data)
		return data

	async def set_viewport_size(self, viewport_size: ViewportSize | dict[str, int]) -> None:
		size = ViewportSize.model_validate(viewport_size) if isinstance(viewport_size, dict) else viewport_size
		await self._channel.send('setViewportSize', {'viewportSize': size.to_protocol()})
		self._viewport_size = size

	async def emulate_media(
		self,
		media: Literal['null', 'print', 'screen'] | None = None,
		color_scheme: ColorScheme | None = None,
		reduced_motion: ReducedMotion | None = None,
		forced_colors: ForcedColors | None = None,
	) -> None:
		await self._channel.send('emulateMedia', locals_to_params(locals()))

	async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
		await self._channel.send('setExtraHTTPHeaders', {'headers': serialize_headers(headers)})

	async def add_init_script(self, script: str | None = None, path: str | Path | None = None) -> None:
		await self._channel.send('addInitScript', {'source': init_script_source(script, path)})

	async def expose_binding(self, name: str, callback: Callable[..., Any], handle: bool | None = None) -> None:
		"""Expose `callback(source, *args)` to the page as `window[name]`."""
		if name in self._bindings:
			raise Error(f'Function "{name}" has been already registered')
		if name in self._browser_context._bindings:
			raise Error(f'Function "{name}" has been already registered in the browser context')
		self._bindings[name] = callback
		await self._channel.send('exposeBinding', locals_to_params({'name': name, 'needs_handle': handle}))

	async def expose_function(self, name: str, callback: Callable[..., Any]) -> None:
		await self.expose_binding(name, lambda source, *args: callback(*args))

	# --- Interception -----------------------------------------------------

	async def route(self, url: URLMatch, handler: RouteHandlerCallback, times: int | None = None) -> None:
		"""Intercept requests matching `url`. Newer routes take precedence over older ones."""
		self._routes.insert(0, RouteHandler(self._browser_context._options.base_url, url, handler, times))
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

	def _update_interception_patterns_no_reply(self) -> None:
		self._channel.send_no_reply(
			'setNetworkInterceptionPatterns', {'patterns': RouteHandler.interception_patterns(self._routes)}
		)

	# --- Waiting ----------------------------------------------------------

	def _build_waiter(self, event: Event[Any], predicate: Callable[[Any], bool] | None, timeout: float | None) -> Waiter:
		timeout = self._timeout_settings.timeout(timeout)
		waiter = Waiter(f'page.expect_event({event.name})')
		waiter.reject_on_timeout(timeout, f'Timeout {timeout:.0f}ms exceeded while waiting for event "{event.name}"')
		if event is not PageEvent.CRASH:
			waiter.reject_on_event(self, PageEvent.CRASH, Error('Page crashed'))
		if event is not PageEvent.CLOSE:
			waiter.reject_on_event(self, PageEvent.CLOSE, lambda: TargetClosedError(self._close_reason))
		waiter.wait_for_event(self, event, predicate)
		return waiter

	async def wait_for_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> Any:
		"""Wait for the next `event` whose payload satisfies `predicate`."""
		return await self._build_waiter(event, predicate, timeout).result()

	def expect_event(
		self, event: Event[Any], predicate: Callable[[Any], bool] | None = None, timeout: float | None = None
	) -> EventContextManager[Any]:
		"""Start waiting for `event` before running the body that triggers it.

		```python
		async with page.expect_event(PageEvent.POPUP) as popup_info:
			await page.click('a[target=_blank]')
		popup = await popup_info.value
		```
		"""
		return EventContextManager(self._build_waiter(event, predicate, timeout))

	def expect_download(self, predicate: Callable[[Download], bool] | None = None, timeout: float | None = None) -> EventContextManager[Download]:
		return self.expect_event(PageEvent.DOWNLOAD, predicate, timeout)

	def expect_file_chooser(
		self, predicate: Callable[[FileChooser], bool] | None = None, timeout: float | None = None
	) -> EventContextManager[FileChooser]:
		return self.expect_event(PageEvent.FILE_CHOOSER, predicate, timeout)

	def expect_popup(self, predicate: Callable[['Page'], bool] | None = None, timeout: float | None = None) -> EventContextManager['Page']:
		return self.expect_event(PageEvent.POPUP, predicate, timeout)

	def expect_request(
		self, url_or_predicate: URLMatch | Callable[['Request'], bool], timeout: float | None = None
	) -> EventContextManager['Request']:
		return self.expect_event(PageEvent.REQUEST, self._request_matcher(url_or_predicate), timeout)

	def expect_response(
		self, url_or_predicate: URLMatch | Callable[['Response'], bool], timeout: float | None = None
	) -> EventContextManager['Response']:
		return self.expect_event(PageEvent.RESPONSE, self._request_matcher(url_or_predicate), timeout)

	async def wait_for_request(self, url_or_predicate: URLMatch | Callable[['Request'], bool], timeout: float | None = None) -> 'Request':
		return await self.wait_for_event(PageEvent.REQUEST, self._request_matcher(url_or_predicate), timeout)

	async def wait_for_response(
		self, url_or_predicate: URLMatch | Callable[['Response'], bool], timeout: float | None = None
	) -> 'Response':
		return await self.wait_for_event(PageEvent.RESPONSE, self._request_matcher(url_or_predicate), timeout)

	def _request_matcher(self, url_or_predicate: Any) -> Callable[[Any], bool]:
		if isinstance(url_or_predicate, str) or hasattr(url_or_predicate, 'pattern'):
			base_url = self._browser_context._options.base_url
			return lambda item: url_matches(base_url, item.url, url_or_predicate)
		return url_or_predicate


def _forward(args: dict[str, Any]) -> dict[str, Any]:
	return {key: value for key, value in args.items() if key != 'self'}
