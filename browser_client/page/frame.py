from collections.abc import Callable, Sequence
from pathlib import Path
from re import Pattern
from typing import TYPE_CHECKING, Any, Optional

from browser_client.browser.views import InputFiles, KeyboardModifier, LoadState, MouseButton, Position
from browser_client.events import Event, PageEvent
from browser_client.exceptions import Error, TargetClosedError
from browser_client.js_value import parse_result, serialize_argument
from browser_client.page.js_handle import _action_params, convert_input_files, convert_select_option_values
from browser_client.page.locator import Locator, LocatorFactory
from browser_client.transport.connection import ChannelOwner
from browser_client.utils import TimeoutSettings, URLMatch, locals_to_params, url_matches
from browser_client.waiter import Waiter

if TYPE_CHECKING:
	from browser_client.network.response import Response
	from browser_client.page.js_handle import ElementHandle, JSHandle
	from browser_client.page.page import Page

_LOAD_STATES = ('commit', 'domcontentloaded', 'load', 'networkidle')

# Frame-internal notifications, used by navigation waiters.
LOAD_STATE_ADDED: 'Event[str]' = Event('loadstate')
NAVIGATED: 'Event[dict[str, Any]]' = Event('navigated')


class Frame(ChannelOwner, LocatorFactory):
	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._name: str = initializer.get('name', '')
		self._url: str = initializer.get('url', '')
		self._parent_frame: Frame | None = initializer.get('parentFrame')
		if self._parent_frame:
			self._parent_frame._child_frames.append(self)
		self._child_frames: list[Frame] = []
		self._detached = False
		self._load_states: set[str] = set(initializer.get('loadStates', []))
		self._page: Page | None = None
		self._event_handlers.update({'loadstate': self._on_load_state, 'navigated': self._on_frame_navigated})

	def __repr__(self) -> str:
		return f'<Frame name={self._name!r} url={self._url!r}>'

	def _closed_error(self) -> TargetClosedError | None:
		if self._page is not None:
			page_error = self._page._closed_error()
			if page_error:
				return page_error
		return super()._closed_error()

	def _on_load_state(self, params: dict[str, Any]) -> None:
		if 'add' in params:
			state = params['add']
			self._load_states.add(state)
			self.emit(LOAD_STATE_ADDED, state)
			if self._page and self._parent_frame is None:
				if state == 'load':
					self._page.emit(PageEvent.LOAD, self._page)
				elif state == 'domcontentloaded':
					self._page.emit(PageEvent.DOM_CONTENT_LOADED, self._page)
		if 'remove' in params:
			self._load_states.discard(params['remove'])

	def _on_frame_navigated(self, params: dict[str, Any]) -> None:
		self._url = params['url']
		self._name = params.get('name', self._name)
		self.emit(NAVIGATED, params)
		if 'error' not in params and self._page:
			self._page.emit(PageEvent.FRAME_NAVIGATED, self)

	@property
	def page(self) -> 'Page':
		assert self._page is not None
		return self._page

	@property
	def name(self) -> str:
		return self._name

	@property
	def url(self) -> str:
		return self._url

	@property
	def parent_frame(self) -> Optional['Frame']:
		return self._parent_frame

	@property
	def child_frames(self) -> list['Frame']:
		return list(self._child_frames)

	def is_detached(self) -> bool:
		return self._detached

	def _timeout_settings(self) -> TimeoutSettings:
		if self._page is not None:
			return self._page._timeout_settings
		return TimeoutSettings()

	def _timeout(self, timeout: float | None) -> float:
		return self._timeout_settings().timeout(timeout)

	def _navigation_timeout(self, timeout: float | None) -> float:
		return self._timeout_settings().navigation_timeout(timeout)

	def _setup_navigation_waiter(self, description: str, timeout: float | None) -> Waiter:
		waiter = Waiter(f'frame.{description}')
		page = self._page
		if page is not None:
			waiter.reject_on_event(page, PageEvent.CLOSE, lambda: TargetClosedError(page._close_reason))
			waiter.reject_on_event(page, PageEvent.CRASH, Error('Navigation failed because page crashed!'))
			waiter.reject_on_event(
				page, PageEvent.FRAME_DETACHED, Error('Navigating frame was detached!'), lambda frame: frame is self
			)
		timeout = self._navigation_timeout(timeout)
		waiter.reject_on_timeout(timeout, f'Timeout {timeout:.0f}ms exceeded.')
		return waiter

	async def goto(
		self,
		url: str,
		timeout: float | None = None,
		wait_until: LoadState | None = None,
		referer: str | None = None,
	) -> Optional['Response']:
		"""Navigate to `url`. Returns the main resource response, or None for same-document navigations."""
		params = locals_to_params(locals())
		params['timeout'] = self._navigation_timeout(timeout)
		return await self._channel.send('goto', params)

	async def wait_for_load_state(self, state: LoadState | None = None, timeout: float | None = None) -> None:
		state = state or 'load'
		if state not in _LOAD_STATES:
			raise Error(f'state: expected one of {"|".join(_LOAD_STATES)}')
		if state in self._load_states:
			return
		waiter = self._setup_navigation_waiter('wait_for_load_state', timeout)
		waiter.log(f'waiting for "{state}" event')
		waiter.wait_for_event(self, LOAD_STATE_ADDED, lambda added: added == state)
		await waiter.result()

	async def wait_for_url(self, url: URLMatch, wait_until: LoadState | None = None, timeout: float | None = None) -> None:
		base_url = self._page.context._options.base_url if self._page else None
		if url_matches(base_url, self._url, url):
			await self.wait_for_load_state(wait_until, timeout)
			return
		waiter = self._setup_navigation_waiter('wait_for_url', timeout)
		waiter.log(f'waiting for navigation to "{url}"')
		waiter.wait_for_event(self, NAVIGATED, lambda event: 'error' not in event and url_matches(base_url, event['url'], url))
		await waiter.result()
		await self.wait_for_load_state(wait_until, timeout)

	async def wait_for_timeout(self, timeout: float) -> None:
		await self._channel.send('waitForTimeout', {'waitTimeout': timeout})

	async def wait_for_function(
		self, expression: str, arg: Any = None, timeout: float | None = None, polling: float | str | None = None
	) -> 'JSHandle':
		params: dict[str, Any] = {'expression': expression, 'arg': serialize_argument(arg), 'timeout': self._timeout(timeout)}
		# 'raf' is the driver's default polling mode
		if polling is not None and polling != 'raf':
			params['pollingInterval'] = polling
		return await self._channel.send('waitForFunction', params)

	async def title(self) -> str:
		return await self._channel.send('title')

	async def content(self) -> str:
		return await self._channel.send('content')

	async def set_content(self, html: str, timeout: float | None = None, wait_until: LoadState | None = None) -> None:
		params = locals_to_params(locals())
		params['timeout'] = self._navigation_timeout(timeout)
		await self._channel.send('setContent', params)

	async def evaluate(self, expression: str, arg: Any = None) -> Any:
		return parse_result(
			await self._channel.send('evaluateExpression', {'expression': expression, 'arg': serialize_argument(arg)})
		)

	async def evaluate_handle(self, expression: str, arg: Any = None) -> 'JSHandle':
		return await self._channel.send('evaluateExpressionHandle', {'expression': expression, 'arg': serialize_argument(arg)})

	async def query_selector(self, selector: str, strict: bool | None = None) -> Optional['ElementHandle']:
		return await self._channel.send('querySelector', locals_to_params(locals()))

	async def query_selector_all(self, selector: str) -> list['ElementHandle']:
		return await self._channel.send('querySelectorAll', {'selector': selector})

	async def eval_on_selector_all(self, selector: str, expression: str, arg: Any = None) -> Any:
		return parse_result(
			await self._channel.send(
				'evalOnSelectorAll', {'selector': selector, 'expression': expression, 'arg': serialize_argument(arg)}
			)
		)

	async def _query_count(self, selector: str) -> int:
		return await self._channel.send('queryCount', {'selector': selector})

	def locator(self, selector: str, has_text: str | Pattern[str] | None = None, has: Locator | None = None) -> Locator:
		return Locator(self, selector, has_text=has_text, has=has)

	async def wait_for_selector(
		self,
		selector: str,
		strict: bool | None = None,
		timeout: float | None = None,
		state: str | None = None,
	) -> Optional['ElementHandle']:
		params = locals_to_params(locals())
		params['timeout'] = self._timeout(timeout)
		return await self._channel.send('waitForSelector', params)

	async def _selector_action(self, method: str, args: dict[str, Any]) -> Any:
		params = _action_params(args)
		params['timeout'] = self._timeout(args.get('timeout'))
		return await self._channel.send(method, params)

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
		await self._selector_action('click', locals())

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
		await self._selector_action('dblclick', locals())

	async def fill(
		self,
		selector: str,
		value: str,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		force: bool | None = None,
	) -> None:
		await self._selector_action('fill', locals())

	async def type(
		self,
		selector: str,
		text: str,
		delay: float | None = None,
		strict: bool | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
	) -> None:
		await self._selector_action('type', locals())

	async def press(
		self,
		selector: str,
		key: str,
		delay: float | None = None,
		strict: bool | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
	) -> None:
		await self._selector_action('press', locals())

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
		await self._selector_action('check', locals())

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
		await self._selector_action('uncheck', locals())

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
		await self._selector_action('hover', locals())

	async def focus(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> None:
		await self._selector_action('focus', locals())

	async def select_option(
		self,
		selector: str,
		value: str | Sequence[str] | None = None,
		index: int | Sequence[int] | None = None,
		label: str | Sequence[str] | None = None,
		element: 'ElementHandle | Sequence[ElementHandle] | None' = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		strict: bool | None = None,
		force: bool | None = None,
	) -> list[str]:
		params = convert_select_option_values(value, index, label, element)
		params.update(locals_to_params({'selector': selector, 'no_wait_after': no_wait_after, 'strict': strict, 'force': force}))
		params['timeout'] = self._timeout(timeout)
		return await self._channel.send('selectOption', params)

	async def set_input_files(
		self,
		selector: str,
		files: InputFiles,
		strict: bool | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
	) -> None:
		"""Set the files of an `<input type=file>`: a path, a FilePayload, or a list of either."""
		params = convert_input_files(files, self._connection)
		params.update(locals_to_params({'selector': selector, 'strict': strict, 'no_wait_after': no_wait_after}))
		params['timeout'] = self._timeout(timeout)
		await self._channel.send('setInputFiles', params)

	async def text_content(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str | None:
		return await self._selector_action('textContent', locals())

	async def inner_text(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str:
		return await self._selector_action('innerText', locals())

	async def inner_html(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> str:
		return await self._selector_action('innerHTML', locals())

	async def get_attribute(self, selector: str, name: str, strict: bool | None = None, timeout: float | None = None) -> str | None:
		return await self._selector_action('getAttribute', locals())

	async def is_visible(self, selector: str, strict: bool | None = None) -> bool:
		return await self._channel.send('isVisible', locals_to_params(locals()))

	async def is_hidden(self, selector: str, strict: bool | None = None) -> bool:
		return await self._channel.send('isHidden', locals_to_params(locals()))

	async def is_enabled(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._selector_action('isEnabled', locals())

	async def is_disabled(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._selector_action('isDisabled', locals())

	async def is_checked(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._selector_action('isChecked', locals())

	async def is_editable(self, selector: str, strict: bool | None = None, timeout: float | None = None) -> bool:
		return await self._selector_action('isEditable', locals())

	async def dispatch_event(
		self,
		selector: str,
		type: str,
		event_init: dict[str, Any] | None = None,
		strict: bool | None = None,
		timeout: float | None = None,
	) -> None:
		params = locals_to_params({'selector': selector, 'type': type, 'strict': strict})
		params['eventInit'] = serialize_argument(event_init)
		params['timeout'] = self._timeout(timeout)
		await self._channel.send('dispatchEvent', params)

	async def add_script_tag(
		self,
		url: str | None = None,
		path: str | Path | None = None,
		content: str | None = None,
		type: str | None = None,
	) -> 'ElementHandle':
		params = locals_to_params({'url': url, 'content': content, 'type': type})
		if path is not None:
			params['content'] = Path(path).read_text() + f'\n//# sourceURL={Path(path).as_posix()}'
		if not params.get('url') and not params.get('content'):
			raise Error('Provide an object with a `url`, `path` or `content` property')
		return await self._channel.send('addScriptTag', params)

	async def add_style_tag(self, url: str | None = None, path: str | Path | None = None, content: str | None = None) -> 'ElementHandle':
		params = locals_to_params({'url': url, 'content': content})
		if path is not None:
			params['content'] = Path(path).read_text() + f'\n/*# sourceURL={Path(path).as_posix()}*/'
		if not params.get('url') and not params.get('content'):
			raise Error('Provide an object with a `url`, `path` or `content` property')
		return await self._channel.send('addStyleTag', params)

	def _matches_url(self, url: URLMatch | None) -> bool:
		base_url = self._page.context._options.base_url if self._page else None
		return url_matches(base_url, self._url, url)

	def _find_child(self, predicate: Callable[['Frame'], bool]) -> Optional['Frame']:
		if predicate(self):
			return self
		for child in self._child_frames:
			found = child._find_child(predicate)
			if found:
				return found
		return None
