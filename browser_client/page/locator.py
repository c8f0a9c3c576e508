"""Lazy element queries.

A `Locator` holds a frame and a selector and resolves them on every call, so it
survives re-renders that would leave an `ElementHandle` pointing at a detached
node. Actions run in strict mode: a selector matching more than one element
fails instead of silently picking the first.

```python
await page.get_by_role('button', name='Sign in').click()
await page.locator('li').filter(has_text='Milk').nth(1).check()
```
"""

import json
import re
from collections.abc import Sequence
from pathlib import Path
from re import Pattern
from typing import TYPE_CHECKING, Any, Literal, Optional

from browser_client.browser.views import InputFiles, KeyboardModifier, MouseButton, Position
from browser_client.exceptions import Error
from browser_client.js_value import _REGEX_FLAGS

if TYPE_CHECKING:
	from browser_client.page.frame import Frame
	from browser_client.page.js_handle import ElementHandle
	from browser_client.page.page import Page

_test_id_attribute_name = 'data-testid'

_REGEX_SPECIAL_RE = re.compile(r'[.*+?^>${}()|[\]\\]')


def set_test_id_attribute_name(attribute_name: str) -> None:
	"""Attribute that `get_by_test_id` matches, `data-testid` unless overridden."""
	global _test_id_attribute_name
	_test_id_attribute_name = attribute_name


def _regex_source(pattern: Pattern[str]) -> str:
	flags = ''.join(flag for bit, flag in _REGEX_FLAGS if pattern.flags & bit)
	return f'/{pattern.pattern}/{flags}'


def _quote(value: str) -> str:
	return '"' + value.replace('"', '\\"') + '"'


def escape_for_text_selector(text: str | Pattern[str], exact: bool | None) -> str:
	if isinstance(text, Pattern):
		return _regex_source(text)
	if exact:
		return _quote(text)
	if '"' in text or '>>' in text or text.startswith('/'):
		escaped = _REGEX_SPECIAL_RE.sub(lambda match: '\\' + match.group(0), text)
		return '/' + re.sub(r'\s+', lambda match: '\\s+', escaped) + '/i'
	return text


def escape_for_attribute_selector(value: str, exact: bool | None) -> str:
	return _quote(value) + ('' if exact else 'i')


def get_by_attribute_text_selector(attribute: str, text: str | Pattern[str], exact: bool | None = None) -> str:
	if isinstance(text, Pattern):
		return f'internal:attr=[{attribute}={_regex_source(text)}]'
	return f'internal:attr=[{attribute}={escape_for_attribute_selector(text, exact)}]'


def get_by_test_id_selector(test_id: str) -> str:
	return get_by_attribute_text_selector(_test_id_attribute_name, test_id, exact=True)


def get_by_label_selector(text: str | Pattern[str], exact: bool | None = None) -> str:
	return 'internal:label=' + escape_for_text_selector(text, exact)


def get_by_text_selector(text: str | Pattern[str], exact: bool | None = None) -> str:
	return 'text=' + escape_for_text_selector(text, exact)


def get_by_role_selector(
	role: str,
	checked: bool | None = None,
	disabled: bool | None = None,
	expanded: bool | None = None,
	include_hidden: bool | None = None,
	level: int | None = None,
	name: str | Pattern[str] | None = None,
	pressed: bool | None = None,
	selected: bool | None = None,
) -> str:
	props: list[tuple[str, str]] = []
	for key, flag in (('checked', checked), ('disabled', disabled), ('selected', selected), ('expanded', expanded)):
		if flag is not None:
			props.append((key, json.dumps(flag)))
	if include_hidden is not None:
		props.append(('include-hidden', json.dumps(include_hidden)))
	if level is not None:
		props.append(('level', str(level)))
	if isinstance(name, Pattern):
		props.append(('name', _regex_source(name)))
	elif name is not None:
		props.append(('name', escape_for_attribute_selector(name, False)))
	if pressed is not None:
		props.append(('pressed', json.dumps(pressed)))
	return f'role={role}' + ''.join(f'[{key}={value}]' for key, value in props)


class LocatorFactory:
	"""`get_by_*` shortcuts shared by pages, frames and locators. Subclasses implement `locator`."""

	def locator(self, selector: str, has_text: str | Pattern[str] | None = None, has: Optional['Locator'] = None) -> 'Locator':
		raise NotImplementedError

	def get_by_alt_text(self, text: str | Pattern[str], exact: bool | None = None) -> 'Locator':
		return self.locator(get_by_attribute_text_selector('alt', text, exact))

	def get_by_label(self, text: str | Pattern[str], exact: bool | None = None) -> 'Locator':
		return self.locator(get_by_label_selector(text, exact))

	def get_by_placeholder(self, text: str | Pattern[str], exact: bool | None = None) -> 'Locator':
		return self.locator(get_by_attribute_text_selector('placeholder', text, exact))

	def get_by_role(
		self,
		role: str,
		checked: bool | None = None,
		disabled: bool | None = None,
		expanded: bool | None = None,
		include_hidden: bool | None = None,
		level: int | None = None,
		name: str | Pattern[str] | None = None,
		pressed: bool | None = None,
		selected: bool | None = None,
	) -> 'Locator':
		return self.locator(
			get_by_role_selector(role, checked, disabled, expanded, include_hidden, level, name, pressed, selected)
		)

	def get_by_test_id(self, test_id: str) -> 'Locator':
		return self.locator(get_by_test_id_selector(test_id))

	def get_by_text(self, text: str | Pattern[str], exact: bool | None = None) -> 'Locator':
		return self.locator(get_by_text_selector(text, exact))

	def get_by_title(self, text: str | Pattern[str], exact: bool | None = None) -> 'Locator':
		return self.locator(get_by_attribute_text_selector('title', text, exact))


def _strict(args: dict[str, Any]) -> dict[str, Any]:
	params = {key: value for key, value in args.items() if key != 'self'}
	params['strict'] = True
	return params


class Locator(LocatorFactory):
	def __init__(
		self,
		frame: 'Frame',
		selector: str,
		has_text: str | Pattern[str] | None = None,
		has: Optional['Locator'] = None,
	) -> None:
		self._frame = frame
		self._selector = selector
		if has_text is not None:
			text_selector = 'text=' + escape_for_text_selector(has_text, False)
			self._selector += ' >> internal:has=' + json.dumps(text_selector, ensure_ascii=False)
		if has is not None:
			if has._frame is not frame:
				raise Error('Inner "has" locator must belong to the same frame.')
			self._selector += ' >> internal:has=' + json.dumps(has._selector, ensure_ascii=False)

	def __repr__(self) -> str:
		return f'<Locator frame={self._frame!r} selector={self._selector!r}>'

	@property
	def page(self) -> 'Page':
		return self._frame.page

	@property
	def first(self) -> 'Locator':
		return Locator(self._frame, f'{self._selector} >> nth=0')

	@property
	def last(self) -> 'Locator':
		return Locator(self._frame, f'{self._selector} >> nth=-1')

	def nth(self, index: int) -> 'Locator':
		return Locator(self._frame, f'{self._selector} >> nth={index}')

	def locator(self, selector: str, has_text: str | Pattern[str] | None = None, has: Optional['Locator'] = None) -> 'Locator':
		return Locator(self._frame, f'{self._selector} >> {selector}', has_text=has_text, has=has)

	def filter(self, has_text: str | Pattern[str] | None = None, has: Optional['Locator'] = None) -> 'Locator':
		return Locator(self._frame, self._selector, has_text=has_text, has=has)

	# --- Queries -------------------------------------------------------------

	async def count(self) -> int:
		return await self._frame._query_count(self._selector)

	async def element_handle(self, timeout: float | None = None) -> 'ElementHandle':
		handle = await self._frame.wait_for_selector(self._selector, strict=True, state='attached', timeout=timeout)
		if handle is None:
			raise Error(f'Could not resolve {self._selector} to DOM Element')
		return handle

	async def element_handles(self) -> list['ElementHandle']:
		return await self._frame.query_selector_all(self._selector)

	async def all_inner_texts(self) -> list[str]:
		return await self._frame.eval_on_selector_all(self._selector, 'ee => ee.map(e => e.innerText)')

	async def all_text_contents(self) -> list[str]:
		return await self._frame.eval_on_selector_all(self._selector, "ee => ee.map(e => e.textContent || '')")

	async def evaluate_all(self, expression: str, arg: Any = None) -> Any:
		return await self._frame.eval_on_selector_all(self._selector, expression, arg)

	async def wait_for(
		self, state: Literal['attached', 'detached', 'visible', 'hidden'] | None = None, timeout: float | None = None
	) -> None:
		await self._frame.wait_for_selector(self._selector, strict=True, state=state, timeout=timeout)

	async def text_content(self, timeout: float | None = None) -> str | None:
		return await self._frame.text_content(self._selector, **_strict(locals()))

	async def inner_text(self, timeout: float | None = None) -> str:
		return await self._frame.inner_text(self._selector, **_strict(locals()))

	async def inner_html(self, timeout: float | None = None) -> str:
		return await self._frame.inner_html(self._selector, **_strict(locals()))

	async def get_attribute(self, name: str, timeout: float | None = None) -> str | None:
		return await self._frame.get_attribute(self._selector, **_strict(locals()))

	async def is_visible(self) -> bool:
		return await self._frame.is_visible(self._selector, strict=True)

	async def is_hidden(self) -> bool:
		return await self._frame.is_hidden(self._selector, strict=True)

	async def is_enabled(self, timeout: float | None = None) -> bool:
		return await self._frame.is_enabled(self._selector, **_strict(locals()))

	async def is_disabled(self, timeout: float | None = None) -> bool:
		return await self._frame.is_disabled(self._selector, **_strict(locals()))

	async def is_checked(self, timeout: float | None = None) -> bool:
		return await self._frame.is_checked(self._selector, **_strict(locals()))

	async def is_editable(self, timeout: float | None = None) -> bool:
		return await self._frame.is_editable(self._selector, **_strict(locals()))

	# --- Actions -------------------------------------------------------------

	async def click(
		self,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		delay: float | None = None,
		button: MouseButton | None = None,
		click_count: int | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._frame.click(self._selector, **_strict(locals()))

	async def dblclick(
		self,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		delay: float | None = None,
		button: MouseButton | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._frame.dblclick(self._selector, **_strict(locals()))

	async def fill(self, value: str, timeout: float | None = None, no_wait_after: bool | None = None, force: bool | None = None) -> None:
		await self._frame.fill(self._selector, **_strict(locals()))

	async def clear(self, timeout: float | None = None, no_wait_after: bool | None = None, force: bool | None = None) -> None:
		await self.fill('', timeout=timeout, no_wait_after=no_wait_after, force=force)

	async def type(self, text: str, delay: float | None = None, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._frame.type(self._selector, **_strict(locals()))

	async def press(self, key: str, delay: float | None = None, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._frame.press(self._selector, **_strict(locals()))

	async def check(
		self,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._frame.check(self._selector, **_strict(locals()))

	async def uncheck(
		self,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._frame.uncheck(self._selector, **_strict(locals()))

	async def set_checked(self, checked: bool, timeout: float | None = None, force: bool | None = None) -> None:
		if checked:
			await self.check(timeout=timeout, force=force)
		else:
			await self.uncheck(timeout=timeout, force=force)

	async def hover(
		self,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		force: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._frame.hover(self._selector, **_strict(locals()))

	async def focus(self, timeout: float | None = None) -> None:
		await self._frame.focus(self._selector, **_strict(locals()))

	async def select_option(
		self,
		value: str | Sequence[str] | None = None,
		index: int | Sequence[int] | None = None,
		label: str | Sequence[str] | None = None,
		element: 'ElementHandle | Sequence[ElementHandle] | None' = None,
		timeout: float | None = None,
		no_wait_after: bool | None = None,
		force: bool | None = None,
	) -> list[str]:
		return await self._frame.select_option(self._selector, **_strict(locals()))

	async def set_input_files(self, files: InputFiles, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._frame.set_input_files(self._selector, **_strict(locals()))

	async def dispatch_event(self, type: str, event_init: dict[str, Any] | None = None, timeout: float | None = None) -> None:
		await self._frame.dispatch_event(self._selector, **_strict(locals()))

	async def screenshot(
		self,
		timeout: float | None = None,
		type: str | None = None,
		path: str | Path | None = None,
		quality: int | None = None,
		omit_background: bool | None = None,
	) -> bytes:
		handle = await self.element_handle(timeout=timeout)
		try:
			return await handle.screenshot(timeout=timeout, type=type, path=path, quality=quality, omit_background=omit_background)
		finally:
			await handle.dispose()
