import base64
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from browser_client.browser.views import FilePayload, FloatRect, InputFiles, KeyboardModifier, MouseButton, Position
from browser_client.exceptions import Error
from browser_client.js_value import parse_result, serialize_argument
from browser_client.transport.connection import ChannelOwner, Connection
from browser_client.utils import guess_mime_type, locals_to_params

if TYPE_CHECKING:
	from browser_client.page.frame import Frame


class JSHandle(ChannelOwner):
	"""Reference to an object living in the page."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._preview: str = initializer.get('preview', '')
		self._event_handlers['previewUpdated'] = self._on_preview_updated

	def __repr__(self) -> str:
		return f'<JSHandle preview={self._preview}>'

	def __str__(self) -> str:
		return self._preview

	def _on_preview_updated(self, params: dict[str, Any]) -> None:
		self._preview = params['preview']

	async def evaluate(self, expression: str, arg: Any = None) -> Any:
		"""Run `expression` with this handle as its first argument and return the result by value."""
		return parse_result(
			await self._channel.send('evaluateExpression', {'expression': expression, 'arg': serialize_argument(arg)})
		)

	async def evaluate_handle(self, expression: str, arg: Any = None) -> 'JSHandle':
		return await self._channel.send('evaluateExpressionHandle', {'expression': expression, 'arg': serialize_argument(arg)})

	async def get_property(self, property_name: str) -> 'JSHandle':
		return await self._channel.send('getProperty', {'name': property_name})

	async def get_properties(self) -> dict[str, 'JSHandle']:
		properties = await self._channel.send('getPropertyList')
		return {prop['name']: prop['value'] for prop in properties}

	def as_element(self) -> Optional['ElementHandle']:
		return None

	async def dispose(self) -> None:
		await self._channel.send('dispose')

	async def json_value(self) -> Any:
		return parse_result(await self._channel.send('jsonValue'))


class ElementHandle(JSHandle):
	"""Handle to a DOM element, with the element-level actions."""

	def __repr__(self) -> str:
		return f'<ElementHandle preview={self._preview}>'

	def as_element(self) -> Optional['ElementHandle']:
		return self

	async def owner_frame(self) -> Optional['Frame']:
		return await self._channel.send('ownerFrame')

	async def content_frame(self) -> Optional['Frame']:
		return await self._channel.send('contentFrame')

	async def get_attribute(self, name: str) -> str | None:
		return await self._channel.send('getAttribute', {'name': name})

	async def text_content(self) -> str | None:
		return await self._channel.send('textContent')

	async def inner_text(self) -> str:
		return await self._channel.send('innerText')

	async def inner_html(self) -> str:
		return await self._channel.send('innerHTML')

	async def is_checked(self) -> bool:
		return await self._channel.send('isChecked')

	async def is_disabled(self) -> bool:
		return await self._channel.send('isDisabled')

	async def is_editable(self) -> bool:
		return await self._channel.send('isEditable')

	async def is_enabled(self) -> bool:
		return await self._channel.send('isEnabled')

	async def is_hidden(self) -> bool:
		return await self._channel.send('isHidden')

	async def is_visible(self) -> bool:
		return await self._channel.send('isVisible')

	async def dispatch_event(self, type: str, event_init: dict[str, Any] | None = None) -> None:
		await self._channel.send('dispatchEvent', {'type': type, 'eventInit': serialize_argument(event_init)})

	async def scroll_into_view_if_needed(self, timeout: float | None = None) -> None:
		await self._channel.send('scrollIntoViewIfNeeded', locals_to_params(locals()))

	async def hover(
		self,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._channel.send('hover', _action_params(locals()))

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
		await self._channel.send('click', _action_params(locals()))

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
		await self._channel.send('dblclick', _action_params(locals()))

	async def select_option(
		self,
		value: str | Sequence[str] | None = None,
		index: int | Sequence[int] | None = None,
		label: str | Sequence[str] | None = None,
		element: Optional['ElementHandle'] = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
	) -> list[str]:
		params = convert_select_option_values(value, index, label, element)
		params.update(locals_to_params({'timeout': timeout, 'force': force, 'no_wait_after': no_wait_after}))
		return await self._channel.send('selectOption', params)

	async def tap(
		self,
		modifiers: Sequence[KeyboardModifier] | None = None,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._channel.send('tap', _action_params(locals()))

	async def fill(self, value: str, timeout: float | None = None, no_wait_after: bool | None = None, force: bool | None = None) -> None:
		await self._channel.send('fill', locals_to_params(locals()))

	async def select_text(self, force: bool | None = None, timeout: float | None = None) -> None:
		await self._channel.send('selectText', locals_to_params(locals()))

	async def set_input_files(self, files: InputFiles, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		params = convert_input_files(files, self._connection)
		params.update(locals_to_params({'timeout': timeout, 'no_wait_after': no_wait_after}))
		await self._channel.send('setInputFiles', params)

	async def focus(self) -> None:
		await self._channel.send('focus')

	async def type(self, text: str, delay: float | None = None, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._channel.send('type', locals_to_params(locals()))

	async def press(self, key: str, delay: float | None = None, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._channel.send('press', locals_to_params(locals()))

	async def check(
		self,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._channel.send('check', _action_params(locals()))

	async def uncheck(
		self,
		position: Position | dict[str, float] | None = None,
		timeout: float | None = None,
		force: bool | None = None,
		no_wait_after: bool | None = None,
		trial: bool | None = None,
	) -> None:
		await self._channel.send('uncheck', _action_params(locals()))

	async def bounding_box(self) -> FloatRect | None:
		box = await self._channel.send('boundingBox')
		return FloatRect.model_validate(box) if box else None

	async def screenshot(
		self,
		timeout: float | None = None,
		type: str | None = None,
		path: str | Path | None = None,
		quality: int | None = None,
		omit_background: bool | None = None,
	) -> bytes:
		params = locals_to_params(locals())
		params.pop('path', None)
		if path is not None and type is None:
			params['type'] = 'jpeg' if Path(path).suffix.lower() in ('.jpg', '.jpeg') else 'png'
		binary = await self._channel.send('screenshot', params)
		data = base64.b64decode(binary)
		if path is not None:
			Path(path).parent.mkdir(parents=True, exist_ok=True)
			Path(path).write_bytes(data)
		return data

	async def query_selector(self, selector: str) -> Optional['ElementHandle']:
		return await self._channel.send('querySelector', {'selector': selector})

	async def query_selector_all(self, selector: str) -> list['ElementHandle']:
		return await self._channel.send('querySelectorAll', {'selector': selector})

	async def wait_for_element_state(self, state: str, timeout: float | None = None) -> None:
		await self._channel.send('waitForElementState', locals_to_params(locals()))

	async def wait_for_selector(self, selector: str, state: str | None = None, timeout: float | None = None, strict: bool | None = None) -> Optional['ElementHandle']:
		return await self._channel.send('waitForSelector', locals_to_params(locals()))


def _action_params(args: dict[str, Any]) -> dict[str, Any]:
	"""`locals_to_params` plus model conversion for positions."""
	params = locals_to_params(args)
	position = params.get('position')
	if isinstance(position, Position):
		params['position'] = position.to_protocol()
	if 'modifiers' in params:
		params['modifiers'] = list(params['modifiers'])
	return params


def convert_select_option_values(
	value: str | Sequence[str] | None = None,
	index: int | Sequence[int] | None = None,
	label: str | Sequence[str] | None = None,
	element: ElementHandle | Sequence[ElementHandle] | None = None,
) -> dict[str, Any]:
	if value is None and index is None and label is None and element is None:
		return {}
	options: list[dict[str, Any]] = []
	if value is not None:
		for item in [value] if isinstance(value, str) else value:
			options.append({'valueOrLabel': item})
	if index is not None:
		for item in [index] if isinstance(index, int) else index:
			options.append({'index': item})
	if label is not None:
		for item in [label] if isinstance(label, str) else label:
			options.append({'label': item})
	params: dict[str, Any] = {}
	if options:
		params['options'] = options
	if element is not None:
		params['elements'] = [element] if isinstance(element, ElementHandle) else list(element)
	return params


def convert_input_files(files: InputFiles, connection: Connection) -> dict[str, Any]:
	"""Normalize a path, a FilePayload or a list of either into setInputFiles params.

	Local sessions pass paths to the driver; remote sessions upload the contents.
	"""
	items: list[Any] = list(files) if isinstance(files, Sequence) and not isinstance(files, str) else [files]
	if not items:
		return {'payloads': []}
	if all(isinstance(item, FilePayload) for item in items):
		return {
			'payloads': [
				{'name': item.name, 'mimeType': item.mime_type, 'buffer': base64.b64encode(item.buffer).decode()}
				for item in items
			]
		}
	if any(isinstance(item, FilePayload) for item in items):
		raise Error('File paths and FilePayload objects cannot be mixed in one call')

	paths = [Path(item) for item in items]
	for path in paths:
		if not path.exists():
			raise Error(f'File not found: {path}')
	if not connection.is_remote:
		return {'localPaths': [str(path.absolute()) for path in paths]}
	return {
		'payloads': [
			{'name': path.name, 'mimeType': guess_mime_type(str(path)), 'buffer': base64.b64encode(path.read_bytes()).decode()}
			for path in paths
		]
	}
