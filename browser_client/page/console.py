from typing import TYPE_CHECKING, Any, Literal, Optional, TypedDict

if TYPE_CHECKING:
	from browser_client.page.js_handle import JSHandle
	from browser_client.page.page import Page

ConsoleMessageType = Literal[
	'log',
	'debug',
	'info',
	'error',
	'warning',
	'dir',
	'dirxml',
	'table',
	'trace',
	'clear',
	'startGroup',
	'startGroupCollapsed',
	'endGroup',
	'assert',
	'profile',
	'profileEnd',
	'count',
	'timeEnd',
]


class SourceLocation(TypedDict):
	url: str
	lineNumber: int
	columnNumber: int


class ConsoleMessage:
	"""A `console.*` call made by a page or worker."""

	def __init__(self, event: dict[str, Any], page: Optional['Page'] = None) -> None:
		self._event = event
		self._page = page

	def __repr__(self) -> str:
		return f'<ConsoleMessage type={self.type!r} text={self.text!r}>'

	def __str__(self) -> str:
		return self.text

	@property
	def type(self) -> ConsoleMessageType:
		return self._event['type']

	@property
	def text(self) -> str:
		return self._event['text']

	@property
	def args(self) -> list['JSHandle']:
		return list(self._event.get('args', []))

	@property
	def location(self) -> SourceLocation:
		return self._event.get('location') or {'url': '', 'lineNumber': 0, 'columnNumber': 0}

	@property
	def page(self) -> Optional['Page']:
		return self._page
