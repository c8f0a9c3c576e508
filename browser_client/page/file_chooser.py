from typing import TYPE_CHECKING

from browser_client.browser.views import InputFiles

if TYPE_CHECKING:
	from browser_client.page.js_handle import ElementHandle
	from browser_client.page.page import Page


class FileChooser:
	"""Emitted as `PageEvent.FILE_CHOOSER` instead of opening the native picker."""

	def __init__(self, page: 'Page', element: 'ElementHandle', is_multiple: bool) -> None:
		self._page = page
		self._element = element
		self._is_multiple = is_multiple

	def __repr__(self) -> str:
		return f'<FileChooser multiple={self._is_multiple}>'

	@property
	def page(self) -> 'Page':
		return self._page

	@property
	def element(self) -> 'ElementHandle':
		return self._element

	def is_multiple(self) -> bool:
		return self._is_multiple

	async def set_files(self, files: InputFiles, timeout: float | None = None, no_wait_after: bool | None = None) -> None:
		await self._element.set_input_files(files, timeout=timeout, no_wait_after=no_wait_after)
