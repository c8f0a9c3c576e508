from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
	from browser_client.page.page import Page


class WebError:
	"""An uncaught exception thrown in a page, reported on its context."""

	def __init__(self, page: Optional['Page'], error: Exception) -> None:
		self._page = page
		self._error = error

	def __repr__(self) -> str:
		return f'<WebError error={self._error!r}>'

	@property
	def page(self) -> Optional['Page']:
		return self._page

	@property
	def error(self) -> Exception:
		return self._error
