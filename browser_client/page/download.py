from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from browser_client.browser.artifact import Artifact
	from browser_client.page.page import Page


class Download:
	"""A file download started by a page.

	The file is kept by the driver until the context closes. On a remote session
	`path()` is unavailable; use `save_as()`.
	"""

	def __init__(self, page: 'Page', url: str, suggested_filename: str, artifact: 'Artifact') -> None:
		self._page = page
		self._url = url
		self._suggested_filename = suggested_filename
		self._artifact = artifact

	def __repr__(self) -> str:
		return f'<Download url={self.url!r} suggested_filename={self.suggested_filename!r}>'

	@property
	def page(self) -> 'Page':
		return self._page

	@property
	def url(self) -> str:
		return self._url

	@property
	def suggested_filename(self) -> str:
		return self._suggested_filename

	async def path(self) -> Path:
		"""Local path of the finished download. Waits for the download to complete."""
		return await self._artifact.path_after_finished()

	async def save_as(self, path: str | Path) -> None:
		await self._artifact.save_as(path)

	async def failure(self) -> str | None:
		return await self._artifact.failure()

	async def delete(self) -> None:
		await self._artifact.delete()

	async def cancel(self) -> None:
		await self._artifact.cancel()
