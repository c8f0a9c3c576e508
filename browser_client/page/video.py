import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from browser_client.browser.artifact import REMOTE_PATH_ERROR
from browser_client.exceptions import Error

if TYPE_CHECKING:
	from browser_client.browser.artifact import Artifact
	from browser_client.page.page import Page

logger = logging.getLogger(__name__)


class Video:
	"""Screen recording of one page. The file is complete once the page or its context closes."""

	def __init__(self, page: 'Page') -> None:
		self._page = page
		self._artifact_future: asyncio.Future[Artifact] = asyncio.get_running_loop().create_future()
		self._saved_to: Path | None = None

	def __repr__(self) -> str:
		return f'<Video page={self._page!r}>'

	def _artifact_ready(self, artifact: 'Artifact') -> None:
		if not self._artifact_future.done():
			self._artifact_future.set_result(artifact)

	async def path(self) -> Path:
		if self._page._connection.is_remote:
			raise Error(REMOTE_PATH_ERROR)
		artifact = await self._artifact_future
		return Path(artifact.absolute_path)

	async def save_as(self, path: str | Path) -> None:
		"""Copy the recording to `path`. Waits for the page to close."""
		artifact = await self._artifact_future
		await artifact.save_as(path)

	async def delete(self) -> None:
		artifact = await self._artifact_future
		await artifact.delete()

	async def _finish(self, record_video_dir: str | Path | None) -> None:
		"""Wait until the recording is written; on a remote session copy it into `record_video_dir`."""
		if not self._artifact_future.done():
			return
		artifact = self._artifact_future.result()
		if not self._page._connection.is_remote:
			await artifact.path_after_finished()
			return
		if record_video_dir is None or self._saved_to is not None:
			return
		target = Path(record_video_dir) / f'{artifact.guid}.webm'
		await artifact.save_as(target)
		self._saved_to = target
		logger.debug(f'🎬 Saved remote video to {target}')
