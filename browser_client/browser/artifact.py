"""Files produced by the driver: downloads, videos, traces and HAR archives."""

import base64
import logging
from pathlib import Path
from typing import Any

from browser_client.exceptions import Error, TargetClosedError
from browser_client.transport.connection import ChannelOwner

logger = logging.getLogger(__name__)

REMOTE_PATH_ERROR = 'Path is not available when connecting remotely. Use save_as() to save a local copy.'


class Artifact(ChannelOwner):
	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self.absolute_path: str = initializer.get('absolutePath', '')

	def _closed_error(self) -> TargetClosedError | None:
		# Artifacts stay readable after their page or context closes.
		if self._was_disposed:
			return TargetClosedError(f'Artifact has been disposed: {self.absolute_path}')
		return None

	async def path_after_finished(self) -> Path:
		if self._connection.is_remote:
			raise Error(REMOTE_PATH_ERROR)
		path = await self._channel.send('pathAfterFinished')
		return Path(path)

	async def save_as(self, path: str | Path) -> None:
		path = Path(path)
		if not self._connection.is_remote:
			await self._channel.send('saveAs', {'path': str(path.absolute())})
			return
		stream: Stream = await self._channel.send('saveAsStream')
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(await stream.read_all())
		logger.debug(f'💾 Saved remote artifact to {path}')

	async def failure(self) -> str | None:
		return await self._channel.send('failure')

	async def read_all(self) -> bytes:
		stream: Stream = await self._channel.send('stream')
		return await stream.read_all()

	async def cancel(self) -> None:
		await self._channel.send('cancel')

	async def delete(self) -> None:
		await self._channel.send('delete')


class Stream(ChannelOwner):
	"""Chunked read access to a driver-side file."""

	async def read_all(self) -> bytes:
		chunks: list[bytes] = []
		while True:
			binary = await self._channel.send('read', {'size': 1024 * 1024})
			if not binary:
				break
			chunks.append(base64.b64decode(binary))
		await self._channel.send('close')
		return b''.join(chunks)
