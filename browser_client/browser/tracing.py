import logging
from pathlib import Path
from typing import Any

from browser_client.transport.connection import ChannelOwner
from browser_client.utils import locals_to_params

logger = logging.getLogger(__name__)


class Tracing(ChannelOwner):
	"""Trace recording of a browser context: snapshots, screenshots and the action log."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._include_sources = False
		self._is_tracing = False

	async def start(
		self,
		name: str | None = None,
		title: str | None = None,
		snapshots: bool | None = None,
		screenshots: bool | None = None,
		sources: bool | None = None,
	) -> None:
		self._include_sources = bool(sources)
		await self._channel.send(
			'tracingStart', locals_to_params({'name': name, 'snapshots': snapshots, 'screenshots': screenshots})
		)
		await self._channel.send('tracingStartChunk', locals_to_params({'name': name, 'title': title}))
		self._is_tracing = True
		logger.debug(f'🔴 Tracing started{f" ({name})" if name else ""}')

	async def start_chunk(self, title: str | None = None, name: str | None = None) -> None:
		await self._channel.send('tracingStartChunk', locals_to_params(locals()))
		self._is_tracing = True

	async def stop_chunk(self, path: str | Path | None = None) -> None:
		await self._do_stop_chunk(path)

	async def stop(self, path: str | Path | None = None) -> None:
		await self._do_stop_chunk(path)
		await self._channel.send('tracingStop')

	async def _do_stop_chunk(self, path: str | Path | None) -> None:
		self._is_tracing = False
		if path is None:
			await self._channel.send('tracingStopChunk', {'mode': 'discard'})
			return

		if not self._connection.is_remote:
			# Local driver: collect entries and let LocalUtils zip them next to the caller.
			result = await self._channel.send_return_as_dict('tracingStopChunk', {'mode': 'entries'})
			await self._connection.local_utils.zip(
				{
					'zipFile': str(Path(path).absolute()),
					'entries': result.get('entries', []),
					'mode': 'write',
					'includeSources': self._include_sources,
				}
			)
			logger.debug(f'⏹️ Trace written to {path}')
			return

		result = await self._channel.send_return_as_dict('tracingStopChunk', {'mode': 'archive'})
		artifact = result.get('artifact')
		# The driver returns no artifact when nothing was recorded.
		if artifact is None:
			return
		await artifact.save_as(path)
		await artifact.delete()
		logger.debug(f'⏹️ Remote trace saved to {path}')

	async def group(self, name: str, location: dict[str, Any] | None = None) -> None:
		"""Open a named group in the trace viewer's action list. Close it with `group_end()`."""
		await self._channel.send('tracingGroup', locals_to_params(locals()))

	async def group_end(self) -> None:
		await self._channel.send('tracingGroupEnd')
