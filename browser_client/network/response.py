import asyncio
import base64
import json
from typing import TYPE_CHECKING, Any, cast

from browser_client.exceptions import Error, ResponseParseError
from browser_client.network.headers import RawHeaders
from browser_client.network.views import RemoteAddr, SecurityDetails
from browser_client.transport.connection import ChannelOwner

if TYPE_CHECKING:
	from browser_client.network.request import Request
	from browser_client.page.frame import Frame


class Response(ChannelOwner):
	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._request: Request = initializer['request']
		timing = initializer.get('timing')
		if timing:
			self._request._timing.update(timing)
		self._request._response_object = self
		self._provisional_headers = RawHeaders(initializer.get('headers', []))
		self._raw_headers: RawHeaders | None = None
		self._body_task: asyncio.Task[bytes] | None = None
		self._finished_future: asyncio.Future[Error | None] = asyncio.get_running_loop().create_future()

	def __repr__(self) -> str:
		return f'<Response url={self.url!r} status={self.status}>'

	@property
	def url(self) -> str:
		return self._initializer['url']

	@property
	def ok(self) -> bool:
		"""True exactly when the status is in the range 200-299."""
		return 200 <= self.status <= 299

	@property
	def status(self) -> int:
		return self._initializer['status']

	@property
	def status_text(self) -> str:
		return self._initializer.get('statusText', '')

	@property
	def from_service_worker(self) -> bool:
		return bool(self._initializer.get('fromServiceWorker'))

	@property
	def headers(self) -> dict[str, str]:
		"""Lower-cased header mapping. Duplicates are joined with ', ' (set-cookie with newlines)."""
		return self._provisional_headers.headers()

	async def _actual_headers(self) -> RawHeaders:
		if self._raw_headers is None:
			self._raw_headers = RawHeaders(await self._channel.send('rawResponseHeaders'))
		return self._raw_headers

	async def all_headers(self) -> dict[str, str]:
		return (await self._actual_headers()).headers()

	async def headers_array(self) -> list[dict[str, str]]:
		"""Headers in wire order with original casing. Duplicate entries are preserved."""
		return cast(list[dict[str, str]], (await self._actual_headers()).headers_array())

	async def header_value(self, name: str) -> str | None:
		return (await self._actual_headers()).get(name)

	async def header_values(self, name: str) -> list[str]:
		return (await self._actual_headers()).get_all(name)

	async def server_addr(self) -> RemoteAddr | None:
		return await self._channel.send('serverAddr')

	async def security_details(self) -> SecurityDetails | None:
		return await self._channel.send('securityDetails')

	async def finished(self) -> Error | None:
		"""Wait until the response body is fully received. Returns the failure, if any."""
		return await asyncio.shield(self._finished_future)

	def _report_finished(self, failure: str | None = None) -> None:
		if self._finished_future.done():
			return
		self._finished_future.set_result(Error(failure) if failure else None)

	async def _fetch_body(self) -> bytes:
		binary = await self._channel.send('body')
		return base64.b64decode(binary)

	async def body(self) -> bytes:
		"""Response body, fetched from the driver once and cached for every later call."""
		if self._body_task is None:
			self._body_task = asyncio.create_task(self._fetch_body(), name=f'response_body_{self._guid}')
		task = self._body_task
		try:
			return await asyncio.shield(task)
		except Error:
			if self._body_task is task and task.done():
				self._body_task = None
			raise

	async def text(self) -> str:
		content = await self.body()
		return content.decode('utf-8', errors='replace')

	async def json(self) -> Any:
		text = await self.text()
		try:
			return json.loads(text)
		except json.JSONDecodeError as e:
			raise ResponseParseError(f'Failed to parse response body of {self.url} as JSON: {e}') from e

	@property
	def request(self) -> 'Request':
		return self._request

	@property
	def frame(self) -> 'Frame':
		return self._request.frame
