import base64
import json
from typing import TYPE_CHECKING, Any, Optional, cast
from urllib.parse import parse_qs

from browser_client.exceptions import Error
from browser_client.network.headers import RawHeaders
from browser_client.network.views import FallbackOverrides, RequestSizes, ResourceTiming
from browser_client.transport.connection import ChannelOwner

if TYPE_CHECKING:
	from browser_client.network.response import Response
	from browser_client.page.frame import Frame
	from browser_client.page.page import Page


class Request(ChannelOwner):
	"""A network request issued by a page, mirrored from the driver."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._redirected_from: Request | None = initializer.get('redirectedFrom')
		self._redirected_to: Request | None = None
		if self._redirected_from:
			self._redirected_from._redirected_to = self
		self._failure_text: str | None = None
		self._provisional_headers = RawHeaders(initializer.get('headers', []))
		self._all_headers: RawHeaders | None = None
		self._response_object: Response | None = None
		self._timing: ResourceTiming = {
			'startTime': 0,
			'domainLookupStart': -1,
			'domainLookupEnd': -1,
			'connectStart': -1,
			'secureConnectionStart': -1,
			'connectEnd': -1,
			'requestStart': -1,
			'responseStart': -1,
			'responseEnd': -1,
		}
		self._fallback_overrides = FallbackOverrides()

	def __repr__(self) -> str:
		return f'<Request url={self.url!r} method={self.method!r}>'

	def _apply_fallback_overrides(self, overrides: FallbackOverrides) -> None:
		update = overrides.model_dump(exclude_none=True)
		self._fallback_overrides = self._fallback_overrides.model_copy(update=update)

	@property
	def url(self) -> str:
		return self._fallback_overrides.url or self._initializer['url']

	@property
	def method(self) -> str:
		return self._fallback_overrides.method or self._initializer['method']

	@property
	def resource_type(self) -> str:
		return self._initializer['resourceType']

	@property
	def headers(self) -> dict[str, str]:
		"""Headers known when the request was issued. See `all_headers()` for the complete set."""
		override = self._fallback_overrides.headers
		if override is not None:
			return RawHeaders.from_dict(override).headers()
		return self._provisional_headers.headers()

	async def _actual_headers(self) -> RawHeaders:
		if self._fallback_overrides.headers is not None:
			return RawHeaders.from_dict(self._fallback_overrides.headers)
		if self._all_headers is None:
			headers = await self._channel.send('rawRequestHeaders')
			self._all_headers = RawHeaders(headers)
		return self._all_headers

	async def all_headers(self) -> dict[str, str]:
		return (await self._actual_headers()).headers()

	async def headers_array(self) -> list[dict[str, str]]:
		return cast(list[dict[str, str]], (await self._actual_headers()).headers_array())

	async def header_value(self, name: str) -> str | None:
		return (await self._actual_headers()).get(name)

	@property
	def post_data_buffer(self) -> bytes | None:
		if self._fallback_overrides.post_data_buffer is not None:
			return self._fallback_overrides.post_data_buffer
		post_data = self._initializer.get('postData')
		if post_data is None:
			return None
		return base64.b64decode(post_data)

	@property
	def post_data(self) -> str | None:
		data = self.post_data_buffer
		if data is None:
			return None
		return data.decode(errors='replace')

	@property
	def post_data_json(self) -> Any:
		"""The request body parsed as JSON, or as a form when the body is url-encoded."""
		post_data = self.post_data
		if post_data is None:
			return None
		content_type = self.headers.get('content-type', '')
		if content_type.startswith('application/x-www-form-urlencoded'):
			return {key: values[-1] for key, values in parse_qs(post_data, keep_blank_values=True).items()}
		try:
			return json.loads(post_data)
		except json.JSONDecodeError:
			raise Error(f'POST data is not a valid JSON object: {post_data}')

	@property
	def frame(self) -> 'Frame':
		frame = self._initializer.get('frame')
		if frame is None:
			raise Error('Service Worker requests do not have an associated frame.')
		return frame

	def _safe_page(self) -> Optional['Page']:
		frame = self._initializer.get('frame')
		if frame is None:
			return None
		return frame._page

	def is_navigation_request(self) -> bool:
		return bool(self._initializer.get('isNavigationRequest'))

	@property
	def redirected_from(self) -> Optional['Request']:
		return self._redirected_from

	@property
	def redirected_to(self) -> Optional['Request']:
		return self._redirected_to

	@property
	def failure(self) -> str | None:
		return self._failure_text

	@property
	def timing(self) -> ResourceTiming:
		return self._timing

	async def response(self) -> Optional['Response']:
		return await self._channel.send('response')

	async def sizes(self) -> RequestSizes:
		response = await self.response()
		if response is None:
			raise Error('Unable to fetch sizes for failed request')
		return await response._channel.send('sizes')
