"""Client entry point: start a driver, perform the handshake and hand out browser types."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from browser_client.browser.views import DeviceDescriptor
from browser_client.network.api_request import APIRequest
from browser_client.transport.connection import ChannelOwner, Connection
from browser_client.transport.transport import PipeTransport, Transport
from browser_client.utils import to_snake_case

if TYPE_CHECKING:
	from browser_client.browser.browser_type import BrowserType
	from browser_client.browser.selectors import Selectors

logger = logging.getLogger(__name__)


class LocalUtils(ChannelOwner):
	"""Driver-side helpers that only make sense for a local driver: zipping traces, unpacking HARs."""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self.devices: dict[str, DeviceDescriptor] = {
			device['name']: _parse_device_descriptor(device['descriptor'])
			for device in initializer.get('deviceDescriptors', [])
		}

	async def zip(self, params: dict[str, Any]) -> None:
		await self._channel.send('zip', params)

	async def har_unzip(self, zip_file: str, har_file: str) -> None:
		await self._channel.send('harUnzip', {'zipFile': zip_file, 'harFile': har_file})


class BrowserClient(ChannelOwner):
	"""Root object returned by the handshake.

	```python
	async with async_client() as client:
		browser = await client.chromium.launch(headless=True)
		page = await browser.new_page()
		await page.goto('https://example.com')
	```
	"""

	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self.chromium: BrowserType = initializer['chromium']
		self.firefox: BrowserType = initializer['firefox']
		self.webkit: BrowserType = initializer['webkit']
		self.selectors: Selectors | None = initializer.get('selectors')
		self._local_utils: LocalUtils | None = initializer.get('utils')
		self.devices: dict[str, DeviceDescriptor] = self._local_utils.devices if self._local_utils else {}
		self.request = APIRequest()

	def __getitem__(self, name: str) -> 'BrowserType':
		if name not in ('chromium', 'firefox', 'webkit'):
			raise KeyError(name)
		return getattr(self, name)

	async def stop(self) -> None:
		"""Shut down the driver. Browsers launched through it are closed."""
		await self._connection.stop()


@asynccontextmanager
async def async_client(transport: Transport | None = None) -> AsyncIterator[BrowserClient]:
	"""Start a local driver (or use `transport`) and yield the connected client."""
	connection = Connection(transport or PipeTransport())
	client = await connection.run()
	logger.debug('🤝 Driver handshake complete')
	try:
		yield client
	finally:
		await connection.stop()


def _parse_device_descriptor(descriptor: dict[str, Any]) -> DeviceDescriptor:
	parsed: dict[str, Any] = {to_snake_case(key): value for key, value in descriptor.items()}
	return DeviceDescriptor(**parsed)  # type: ignore[typeddict-item]
