import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from browser_client.browser.views import BrowserContextOptions, LaunchOptions
from browser_client.exceptions import Error, TimeoutError
from browser_client.transport.connection import ChannelOwner, Connection
from browser_client.transport.transport import WebSocketTransport
from browser_client.utils import locals_to_params

if TYPE_CHECKING:
	from browser_client.browser.browser import Browser
	from browser_client.browser.context import BrowserContext

logger = logging.getLogger(__name__)


class BrowserType(ChannelOwner):
	"""Entry point for one browser engine: `chromium`, `firefox` or `webkit`."""

	def __repr__(self) -> str:
		return f'<BrowserType name={self.name!r}>'

	@property
	def name(self) -> str:
		return self._initializer['name']

	@property
	def executable_path(self) -> str:
		return self._initializer['executablePath']

	async def launch(self, **options: Any) -> 'Browser':
		"""Launch a browser process. Keyword options are validated as `LaunchOptions`."""
		launch_options = LaunchOptions(**options)
		browser: Browser = await self._channel.send('launch', launch_options.to_protocol())
		browser._browser_type = self
		logger.info(f'🚀 Launched {self.name} {browser.version}')
		return browser

	async def launch_persistent_context(self, user_data_dir: str | Path, **options: Any) -> 'BrowserContext':
		"""Launch a browser that keeps its profile in `user_data_dir`, returning its only context.

		Accepts both launch and context options; an empty `user_data_dir` means a temporary profile.
		"""
		launch_keys = set(LaunchOptions.model_fields)
		launch_options = LaunchOptions(**{k: v for k, v in options.items() if k in launch_keys})
		context_options = BrowserContextOptions(**{k: v for k, v in options.items() if k not in launch_keys})
		params = {
			**launch_options.to_protocol(),
			**context_options.to_protocol(),
			'userDataDir': str(Path(user_data_dir).absolute()) if user_data_dir else '',
		}
		context: BrowserContext = await self._channel.send('launchPersistentContext', params)
		context._setup(context_options, context._browser)
		await context._start_har_recording()
		return context

	async def connect(
		self,
		ws_endpoint: str,
		timeout: float | None = None,
		slow_mo: float | None = None,
		headers: dict[str, str] | None = None,
	) -> 'Browser':
		"""Attach to a browser served remotely over a WebSocket.

		The returned browser owns a separate connection; closing it closes that connection.
		Files produced remotely (downloads, videos, traces) must be fetched with `save_as()`.
		"""
		if timeout is None:
			timeout = 0
		transport_headers = {'x-playwright-browser': self.name, **(headers or {})}
		if slow_mo:
			transport_headers['x-playwright-slow-mo'] = str(slow_mo)
		connection = Connection(WebSocketTransport(ws_endpoint, headers=transport_headers, timeout=timeout), is_remote=True)
		try:
			if timeout:
				client = await asyncio.wait_for(connection.run(), timeout / 1000)
			else:
				client = await connection.run()
		except asyncio.TimeoutError as e:
			await connection.stop()
			raise TimeoutError(f'Timeout {timeout:.0f}ms exceeded while connecting to {ws_endpoint}') from e

		browser: Browser | None = client.initializer.get('preLaunchedBrowser')
		if browser is None:
			await connection.stop()
			raise Error('Malformed endpoint. Did you use BrowserType.launch_server() to obtain the endpoint?')
		browser._browser_type = self
		browser._should_close_connection_on_close = True
		logger.info(f'🌐 Connected to remote {self.name} {browser.version} at {ws_endpoint}')
		return browser

	async def connect_over_cdp(
		self,
		endpoint_url: str,
		timeout: float | None = None,
		slow_mo: float | None = None,
		headers: dict[str, str] | None = None,
	) -> 'Browser':
		"""Attach to a running Chromium through its DevTools endpoint (chromium only)."""
		if self.name != 'chromium':
			raise Error('Connecting over CDP is only supported in Chromium.')
		params = locals_to_params(locals())
		if headers is not None:
			params['headers'] = [{'name': name, 'value': value} for name, value in headers.items()]
		result = await self._channel.send_return_as_dict('connectOverCDP', params)
		browser: Browser = result['browser']
		browser._browser_type = self
		default_context: BrowserContext | None = result.get('defaultContext')
		if default_context is not None:
			default_context._setup(BrowserContextOptions(), browser)
		return browser
