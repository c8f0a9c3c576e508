"""Asyncio client for driving browsers through a driver process.

Example:
	from browser_client import async_client, expect

	async with async_client() as client:
		browser = await client.chromium.launch()
		page = await browser.new_page()
		await page.goto('https://example.com')
		await expect(page).to_have_title('Example Domain')
		await browser.close()
"""

from browser_client.config import CONFIG
from browser_client.logging_config import setup_logging

if CONFIG.BROWSER_CLIENT_SETUP_LOGGING:
	setup_logging()

from browser_client.assertions import expect, set_default_expect_timeout
from browser_client.browser.artifact import Artifact
from browser_client.browser.browser import Browser
from browser_client.browser.browser_type import BrowserType
from browser_client.browser.context import BrowserContext
from browser_client.browser.selectors import Selectors
from browser_client.browser.tracing import Tracing
from browser_client.browser.views import (
	BrowserContextOptions,
	Cookie,
	DeviceDescriptor,
	FilePayload,
	FloatRect,
	Geolocation,
	HttpCredentials,
	LaunchOptions,
	Position,
	ProxySettings,
	SetCookieParam,
	StorageState,
	ViewportSize,
)
from browser_client.client import BrowserClient, async_client
from browser_client.events import BrowserEvent, ContextEvent, Event, PageEvent, Subscription, WebSocketEvent, WorkerEvent
from browser_client.exceptions import Error, ResponseParseError, RouteAlreadyHandledError, TargetClosedError, TimeoutError
from browser_client.network.api_request import APIRequest, APIRequestContext, APIResponse
from browser_client.network.request import Request
from browser_client.network.response import Response
from browser_client.network.route import Route
from browser_client.page.console import ConsoleMessage
from browser_client.page.dialog import Dialog
from browser_client.page.download import Download
from browser_client.page.file_chooser import FileChooser
from browser_client.page.frame import Frame
from browser_client.page.js_handle import ElementHandle, JSHandle
from browser_client.page.locator import Locator
from browser_client.page.page import Page
from browser_client.page.video import Video
from browser_client.page.web_error import WebError
from browser_client.page.websocket import WebSocket
from browser_client.page.worker import Worker

__all__ = [
	# Entry points
	'async_client',
	'BrowserClient',
	'expect',
	'set_default_expect_timeout',
	# Object graph
	'BrowserType',
	'Browser',
	'BrowserContext',
	'Page',
	'Frame',
	'JSHandle',
	'ElementHandle',
	'Locator',
	'Request',
	'Response',
	'Route',
	'WebSocket',
	'Worker',
	'Tracing',
	'Selectors',
	'Artifact',
	# Page artifacts
	'ConsoleMessage',
	'Dialog',
	'Download',
	'FileChooser',
	'Video',
	'WebError',
	# HTTP client
	'APIRequest',
	'APIRequestContext',
	'APIResponse',
	# Events
	'Event',
	'Subscription',
	'BrowserEvent',
	'ContextEvent',
	'PageEvent',
	'WebSocketEvent',
	'WorkerEvent',
	# Options and values
	'BrowserContextOptions',
	'LaunchOptions',
	'Cookie',
	'SetCookieParam',
	'StorageState',
	'DeviceDescriptor',
	'FilePayload',
	'FloatRect',
	'Geolocation',
	'HttpCredentials',
	'Position',
	'ProxySettings',
	'ViewportSize',
	# Errors
	'Error',
	'TimeoutError',
	'TargetClosedError',
	'RouteAlreadyHandledError',
	'ResponseParseError',
	'CONFIG',
]
