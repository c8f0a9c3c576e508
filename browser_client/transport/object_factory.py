import logging
from typing import Any

from browser_client.browser.artifact import Artifact, Stream
from browser_client.browser.browser import Browser
from browser_client.browser.browser_type import BrowserType
from browser_client.browser.context import BrowserContext
from browser_client.browser.selectors import Selectors
from browser_client.browser.tracing import Tracing
from browser_client.client import BrowserClient, LocalUtils
from browser_client.network.request import Request
from browser_client.network.response import Response
from browser_client.network.route import Route
from browser_client.page.binding import BindingCall
from browser_client.page.dialog import Dialog
from browser_client.page.frame import Frame
from browser_client.page.js_handle import ElementHandle, JSHandle
from browser_client.page.page import Page
from browser_client.page.websocket import WebSocket
from browser_client.page.worker import Worker
from browser_client.transport.connection import ChannelOwner

logger = logging.getLogger(__name__)

OBJECT_TYPES: dict[str, type[ChannelOwner]] = {
	'Artifact': Artifact,
	'BindingCall': BindingCall,
	'Browser': Browser,
	'BrowserContext': BrowserContext,
	'BrowserType': BrowserType,
	'Dialog': Dialog,
	'ElementHandle': ElementHandle,
	'Frame': Frame,
	'JSHandle': JSHandle,
	'LocalUtils': LocalUtils,
	'Page': Page,
	'Playwright': BrowserClient,
	'Request': Request,
	'Response': Response,
	'Route': Route,
	'Selectors': Selectors,
	'Stream': Stream,
	'Tracing': Tracing,
	'WebSocket': WebSocket,
	'Worker': Worker,
}


def create_remote_object(parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> ChannelOwner:
	"""Instantiate the client class for a driver-created object.

	Types without a client class still get a bare ChannelOwner so that objects created
	beneath them can be parented.
	"""
	cls = OBJECT_TYPES.get(type_)
	if cls is None:
		logger.debug(f'No client class for driver type {type_!r} ({guid}), tracking it without one')
		return ChannelOwner(parent, type_, guid, initializer)
	return cls(parent, type_, guid, initializer)
