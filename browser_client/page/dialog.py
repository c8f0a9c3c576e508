"""Native browser dialogs.

A dialog blocks the page action that opened it until it is accepted or dismissed.
When nobody listens for `PageEvent.DIALOG` / `ContextEvent.DIALOG` the context
resolves it straight away: `beforeunload` is accepted, everything else dismissed.
A listener takes over that responsibility; an unanswered dialog keeps the
triggering call waiting.
"""

import logging
from typing import TYPE_CHECKING, Any, Literal, Optional

from browser_client.exceptions import Error
from browser_client.transport.connection import ChannelOwner

if TYPE_CHECKING:
	from browser_client.page.page import Page

logger = logging.getLogger(__name__)

DialogType = Literal['alert', 'beforeunload', 'confirm', 'prompt']


class Dialog(ChannelOwner):
	def __init__(self, parent: ChannelOwner, type_: str, guid: str, initializer: dict[str, Any]) -> None:
		super().__init__(parent, type_, guid, initializer)
		self._page: Page | None = initializer.get('page')
		self._handled = False

	def __repr__(self) -> str:
		return f'<Dialog type={self.type!r} message={self.message!r}>'

	@property
	def type(self) -> DialogType:
		return self._initializer['type']

	@property
	def message(self) -> str:
		return self._initializer['message']

	@property
	def default_value(self) -> str:
		return self._initializer.get('defaultValue', '')

	@property
	def page(self) -> Optional['Page']:
		return self._page

	@property
	def handled(self) -> bool:
		return self._handled

	def _mark_handled(self) -> None:
		if self._handled:
			raise Error(f'Cannot resolve {self.type} dialog which is already handled!')
		self._handled = True

	async def accept(self, prompt_text: str | None = None) -> None:
		self._mark_handled()
		await self._channel.send('accept', {'promptText': prompt_text})

	async def dismiss(self) -> None:
		self._mark_handled()
		await self._channel.send('dismiss')

	async def _auto_resolve(self) -> None:
		if self.type == 'beforeunload':
			logger.debug(f'Auto-accepting unhandled {self.type} dialog')
			await self.accept()
		else:
			logger.debug(f'Auto-dismissing unhandled {self.type} dialog: {self.message!r}')
			await self.dismiss()
