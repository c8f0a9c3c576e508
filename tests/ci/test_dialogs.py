"""
Tests for dialog handling: unhandled dialogs are resolved automatically, a listener
takes responsibility for resolving, and a dialog can only be resolved once.
"""

import asyncio

import pytest
from conftest import FakeDriver, delivered, ref

from browser_client.events import ContextEvent, PageEvent
from browser_client.exceptions import Error


def open_dialog(driver: FakeDriver, context_guid: str, page_guid: str, type_: str = 'alert', message: str = 'Hello') -> str:
	dialog = driver.create(context_guid, 'Dialog', {'type': type_, 'message': message, 'defaultValue': '', 'page': ref(page_guid)})
	driver.emit(context_guid, 'dialog', {'dialog': ref(dialog)})
	return dialog


async def test_unhandled_alert_is_dismissed(context, page, driver: FakeDriver):
	open_dialog(driver, context.guid, page.guid)
	await delivered()

	assert len(driver.calls('Dialog.dismiss')) == 1
	assert driver.calls('Dialog.accept') == []


async def test_unhandled_beforeunload_is_accepted(context, page, driver: FakeDriver):
	open_dialog(driver, context.guid, page.guid, type_='beforeunload', message='')
	await delivered()

	assert len(driver.calls('Dialog.accept')) == 1
	assert driver.calls('Dialog.dismiss') == []


async def test_listener_takes_over_resolution(context, page, driver: FakeDriver):
	"""With a listener registered nothing is resolved automatically; the action stays blocked."""
	seen = []
	page.on(PageEvent.DIALOG, seen.append)

	open_dialog(driver, context.guid, page.guid, type_='confirm', message='Sure?')
	await delivered()

	assert len(seen) == 1
	assert seen[0].message == 'Sure?'
	assert seen[0].page is page
	assert driver.calls('Dialog.dismiss') == []
	assert driver.calls('Dialog.accept') == []


async def test_context_listener_also_counts(context, page, driver: FakeDriver):
	context.on(ContextEvent.DIALOG, lambda dialog: None)

	open_dialog(driver, context.guid, page.guid)
	await delivered()

	assert driver.calls('Dialog.dismiss') == []


async def test_async_listener_accepts_prompt(context, page, driver: FakeDriver):
	async def answer(dialog):
		await dialog.accept('Ada')

	page.on(PageEvent.DIALOG, answer)
	open_dialog(driver, context.guid, page.guid, type_='prompt', message='Name?')
	await delivered()

	accept = driver.calls('Dialog.accept')[0]
	assert accept['params'] == {'promptText': 'Ada'}


async def test_dialog_blocks_triggering_action_until_resolved(context, page, driver: FakeDriver):
	released: asyncio.Future = asyncio.get_running_loop().create_future()

	def evaluate(message):
		open_dialog(driver, context.guid, page.guid, message='Blocked')
		return released

	def accept(message):
		released.set_result({'value': {'v': 'undefined'}})

	driver.handlers['Frame.evaluateExpression'] = evaluate
	driver.handlers['Dialog.accept'] = accept

	dialogs = []
	page.on(PageEvent.DIALOG, dialogs.append)
	evaluation = asyncio.create_task(page.evaluate('alert("Blocked")'))
	await delivered()
	assert not evaluation.done()

	await dialogs[0].accept()
	assert await evaluation is None


async def test_dialog_cannot_be_resolved_twice(context, page, driver: FakeDriver):
	dialogs = []
	page.on(PageEvent.DIALOG, dialogs.append)
	open_dialog(driver, context.guid, page.guid, type_='confirm')
	await delivered()

	dialog = dialogs[0]
	await dialog.accept()
	assert dialog.handled
	with pytest.raises(Error, match='already handled'):
		await dialog.dismiss()
	assert driver.calls('Dialog.dismiss') == []


async def test_expect_event_for_dialog(context, page, driver: FakeDriver):
	async with page.expect_event(PageEvent.DIALOG) as dialog_info:
		open_dialog(driver, context.guid, page.guid, message='Expected')
	dialog = await dialog_info.value
	assert dialog.message == 'Expected'
	await dialog.dismiss()
