from browser_client.browser.views import MouseButton
from browser_client.transport.connection import Channel
from browser_client.utils import locals_to_params


class Keyboard:
	def __init__(self, channel: Channel) -> None:
		self._channel = channel

	async def down(self, key: str) -> None:
		await self._channel.send('keyboardDown', {'key': key})

	async def up(self, key: str) -> None:
		await self._channel.send('keyboardUp', {'key': key})

	async def insert_text(self, text: str) -> None:
		"""Insert text without emitting key events."""
		await self._channel.send('keyboardInsertText', {'text': text})

	async def type(self, text: str, delay: float | None = None) -> None:
		await self._channel.send('keyboardType', locals_to_params(locals()))

	async def press(self, key: str, delay: float | None = None) -> None:
		await self._channel.send('keyboardPress', locals_to_params(locals()))


class Mouse:
	def __init__(self, channel: Channel) -> None:
		self._channel = channel

	async def move(self, x: float, y: float, steps: int | None = None) -> None:
		await self._channel.send('mouseMove', locals_to_params(locals()))

	async def down(self, button: MouseButton | None = None, click_count: int | None = None) -> None:
		await self._channel.send('mouseDown', locals_to_params(locals()))

	async def up(self, button: MouseButton | None = None, click_count: int | None = None) -> None:
		await self._channel.send('mouseUp', locals_to_params(locals()))

	async def click(
		self,
		x: float,
		y: float,
		delay: float | None = None,
		button: MouseButton | None = None,
		click_count: int | None = None,
	) -> None:
		await self._channel.send('mouseClick', locals_to_params(locals()))

	async def dblclick(self, x: float, y: float, delay: float | None = None, button: MouseButton | None = None) -> None:
		await self.click(x, y, delay=delay, button=button, click_count=2)

	async def wheel(self, delta_x: float, delta_y: float) -> None:
		await self._channel.send('mouseWheel', {'deltaX': delta_x, 'deltaY': delta_y})


class Touchscreen:
	def __init__(self, channel: Channel) -> None:
		self._channel = channel

	async def tap(self, x: float, y: float) -> None:
		await self._channel.send('touchscreenTap', {'x': x, 'y': y})
