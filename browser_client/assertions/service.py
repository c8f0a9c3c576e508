import asyncio
import itertools
import logging
import re
from collections.abc import Awaitable, Callable, Iterator, Sequence
from re import Pattern
from typing import Any, overload

from browser_client.config import CONFIG
from browser_client.exceptions import Error, TargetClosedError
from browser_client.network.api_request import APIResponse
from browser_client.network.response import Response
from browser_client.page.locator import Locator
from browser_client.page.page import Page
from browser_client.utils import resolve_url

logger = logging.getLogger(__name__)

# Delays between polls, in ms. The last one repeats until the timeout.
POLL_INTERVALS = (100, 250, 500, 1000)

_default_expect_timeout: float | None = None


def set_default_expect_timeout(timeout: float | None) -> None:
	"""Override `BROWSER_CLIENT_EXPECT_TIMEOUT` for every later assertion. None restores it."""
	global _default_expect_timeout
	_default_expect_timeout = timeout


def _poll_intervals() -> Iterator[int]:
	return itertools.chain(POLL_INTERVALS[:-1], itertools.repeat(POLL_INTERVALS[-1]))


class AssertionsBase:
	def __init__(self, actual: Any, timeout: float | None = None, is_not: bool = False, message: str | None = None) -> None:
		self._actual = actual
		self._timeout = timeout
		self._is_not = is_not
		self._custom_message = message

	def _resolve_timeout(self, timeout: float | None) -> float:
		if timeout is not None:
			return timeout
		if self._timeout is not None:
			return self._timeout
		if _default_expect_timeout is not None:
			return _default_expect_timeout
		return CONFIG.BROWSER_CLIENT_EXPECT_TIMEOUT

	async def _poll(
		self,
		description: str,
		expected: Any,
		check: Callable[[], Awaitable[tuple[bool, Any]]],
		timeout: float | None,
	) -> None:
		"""Re-run `check` until its verdict (inverted for `not_`) passes or the timeout elapses.

		`check` returns (matches, actual_value). Driver errors count as a miss and are retried,
		except closed targets, which fail at once.
		"""
		timeout = self._resolve_timeout(timeout)
		loop = asyncio.get_running_loop()
		deadline = loop.time() + timeout / 1000
		intervals = _poll_intervals()
		poll_log: list[str] = []
		actual: Any = None

		while True:
			try:
				matches, actual = await check()
			except TargetClosedError:
				raise
			except Error as e:
				matches, actual = False, None
				poll_log.append(f'error while polling: {e.message}')
			else:
				poll_log.append(f'unexpected value {actual!r}')

			if matches != self._is_not:
				return

			remaining = deadline - loop.time()
			if remaining <= 0:
				break
			await asyncio.sleep(min(next(intervals) / 1000, remaining))

		not_prefix = 'not ' if self._is_not else ''
		headline = self._custom_message or f'{description} failed'
		logger.debug(f'❌ {headline} after {len(poll_log)} polls')
		raise AssertionError(
			f'{headline}\n\n'
			f'Expected: {not_prefix}{expected!r}\n'
			f'Received: {actual!r}\n'
			f'Timeout: {timeout:.0f}ms\n'
			f'Poll log:\n' + '\n'.join(f'  - {line}' for line in poll_log[-10:])
		)


def _text_matches(actual: str, expected: str | Pattern[str], ignore_case: bool | None = None) -> bool:
	if isinstance(expected, str):
		if ignore_case:
			return actual.lower() == expected.lower()
		return actual == expected
	if ignore_case:
		expected = re.compile(expected.pattern, expected.flags | re.IGNORECASE)
	return expected.search(actual) is not None


class PageAssertions(AssertionsBase):
	def __init__(self, page: Page, timeout: float | None = None, is_not: bool = False, message: str | None = None) -> None:
		super().__init__(page, timeout, is_not, message)
		self._page = page

	@property
	def not_(self) -> 'PageAssertions':
		return PageAssertions(self._page, self._timeout, not self._is_not, self._custom_message)

	async def to_have_title(self, title_or_reg_exp: str | Pattern[str], timeout: float | None = None) -> None:
		async def check() -> tuple[bool, str]:
			title = await self._page.title()
			return _text_matches(title, title_or_reg_exp), title

		await self._poll('Page title expect', title_or_reg_exp, check, timeout)

	async def to_have_url(
		self, url_or_reg_exp: str | Pattern[str], timeout: float | None = None, ignore_case: bool | None = None
	) -> None:
		expected = url_or_reg_exp
		base_url = self._page.context._options.base_url
		if isinstance(expected, str) and base_url:
			expected = resolve_url(base_url, expected)

		async def check() -> tuple[bool, str]:
			url = self._page.url
			return _text_matches(url, expected, ignore_case), url

		await self._poll('Page URL expect', expected, check, timeout)


class ResponseAssertions(AssertionsBase):
	def __init__(
		self, response: Response | APIResponse, timeout: float | None = None, is_not: bool = False, message: str | None = None
	) -> None:
		super().__init__(response, timeout, is_not, message)
		self._response = response

	@property
	def not_(self) -> 'ResponseAssertions':
		return type(self)(self._response, self._timeout, not self._is_not, self._custom_message)

	async def to_be_ok(self, timeout: float | None = None) -> None:
		"""Pass when the status is within 200..299 (outside of it for `not_`)."""

		async def check() -> tuple[bool, str]:
			return self._response.ok, f'{self._response.status} {self._response.status_text}'.strip()

		await self._poll('Response status expect', 'status within [200..299]', check, timeout)


class APIResponseAssertions(ResponseAssertions):
	def __init__(
		self, response: APIResponse, timeout: float | None = None, is_not: bool = False, message: str | None = None
	) -> None:
		super().__init__(response, timeout, is_not, message)


def _normalize_whitespace(text: str) -> str:
	return ' '.join(text.split())


def _text_contains(actual: str, expected: str | Pattern[str], ignore_case: bool | None = None) -> bool:
	if isinstance(expected, str):
		if ignore_case:
			return expected.lower() in actual.lower()
		return expected in actual
	return _text_matches(actual, expected, ignore_case)


class LocatorAssertions(AssertionsBase):
	"""Retrying assertions on the element(s) a locator resolves to.

	Element reads wait at most the assertion timeout, so a missing element counts as a miss
	instead of blocking the poll.
	"""

	def __init__(self, locator: Locator, timeout: float | None = None, is_not: bool = False, message: str | None = None) -> None:
		super().__init__(locator, timeout, is_not, message)
		self._locator = locator

	@property
	def not_(self) -> 'LocatorAssertions':
		return LocatorAssertions(self._locator, self._timeout, not self._is_not, self._custom_message)

	async def _expect_state(self, description: str, expected: Any, read: Callable[[], Awaitable[Any]], timeout: float | None) -> None:
		async def check() -> tuple[bool, Any]:
			actual = await read()
			return actual == expected, actual

		await self._poll(f'Locator expected to be {description}', expected, check, timeout)

	async def to_be_visible(self, visible: bool | None = None, timeout: float | None = None) -> None:
		expected = True if visible is None else visible
		await self._expect_state('visible', expected, self._locator.is_visible, timeout)

	async def to_be_hidden(self, timeout: float | None = None) -> None:
		await self._expect_state('hidden', True, self._locator.is_hidden, timeout)

	async def to_be_enabled(self, enabled: bool | None = None, timeout: float | None = None) -> None:
		read_timeout = self._resolve_timeout(timeout)
		expected = True if enabled is None else enabled
		await self._expect_state('enabled', expected, lambda: self._locator.is_enabled(timeout=read_timeout), timeout)

	async def to_be_disabled(self, timeout: float | None = None) -> None:
		read_timeout = self._resolve_timeout(timeout)
		await self._expect_state('disabled', True, lambda: self._locator.is_disabled(timeout=read_timeout), timeout)

	async def to_be_editable(self, editable: bool | None = None, timeout: float | None = None) -> None:
		read_timeout = self._resolve_timeout(timeout)
		expected = True if editable is None else editable
		await self._expect_state('editable', expected, lambda: self._locator.is_editable(timeout=read_timeout), timeout)

	async def to_be_checked(self, checked: bool | None = None, timeout: float | None = None) -> None:
		read_timeout = self._resolve_timeout(timeout)
		expected = True if checked is None else checked
		await self._expect_state('checked', expected, lambda: self._locator.is_checked(timeout=read_timeout), timeout)

	async def to_have_count(self, count: int, timeout: float | None = None) -> None:
		async def check() -> tuple[bool, int]:
			actual = await self._locator.count()
			return actual == count, actual

		await self._poll('Locator expected to have count', count, check, timeout)

	async def to_have_attribute(self, name: str, value: str | Pattern[str], timeout: float | None = None) -> None:
		read_timeout = self._resolve_timeout(timeout)

		async def check() -> tuple[bool, str | None]:
			actual = await self._locator.get_attribute(name, timeout=read_timeout)
			return actual is not None and _text_matches(actual, value), actual

		await self._poll(f'Locator expected to have attribute "{name}"', value, check, timeout)

	async def _expect_text(
		self,
		description: str,
		expected: str | Pattern[str] | Sequence[str | Pattern[str]],
		matcher: Callable[[str, str | Pattern[str], bool | None], bool],
		use_inner_text: bool | None,
		ignore_case: bool | None,
		timeout: float | None,
	) -> None:
		read_timeout = self._resolve_timeout(timeout)

		def matches(actual: str, wanted: str | Pattern[str]) -> bool:
			if isinstance(wanted, str):
				return matcher(_normalize_whitespace(actual), _normalize_whitespace(wanted), ignore_case)
			return matcher(actual, wanted, ignore_case)

		if isinstance(expected, (str, Pattern)):

			async def check() -> tuple[bool, Any]:
				if use_inner_text:
					actual = await self._locator.inner_text(timeout=read_timeout)
				else:
					actual = await self._locator.text_content(timeout=read_timeout) or ''
				return matches(actual, expected), actual

		else:
			wanted_list = list(expected)

			async def check() -> tuple[bool, Any]:
				if use_inner_text:
					actual = await self._locator.all_inner_texts()
				else:
					actual = await self._locator.all_text_contents()
				ok = len(actual) == len(wanted_list) and all(matches(a, w) for a, w in zip(actual, wanted_list))
				return ok, actual

		await self._poll(description, expected, check, timeout)

	async def to_have_text(
		self,
		expected: str | Pattern[str] | Sequence[str | Pattern[str]],
		use_inner_text: bool | None = None,
		ignore_case: bool | None = None,
		timeout: float | None = None,
	) -> None:
		"""Pass when the text equals `expected`; a list checks every matched element in order.

		Whitespace is collapsed on both sides for string expectations.
		"""
		await self._expect_text('Locator expected to have text', expected, _text_matches, use_inner_text, ignore_case, timeout)

	async def to_contain_text(
		self,
		expected: str | Pattern[str] | Sequence[str | Pattern[str]],
		use_inner_text: bool | None = None,
		ignore_case: bool | None = None,
		timeout: float | None = None,
	) -> None:
		await self._expect_text(
			'Locator expected to contain text', expected, _text_contains, use_inner_text, ignore_case, timeout
		)


@overload
def expect(actual: Page, message: str | None = None) -> PageAssertions: ...


@overload
def expect(actual: Locator, message: str | None = None) -> LocatorAssertions: ...


@overload
def expect(actual: Response, message: str | None = None) -> ResponseAssertions: ...


@overload
def expect(actual: APIResponse, message: str | None = None) -> APIResponseAssertions: ...


def expect(actual: Page | Locator | Response | APIResponse, message: str | None = None) -> AssertionsBase:
	"""Retrying assertions for a page, a locator, a browser response or an API response.

	```python
	await expect(page).to_have_title(re.compile('Dashboard'))
	await expect(page).not_.to_have_url('/login')
	await expect(page.get_by_role('alert')).to_have_text('Saved')
	await expect(await page.goto(url)).to_be_ok()
	```
	"""
	if isinstance(actual, Page):
		return PageAssertions(actual, message=message)
	if isinstance(actual, Locator):
		return LocatorAssertions(actual, message=message)
	if isinstance(actual, Response):
		return ResponseAssertions(actual, message=message)
	if isinstance(actual, APIResponse):
		return APIResponseAssertions(actual, message=message)
	raise ValueError(f'Unsupported type for expect(): {type(actual).__name__}')
