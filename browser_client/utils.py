import asyncio
import logging
import mimetypes
import re
from collections.abc import Callable, Coroutine
from pathlib import Path
from re import Pattern
from typing import Any, TypeVar
from urllib.parse import urljoin, urlparse

from browser_client.config import CONFIG
from browser_client.exceptions import Error

logger = logging.getLogger(__name__)

T = TypeVar('T')

URLMatch = str | Pattern[str] | Callable[[str], bool]

# https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide/Regular_expressions#escaping
_ESCAPED_GLOB_CHARS = set('$^+.*()|\\?{}[]')


def create_task_with_error_handling(
	coro: Coroutine[Any, Any, T],
	*,
	name: str | None = None,
	logger_instance: logging.Logger | None = None,
	suppress_exceptions: bool = True,
) -> 'asyncio.Task[T]':
	"""Create an asyncio task whose failure is logged instead of vanishing with the task.

	Args:
		coro: Coroutine to schedule on the running loop
		name: Task name, also used in the log message
		logger_instance: Logger to report failures on, defaults to this module's logger
		suppress_exceptions: Log at error level and swallow; otherwise log and keep the exception on the task
	"""
	task = asyncio.create_task(coro, name=name)
	log = logger_instance or logger

	def _on_done(t: 'asyncio.Task[T]') -> None:
		if t.cancelled():
			return
		exc = t.exception()
		if exc is None:
			return
		task_name = t.get_name()
		if suppress_exceptions:
			log.error(f'Exception in background task [{task_name}]: {type(exc).__name__}: {exc}', exc_info=exc)
		else:
			log.warning(f'Exception in background task [{task_name}]: {type(exc).__name__}: {exc}')

	task.add_done_callback(_on_done)
	return task


def locals_to_params(args: dict[str, Any]) -> dict[str, Any]:
	"""Turn a function's `locals()` into protocol params: drop `self` and None values, camelCase the keys."""
	params: dict[str, Any] = {}
	for key, value in args.items():
		if key == 'self' or value is None:
			continue
		params[to_camel_case(key)] = value
	return params


def to_camel_case(name: str) -> str:
	head, *rest = name.split('_')
	return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def to_snake_case(name: str) -> str:
	return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def glob_to_regex_pattern(glob: str) -> str:
	"""Translate a URL glob into an anchored regular expression.

	`*` matches within a path segment, `**` matches across segments, `{a,b}` is an
	alternation and `?` is a literal question mark.
	"""
	tokens = ['^']
	in_group = False
	i = 0
	while i < len(glob):
		c = glob[i]
		if c == '\\' and i + 1 < len(glob):
			char = glob[i + 1]
			tokens.append('\\' + char if char in _ESCAPED_GLOB_CHARS else char)
			i += 2
			continue
		if c == '*':
			before_deep = glob[i - 1] if i > 0 else None
			star_count = 1
			while i < len(glob) - 1 and glob[i + 1] == '*':
				star_count += 1
				i += 1
			after_deep = glob[i + 1] if i < len(glob) - 1 else None
			is_deep = star_count > 1 and before_deep in ('/', None) and after_deep in ('/', None)
			if is_deep:
				tokens.append('((?:[^/]*(?:/|$))*)')
				i += 1
			else:
				tokens.append('([^/]*)')
			i += 1
			continue

		if c == '{':
			in_group = True
			tokens.append('(')
		elif c == '}':
			in_group = False
			tokens.append(')')
		elif c == ',':
			tokens.append('|' if in_group else '\\' + c)
		else:
			tokens.append('\\' + c if c in _ESCAPED_GLOB_CHARS else c)
		i += 1

	tokens.append('$')
	return ''.join(tokens)


def _fixup_trailing_slash(url: str) -> str:
	parsed = urlparse(url)
	if parsed.scheme and parsed.netloc and parsed.path == '':
		return parsed._replace(path='/').geturl()
	return url


def resolve_url(base_url: str | None, url: str) -> str:
	"""Resolve `url` against `base_url` the way the browser would."""
	if not base_url:
		return _fixup_trailing_slash(url)
	try:
		return _fixup_trailing_slash(urljoin(base_url, url))
	except ValueError:
		return url


def url_matches(base_url: str | None, url_string: str, match: URLMatch | None, websocket_url: bool = False) -> bool:
	if match is None or match == '':
		return True
	if isinstance(match, str):
		if websocket_url and base_url:
			base_url = re.sub(r'^http(s?)://', r'ws\1://', base_url)
		if not match.startswith('*'):
			match = resolve_url(base_url, match)
		return re.match(glob_to_regex_pattern(match), url_string) is not None
	if isinstance(match, Pattern):
		return match.search(url_string) is not None
	return bool(match(url_string))


class TimeoutSettings:
	"""Default timeouts of a context or page, falling back to the parent's settings and then CONFIG."""

	def __init__(self, parent: 'TimeoutSettings | None' = None) -> None:
		self._parent = parent
		self._default_timeout: float | None = None
		self._default_navigation_timeout: float | None = None

	def set_default_timeout(self, timeout: float | None) -> None:
		self._default_timeout = timeout

	def set_default_navigation_timeout(self, timeout: float | None) -> None:
		self._default_navigation_timeout = timeout

	def timeout(self, timeout: float | None = None) -> float:
		if timeout is not None:
			return timeout
		if self._default_timeout is not None:
			return self._default_timeout
		if self._parent:
			return self._parent.timeout()
		return CONFIG.BROWSER_CLIENT_DEFAULT_TIMEOUT

	def navigation_timeout(self, timeout: float | None = None) -> float:
		if timeout is not None:
			return timeout
		if self._default_navigation_timeout is not None:
			return self._default_navigation_timeout
		if self._default_timeout is not None:
			return self._default_timeout
		if self._parent:
			return self._parent.navigation_timeout()
		return CONFIG.BROWSER_CLIENT_NAVIGATION_TIMEOUT


def guess_mime_type(path: str) -> str:
	mime_type, _ = mimetypes.guess_type(path)
	return mime_type or 'application/octet-stream'


def format_call_log(log: list[str] | None) -> str:
	if not log:
		return ''
	return '\nCall log:\n' + '\n'.join(f'  - {line}' for line in log)


def init_script_source(script: str | None, path: str | Path | None) -> str:
	"""Source for `add_init_script`; a file gets a sourceURL so it shows up in devtools."""
	if path is not None:
		return Path(path).read_text() + f'\n//# sourceURL={Path(path).as_posix()}'
	if script is None:
		raise Error('Either script or path should be specified')
	return script
