"""Configuration for browser-client.

Values are read from the environment every time they are accessed so tests and
long-running processes can change them at runtime. A `.env` file in the working
directory is loaded once at import.
"""

import os
import shlex
from functools import cache

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
	if value is None or value.strip() == '':
		return default
	return value.strip().lower()[:1] in ('t', 'y', '1')


def _parse_float(name: str, default: float) -> float:
	value = os.getenv(name)
	if value is None or value.strip() == '':
		return default
	try:
		return float(value)
	except ValueError:
		raise ValueError(f'{name} must be a number of milliseconds, got {value!r}')


@cache
def _is_running_in_ci() -> bool:
	return _parse_bool(os.getenv('CI'))


class Config:
	"""Lazily evaluated configuration, read from BROWSER_CLIENT_* environment variables."""

	@property
	def BROWSER_CLIENT_LOGGING_LEVEL(self) -> str:
		return os.getenv('BROWSER_CLIENT_LOGGING_LEVEL', 'info').lower()

	@property
	def BROWSER_CLIENT_SETUP_LOGGING(self) -> bool:
		"""Install the library log handler on import. Disable to configure logging yourself."""
		return _parse_bool(os.getenv('BROWSER_CLIENT_SETUP_LOGGING'), default=True)

	@property
	def BROWSER_CLIENT_DEBUG_PROTOCOL(self) -> bool:
		return _parse_bool(os.getenv('BROWSER_CLIENT_DEBUG_PROTOCOL'))

	@property
	def BROWSER_CLIENT_DRIVER_PATH(self) -> list[str]:
		"""Command line that starts the driver, split shell-style."""
		command = os.getenv('BROWSER_CLIENT_DRIVER_PATH', 'npx playwright run-driver')
		return shlex.split(command)

	@property
	def BROWSER_CLIENT_DEFAULT_TIMEOUT(self) -> float:
		return _parse_float('BROWSER_CLIENT_DEFAULT_TIMEOUT', 30_000)

	@property
	def BROWSER_CLIENT_NAVIGATION_TIMEOUT(self) -> float:
		return _parse_float('BROWSER_CLIENT_NAVIGATION_TIMEOUT', 30_000)

	@property
	def BROWSER_CLIENT_EXPECT_TIMEOUT(self) -> float:
		return _parse_float('BROWSER_CLIENT_EXPECT_TIMEOUT', 5_000)

	@property
	def BROWSER_CLIENT_ROUTE_TIMEOUT(self) -> float:
		"""Milliseconds a route may stay unresolved before it is aborted. 0 disables the policy."""
		return _parse_float('BROWSER_CLIENT_ROUTE_TIMEOUT', 30_000)

	@property
	def BROWSER_CLIENT_LEGACY_ACCESSIBILITY(self) -> bool:
		return _parse_bool(os.getenv('BROWSER_CLIENT_LEGACY_ACCESSIBILITY'))

	@property
	def IS_IN_CI(self) -> bool:
		return _is_running_in_ci()


CONFIG = Config()
