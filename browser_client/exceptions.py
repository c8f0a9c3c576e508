"""Exceptions raised by browser-client.

Driver-side failures (navigation, evaluation, closed targets) surface as `Error`
subclasses. Assertion failures from `browser_client.assertions` raise the built-in
`AssertionError` so test runners report them as failures, not errors.
"""


class Error(Exception):
	"""Base class for every failure reported by the driver or the client library."""

	def __init__(self, message: str, name: str | None = None, stack: str | None = None) -> None:
		self.message = message
		self.name = name
		self.stack = stack
		super().__init__(message)


class TimeoutError(Error):
	"""An operation did not complete within its timeout."""

	pass


class TargetClosedError(Error):
	"""The page, context or browser behind a handle has been closed."""

	def __init__(self, message: str | None = None) -> None:
		super().__init__(message or 'Target page, context or browser has been closed', name='TargetClosedError')


class RouteAlreadyHandledError(Error):
	"""A route was resolved more than once."""

	def __init__(self, message: str = 'Route is already handled!') -> None:
		super().__init__(message, name='RouteAlreadyHandledError')


class ResponseParseError(Error):
	"""A response body could not be parsed as JSON."""

	pass


def is_target_closed_error(error: BaseException) -> bool:
	return isinstance(error, TargetClosedError)
