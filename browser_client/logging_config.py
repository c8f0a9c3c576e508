import logging
import sys

from browser_client.config import CONFIG

RESULT_LEVEL = 35

_THIRD_PARTY_LOGGERS = ('httpx', 'httpcore', 'aiohttp', 'asyncio', 'urllib3', 'bubus')


def addLoggingLevel(levelName: str, levelNum: int, methodName: str | None = None) -> None:
	"""
	Comprehensively adds a new logging level to the `logging` module and the
	currently configured logging class.

	Raises AttributeError if the level name is already an attribute of the
	`logging` module or if the method name is already present.
	"""
	if not methodName:
		methodName = levelName.lower()

	if hasattr(logging, levelName):
		raise AttributeError(f'{levelName} already defined in logging module')
	if hasattr(logging, methodName):
		raise AttributeError(f'{methodName} already defined in logging module')
	if hasattr(logging.getLoggerClass(), methodName):
		raise AttributeError(f'{methodName} already defined in logger class')

	def logForLevel(self, message, *args, **kwargs):
		if self.isEnabledFor(levelNum):
			self._log(levelNum, message, args, **kwargs)

	def logToRoot(message, *args, **kwargs):
		logging.log(levelNum, message, *args, **kwargs)

	logging.addLevelName(levelNum, levelName)
	setattr(logging, levelName, levelNum)
	setattr(logging.getLoggerClass(), methodName, logForLevel)
	setattr(logging, methodName, logToRoot)


class BrowserClientFormatter(logging.Formatter):
	"""Shortens `browser_client.page.page` to `page` in log lines."""

	def format(self, record: logging.LogRecord) -> str:
		if isinstance(record.name, str) and record.name.startswith('browser_client.'):
			record.name = record.name.rsplit('.', 1)[-1]
		return super().format(record)


def setup_logging(stream=None, log_level: str | None = None, force_setup: bool = False) -> logging.Logger:
	"""Configure the `browser_client` logger hierarchy.

	Args:
		stream: Output stream for the handler, defaults to stderr
		log_level: Overrides BROWSER_CLIENT_LOGGING_LEVEL
		force_setup: Replace handlers even if logging was configured before

	Returns:
		The `browser_client` logger
	"""
	try:
		addLoggingLevel('RESULT', RESULT_LEVEL)
	except AttributeError:
		pass

	logger = logging.getLogger('browser_client')
	if logger.handlers and not force_setup:
		return logger

	level_name = (log_level or CONFIG.BROWSER_CLIENT_LOGGING_LEVEL).lower()
	level = {
		'debug': logging.DEBUG,
		'info': logging.INFO,
		'warning': logging.WARNING,
		'error': logging.ERROR,
		'result': RESULT_LEVEL,
	}.get(level_name, logging.INFO)

	for handler in list(logger.handlers):
		logger.removeHandler(handler)

	handler = logging.StreamHandler(stream or sys.stderr)
	handler.setFormatter(BrowserClientFormatter('%(levelname)-8s [%(name)s] %(message)s'))
	logger.addHandler(handler)
	logger.setLevel(level)
	logger.propagate = False

	protocol_logger = logging.getLogger('browser_client.protocol')
	protocol_logger.setLevel(logging.DEBUG if CONFIG.BROWSER_CLIENT_DEBUG_PROTOCOL else logging.WARNING)

	for name in _THIRD_PARTY_LOGGERS:
		third_party = logging.getLogger(name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	return logger
