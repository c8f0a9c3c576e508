import json
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from browser_client.exceptions import Error
from browser_client.network.headers import serialize_headers

ColorScheme = Literal['dark', 'light', 'no-preference', 'null']
ReducedMotion = Literal['reduce', 'no-preference', 'null']
ForcedColors = Literal['active', 'none', 'null']
SameSite = Literal['Lax', 'None', 'Strict']
LoadState = Literal['commit', 'domcontentloaded', 'load', 'networkidle']
MouseButton = Literal['left', 'middle', 'right']
KeyboardModifier = Literal['Alt', 'Control', 'ControlOrMeta', 'Meta', 'Shift']


class _ProtocolModel(BaseModel):
	"""Models serialized to the driver in camelCase."""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')

	def to_protocol(self) -> dict[str, Any]:
		return self.model_dump(by_alias=True, exclude_none=True)


class ViewportSize(_ProtocolModel):
	width: int
	height: int


class Position(_ProtocolModel):
	x: float
	y: float


class FloatRect(_ProtocolModel):
	x: float
	y: float
	width: float
	height: float


class Geolocation(_ProtocolModel):
	latitude: float = Field(ge=-90, le=90)
	longitude: float = Field(ge=-180, le=180)
	accuracy: float | None = Field(default=None, ge=0)


class HttpCredentials(_ProtocolModel):
	username: str
	password: str
	origin: str | None = None
	send: Literal['always', 'unauthorized'] | None = None


class ProxySettings(_ProtocolModel):
	server: str
	bypass: str | None = None
	username: str | None = None
	password: str | None = None


class Cookie(_ProtocolModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

	name: str
	value: str
	domain: str
	path: str
	expires: float = -1
	http_only: bool = False
	secure: bool = False
	same_site: SameSite = 'Lax'


class SetCookieParam(_ProtocolModel):
	"""Cookie to add to a context. Either `url` or both `domain` and `path` are required."""

	name: str
	value: str
	url: str | None = None
	domain: str | None = None
	path: str | None = None
	expires: float | None = None
	http_only: bool | None = None
	secure: bool | None = None
	same_site: SameSite | None = None

	@model_validator(mode='after')
	def _require_url_or_domain(self) -> 'SetCookieParam':
		if not self.url and not (self.domain and self.path):
			raise ValueError(f'Cookie {self.name!r} should have a url or a domain/path pair')
		if self.url and self.url.startswith('about:'):
			raise ValueError(f'Blank page can not have cookie {self.name!r}')
		return self


class NameValue(_ProtocolModel):
	name: str
	value: str


class OriginState(_ProtocolModel):
	origin: str
	local_storage: list[NameValue] = Field(default_factory=list)


class StorageState(_ProtocolModel):
	cookies: list[Cookie] = Field(default_factory=list)
	origins: list[OriginState] = Field(default_factory=list)

	@classmethod
	def load(cls, path: str | Path) -> 'StorageState':
		path = Path(path)
		if not path.exists():
			raise Error(f'Storage state file does not exist: {path}')
		return cls.model_validate(json.loads(path.read_text()))


class FilePayload(BaseModel):
	"""In-memory file for `set_input_files`."""

	model_config = ConfigDict(extra='forbid')

	name: str
	mime_type: str
	buffer: bytes


InputFiles = str | Path | FilePayload | Sequence[str | Path] | Sequence[FilePayload]


class DeviceDescriptor(TypedDict, total=False):
	"""Context options emulating a device. Splat into `new_context(**descriptor)`."""

	user_agent: str
	viewport: dict[str, int]
	screen: dict[str, int]
	device_scale_factor: float
	is_mobile: bool
	has_touch: bool
	default_browser_type: Literal['chromium', 'firefox', 'webkit']


class RecordVideoOptions(_ProtocolModel):
	dir: str
	size: ViewportSize | None = None


class RecordHarOptions(_ProtocolModel):
	path: str
	content: Literal['omit', 'embed', 'attach'] | None = None
	mode: Literal['full', 'minimal'] | None = None
	url_glob: str | None = None
	url_regex_source: str | None = None
	url_regex_flags: str | None = None


class BrowserContextOptions(_ProtocolModel):
	"""Options for `Browser.new_context()` and `BrowserType.launch_persistent_context()`."""

	model_config = ConfigDict(
		alias_generator=to_camel, populate_by_name=True, extra='forbid', arbitrary_types_allowed=True
	)

	viewport: ViewportSize | None = None
	screen: ViewportSize | None = None
	no_viewport: bool | None = None
	ignore_https_errors: bool | None = Field(default=None, alias='ignoreHTTPSErrors')
	java_script_enabled: bool | None = None
	bypass_csp: bool | None = Field(default=None, alias='bypassCSP')
	user_agent: str | None = None
	locale: str | None = None
	timezone_id: str | None = None
	geolocation: Geolocation | None = None
	permissions: list[str] | None = None
	extra_http_headers: dict[str, str] | None = Field(default=None, alias='extraHTTPHeaders')
	offline: bool | None = None
	http_credentials: HttpCredentials | None = None
	device_scale_factor: float | None = None
	is_mobile: bool | None = None
	has_touch: bool | None = None
	color_scheme: ColorScheme | None = None
	reduced_motion: ReducedMotion | None = None
	forced_colors: ForcedColors | None = None
	accept_downloads: bool | None = None
	default_browser_type: str | None = Field(default=None, exclude=True)
	proxy: ProxySettings | None = None
	record_har_path: str | Path | None = Field(default=None, exclude=True)
	record_har_omit_content: bool | None = Field(default=None, exclude=True)
	record_har_url_filter: Any = Field(default=None, exclude=True)
	record_har_mode: Literal['full', 'minimal'] | None = Field(default=None, exclude=True)
	record_har_content: Literal['omit', 'embed', 'attach'] | None = Field(default=None, exclude=True)
	record_video_dir: str | Path | None = Field(default=None, exclude=True)
	record_video_size: ViewportSize | None = Field(default=None, exclude=True)
	storage_state: StorageState | str | Path | None = Field(default=None, exclude=True)
	base_url: str | None = Field(default=None, alias='baseURL')
	strict_selectors: bool | None = None
	service_workers: Literal['allow', 'block'] | None = None

	@model_validator(mode='after')
	def _validate_recording(self) -> 'BrowserContextOptions':
		if self.record_video_size is not None and self.record_video_dir is None:
			raise ValueError('record_video_size requires record_video_dir to be set')
		if self.no_viewport and self.viewport is not None:
			raise ValueError('viewport cannot be set together with no_viewport')
		return self

	def har_options(self) -> RecordHarOptions | None:
		if self.record_har_path is None:
			return None
		content = self.record_har_content
		if content is None:
			content = 'omit' if self.record_har_omit_content else ('attach' if str(self.record_har_path).endswith('.zip') else 'embed')
		options = RecordHarOptions(path=str(self.record_har_path), content=content, mode=self.record_har_mode or 'full')
		url_filter = self.record_har_url_filter
		if isinstance(url_filter, str):
			options.url_glob = url_filter
		elif url_filter is not None:
			options.url_regex_source = url_filter.pattern
			options.url_regex_flags = 'i' if url_filter.flags & re.IGNORECASE else ''
		return options

	def to_protocol(self) -> dict[str, Any]:
		params = super().to_protocol()
		if self.no_viewport:
			params.pop('noViewport', None)
			params['noDefaultViewport'] = True
		if self.extra_http_headers is not None:
			params['extraHTTPHeaders'] = serialize_headers(self.extra_http_headers)
		if self.accept_downloads is not None:
			params['acceptDownloads'] = 'accept' if self.accept_downloads else 'deny'
		if self.record_video_dir is not None:
			params['recordVideo'] = RecordVideoOptions(
				dir=str(Path(self.record_video_dir).absolute()), size=self.record_video_size
			).to_protocol()
		if self.storage_state is not None:
			state = self.storage_state
			if not isinstance(state, StorageState):
				state = StorageState.load(state)
			params['storageState'] = state.to_protocol()
		return params


class LaunchOptions(_ProtocolModel):
	"""Options for `BrowserType.launch()`."""

	executable_path: str | Path | None = None
	channel: str | None = None
	args: list[str] | None = None
	ignore_default_args: bool | list[str] | None = None
	handle_sigint: bool | None = Field(default=None, alias='handleSIGINT')
	handle_sigterm: bool | None = Field(default=None, alias='handleSIGTERM')
	handle_sighup: bool | None = Field(default=None, alias='handleSIGHUP')
	timeout: float | None = None
	env: dict[str, str | float | bool] | None = None
	headless: bool | None = None
	devtools: bool | None = None
	proxy: ProxySettings | None = None
	downloads_path: str | Path | None = None
	slow_mo: float | None = None
	traces_dir: str | Path | None = None
	chromium_sandbox: bool | None = None
	firefox_user_prefs: dict[str, str | float | bool] | None = None

	def to_protocol(self) -> dict[str, Any]:
		params = super().to_protocol()
		for key in ('executablePath', 'downloadsPath', 'tracesDir'):
			if key in params:
				params[key] = str(params[key])
		if isinstance(self.ignore_default_args, bool):
			params.pop('ignoreDefaultArgs', None)
			params['ignoreAllDefaultArgs'] = self.ignore_default_args
		if self.env is not None:
			params['env'] = [{'name': name, 'value': str(value)} for name, value in self.env.items()]
		return params
