from typing import Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field


class HeaderEntry(TypedDict):
	name: str
	value: str


class ResourceTiming(TypedDict):
	startTime: float
	domainLookupStart: float
	domainLookupEnd: float
	connectStart: float
	secureConnectionStart: float
	connectEnd: float
	requestStart: float
	responseStart: float
	responseEnd: float


class RequestSizes(TypedDict):
	requestBodySize: int
	requestHeadersSize: int
	responseBodySize: int
	responseHeadersSize: int


class RemoteAddr(TypedDict):
	ipAddress: str
	port: int


class SecurityDetails(TypedDict, total=False):
	issuer: str
	protocol: str
	subjectName: str
	validFrom: float
	validTo: float


RouteAbortErrorCode = Literal[
	'aborted',
	'accessdenied',
	'addressunreachable',
	'blockedbyclient',
	'blockedbyresponse',
	'connectionaborted',
	'connectionclosed',
	'connectionfailed',
	'connectionrefused',
	'connectionreset',
	'internetdisconnected',
	'namenotresolved',
	'timedout',
	'failed',
]

ROUTE_ABORT_ERROR_CODES: frozenset[str] = frozenset(RouteAbortErrorCode.__args__)

ResourceType = Literal[
	'document',
	'stylesheet',
	'image',
	'media',
	'font',
	'script',
	'texttrack',
	'xhr',
	'fetch',
	'eventsource',
	'websocket',
	'manifest',
	'other',
]


class FallbackOverrides(BaseModel):
	"""Request modifications accumulated by `route.fallback()` calls."""

	model_config = ConfigDict(extra='forbid')

	url: str | None = None
	method: str | None = None
	headers: dict[str, str] | None = None
	post_data_buffer: bytes | None = Field(default=None)
