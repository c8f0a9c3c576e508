"""Wire format spoken with the driver process.

Commands flow client -> driver, replies and events flow driver -> client:

- command: {"id": 7, "guid": "page@1", "method": "goto", "params": {...}, "metadata": {...}}
- reply:   {"id": 7, "result": {...}} or {"id": 7, "error": {"error": {"name": ..., "message": ...}}}
- event:   {"guid": "page@1", "method": "console", "params": {...}}

The reserved event methods `__create__`, `__adopt__` and `__dispose__` manage
the lifetime of the mirrored objects.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CREATE_METHOD = '__create__'
ADOPT_METHOD = '__adopt__'
DISPOSE_METHOD = '__dispose__'


class CommandMetadata(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	wall_time: int = Field(alias='wallTime')
	api_name: str | None = Field(default=None, alias='apiName')
	internal: bool = False


class ProtocolCommand(BaseModel):
	"""A command sent to the driver."""

	id: int
	guid: str
	method: str
	params: dict[str, Any] = Field(default_factory=dict)
	metadata: CommandMetadata

	def to_wire(self) -> dict[str, Any]:
		return self.model_dump(by_alias=True, exclude_none=True)


class SerializedError(BaseModel):
	model_config = ConfigDict(extra='allow')

	name: str | None = None
	message: str | None = None
	stack: str | None = None
	value: Any = None


class ErrorPayload(BaseModel):
	error: SerializedError = Field(default_factory=SerializedError)


class ProtocolReply(BaseModel):
	"""Reply to a command, correlated by id."""

	id: int
	result: Any = None
	error: ErrorPayload | None = None
	log: list[str] | None = None


class ProtocolEvent(BaseModel):
	"""An event addressed to the object with the given guid."""

	guid: str
	method: str
	params: dict[str, Any] | None = None


class CreateObjectParams(BaseModel):
	type: str
	guid: str
	initializer: dict[str, Any] = Field(default_factory=dict)


class DisposeObjectParams(BaseModel):
	reason: str | None = None


class AdoptObjectParams(BaseModel):
	guid: str
