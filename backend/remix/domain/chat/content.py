"""Registry of known message content types.

Content is a tagged union keyed by its type tag. Tags registered here have
their body validated by a pydantic model; any other tag is stored as opaque
JSON.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import InvalidContent

MAX_TEXT_LENGTH = 4000


class TextContent(BaseModel):
	model_config = ConfigDict(extra="allow")

	text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)

	@field_validator("text")
	@classmethod
	def _not_blank(cls, value: str) -> str:
		if not value.strip():
			raise ValueError("text must not be blank")
		return value


_REGISTRY: Dict[str, Type[BaseModel]] = {}


def register(type_tag: str, model: Type[BaseModel]) -> None:
	_REGISTRY[type_tag] = model


def validate_content(type_tag: str, data: Any) -> Any:
	"""Return the normalised body for ``type_tag`` or raise ``InvalidContent``."""
	if not isinstance(type_tag, str) or not type_tag.strip():
		raise InvalidContent("missing_content_type")
	if data is None:
		raise InvalidContent("missing_content_data")
	model = _REGISTRY.get(type_tag)
	if model is None:
		try:
			json.dumps(data)
		except (TypeError, ValueError) as exc:
			raise InvalidContent("content_not_json") from exc
		return data
	try:
		return model.model_validate(data).model_dump()
	except ValidationError as exc:
		raise InvalidContent() from exc


register("text", TextContent)
register("remix/text", TextContent)
