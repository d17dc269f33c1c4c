"""
Serialization codecs for cached values.
"""

from typing import Any, Generic, List, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shared.errors import DeserializationError
from ..models import Email

T = TypeVar("T")


class JsonCodec(Generic[T]):
    """Encode values of one type to JSON text and back.

    Encoding is deterministic (field order follows the model), so two fills
    from the same store state produce byte-identical payloads.
    """

    def __init__(self, name: str, value_type: Any):
        self.name = name
        self._adapter: TypeAdapter = TypeAdapter(value_type)

    def encode(self, value: T) -> str:
        return self._adapter.dump_json(value).decode("utf-8")

    def decode(self, payload: str) -> T:
        """Decode a cached payload, raising DeserializationError if it is unusable."""
        try:
            return self._adapter.validate_json(payload)
        except (PydanticValidationError, ValueError, TypeError) as e:
            raise DeserializationError(
                f"Cached {self.name} payload could not be decoded",
                {"codec": self.name, "error": str(e)}
            ) from e


EMAIL_LIST_CODEC: JsonCodec[List[Email]] = JsonCodec("email_list", List[Email])
COUNT_CODEC: JsonCodec[int] = JsonCodec("count", int)
