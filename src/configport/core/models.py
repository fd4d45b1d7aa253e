from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for entities stored and exported with camelCase keys.

    Unknown keys are kept so that a round trip through import and export
    never drops fields this package does not interpret.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the wire format: camelCase keys, JSON-compatible values, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
