from typing import Any

from pydantic import Field

from configport.core.models import CamelModel
from configport.utils import now_iso


class EnvironmentVariable(CamelModel):
    value: str = ""
    is_secret: bool = False
    updated_at: str = Field(default_factory=now_iso)

    @classmethod
    def from_raw(cls, raw: Any) -> "EnvironmentVariable":
        """Accept both the object format and the legacy bare-value format."""
        if isinstance(raw, dict):
            return cls(value=str(raw.get("value") or ""), is_secret=bool(raw.get("isSecret", False)))
        return cls(value="" if raw is None else str(raw))


# env name -> variable name -> variable
Environments = dict[str, dict[str, EnvironmentVariable]]


class SchemaVariable(CamelModel):
    name: str
    is_secret: bool = False


class EnvironmentSchemaEntry(CamelModel):
    variables: list[SchemaVariable] = []


class VariableDefinition(CamelModel):
    description: str = ""
    sensitive: bool = False
    used_in: list[str] = []
    example: str | None = None


class EnvironmentSchema(CamelModel):
    """Structure of environments without values."""

    environments: dict[str, EnvironmentSchemaEntry] = {}
    variable_definitions: dict[str, VariableDefinition] = {}
