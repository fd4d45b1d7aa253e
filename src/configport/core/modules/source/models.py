from enum import StrEnum
from typing import Any

from configport.core.models import CamelModel


class SourceType(StrEnum):
    HTTP = "http"
    FILE = "file"
    ENV = "env"


class Source(CamelModel):
    """A value source managed by the host application.

    For http sources `source_path` holds the URL; for file sources a path,
    for env sources a variable name.
    """

    source_id: str
    source_type: SourceType
    source_path: str
    source_tag: str | None = None
    request_options: dict[str, Any] | None = None
    json_filter: dict[str, Any] | None = None
    refresh_options: dict[str, Any] | None = None

    @property
    def request_method(self) -> str:
        method = (self.request_options or {}).get("method") or "GET"
        return str(method).upper()
