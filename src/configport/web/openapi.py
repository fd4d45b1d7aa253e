from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

API_TITLE = "configport API"
API_SUMMARY = "Export and import of request sources, proxy rules, rules, environments and workspaces"


def set_custom_openapi(app: FastAPI, api_version: str) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(title=API_TITLE, version=api_version, summary=API_SUMMARY, routes=app.routes)
        openapi_schema["tags"] = [
            {"name": "transfer", "description": "Export, import, preview and validation of configuration payloads"},
            {"name": "metadata", "description": "Version and build information"},
        ]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "At least one data type must be selected for export", "type": "validation_error"},
                {"message": "Export cancelled by user", "type": "cancelled"},
                {"message": "Failed to read file config.json: No such file or directory", "type": "file_error"},
            ]
        }
    }
