"""Export/import API endpoints."""

from typing import Any

from fastapi import APIRouter

from configport.core.modules.transfer.models import (
    ExportOptions,
    ExportReport,
    ImportOptions,
    ImportPreview,
    ImportReport,
    ValidationResult,
)
from configport.web.deps import AppDep
from configport.web.openapi import ErrorResponse

router = APIRouter(tags=["transfer"])


@router.post(
    "/export",
    summary="Export configuration",
    description="Collect the selected entity families and write them to a timestamped JSON file "
    "in the exports directory. With the `separate` format, environment data goes to a companion file next to the main one.",
    operation_id="exportConfig",
    responses={
        200: {"description": "Export written"},
        400: {"model": ErrorResponse, "description": "Invalid options or invalid export data"},
        409: {"model": ErrorResponse, "description": "No target file was chosen"},
    },
)
async def export_config(options: ExportOptions, app: AppDep) -> ExportReport:
    return await app.export_config(options)


@router.post(
    "/export/statistics",
    summary="Get export payload statistics",
    description="Item count, estimated size and per-type statistics of an export payload.",
    operation_id="getExportStatistics",
    responses={200: {"description": "Payload statistics"}},
)
async def get_export_statistics(payload: dict[str, Any], app: AppDep) -> dict[str, Any]:
    return app.get_export_statistics(payload)


@router.post(
    "/import",
    summary="Import configuration",
    description="Import a payload given inline, by path, or picked from the exports directory. "
    "Merge mode skips duplicates, replace mode clears each imported entity family first. "
    "Malformed individual items are reported in the result and do not stop the import.",
    operation_id="importConfig",
    responses={
        200: {"description": "Import finished, possibly with item-level errors"},
        400: {"model": ErrorResponse, "description": "Invalid options, unparseable file, or invalid payload"},
        409: {"model": ErrorResponse, "description": "No file was chosen"},
    },
)
async def import_config(options: ImportOptions, app: AppDep) -> ImportReport:
    return await app.import_config(options)


@router.post(
    "/import/preview",
    summary="Preview an import",
    description="Parse and validate a payload and count new, duplicate and invalid items per type. Nothing is written.",
    operation_id="previewImport",
    responses={
        200: {"description": "Import preview"},
        400: {"model": ErrorResponse, "description": "Invalid options, unparseable file, or invalid payload"},
    },
)
async def preview_import(options: ImportOptions, app: AppDep) -> ImportPreview:
    return await app.preview_import(options)


@router.post(
    "/import/validate",
    summary="Validate an import payload",
    description="Run whole-payload validation and return every failure plus version warnings.",
    operation_id="validateImportPayload",
    responses={200: {"description": "Validation result"}},
)
async def validate_payload(payload: dict[str, Any], app: AppDep) -> ValidationResult:
    return app.validate_payload(payload)
