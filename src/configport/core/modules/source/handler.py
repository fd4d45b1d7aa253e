from typing import Any

import structlog

from configport.core.core import Service
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.constants import ImportMode
from configport.core.modules.transfer.duplicates import is_source_duplicate
from configport.core.modules.transfer.models import (
    ExportOptions,
    ImportOptions,
    ImportResult,
    ItemError,
    ValidationResult,
)
from configport.core.modules.transfer.validators import validate_source

logger = structlog.get_logger(__name__)


class SourcesHandler(Service):
    """Export and import of request sources."""

    async def export_sources(self, options: ExportOptions) -> list[dict[str, Any]] | None:
        """Current sources in wire format, invalid ones filtered out. None when not selected."""
        if not options.selected_items.sources:
            return None

        exported = []
        for source in await self.ports.sources.list_sources():
            data = source.to_json_dict()
            validation = validate_source(data)
            if not validation.success:
                logger.warning("source_export_filtered", source_id=source.source_id, error=validation.error)
                continue
            exported.append(data)

        logger.info("sources_exported", count=len(exported))
        return exported

    async def import_sources(self, sources: list[Any], options: ImportOptions) -> ImportResult:
        result = ImportResult()
        if not sources:
            return result

        logger.info("sources_import_start", count=len(sources), mode=options.import_mode)

        if options.import_mode == ImportMode.REPLACE:
            await self._clear_existing_sources()

        current = await self.ports.sources.list_sources()
        for raw in sources:
            source_id = raw.get("sourceId") if isinstance(raw, dict) else None
            identifier = str(source_id) if source_id else None

            validation = validate_source(raw)
            if not validation.success:
                logger.warning("source_import_invalid", source_id=source_id, error=validation.error)
                error = f"Invalid source structure: {validation.error}"
                result.errors.append(ItemError(entity="source", identifier=identifier, error=error))
                continue

            try:
                source = Source.model_validate(raw)

                if options.import_mode == ImportMode.MERGE and is_source_duplicate(source, current):
                    logger.debug("source_duplicate_skipped", source_id=source.source_id)
                    result.skipped += 1
                    result.skipped_by_type[source.source_type] = result.skipped_by_type.get(source.source_type, 0) + 1
                    continue

                await self.ports.sources.add_source(source)
                current.append(source)
                result.imported += 1
                result.imported_by_type[source.source_type] = result.imported_by_type.get(source.source_type, 0) + 1
            except Exception as e:
                logger.warning("source_import_failed", source_id=source_id, error=str(e))
                result.errors.append(ItemError(entity="source", identifier=identifier, error=str(e)))

        logger.info(
            "sources_import_complete", imported=result.imported, skipped=result.skipped, errors=len(result.errors)
        )
        return result

    async def _clear_existing_sources(self) -> None:
        """Remove every source. Individual failures are logged, the clear continues."""
        existing = await self.ports.sources.list_sources()
        logger.info("sources_clear", count=len(existing))
        for source in existing:
            try:
                await self.ports.sources.remove_source(source.source_id)
            except Exception as e:
                logger.warning("source_remove_failed", source_id=source.source_id, error=str(e))

    def validate_sources_for_export(self, sources: Any) -> ValidationResult:
        if not isinstance(sources, list):
            return ValidationResult.fail("Sources must be an array")

        errors = []
        for index, source in enumerate(sources, start=1):
            validation = validate_source(source)
            if not validation.success:
                errors.append(f"Source {index}: {validation.error}")
        return ValidationResult.fail("; ".join(errors)) if errors else ValidationResult.ok()

    def get_sources_statistics(self, sources: Any) -> dict[str, Any]:
        if not isinstance(sources, list):
            return {"total": 0, "byType": {}}

        by_type: dict[str, int] = {}
        for source in sources:
            source_type = source.get("sourceType") if isinstance(source, dict) else None
            key = str(source_type or "unknown")
            by_type[key] = by_type.get(key, 0) + 1
        return {"total": len(sources), "byType": by_type}
