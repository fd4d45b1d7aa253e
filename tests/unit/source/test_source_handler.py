"""Tests for source export and import."""

import pytest

from configport.core.modules.source.models import Source
from configport.core.modules.transfer.models import ExportOptions, ImportOptions


def _import_options(mode="merge"):
    return ImportOptions.model_validate({"selectedItems": {"sources": True}, "importMode": mode})


class TestExportSources:
    @pytest.mark.asyncio
    async def test_not_selected(self, services):
        """Test that nothing is exported when sources are not selected."""
        options = ExportOptions.model_validate({"selectedItems": {"rules": True}})
        assert await services.sources.export_sources(options) is None

    @pytest.mark.asyncio
    async def test_invalid_sources_filtered(self, ports, services, http_source):
        """Test that sources failing validation are left out of the export."""
        await ports.sources.add_source(Source.model_validate(http_source))
        await ports.sources.add_source(Source(source_id="9", source_type="http", source_path="not-a-url"))

        exported = await services.sources.export_sources(ExportOptions.model_validate({"selectedItems": {"sources": True}}))

        assert [source["sourceId"] for source in exported] == ["1"]
        assert exported[0]["requestOptions"]["method"] == "POST"


class TestImportSources:
    @pytest.mark.asyncio
    async def test_partial_failure(self, ports, services, http_source):
        """Test that one malformed source does not stop the others."""
        result = await services.sources.import_sources([{"sourceId": "x"}, http_source], _import_options())

        assert result.imported == 1
        assert result.imported_by_type == {"http": 1}
        assert result.errors[0].identifier == "x"
        assert result.errors[0].error == "Invalid source structure: Source missing required field: sourceType"
        assert len(await ports.sources.list_sources()) == 1

    @pytest.mark.asyncio
    async def test_duplicates_within_one_import(self, services, file_source):
        """Test that an item repeated in the payload is imported once in merge mode."""
        result = await services.sources.import_sources([file_source, {**file_source, "sourceId": "3"}], _import_options())
        assert (result.imported, result.skipped) == (1, 1)
        assert result.skipped_by_type == {"file": 1}

    @pytest.mark.asyncio
    async def test_replace_keeps_repeated_items(self, ports, services, file_source):
        """Test that replace mode does not check for duplicates."""
        await ports.sources.add_source(Source.model_validate(file_source))
        result = await services.sources.import_sources([file_source], _import_options("replace"))
        assert result.imported == 1
        assert len(await ports.sources.list_sources()) == 1

    @pytest.mark.asyncio
    async def test_replace_with_only_invalid_source(self, ports, services, http_source, file_source):
        """Test that replace mode clears existing sources even when the only new source is rejected."""
        await ports.sources.add_source(Source.model_validate(http_source))
        await ports.sources.add_source(Source.model_validate(file_source))

        result = await services.sources.import_sources([{"sourceId": "c"}], _import_options("replace"))

        assert await ports.sources.list_sources() == []
        assert result.imported == 0
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_empty_import_does_not_clear(self, ports, services, file_source):
        """Test that an empty list leaves existing sources alone, even in replace mode."""
        await ports.sources.add_source(Source.model_validate(file_source))
        result = await services.sources.import_sources([], _import_options("replace"))
        assert result.imported == 0
        assert len(await ports.sources.list_sources()) == 1


class TestSourceHelpers:
    def test_validate_for_export(self, services, http_source):
        """Test that every invalid source is reported with its position."""
        result = services.sources.validate_sources_for_export([http_source, {"sourceId": "2"}])
        assert not result.success
        assert result.error.startswith("Source 2: ")
        assert services.sources.validate_sources_for_export({}).error == "Sources must be an array"

    def test_statistics(self, services, http_source, file_source):
        """Test the per-type counts."""
        stats = services.sources.get_sources_statistics([http_source, file_source, {"sourceId": "3"}])
        assert stats == {"total": 3, "byType": {"http": 1, "file": 1, "unknown": 1}}
