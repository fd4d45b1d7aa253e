"""Tests for the local filesystem collaborators."""

import json

import pytest

from configport.core.adapters.local import DirectoryDialogs, LocalFileSystem
from configport.errors import FileOperationError


@pytest.fixture
def exports(tmp_path):
    directory = tmp_path / "exports"
    directory.mkdir()
    return directory


class TestLocalFileSystem:
    @pytest.mark.asyncio
    async def test_write_and_read_inside_root(self, exports):
        """Test that absolute and relative paths below the root are usable."""
        files = LocalFileSystem(str(exports))

        await files.write_text(str(exports / "nested" / "config.json"), "{}")

        assert await files.read_text("nested/config.json") == "{}"

    @pytest.mark.asyncio
    async def test_read_outside_root(self, tmp_path, exports):
        """Test that a file next to the root directory cannot be read."""
        (tmp_path / "secret.json").write_text("{}", encoding="utf-8")
        files = LocalFileSystem(str(exports))

        with pytest.raises(PermissionError):
            await files.read_text(str(tmp_path / "secret.json"))
        with pytest.raises(PermissionError):
            await files.read_text("../secret.json")

    @pytest.mark.asyncio
    async def test_write_outside_root(self, tmp_path, exports):
        """Test that nothing is written outside the root directory."""
        files = LocalFileSystem(str(exports))

        with pytest.raises(PermissionError):
            await files.write_text(str(tmp_path / "other" / "config.json"), "{}")
        assert not (tmp_path / "other").exists()

    @pytest.mark.asyncio
    async def test_saved_path_is_writable(self, tmp_path, monkeypatch):
        """Test that a dialog rooted at a relative directory returns paths the filesystem accepts."""
        monkeypatch.chdir(tmp_path)
        files = LocalFileSystem("exports")
        path = await DirectoryDialogs("exports").save_file("Export", "config.json")

        await files.write_text(path, "{}")

        assert (tmp_path / "exports" / "config.json").read_text(encoding="utf-8") == "{}"


class TestImportOutsideExports:
    @pytest.mark.asyncio
    async def test_import_rejects_outside_file(self, tmp_path, exports, ports, services, payload):
        """Test that an import by path cannot load a JSON file outside the exports directory."""
        outside = tmp_path / "elsewhere.json"
        outside.write_text(json.dumps(payload), encoding="utf-8")
        ports.files = LocalFileSystem(str(exports))

        with pytest.raises(FileOperationError, match="Failed to read file"):
            await services.importer.execute({"filePath": str(outside), "selectedItems": {"sources": True}})
        assert await ports.sources.list_sources() == []
