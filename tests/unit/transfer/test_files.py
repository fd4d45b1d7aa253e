"""Tests for export file handling."""

import json
import re

import pytest

from configport.core.modules.transfer.files import (
    generate_companion_file_path,
    generate_timestamped_filename,
    handle_multi_file_export,
    handle_single_file_export,
    read_json_file,
    validate_file_path,
    write_json_file,
)
from configport.errors import FileOperationError, OperationCancelledError


class TestFilePathValidation:
    @pytest.mark.parametrize(
        "path",
        ["/exports/config.json", "C:\\Users\\me\\config.json", "relative/config.json", "/tmp/a..b.json"],
    )
    def test_safe_paths(self, path):
        """Test that ordinary paths are accepted."""
        assert validate_file_path(path).success

    @pytest.mark.parametrize(
        "path",
        ["/exports/../etc/passwd", "..\\secret.json", "/dev/null", "/proc/self/environ", "/sys/kernel", "C:\\config.json"],
    )
    def test_unsafe_paths(self, path):
        """Test that traversal, device locations and drive-root files are rejected."""
        result = validate_file_path(path)
        assert not result.success
        assert result.error == "File path contains potentially unsafe patterns"

    @pytest.mark.parametrize("path", ["", None, 5])
    def test_empty_path(self, path):
        """Test that the path must be a non-empty string."""
        assert validate_file_path(path).error == "File path must be a non-empty string"


class TestNames:
    def test_timestamped_filename(self):
        """Test the filename layout."""
        name = generate_timestamped_filename("open-headers-config", "backup")
        assert re.fullmatch(r"open-headers-config_backup_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.json", name)

    @pytest.mark.parametrize(
        ("main", "expected"),
        [
            ("/exports/main.json", "/exports/env.json"),
            ("C:\\exports\\main.json", "C:\\exports\\env.json"),
            ("main.json", "env.json"),
        ],
    )
    def test_companion_path(self, main, expected):
        """Test that the companion file sits next to the main file."""
        assert generate_companion_file_path(main, "env.json") == expected


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_write_then_read(self, ports):
        """Test that data written as JSON reads back unchanged."""
        await write_json_file(ports.files, "/exports/a.json", {"name": "Zoë"})
        assert json.loads(ports.files.files["/exports/a.json"]) == {"name": "Zoë"}
        assert "Zoë" in ports.files.files["/exports/a.json"]
        assert await read_json_file(ports.files, "/exports/a.json") == {"name": "Zoë"}

    @pytest.mark.asyncio
    async def test_unsafe_write_refused(self, ports):
        """Test that nothing is written to an unsafe path."""
        with pytest.raises(FileOperationError, match="potentially unsafe"):
            await write_json_file(ports.files, "/exports/../a.json", {})
        assert ports.files.files == {}

    @pytest.mark.asyncio
    async def test_read_missing_file(self, ports):
        """Test that a missing file is a file operation error."""
        with pytest.raises(FileOperationError, match="Failed to read file /exports/none.json"):
            await read_json_file(ports.files, "/exports/none.json")


class TestExportHandlers:
    @pytest.mark.asyncio
    async def test_single_file(self, ports):
        """Test that the data is written to the chosen path."""
        path = await handle_single_file_export(ports.dialogs, ports.files, "main.json", {"version": "3.0.0"})
        assert path == "/exports/main.json"
        assert json.loads(ports.files.files[path]) == {"version": "3.0.0"}

    @pytest.mark.asyncio
    async def test_cancelled_dialog(self, ports):
        """Test that a dismissed dialog cancels the export without writing."""
        ports.dialogs.cancel = True
        with pytest.raises(OperationCancelledError):
            await handle_single_file_export(ports.dialogs, ports.files, "main.json", {})
        assert ports.files.files == {}

    @pytest.mark.asyncio
    async def test_multi_file(self, ports):
        """Test that the environment file is written next to the main one."""
        paths = await handle_multi_file_export(
            ports.dialogs, ports.files, "main.json", {"version": "3.0.0"}, "env.json", {"environments": {}}
        )
        assert paths == ["/exports/main.json", "/exports/env.json"]

    @pytest.mark.asyncio
    async def test_multi_file_without_environment_data(self, ports):
        """Test that only the main file is written when there is no environment data."""
        paths = await handle_multi_file_export(ports.dialogs, ports.files, "main.json", {}, "env.json", None)
        assert paths == ["/exports/main.json"]
