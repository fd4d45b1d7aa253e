"""File dialogs, JSON read/write and companion-file paths for exports."""

import json
import re
from typing import Any

import structlog

from configport.core.modules.transfer.constants import CONFIG_FILE_PREFIX, ErrorMessage
from configport.core.modules.transfer.models import ValidationResult
from configport.core.ports import FileDialogs, FileSystem
from configport.errors import FileOperationError, OperationCancelledError
from configport.utils import now

logger = structlog.get_logger(__name__)

UNSAFE_PATH_PREFIXES = ("/dev/", "/proc/", "/sys/")
DRIVE_ROOT_FILE_RE = re.compile(r"^[A-Za-z]:[\\/][^\\/]*$")


def generate_timestamped_filename(prefix: str = CONFIG_FILE_PREFIX, suffix: str = "", extension: str = "json") -> str:
    """Build `prefix[_suffix]_YYYY-MM-DDTHH-MM-SS.extension` from the current UTC time."""
    timestamp = now().strftime("%Y-%m-%dT%H-%M-%S")
    suffix_part = f"_{suffix}" if suffix else ""
    return f"{prefix}{suffix_part}_{timestamp}.{extension}"


async def show_export_file_dialog(
    dialogs: FileDialogs, default_path: str, title: str = "Export Configuration"
) -> str | None:
    try:
        return await dialogs.save_file(title, default_path)
    except OSError as e:
        raise FileOperationError(f"{ErrorMessage.FILE_OPERATION_FAILED}: {e}") from e


async def show_import_file_dialog(dialogs: FileDialogs, title: str = "Import Configuration") -> str | None:
    try:
        return await dialogs.open_file(title)
    except OSError as e:
        raise FileOperationError(f"{ErrorMessage.FILE_OPERATION_FAILED}: {e}") from e


def validate_file_path(file_path: Any) -> ValidationResult:
    """Reject traversal, device/system locations, and files placed directly in a drive root."""
    if not file_path or not isinstance(file_path, str):
        return ValidationResult.fail("File path must be a non-empty string")

    components = re.split(r"[\\/]", file_path)
    if (
        ".." in components
        or file_path.startswith(UNSAFE_PATH_PREFIXES)
        or DRIVE_ROOT_FILE_RE.match(file_path)
    ):
        return ValidationResult.fail("File path contains potentially unsafe patterns")

    return ValidationResult.ok()


async def write_json_file(files: FileSystem, file_path: str, data: Any, pretty: bool = True) -> None:
    validation = validate_file_path(file_path)
    if not validation.success:
        raise FileOperationError(f"Failed to write file {file_path}: {validation.error}")

    content = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
    try:
        await files.write_text(file_path, content)
    except OSError as e:
        raise FileOperationError(f"Failed to write file {file_path}: {e}") from e
    logger.debug("json_file_written", path=file_path, size=len(content))


async def read_json_file(files: FileSystem, file_path: str) -> Any:
    try:
        return json.loads(await files.read_text(file_path))
    except (OSError, json.JSONDecodeError) as e:
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e


def generate_companion_file_path(main_file_path: str, env_file_name: str) -> str:
    """Place the companion file in the main file's directory. Both separators are recognized."""
    separator_index = max(main_file_path.rfind("/"), main_file_path.rfind("\\"))
    if separator_index == -1:
        return env_file_name
    return f"{main_file_path[: separator_index + 1]}{env_file_name}"


async def handle_single_file_export(dialogs: FileDialogs, files: FileSystem, filename: str, data: Any) -> str:
    file_path = await show_export_file_dialog(dialogs, filename)
    if not file_path:
        raise OperationCancelledError("Export cancelled by user")

    await write_json_file(files, file_path, data)
    return file_path


async def handle_multi_file_export(
    dialogs: FileDialogs,
    files: FileSystem,
    main_filename: str,
    main_data: Any,
    environment_filename: str | None = None,
    environment_data: Any = None,
    title: str = "Export Configuration",
) -> list[str]:
    """Write the main file, then the companion environment file next to it.

    A failure after the main file is written leaves that file in place.
    """
    main_file_path = await show_export_file_dialog(dialogs, main_filename, title=f"{title} (Main)")
    if not main_file_path:
        raise OperationCancelledError("Export cancelled by user")

    await write_json_file(files, main_file_path, main_data)
    written = [main_file_path]

    if environment_data is not None and environment_filename:
        env_file_path = generate_companion_file_path(main_file_path, environment_filename)
        await write_json_file(files, env_file_path, environment_data)
        written.append(env_file_path)

    return written
