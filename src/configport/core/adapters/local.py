"""Local filesystem collaborators for running the engine as a server process."""

from pathlib import Path

import structlog

from configport.core.modules.transfer.constants import CONFIG_FILE_PREFIX, MessageLevel

logger = structlog.get_logger(__name__)


class LocalFileSystem:
    """Reads and writes files below one root directory."""

    def __init__(self, root: str) -> None:
        self._root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        # Relative paths are taken from the root; absolute ones must already be inside it
        file_path = (self._root / path).resolve()
        if not file_path.is_relative_to(self._root):
            raise PermissionError(f"{path} is outside {self._root}")
        return file_path

    async def read_text(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    async def write_text(self, path: str, content: str) -> None:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")


class DirectoryDialogs:
    """Non-interactive stand-in for file dialogs: files are saved to and opened from one directory."""

    def __init__(self, directory: str) -> None:
        self._directory = Path(directory).resolve()

    async def save_file(self, title: str, default_path: str) -> str | None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._directory / Path(default_path).name
        logger.debug("save_dialog_resolved", title=title, path=str(path))
        return str(path)

    async def open_file(self, title: str) -> str | None:
        """Pick the most recent main export file, or None when there is none."""
        candidates = sorted(self._directory.glob(f"{CONFIG_FILE_PREFIX}*.json"), key=lambda p: p.stat().st_mtime)
        if not candidates:
            return None
        logger.debug("open_dialog_resolved", title=title, path=str(candidates[-1]))
        return str(candidates[-1])


class LogNotifier:
    """Sends user-facing messages to the log."""

    def notify(self, level: MessageLevel, message: str) -> None:
        if level == MessageLevel.ERROR:
            logger.error("user_message", level=level.value, message=message)
        elif level == MessageLevel.WARNING:
            logger.warning("user_message", level=level.value, message=message)
        else:
            logger.info("user_message", level=level.value, message=message)
