from datetime import UTC, datetime
from uuid import uuid4


def now() -> datetime:
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_id() -> str:
    return uuid4().hex


def format_size(size_bytes: int) -> str:
    """Format a byte count for humans: bytes, whole KB, or MB with two decimals."""
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    if size_bytes < 1024 * 1024:
        return f"{round(size_bytes / 1024)} KB"
    return f"{round(size_bytes / (1024 * 1024), 2)} MB"
