from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str | None = None  # MongoDB URL, e.g. mongodb://localhost/configport; in-memory storage when unset
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_json: bool | None = None  # JSON log lines; defaults to on unless debug is set
    cors_origins: list[str] = []
    exports_path: str = "exports"  # Directory where server-side "save dialogs" place export files
    app_version: str = "3.0.0"  # Written into every export payload
    data_format_version: str = "3.0.0"  # Payload version imports compare against
    duplicate_batch_size: int = 50
    large_dataset_threshold: int = 100  # Import warns above this many items
    replace_warning_threshold: int = 50  # Replace-mode import warns above this many items
    # Build metadata injected during Docker build via environment variables
    git_commit_hash: str = "unknown"
    build_time: str = "unknown"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "CONFIGPORT_",
        "extra": "ignore",
    }
