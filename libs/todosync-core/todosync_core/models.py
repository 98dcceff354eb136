"""Core data models for todosync."""

from pathlib import Path
from typing import TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TRACKED_FILES = ["todo.txt", "done.txt"]
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]


class SyncConfig(BaseModel):
    """Process configuration (todosync.yaml, environment, CLI options)."""

    # Accept both alias keys (e.g., "repo-path") and field names ("repo_path")
    model_config = ConfigDict(populate_by_name=True)

    repo_path: Path = Field(description="Git working tree holding the tracked files", alias="repo-path")
    local_dir: Path = Field(description="Local working directory", alias="local-dir")
    tracked_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRACKED_FILES), alias="tracked-files"
    )
    poll_interval: float = Field(default=5.0, gt=0, description="Seconds", alias="poll-interval")

    credentials_file: Path = Field(
        default=Path("credentials.json"),
        description="OAuth client secret",
        alias="credentials-file",
    )
    token_file: Path = Field(
        default=Path("token.json"), description="Cached OAuth token", alias="token-file"
    )
    service_account_file: Path | None = Field(default=None, alias="service-account-file")
    scopes: list[str] = Field(default_factory=lambda: list(DRIVE_SCOPES))

    author_name: str = Field(default="ToDo Sync", alias="author-name")
    author_email: str = Field(default="todosync@localhost", alias="author-email")
    remote_message: str = Field(default="Push from mobile", alias="remote-message")
    local_message: str = Field(default="Push from local", alias="local-message")

    @field_validator("tracked_files", mode="before")
    @classmethod
    def _split_names(cls, v):
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("tracked_files")
    @classmethod
    def _check_names(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one tracked file is required")
        for name in v:
            if not name or "/" in name or "\\" in name or name in (".", ".."):
                raise ValueError(f"tracked file must be a plain file name: {name!r}")
        if len(set(v)) != len(v):
            raise ValueError("tracked file names must be unique")
        return v


class RemoteObject(TypedDict):
    """Remote listing record."""

    id: str
    name: str
