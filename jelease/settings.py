"""Settings resolution from the environment and a .env file in the working directory."""

from typing import Annotated

import typer
from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from jelease.template import DEFAULT_DESCRIPTION, DescriptionTemplate

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class JeleaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        arbitrary_types_allowed=True,
    )

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8080

    # Jira connection
    jira_url: str
    jira_user: str
    jira_token: SecretStr
    jira_skip_cert_verify: bool = False

    # Issue content
    project: str  # Jira project key, e.g. "OPS"
    default_status: str
    add_labels: Annotated[list[str], NoDecode] = []
    issue_type: str = "Task"
    description_template: DescriptionTemplate = DescriptionTemplate(DEFAULT_DESCRIPTION)
    project_custom_field: int | None = None  # dedup on cf[<id>] instead of labels

    dry_run: bool = False
    log_level: str = "INFO"

    @field_validator("jira_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("add_labels", mode="before")
    @classmethod
    def _split_labels(cls, value: object) -> object:
        # ADD_LABELS=security,dependencies
        if isinstance(value, str):
            return [label.strip() for label in value.split(",") if label.strip()]
        return value

    @field_validator("description_template", mode="before")
    @classmethod
    def _parse_template(cls, value: object) -> object:
        # TemplateError is a ValueError, so pydantic reports it as a validation error
        if isinstance(value, str):
            return DescriptionTemplate(value)
        return value

    @field_validator("project_custom_field", mode="before")
    @classmethod
    def _empty_custom_field(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(_LOG_LEVELS)}")
        return value


def get_settings(**overrides: object) -> JeleaseSettings:
    """Load settings from the environment (highest precedence) and .env.

    Keyword overrides (CLI flags) win over both. Invalid or missing settings are
    reported on stdout and exit with status 1, so the server never starts half-configured.
    """
    try:
        return JeleaseSettings(**{k: v for k, v in overrides.items() if v is not None})  # type: ignore[arg-type]
    except ValidationError as exc:
        typer.echo("Invalid jelease configuration:")
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "settings"
            typer.echo(f"  {field.upper()}: {error['msg']}")
        raise typer.Exit(1) from exc
