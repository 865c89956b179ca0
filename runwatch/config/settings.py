"""Typed runtime settings with dotenv support and startup validation."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Application settings for API runtime and correlation session configuration.

    Environment variable names map directly to field names in uppercase.
    Example: `target_namespace` reads from `TARGET_NAMESPACE`.

    Attributes:
        environment_name: Runtime environment label.
        application_host: Host interface for web server binding.
        application_port: Web server port.
        log_level: Root log level for JSON log output.
        target_namespace: Namespace that runs are submitted to and watched in.
        control_plane_base_url: Kubernetes API server base URL.
        control_plane_token: Optional bearer token for the API server.
        control_plane_verify_tls: Whether to verify the API server certificate.
        control_plane_ca_bundle_path: Optional CA bundle path for verification.
        control_plane_request_timeout_seconds: Timeout for non-watch requests.
        task_name: Name of the task each run references.
        task_image: Container image of the task step.
        task_script: Script executed by the task step.
        run_generate_name: Prefix for server-generated run names.
        session_poll_interval_seconds: Poll interval for `wait` mode.
        session_timeout_seconds: Optional overall session deadline.
        session_delete_run_on_exit: Whether runs are deleted after each session.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment_name: str = Field(default="development")
    application_host: str = Field(default="0.0.0.0")
    application_port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    target_namespace: str = Field(default="default", min_length=1)
    control_plane_base_url: str = Field(default="https://kubernetes.default.svc", min_length=1)
    control_plane_token: str | None = Field(default=None)
    control_plane_verify_tls: bool = Field(default=True)
    control_plane_ca_bundle_path: str | None = Field(default=None)
    control_plane_request_timeout_seconds: float = Field(default=30.0, gt=0)
    task_name: str = Field(default="hello-world", min_length=1)
    task_image: str = Field(default="busybox", min_length=1)
    task_script: str = Field(default="echo 'Hello World'", min_length=1)
    run_generate_name: str = Field(default="hello-world-run-", min_length=1)
    session_poll_interval_seconds: float = Field(default=1.0, ge=0)
    session_timeout_seconds: float | None = Field(default=None, gt=0)
    session_delete_run_on_exit: bool = Field(default=False)

    @field_validator(
        "target_namespace",
        "control_plane_base_url",
        "task_name",
        "task_image",
        "task_script",
        "run_generate_name",
    )
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized_value


def config_load_settings() -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when required settings are missing or invalid.
    """

    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error
