"""Configuration management using Pydantic settings.

Two-layer configuration system:
1. Environment: Loads raw values from environment variables (UPPER_CASE)
2. Settings: Clean application settings with lowercase fields and derived values
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sli_metrics.exceptions import ConfigurationError

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Environment(BaseSettings):
    """Raw environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Core ───────────────────────────────────────────────────────────

    FLASK_ENV: str = Field(default="development")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)
    WAITRESS_THREADS: int = Field(default=8)
    GRACEFUL_SHUTDOWN_TIMEOUT: int = Field(default=30)
    RANDOM_SEED: int | None = Field(default=None)

    # ── Metrics export ─────────────────────────────────────────────────

    PROJECT_ID: str = Field(default="")
    METRIC_PREFIX: str = Field(default="opencensus-demo")
    EXPORT_INTERVAL_SECONDS: int = Field(default=60)
    EXPORT_TIMEOUT_SECONDS: float = Field(default=10.0)
    PUSHGATEWAY_URL: str = Field(default="")


class Settings(BaseModel):
    """Application settings with lowercase fields and derived values."""

    model_config = ConfigDict(from_attributes=True)

    flask_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 8080
    waitress_threads: int = 8
    graceful_shutdown_timeout: int = 30
    random_seed: int | None = None

    project_id: str = ""
    metric_prefix: str = "opencensus-demo"
    export_interval_seconds: int = 60
    export_timeout_seconds: float = 10.0
    pushgateway_url: str = ""

    @property
    def is_testing(self) -> bool:
        return self.flask_env == "testing"

    @property
    def is_production(self) -> bool:
        return self.flask_env == "production"

    @property
    def use_pushgateway(self) -> bool:
        return bool(self.pushgateway_url)

    def validate_config(self) -> None:
        """Check the settings needed to start serving.

        Raises:
            ConfigurationError: Listing every problem found.
        """
        errors: list[str] = []

        if not self.project_id.strip():
            errors.append("A project ID is required (--project_id or PROJECT_ID)")

        if self.export_interval_seconds <= 0:
            errors.append("EXPORT_INTERVAL_SECONDS must be positive")

        if self.export_timeout_seconds <= 0:
            errors.append("EXPORT_TIMEOUT_SECONDS must be positive")

        if not 0 < self.port < 65536:
            errors.append(f"PORT must be between 1 and 65535, got {self.port}")

        if not self.metric_prefix.strip():
            errors.append("METRIC_PREFIX must not be empty")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    @classmethod
    def load(cls, env: "Environment | None" = None, project_id: str | None = None) -> "Settings":
        """Build settings from the environment.

        Args:
            env: Raw environment; loaded from the process environment if omitted
            project_id: Value of the --project_id flag; overrides PROJECT_ID
        """
        if env is None:
            env = Environment()

        return cls(
            flask_env=env.FLASK_ENV,
            host=env.HOST,
            port=env.PORT,
            waitress_threads=env.WAITRESS_THREADS,
            graceful_shutdown_timeout=env.GRACEFUL_SHUTDOWN_TIMEOUT,
            random_seed=env.RANDOM_SEED,
            project_id=project_id if project_id else env.PROJECT_ID,
            metric_prefix=env.METRIC_PREFIX,
            export_interval_seconds=env.EXPORT_INTERVAL_SECONDS,
            export_timeout_seconds=env.EXPORT_TIMEOUT_SECONDS,
            pushgateway_url=env.PUSHGATEWAY_URL,
        )
