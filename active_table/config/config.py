import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class DatabaseConfig(BaseModel):
    """Configuration for the database connection and gateway behaviour."""

    database_url: str = Field(
        default_factory=lambda: os.getenv("ACTIVE_TABLE_DATABASE_URL", "sqlite:///active_table.db"),
        description="SQLAlchemy database URL"
    )

    # Engine settings
    echo: bool = Field(
        default_factory=lambda: _env_flag("ACTIVE_TABLE_ECHO"),
        description="Log every SQL statement emitted by the engine"
    )

    pool_pre_ping: bool = Field(
        default=True,
        description="Test pooled connections before handing them out"
    )

    pool_recycle: int = Field(
        default=3600,
        ge=-1,
        description="Seconds after which pooled connections are recycled (-1 disables)"
    )

    # Environment settings
    environment: str = Field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "dev"),
        description="Current environment (dev, staging, prod, test)"
    )

    # Gateway settings
    strict_columns: bool = Field(
        default_factory=lambda: _env_flag("ACTIVE_TABLE_STRICT_COLUMNS"),
        description="Reject writes carrying unknown or nested fields instead of dropping them"
    )

    # Logging settings
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("ACTIVE_TABLE_DEBUG_LOGGING"),
        description="Enable debug logging for gateway operations"
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        """Validate database URL."""
        if not v:
            raise ValueError("Database URL is required")
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_environments = ['dev', 'staging', 'prod', 'test']
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        """Create configuration from environment variables.

        Returns:
            DatabaseConfig instance
        """
        return cls()

    @classmethod
    def for_sqlite(cls, path: Optional[str] = None, **kwargs) -> 'DatabaseConfig':
        """Create configuration for a local SQLite database.

        Args:
            path: Database file path; an in-memory database when omitted
            **kwargs: Additional configuration parameters

        Returns:
            DatabaseConfig instance configured for SQLite
        """
        url = f"sqlite:///{path}" if path else "sqlite://"
        kwargs.setdefault("environment", "dev")
        return cls(database_url=url, **kwargs)

    model_config = ConfigDict(
        validate_assignment=True,
    )
