# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for campus-scope.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.statistics.batch_size
    30
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PASSWORD = "campus_scope_password"


class DatabaseSettings(BaseSettings):
    """Row store (PostgreSQL) configuration.

    The row store holds the organization reference tables, profiles,
    teacher permission grants and assessments. This subsystem only reads.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "campus_scope"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "campus_scope"
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class StatisticsSettings(BaseSettings):
    """Batched aggregation configuration.

    The batch size bounds the length of every ``IN (...)`` id list sent
    to the row store. It never changes the aggregated results.

    Attributes:
        batch_size: Student ids per batch.
        max_concurrency: Maximum store calls in flight per aggregator.
        request_timeout_seconds: Deadline for one statistics call.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATS_",
        extra="ignore",
    )

    batch_size: int = Field(default=30, ge=1, le=500)
    max_concurrency: int = Field(default=8, ge=1, le=64)
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class AccessSettings(BaseSettings):
    """Role names and permission defaults.

    Attributes:
        superuser_role: Role that always resolves to an unrestricted scope.
        teacher_role: Role of teacher accounts.
        student_role: Role of student profiles.
        default_academic_year: Academic year reported for grants without one.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        extra="ignore",
    )

    superuser_role: str = "admin"
    teacher_role: str = "teacher"
    student_role: str = "student"
    default_academic_year: str = "2024-2025"


class Settings(BaseSettings):
    """Main application settings.

    Attributes:
        environment: Deployment environment.
        debug: Enable debug mode.
        log_level: Logging level.
        database: Row store settings.
        statistics: Batched aggregation settings.
        access: Role and permission settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    statistics: StatisticsSettings = Field(default_factory=StatisticsSettings)
    access: AccessSettings = Field(default_factory=AccessSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
