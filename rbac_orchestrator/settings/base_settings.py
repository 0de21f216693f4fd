"""Configuration of the role assignment orchestrator.

Values come, by decreasing priority, from keyword arguments, `RBAC_*`
environment variables, a `config.yml` file and a `.env` file, then the
defaults below, which reproduce the budgets observed to absorb Azure RBAC
propagation: 15 attempts 5 seconds apart for writes, and a 10 seconds grace
period once an identity or a grant becomes visible.
"""

from datetime import timedelta
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)
from rbac_orchestrator.exceptions import ConfigValidationError


class OrchestratorSettings(BaseSettings):
    """Settings of the orchestrator and of its Azure backend.

    Examples:
        >>> settings = OrchestratorSettings(subscription_id="sub", retry_attempts=3)
        >>> settings.principal_availability_scope
        '/subscriptions/sub'

    Raises:
        rbac_orchestrator.exceptions.ConfigValidationError: If a value fails validation.

    """

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        env_file=".env",
        yaml_file="config.yml",
        frozen=True,
        extra="ignore",
    )

    subscription_id: str | None = Field(
        default=None,
        description="Subscription the Azure backend is bound to.",
    )
    availability_scope: str | None = Field(
        default=None,
        description="Scope of the principal availability query. Defaults to the subscription.",
    )
    retry_attempts: int = Field(
        default=15,
        ge=1,
        description="Attempts of a backend call failing with a propagation-transient error.",
    )
    retry_delay: timedelta = Field(
        default=timedelta(seconds=5),
        description="Fixed delay between two attempts of a backend call.",
    )
    principal_poll_interval: timedelta = Field(
        default=timedelta(seconds=5),
        description="Delay between two principal availability queries.",
    )
    principal_grace_period: timedelta = Field(
        default=timedelta(seconds=10),
        description="Extra wait once a principal becomes resolvable.",
    )
    propagation_poll_interval: timedelta = Field(
        default=timedelta(seconds=5),
        description="Delay between two role assignment propagation queries.",
    )
    propagation_grace_period: timedelta = Field(
        default=timedelta(seconds=10),
        description="Extra wait once a role assignment becomes listable.",
    )
    deterministic_assignment_ids: bool = Field(
        default=True,
        description="Name role assignments after their (scope, role, principal) key.",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Minimum level of the `rbac_orchestrator` logger.",
    )

    def __init__(self, **values: Any) -> None:
        """Initialize the settings and handle validation errors."""
        try:
            super().__init__(**values)
        except ValidationError as e:
            raise ConfigValidationError("Error validating configuration.") from e

    @field_validator(
        "retry_delay",
        "principal_poll_interval",
        "principal_grace_period",
        "propagation_poll_interval",
        "propagation_grace_period",
    )
    @classmethod
    def _non_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("Durations must not be negative.")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order the sources: init kwargs, environment, `config.yml`, then `.env`.

        Missing files are skipped by their source.
        """
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
            dotenv_settings,
        )

    @property
    def principal_availability_scope(self) -> str | None:
        """Scope of the principal availability query, if one can be derived."""
        if self.availability_scope:
            return self.availability_scope
        if self.subscription_id:
            return f"/subscriptions/{self.subscription_id}"
        return None
