"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from moby_users.domain.models import TableNames

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    airtable_api_key: str
    airtable_base_id: str
    airtable_base_url: str = "https://api.airtable.com/v0"
    airtable_table_name_personales: str
    airtable_table_name_proyectos: str
    airtable_table_name_users_app: str
    airtable_table_name_proyectos_app: str
    airtable_table_name_clientes: str | None = None
    airtable_timeout_seconds: float = 30
    airtable_retry_attempts: int = 2
    airtable_retry_delay_seconds: float = 0.5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def tables(self) -> TableNames:
        """Return the configured backend table names."""
        return TableNames(
            personales=self.airtable_table_name_personales,
            proyectos=self.airtable_table_name_proyectos,
            users_app=self.airtable_table_name_users_app,
            proyectos_app=self.airtable_table_name_proyectos_app,
            clientes=self.airtable_table_name_clientes or None,
        )
