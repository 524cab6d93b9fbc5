"""Pydantic request models for the user endpoints."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MigrateUserRequest(BaseModel):
    """Body of ``POST /migrateUser``.

    Accepts the camelCase keys and the legacy ``nombre``/``apellido``/``foto``
    keys. Missing values are reported by the service, not by pydantic.
    """

    model_config = ConfigDict(extra="ignore")

    email: str | None = None
    first_name: str | None = Field(
        default=None, validation_alias=AliasChoices("firstName", "nombre")
    )
    last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("lastName", "apellido")
    )
    picture_url: str | None = Field(
        default=None, validation_alias=AliasChoices("pictureUrl", "foto")
    )
