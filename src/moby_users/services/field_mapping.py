"""Translation of client user DTOs into Airtable user fields."""

from collections.abc import Mapping

from moby_users.domain import fields
from moby_users.domain.errors import ValidationError

# DTO key (and legacy Spanish aliases) -> Airtable column.
_TEXT_FIELDS: dict[str, tuple[tuple[str, ...], str]] = {
    "name": (("name", "nombre"), fields.USER_NAME),
    "lastName": (("lastName", "apellido"), fields.USER_LAST_NAME),
    "province": (("province", "provincia"), fields.USER_PROVINCE),
    "locality": (("locality", "localidad"), fields.USER_LOCALITY),
}

_REQUIRED_TEXT_FIELDS = {fields.USER_NAME, fields.USER_LAST_NAME}

_LINK_FIELDS: dict[str, tuple[tuple[str, ...], str]] = {
    "projects": (("projects", "proyectos"), fields.USER_PROJECTS),
    "referent": (("referent",), fields.USER_REFERENT),
    "talentPartner": (("talentPartner",), fields.USER_TALENT_PARTNER),
}


def map_update_fields(dto_fields: Mapping[str, object]) -> dict[str, object]:
    """Map a partial user DTO to the Airtable fields it updates.

    Absent or ``None`` keys are left out of the result. Email is an identity
    key and is never mapped. An empty link list is kept so the caller clears
    the link.
    """
    mapped: dict[str, object] = {}

    for aliases, column in _TEXT_FIELDS.values():
        value = _first_present(dto_fields, aliases)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"The field '{column}' must be a string.")
        trimmed = value.strip()
        if column in _REQUIRED_TEXT_FIELDS and not trimmed:
            raise ValidationError(f"The field '{column}' must not be empty.")
        mapped[column] = trimmed

    current_tech = normalize_current_tech(dto_fields.get("currentTech"))
    if current_tech:
        mapped[fields.USER_CURRENT_TECH] = current_tech

    for aliases, column in _LINK_FIELDS.values():
        value = _first_present(dto_fields, aliases)
        if not isinstance(value, list):
            continue
        if not all(isinstance(item, str) for item in value):
            raise ValidationError(
                f"The field '{column}' must be a list of record ids."
            )
        mapped[column] = list(value)

    return mapped


def normalize_current_tech(value: object) -> str | None:
    """Collapse ``"Go"`` or ``{"name": "Go"}`` to a trimmed label."""
    if isinstance(value, Mapping):
        value = value.get("name")
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _first_present(dto_fields: Mapping[str, object], keys: tuple[str, ...]) -> object:
    for key in keys:
        value = dto_fields.get(key)
        if value is not None:
            return value
    return None
