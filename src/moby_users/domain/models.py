"""Domain models for application users and their linked records."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StoreRecord:
    """A single row read from or written to the record store."""

    id: str
    fields: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class TableNames:
    """Backend table names, resolved once at startup."""

    personales: str
    proyectos: str
    users_app: str
    proyectos_app: str
    clientes: str | None = None


@dataclass(frozen=True)
class DateRange:
    """Start and end dates carried over from a legacy assignment."""

    start: str | None = None
    end: str | None = None


@dataclass(frozen=True)
class ProjectResolution:
    """Outcome of resolving a legacy project against the app table."""

    id: str
    was_created: bool


@dataclass(frozen=True)
class UserReference:
    """Flattened view of a linked user.

    Nested links are always ``None`` so a reference never expands the
    referenced user's own referent, partner or projects.
    """

    id: str
    name: str | None
    last_name: str | None
    email: str | None
    picture_url: str | None = None
    province: str | None = None
    locality: str | None = None
    current_tech: str | None = None
    is_referent: bool = False
    is_talent_partner: bool = False
    referent: None = None
    talent_partner: None = None
    projects: None = None

    def to_dto(self) -> dict[str, object]:
        """Return the camelCase representation sent to clients."""
        return {
            "id": self.id,
            "name": self.name,
            "lastName": self.last_name,
            "email": self.email,
            "pictureUrl": self.picture_url,
            "province": self.province,
            "locality": self.locality,
            "currentTech": self.current_tech,
            "isReferent": self.is_referent,
            "isTalentPartner": self.is_talent_partner,
            "referent": None,
            "talentPartner": None,
            "projects": None,
        }


@dataclass(frozen=True)
class UserSummary:
    """Light user view returned by list endpoints."""

    id: str
    email: str | None
    name: str | None
    last_name: str | None

    def to_dto(self) -> dict[str, object]:
        """Return the list entry shape existing clients consume."""
        return {
            "id": self.id,
            "correoMoby": self.email,
            "nombre": self.name,
            "apellido": self.last_name,
        }


@dataclass(frozen=True)
class UserProfile:
    """Full user view with linked records denormalized."""

    id: str
    email: str | None
    name: str | None
    last_name: str | None
    picture_url: str | None
    province: str | None
    locality: str | None
    current_tech: str | None
    onboarding_date: str | None
    signature_url: str | None
    is_referent: bool
    is_talent_partner: bool
    projects: list[str]
    referent: UserReference | None
    talent_partner: UserReference | None

    def to_dto(self) -> dict[str, object]:
        """Return the camelCase representation sent to clients."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "lastName": self.last_name,
            "pictureUrl": self.picture_url,
            "province": self.province,
            "locality": self.locality,
            "currentTech": self.current_tech,
            "onboardingDate": self.onboarding_date,
            "signatureUrl": self.signature_url,
            "isReferent": self.is_referent,
            "isTalentPartner": self.is_talent_partner,
            "projects": list(self.projects),
            "referent": self.referent.to_dto() if self.referent else None,
            "talentPartner": (
                self.talent_partner.to_dto() if self.talent_partner else None
            ),
        }


@dataclass(frozen=True)
class MigrationResult:
    """Created user record plus the number of projects newly created."""

    record: StoreRecord
    projects_created: int
