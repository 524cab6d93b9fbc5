"""Tests for user migration, update and query use cases."""

import asyncio

import pytest

from moby_users.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from moby_users.domain.models import TableNames
from moby_users.services.users import UserService
from tests.conftest import InMemoryRecordStore


def _seed_legacy_person(store: InMemoryRecordStore, tables: TableNames) -> None:
    store.add(
        tables.personales,
        "recL1",
        **{
            "Correo MOBY (from Datos Personales)": ["a@b.com"],
            "Fecha de Alta (from Datos Personales)": ["2021-03-01"],
            "Capacity": ["recOld1", "recOld2"],
        },
    )
    store.add(
        tables.proyectos,
        "recOld1",
        **{
            "Proyectos": "Atlas",
            "Cliente (from Oportunidades) (de Proyectos)": ["ACME"],
            "Fecha de Asginacion": "2022-01-10",
        },
    )
    store.add(
        tables.proyectos,
        "recOld2",
        **{
            "Proyectos": "Borealis",
            "Cliente (from Oportunidades) (de Proyectos)": ["Initech"],
            "Fecha de Asginacion": "2023-05-02",
            "Fecha de Baja Servicio": "2023-12-31",
        },
    )


def _seed_app_user(
    store: InMemoryRecordStore, tables: TableNames, **row: object
) -> None:
    store.add(
        tables.users_app,
        "recU1",
        **{"Correo Moby": "a@b.com", "Nombre": "Ana", "Apellido": "Lopez", **row},
    )


def test_migrate_user_resolves_and_links_projects(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)
    store.add(
        tables.proyectos_app,
        "recExisting",
        **{"Nombre": "Atlas", "Cliente": "ACME", "Usuarios MobyApp": ["recOther"]},
    )

    result = asyncio.run(
        user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic")
    )

    assert result.projects_created == 1
    user = store.row(tables.users_app, result.record.id)
    assert user["Correo Moby"] == "a@b.com"
    assert user["Fecha de Alta"] == "2021-03-01"
    assert user["Foto de Perfil URL"] == "http://pic"
    assert user["Es Referente?"] is False
    assert user["Es Talent Partner?"] is False
    assert "Provincia" not in user
    project_ids = user["Proyectos"]
    assert len(project_ids) == 2
    assert project_ids[0] == "recExisting"
    for project_id in project_ids:
        links = store.row(tables.proyectos_app, project_id)["Usuarios MobyApp"]
        assert result.record.id in links
    assert store.row(tables.proyectos_app, "recExisting")["Usuarios MobyApp"] == [
        "recOther",
        result.record.id,
    ]
    created = store.row(tables.proyectos_app, project_ids[1])
    assert created["Nombre"] == "Borealis"
    assert created["Fecha cierre"] == "2023-12-31"


def test_migrate_user_deduplicates_shared_projects(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)
    store.row(tables.proyectos, "recOld2")["Proyectos"] = "Atlas"
    store.row(tables.proyectos, "recOld2")[
        "Cliente (from Oportunidades) (de Proyectos)"
    ] = ["ACME"]

    result = asyncio.run(
        user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic")
    )

    assert result.projects_created == 1
    assert len(store.row(tables.users_app, result.record.id)["Proyectos"]) == 1


def test_migrate_user_skips_nameless_legacy_projects(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)
    del store.row(tables.proyectos, "recOld1")["Proyectos"]

    result = asyncio.run(
        user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic")
    )

    assert result.projects_created == 1
    assert len(result.record.fields["Proyectos"]) == 1


@pytest.mark.parametrize(
    "args",
    [
        (None, "Ana", "Lopez", "http://pic"),
        ("a@b.com", "", "Lopez", "http://pic"),
        ("a@b.com", "Ana", None, "http://pic"),
        ("a@b.com", "Ana", "Lopez", "  "),
    ],
)
def test_migrate_user_requires_all_inputs(
    user_service: UserService, store: InMemoryRecordStore, args: tuple
) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(user_service.migrate_user(*args))
    assert store.calls == []


def test_migrate_user_unknown_email(user_service: UserService) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(
            user_service.migrate_user("nobody@b.com", "Ana", "Lopez", "http://pic")
        )


def test_migrate_user_rejects_an_already_registered_email(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)
    asyncio.run(user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic"))
    creates = store.calls_to("create")

    with pytest.raises(ConflictError):
        asyncio.run(
            user_service.migrate_user(" a@b.com ", "Ana", "Lopez", "http://pic")
        )

    assert store.calls_to("create") == creates
    assert len(store.tables[tables.users_app]) == 1


def test_concurrent_migrations_of_one_email_create_a_single_user(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)

    async def run() -> list:
        return await asyncio.gather(
            user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic"),
            user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic"),
            return_exceptions=True,
        )

    results = asyncio.run(run())

    assert sum(isinstance(result, ConflictError) for result in results) == 1
    assert len(store.tables[tables.users_app]) == 1
    assert len(store.tables[tables.proyectos_app]) == 2
    user_id = next(iter(store.tables[tables.users_app]))
    for project in store.tables[tables.proyectos_app].values():
        assert project["Usuarios MobyApp"] == [user_id]
    assert len(user_service.locks) == 0


def test_migrate_user_aborts_when_a_legacy_lookup_fails(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)
    store.failing.add(("find", tables.proyectos))

    with pytest.raises(StoreError):
        asyncio.run(user_service.migrate_user("a@b.com", "Ana", "Lopez", "http://pic"))

    assert store.calls_to("create") == 0


def test_update_user_without_fields_is_rejected(
    user_service: UserService, store: InMemoryRecordStore
) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(user_service.update_user("a@b.com", {}))
    assert store.calls == []


def test_update_user_unknown_email(user_service: UserService) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(user_service.update_user("a@b.com", {"province": "Salta"}))


def test_update_user_denormalizes_links(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables)
    store.add(tables.users_app, "recRef", Nombre="Rita", Apellido="Paz")
    store.add(tables.proyectos_app, "recP1", Nombre="Atlas")

    record = asyncio.run(
        user_service.update_user(
            "a@b.com",
            {
                "province": " Salta ",
                "email": "new@b.com",
                "projects": ["recP1"],
                "referent": ["recRef"],
                "talentPartner": [],
            },
        )
    )

    assert store.row(tables.users_app, "recU1")["Correo Moby"] == "a@b.com"
    assert store.row(tables.users_app, "recU1")["Proyectos"] == ["recP1"]
    assert record.fields["Provincia"] == "Salta"
    assert record.fields["Proyectos"] == ["Atlas"]
    assert record.fields["Referente"]["lastName"] == "Paz"
    assert record.fields["Referente"]["referent"] is None
    assert record.fields["Talent Partner"] is None


def test_get_user_by_email_without_links(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables)

    profile = asyncio.run(user_service.get_user_by_email("a@b.com"))

    assert profile.referent is None
    assert profile.talent_partner is None
    assert profile.projects == []
    assert profile.to_dto()["lastName"] == "Lopez"


def test_get_user_by_email_expands_links(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(
        store,
        tables,
        **{
            "Proyectos": ["recP1"],
            "Talent Partner": ["recTP"],
            "Tecnologia Actual": "Go",
        },
    )
    store.add(tables.proyectos_app, "recP1", Nombre="Atlas")
    store.add(
        tables.users_app,
        "recTP",
        **{"Nombre": "Tom", "Apellido": "Ruiz", "Talent Partner": ["recU1"]},
    )

    profile = asyncio.run(user_service.get_user_by_email("a@b.com"))

    assert profile.projects == ["Atlas"]
    assert profile.current_tech == "Go"
    assert profile.talent_partner is not None
    assert profile.talent_partner.name == "Tom"
    assert profile.talent_partner.talent_partner is None


def test_get_user_by_email_not_found(user_service: UserService) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(user_service.get_user_by_email("a@b.com"))
    assert excinfo.value.status_code == 404


def test_check_user_exists(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables)

    assert asyncio.run(user_service.check_user_exists("a@b.com")).id == "recU1"
    assert asyncio.run(user_service.check_user_exists("x@b.com")) is None


def test_get_user_full_name(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables, Apellido=" Lopez ")

    assert asyncio.run(user_service.get_user_full_name("a@b.com")) == "Ana Lopez"
    with pytest.raises(NotFoundError):
        asyncio.run(user_service.get_user_full_name("x@b.com"))


def test_check_email_in_legacy(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_legacy_person(store, tables)

    assert asyncio.run(user_service.check_email_in_legacy("a@b.com")) is True
    assert asyncio.run(user_service.check_email_in_legacy("x@b.com")) is False
    with pytest.raises(ValidationError):
        asyncio.run(user_service.check_email_in_legacy(" "))


def test_list_users_and_role_filters(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables, **{"Es Referente?": True})
    store.add(
        tables.users_app,
        "recU2",
        **{"Correo Moby": "t@b.com", "Nombre": "Tom", "Es Talent Partner?": True},
    )
    store.add(tables.users_app, "recU3", Nombre="Eva")

    users = asyncio.run(user_service.list_users())
    referents = asyncio.run(user_service.list_referents())
    partners = asyncio.run(user_service.list_partners())

    assert [user.id for user in users] == ["recU1", "recU2", "recU3"]
    assert [user.id for user in referents] == ["recU1"]
    assert [user.email for user in partners] == ["t@b.com"]


def test_list_by_technology_matches_case_insensitively(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    _seed_app_user(store, tables, **{"Tecnologia Actual": "Golang"})
    store.add(tables.users_app, "recU2", **{"Tecnologia Actual": "Python"})

    users = asyncio.run(user_service.list_by_technology(" GO "))

    assert [user.id for user in users] == ["recU1"]


def test_list_by_technology_without_matches_is_not_found(
    user_service: UserService, store: InMemoryRecordStore, tables: TableNames
) -> None:
    store.add(tables.users_app, "recU2", **{"Tecnologia Actual": "Python"})

    with pytest.raises(NotFoundError):
        asyncio.run(user_service.list_by_technology("go"))


@pytest.mark.parametrize("term", [None, "", "   ", 7])
def test_list_by_technology_requires_term(
    user_service: UserService, term: object
) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(user_service.list_by_technology(term))
