"""Data-layer wiring selection.

A *wiring variant* names the data-access bootstrap code a generated project
gets.  ``select_wiring`` maps a ``(framework, database, orm)`` triple to
exactly one variant through explicit tables; a pair missing from the tables
is an error, never a silent default.  Templates and dependency tables branch
on the variant instead of re-deriving it from raw flags.
"""

from __future__ import annotations

from enum import Enum

from ..config import Database, Framework, Orm
from ..errors import ConfigurationError


class WiringVariant(str, Enum):
    """Every data-access bootstrap the generators can emit."""

    # Node frameworks (Express, NestJS)
    NONE = "none"
    NATIVE_POSTGRES = "native-postgres"
    NATIVE_MYSQL = "native-mysql"
    NATIVE_MONGO = "native-mongo"
    PRISMA_PG_ADAPTER = "prisma-pg-adapter"
    PRISMA_CLIENT = "prisma-client"
    TYPEORM_POSTGRES = "typeorm-postgres"
    TYPEORM_MYSQL = "typeorm-mysql"
    MONGOOSE = "mongoose"

    # Django (built-in ORM, keyed on the database engine only)
    DJANGO_SQLITE = "django-sqlite"
    DJANGO_POSTGRES = "django-postgres"
    DJANGO_MYSQL = "django-mysql"
    DJANGO_MONGO = "django-mongo"

    @property
    def uses_prisma(self) -> bool:
        return self in (WiringVariant.PRISMA_PG_ADAPTER, WiringVariant.PRISMA_CLIENT)

    @property
    def is_native(self) -> bool:
        return self in (
            WiringVariant.NATIVE_POSTGRES,
            WiringVariant.NATIVE_MYSQL,
            WiringVariant.NATIVE_MONGO,
        )


_NODE_WIRING: dict[tuple[Database | None, Orm | None], WiringVariant] = {
    (None, None): WiringVariant.NONE,
    (Database.POSTGRESQL, Orm.NATIVE): WiringVariant.NATIVE_POSTGRES,
    (Database.MYSQL, Orm.NATIVE): WiringVariant.NATIVE_MYSQL,
    (Database.MONGODB, Orm.NATIVE): WiringVariant.NATIVE_MONGO,
    (Database.POSTGRESQL, Orm.PRISMA): WiringVariant.PRISMA_PG_ADAPTER,
    (Database.MYSQL, Orm.PRISMA): WiringVariant.PRISMA_CLIENT,
    (Database.MONGODB, Orm.PRISMA): WiringVariant.PRISMA_CLIENT,
    (Database.POSTGRESQL, Orm.TYPEORM): WiringVariant.TYPEORM_POSTGRES,
    (Database.MYSQL, Orm.TYPEORM): WiringVariant.TYPEORM_MYSQL,
    (Database.MONGODB, Orm.MONGOOSE): WiringVariant.MONGOOSE,
}

_NEST_ONLY = frozenset({WiringVariant.TYPEORM_POSTGRES, WiringVariant.TYPEORM_MYSQL})

_DJANGO_WIRING: dict[Database | None, WiringVariant] = {
    None: WiringVariant.DJANGO_SQLITE,
    Database.POSTGRESQL: WiringVariant.DJANGO_POSTGRES,
    Database.MYSQL: WiringVariant.DJANGO_MYSQL,
    Database.MONGODB: WiringVariant.DJANGO_MONGO,
}


def select_wiring(
    framework: Framework, database: Database | None, orm: Orm | None
) -> WiringVariant:
    """Return the wiring variant for a configuration's data-layer choices.

    Raises:
        ConfigurationError: If the combination has no defined variant.
    """
    if framework is Framework.DJANGO:
        if orm is not None:
            raise ConfigurationError(
                f"Django uses its built-in ORM; orm '{orm.value}' is not supported"
            )
        variant = _DJANGO_WIRING.get(database)
    else:
        variant = _NODE_WIRING.get((database, orm))
        if variant in _NEST_ONLY and framework is not Framework.NESTJS:
            variant = None

    if variant is None:
        db = database.value if database else "none"
        orm_name = orm.value if orm else "none"
        raise ConfigurationError(
            f"No data-layer wiring for {framework.label} with database={db}, orm={orm_name}"
        )
    return variant
