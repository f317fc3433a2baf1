"""Dependency manifests for the Node generators.

Each Node framework keeps its own per-variant dependency table; the
``package.json`` documents themselves are built as plain dicts and only
serialized at the very end, so patching an upstream manifest never involves
text substitution.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import Configuration, Framework
from ..errors import ConfigurationError
from .wiring import WiringVariant


@dataclass(frozen=True)
class VariantDependencies:
    """Packages and scripts a wiring variant adds to ``package.json``."""

    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    # Type packages, only added to TypeScript projects
    typings: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)


PRISMA_VERSION = "^5.22.0"

PRISMA_SCRIPTS: dict[str, str] = {
    "prisma:generate": "prisma generate",
    "prisma:migrate": "prisma migrate dev",
    "prisma:studio": "prisma studio",
}

_PG = {"pg": "^8.13.1"}
_PG_TYPES = {"@types/pg": "^8.11.10"}
_MYSQL = {"mysql2": "^3.11.5"}
_MONGODB = {"mongodb": "^6.12.0"}
_MONGOOSE = {"mongoose": "^8.9.0"}


# ---------------------------------------------------------------------------
# Express
# ---------------------------------------------------------------------------

EXPRESS_DEPENDENCIES: dict[str, str] = {
    "cors": "^2.8.5",
    "dotenv": "^16.4.7",
    "express": "^4.21.2",
}

EXPRESS_TS_DEV_DEPENDENCIES: dict[str, str] = {
    "@types/cors": "^2.8.17",
    "@types/express": "^4.17.21",
    "@types/node": "^20.17.10",
    "ts-node-dev": "^2.0.0",
    "typescript": "^5.7.2",
}

EXPRESS_JS_DEV_DEPENDENCIES: dict[str, str] = {"nodemon": "^3.1.9"}

EXPRESS_VARIANT_DEPENDENCIES: dict[WiringVariant, VariantDependencies] = {
    WiringVariant.NONE: VariantDependencies(),
    WiringVariant.NATIVE_POSTGRES: VariantDependencies(dependencies=_PG, typings=_PG_TYPES),
    WiringVariant.NATIVE_MYSQL: VariantDependencies(dependencies=_MYSQL),
    WiringVariant.NATIVE_MONGO: VariantDependencies(dependencies=_MONGODB),
    WiringVariant.PRISMA_PG_ADAPTER: VariantDependencies(
        dependencies={
            "@prisma/adapter-pg": PRISMA_VERSION,
            "@prisma/client": PRISMA_VERSION,
            **_PG,
        },
        dev_dependencies={"prisma": PRISMA_VERSION},
        typings=_PG_TYPES,
        scripts=PRISMA_SCRIPTS,
    ),
    WiringVariant.PRISMA_CLIENT: VariantDependencies(
        dependencies={"@prisma/client": PRISMA_VERSION},
        dev_dependencies={"prisma": PRISMA_VERSION},
        scripts=PRISMA_SCRIPTS,
    ),
    WiringVariant.MONGOOSE: VariantDependencies(dependencies=_MONGOOSE),
}

EXPRESS_TSCONFIG: dict[str, Any] = {
    "compilerOptions": {
        "target": "ES2020",
        "module": "commonjs",
        "lib": ["ES2020"],
        "outDir": "./dist",
        "rootDir": "./src",
        "strict": True,
        "esModuleInterop": True,
        "skipLibCheck": True,
        "forceConsistentCasingInFileNames": True,
        "resolveJsonModule": True,
    },
    "include": ["src/**/*"],
    "exclude": ["node_modules", "dist"],
}


# ---------------------------------------------------------------------------
# NestJS
# ---------------------------------------------------------------------------

NEST_BASE_DEPENDENCIES: dict[str, str] = {
    "@nestjs/config": "^4.0.2",
    "class-transformer": "^0.5.1",
    "class-validator": "^0.14.2",
}

NEST_VARIANT_DEPENDENCIES: dict[WiringVariant, VariantDependencies] = {
    WiringVariant.NONE: VariantDependencies(),
    WiringVariant.NATIVE_POSTGRES: VariantDependencies(dependencies=_PG, typings=_PG_TYPES),
    WiringVariant.NATIVE_MYSQL: VariantDependencies(dependencies=_MYSQL),
    WiringVariant.NATIVE_MONGO: VariantDependencies(dependencies=_MONGODB),
    WiringVariant.PRISMA_PG_ADAPTER: VariantDependencies(
        dependencies={
            "@prisma/adapter-pg": PRISMA_VERSION,
            "@prisma/client": PRISMA_VERSION,
            **_PG,
        },
        dev_dependencies={"prisma": PRISMA_VERSION},
        typings=_PG_TYPES,
        scripts=PRISMA_SCRIPTS,
    ),
    WiringVariant.PRISMA_CLIENT: VariantDependencies(
        dependencies={"@prisma/client": PRISMA_VERSION},
        dev_dependencies={"prisma": PRISMA_VERSION},
        scripts=PRISMA_SCRIPTS,
    ),
    WiringVariant.TYPEORM_POSTGRES: VariantDependencies(
        dependencies={"@nestjs/typeorm": "^10.0.2", "typeorm": "^0.3.20", **_PG},
    ),
    WiringVariant.TYPEORM_MYSQL: VariantDependencies(
        dependencies={"@nestjs/typeorm": "^10.0.2", "typeorm": "^0.3.20", **_MYSQL},
    ),
    WiringVariant.MONGOOSE: VariantDependencies(
        dependencies={"@nestjs/mongoose": "^10.1.0", **_MONGOOSE},
    ),
}


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def variant_dependencies(framework: Framework, variant: WiringVariant) -> VariantDependencies:
    """Look up *variant* in the dependency table of *framework*.

    Raises:
        ConfigurationError: If the framework's table has no entry.
    """
    tables = {
        Framework.EXPRESS: EXPRESS_VARIANT_DEPENDENCIES,
        Framework.NESTJS: NEST_VARIANT_DEPENDENCIES,
    }
    try:
        return tables[framework][variant]
    except KeyError:
        raise ConfigurationError(
            f"{framework.label} has no dependency set for wiring variant '{variant.value}'"
        ) from None


def express_package_json(config: Configuration, variant: WiringVariant) -> dict[str, Any]:
    """Build the ``package.json`` document of an Express project."""
    extra = variant_dependencies(Framework.EXPRESS, variant)
    typescript = config.use_typescript

    scripts: dict[str, str]
    if typescript:
        scripts = {
            "build": "tsc",
            "start": "node dist/index.js",
            "dev": "ts-node-dev --respawn --transpile-only src/index.ts",
        }
        dev_dependencies = {**EXPRESS_TS_DEV_DEPENDENCIES, **extra.typings}
    else:
        scripts = {
            "start": "node src/index.js",
            "dev": "nodemon src/index.js",
        }
        dev_dependencies = dict(EXPRESS_JS_DEV_DEPENDENCIES)
    scripts.update(extra.scripts)
    dev_dependencies.update(extra.dev_dependencies)

    return {
        "name": config.server_name,
        "version": "1.0.0",
        "description": "",
        "main": "dist/index.js" if typescript else "src/index.js",
        "scripts": scripts,
        "keywords": [],
        "author": "",
        "license": "ISC",
        "dependencies": _sorted({**EXPRESS_DEPENDENCIES, **extra.dependencies}),
        "devDependencies": _sorted(dev_dependencies),
    }


def patch_nest_package_json(
    package_json: Mapping[str, Any], config: Configuration, variant: WiringVariant
) -> dict[str, Any]:
    """Return a copy of the Nest CLI's ``package.json`` with our additions.

    The project name is set to the server name; base and variant
    dependencies are merged in and existing scripts are kept.
    """
    extra = variant_dependencies(Framework.NESTJS, variant)
    patched = dict(package_json)
    patched["name"] = config.server_name
    patched["dependencies"] = _sorted(
        {**package_json.get("dependencies", {}), **NEST_BASE_DEPENDENCIES, **extra.dependencies}
    )
    patched["devDependencies"] = _sorted(
        {**package_json.get("devDependencies", {}), **extra.dev_dependencies, **extra.typings}
    )
    patched["scripts"] = {**package_json.get("scripts", {}), **extra.scripts}
    return patched


def render_json(document: Mapping[str, Any]) -> str:
    """Serialize *document* the way npm writes ``package.json``."""
    return json.dumps(document, indent=2) + "\n"


def _sorted(mapping: Mapping[str, str]) -> dict[str, str]:
    return dict(sorted(mapping.items()))
