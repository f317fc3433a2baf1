"""Jinja2 template rendering for project scaffolding.

Provides the ``TemplateRenderer`` class which loads Jinja2 templates from the
``create_server/scaffolder/templates/`` directory and renders them with
generator-supplied parameters.  Rendering is pure: no filesystem writes, and
identical ``(kind, params)`` always yield identical text.

Templates branch on the wiring variant and end every branch chain with an
explicit ``fail(...)`` call, so an unexpected variant is an error rather than
silently emitting the wrong file.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

from jinja2 import Environment, FileSystemLoader, StrictUndefined, UndefinedError, select_autoescape

from ..errors import TemplateError


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateKind(str, Enum):
    """Every template the generators render (value = path under the template root)."""

    GITIGNORE_NODE = "common/node.gitignore.j2"
    GITIGNORE_PYTHON = "common/python.gitignore.j2"
    ENV_NODE = "common/node.env.j2"
    ENV_DJANGO = "common/django.env.j2"
    PRISMA_SCHEMA = "common/schema.prisma.j2"

    EXPRESS_ENTRYPOINT = "express/index.j2"
    EXPRESS_DATA_ACCESS = "express/db.j2"
    EXPRESS_README = "express/README.md.j2"

    NEST_MAIN = "nestjs/main.ts.j2"
    NEST_CONTROLLER = "nestjs/app.controller.ts.j2"
    NEST_CONTROLLER_SPEC = "nestjs/app.controller.spec.ts.j2"
    NEST_E2E_SPEC = "nestjs/app.e2e-spec.ts.j2"
    NEST_SERVICE = "nestjs/app.service.ts.j2"
    NEST_MODULE = "nestjs/app.module.ts.j2"
    NEST_PRISMA_SERVICE = "nestjs/prisma.service.ts.j2"
    NEST_PRISMA_MODULE = "nestjs/prisma.module.ts.j2"
    NEST_DATABASE_MODULE = "nestjs/database.module.ts.j2"
    NEST_README = "nestjs/README.md.j2"

    DJANGO_REQUIREMENTS = "django/requirements.txt.j2"
    DJANGO_SETTINGS_HEADER = "django/settings_header.py.j2"
    DJANGO_SETTINGS_DATABASES = "django/settings_databases.py.j2"
    DJANGO_SETTINGS_CORS = "django/settings_cors.py.j2"
    DJANGO_SETTINGS_MONGO = "django/settings_mongo.py.j2"
    DJANGO_MONGO_APPS = "django/mongo_apps.py.j2"
    DJANGO_VIEWS = "django/views.py.j2"
    DJANGO_APP_URLS = "django/app_urls.py.j2"
    DJANGO_PROJECT_URLS = "django/project_urls.py.j2"
    DJANGO_README = "django/README.md.j2"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Undefined variables are errors (``StrictUndefined``): a template that
    needs a parameter the generator did not supply raises ``TemplateError``
    instead of rendering an empty string.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.globals["fail"] = _fail

    def render(self, kind: TemplateKind, params: Mapping[str, Any]) -> str:
        """Render the template for *kind* with *params*.

        Raises:
            TemplateError: If a required parameter is missing or the
                parameters select no defined branch.
        """
        template = self.env.get_template(kind.value)
        try:
            return template.render(**params)
        except UndefinedError as exc:
            raise TemplateError(kind.name, f"missing parameter ({exc.message})") from exc
        except TemplateError as exc:
            raise TemplateError(kind.name, exc.detail) from None

    def list_templates(self) -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under the root."""
        return sorted(
            str(p.relative_to(self.template_dir).as_posix())
            for p in self.template_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Jinja2 globals and filters
# ---------------------------------------------------------------------------


def _fail(message: str) -> NoReturn:
    """Template-side hard failure for branches that must never be reached."""
    raise TemplateError("template", message)


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()
