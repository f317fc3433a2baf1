"""Django project generator.

A strictly sequential toolchain run: interpreter probe, virtualenv, pip,
``django-admin startproject``, ``manage.py startapp``, settings patch, views
and URL routing, ``manage.py migrate`` (preceded on MongoDB by
``makemigrations`` for the contrib apps).  Every step depends on the previous
one having succeeded; the first failing command aborts the run.
"""

from __future__ import annotations

import os
from pathlib import Path

from ..config import Framework
from ..materializer import WriteFile
from ..utils import print_step, print_success, print_warning
from .base import BaseGenerator
from .settings_patch import SettingsFragments, patch_app_config, patch_django_settings
from .templates import TemplateKind
from .wiring import WiringVariant

PYTHON_REMEDIATION = (
    "Python 3 is required to generate a Django project.\n"
    "Install it from https://www.python.org/downloads/ and make sure "
    "'python' or 'python3' is on your PATH, then run create-server again."
)

# django-mongodb-backend: contrib apps whose migrations are regenerated with
# ObjectId primary keys, and the AppConfig subclass standing in for each.
MONGO_AUTO_FIELD = "django_mongodb_backend.fields.ObjectIdAutoField"
MONGO_CONTRIB_APPS = (
    ("admin", "MongoAdminConfig"),
    ("auth", "MongoAuthConfig"),
    ("contenttypes", "MongoContentTypesConfig"),
)


class DjangoGenerator(BaseGenerator):
    """Generates a Django project with one app, CORS and dotenv support."""

    framework = Framework.DJANGO
    gitignore_kind = TemplateKind.GITIGNORE_PYTHON
    env_kind = TemplateKind.ENV_DJANGO
    readme_kind = TemplateKind.DJANGO_README

    @property
    def project_module(self) -> str:
        return self.config.django_project_module

    @property
    def app_name(self) -> str:
        assert self.config.django_app_name is not None
        return self.config.django_app_name

    def venv_executable(self, name: str) -> Path:
        """Path of *name* inside the project's virtualenv."""
        bin_dir = "Scripts" if os.name == "nt" else "bin"
        return self.root / self.settings.venv_dir / bin_dir / name

    @property
    def uses_mongo(self) -> bool:
        return self.variant is WiringVariant.DJANGO_MONGO

    def settings_fragments(self) -> SettingsFragments:
        fragments = {
            "header": self.render(TemplateKind.DJANGO_SETTINGS_HEADER),
            "databases": self.render(TemplateKind.DJANGO_SETTINGS_DATABASES),
            "cors": self.render(TemplateKind.DJANGO_SETTINGS_CORS),
        }
        if self.uses_mongo:
            fragments["app_configs"] = tuple(
                (f"django.contrib.{app}", f"{self.project_module}.apps.{config}")
                for app, config in MONGO_CONTRIB_APPS
            )
            fragments["trailer"] = self.render(
                TemplateKind.DJANGO_SETTINGS_MONGO,
                auto_field=MONGO_AUTO_FIELD,
                contrib_apps=[app for app, _ in MONGO_CONTRIB_APPS],
            )
        return SettingsFragments(**fragments)

    async def generate(self) -> Path:
        extra = {"project_module": self.project_module, "app_name": self.app_name}
        fragments = self.settings_fragments()
        local_files = [
            WriteFile("requirements.txt", self.render(TemplateKind.DJANGO_REQUIREMENTS)),
            *self.gitignore_operations(),
            *self.env_operations(),
        ]
        routing = [
            WriteFile(
                f"{self.app_name}/views.py",
                self.render(TemplateKind.DJANGO_VIEWS),
                overwrite=True,
            ),
            WriteFile(f"{self.app_name}/urls.py", self.render(TemplateKind.DJANGO_APP_URLS)),
            WriteFile(
                f"{self.project_module}/urls.py",
                self.render(TemplateKind.DJANGO_PROJECT_URLS, **extra),
                overwrite=True,
            ),
        ]
        if self.uses_mongo:
            routing += [
                WriteFile(
                    f"{self.project_module}/apps.py",
                    self.render(TemplateKind.DJANGO_MONGO_APPS, auto_field=MONGO_AUTO_FIELD),
                ),
                WriteFile("mongo_migrations/__init__.py", ""),
            ]
        readme = self.readme_operation(windows=os.name == "nt", **extra)

        # 1. requirements.txt, .gitignore, .env
        print_step("Creating Django project files...")
        await self.materializer.apply(local_files)

        # 2. Interpreter and virtualenv
        python = await self.invoker.detect_binary(
            self.settings.python_candidates, remediation=PYTHON_REMEDIATION
        )
        print_step(f"Creating virtual environment with {python}...")
        await self.invoker.run([python, "-m", "venv", self.settings.venv_dir], cwd=self.root)

        # 3. Dependencies
        print_step("Installing Django and dependencies...")
        await self.invoker.run(
            [str(self.venv_executable("pip")), "install", "-r", "requirements.txt"],
            cwd=self.root,
        )

        # 4. Project and app
        print_step(f"Creating Django project '{self.project_module}'...")
        await self.invoker.run(
            [str(self.venv_executable("django-admin")), "startproject", self.project_module, "."],
            cwd=self.root,
        )
        venv_python = str(self.venv_executable("python"))
        print_step(f"Creating Django app '{self.app_name}'...")
        await self.invoker.run([venv_python, "manage.py", "startapp", self.app_name], cwd=self.root)

        # 5. Settings, views, routing
        await self.patch_settings(fragments)
        await self.materializer.apply(routing)
        if self.uses_mongo:
            await self.patch_app_config()

        # 6. Initial migrations
        if self.uses_mongo:
            print_step("Generating contrib migrations for MongoDB...")
            contrib = [app for app, _ in MONGO_CONTRIB_APPS]
            await self.invoker.run(
                [venv_python, "manage.py", "makemigrations", *contrib], cwd=self.root
            )
        print_step("Running initial migrations...")
        await self.invoker.run([venv_python, "manage.py", "migrate"], cwd=self.root)

        await self.materializer.apply([readme])
        print_success("Django project created")
        return self.root

    async def patch_settings(self, fragments: SettingsFragments) -> None:
        """Rewrite ``<module>/settings.py``; unmatched anchors become warnings."""
        path = self.root / self.project_module / "settings.py"
        text = await self.read_text(path)
        patched, warnings = patch_django_settings(text, self.app_name, fragments)
        for warning in warnings:
            print_warning(warning)
        self.warnings.extend(warnings)
        await self.materializer.apply([WriteFile(path, patched, overwrite=True)])

    async def patch_app_config(self) -> None:
        """Give the generated app ObjectId primary keys."""
        path = self.root / self.app_name / "apps.py"
        text = await self.read_text(path)
        patched, warnings = patch_app_config(text, MONGO_AUTO_FIELD)
        for warning in warnings:
            print_warning(warning)
        self.warnings.extend(warnings)
        await self.materializer.apply([WriteFile(path, patched, overwrite=True)])
