"""Tests for Django settings patching (create_server.scaffolder.settings_patch)."""

from __future__ import annotations

import dataclasses

import pytest

from create_server.scaffolder.settings_patch import (
    SettingsFragments,
    SettingsPatcher,
    patch_app_config,
    patch_django_settings,
)

pytestmark = pytest.mark.unit

FRAGMENTS = SettingsFragments(
    header="import os\nfrom pathlib import Path\n\nfrom dotenv import load_dotenv\n\nload_dotenv()\n",
    databases="DATABASES = {\n    'default': {'ENGINE': 'django.db.backends.postgresql'}\n}\n",
    cors="\nCORS_ALLOWED_ORIGINS = ['http://localhost:3000']\n",
)


@pytest.fixture
def settings_text(django_settings_text) -> str:
    return django_settings_text("shop_api")


class TestPatchDjangoSettings:
    def test_no_warnings_on_stock_settings(self, settings_text):
        _, warnings = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert warnings == []

    def test_secrets_and_debug_read_from_env(self, settings_text):
        text, _ = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert "django-insecure-0123456789abcdef" not in text
        assert "SECRET_KEY = os.getenv('SECRET_KEY'" in text
        assert "DEBUG = os.getenv('DEBUG', 'False') == 'True'" in text
        assert "ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS'" in text
        assert "load_dotenv()" in text

    def test_apps_appended_at_end(self, settings_text):
        text, _ = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert '"django.contrib.staticfiles",\n    \'corsheaders\',\n    \'api\',\n]' in text

    def test_cors_middleware_first(self, settings_text):
        text, _ = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert (
            "MIDDLEWARE = [\n    'corsheaders.middleware.CorsMiddleware',\n"
            '    "django.middleware.security.SecurityMiddleware",'
        ) in text

    def test_databases_block_replaced(self, settings_text):
        text, _ = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert "django.db.backends.sqlite3" not in text
        assert "django.db.backends.postgresql" in text
        assert 'STATIC_URL = "static/"' in text

    def test_cors_block_appended(self, settings_text):
        text, _ = patch_django_settings(settings_text, "api", FRAGMENTS)
        assert text.endswith("CORS_ALLOWED_ORIGINS = ['http://localhost:3000']\n")

    def test_missing_anchors_become_warnings(self):
        text, warnings = patch_django_settings("# customised settings\n", "api", FRAGMENTS)
        assert len(warnings) == 7
        assert any("INSTALLED_APPS" in w for w in warnings)
        assert all("left unchanged" in w for w in warnings)
        assert text.startswith("# customised settings\n")

    def test_stock_apps_swapped_for_configs(self, settings_text):
        fragments = dataclasses.replace(
            FRAGMENTS,
            app_configs=(("django.contrib.admin", "shop_api.apps.MongoAdminConfig"),),
        )
        text, warnings = patch_django_settings(settings_text, "api", fragments)
        assert warnings == []
        assert "INSTALLED_APPS = [\n    'shop_api.apps.MongoAdminConfig',\n" in text
        assert "\"django.contrib.admin\"" not in text

    def test_missing_stock_app_is_a_warning(self, settings_text):
        fragments = dataclasses.replace(
            FRAGMENTS, app_configs=(("django.contrib.flatpages", "x.apps.Flat"),)
        )
        _, warnings = patch_django_settings(settings_text, "api", fragments)
        assert warnings == [
            "settings.py: could not find django.contrib.flatpages in INSTALLED_APPS; left unchanged"
        ]

    def test_trailer_follows_cors(self, settings_text):
        fragments = dataclasses.replace(FRAGMENTS, trailer="\nDEFAULT_AUTO_FIELD = 'x'\n")
        text, _ = patch_django_settings(settings_text, "api", fragments)
        assert text.index("CORS_ALLOWED_ORIGINS") < text.index("DEFAULT_AUTO_FIELD = 'x'")
        assert text.endswith("DEFAULT_AUTO_FIELD = 'x'\n")


class TestPatchAppConfig:
    APPS = (
        "from django.apps import AppConfig\n\n\n"
        "class ApiConfig(AppConfig):\n"
        "    default_auto_field = \"django.db.models.BigAutoField\"\n"
        "    name = \"api\"\n"
    )

    def test_auto_field_replaced(self):
        text, warnings = patch_app_config(self.APPS, "pkg.ObjectIdAutoField")
        assert warnings == []
        assert "    default_auto_field = 'pkg.ObjectIdAutoField'\n" in text
        assert "BigAutoField" not in text

    def test_missing_auto_field_is_a_warning(self):
        text, warnings = patch_app_config("", "pkg.ObjectIdAutoField")
        assert text == ""
        assert warnings == ["apps.py: could not find default_auto_field; left unchanged"]


class TestSettingsPatcher:
    def test_replacement_is_literal(self):
        patcher = SettingsPatcher("VALUE = 1\n")
        assert patcher.substitute("VALUE", r"^VALUE = .*$", r"VALUE = '\1\g<0>'")
        assert patcher.text == "VALUE = '\\1\\g<0>'\n"
        assert patcher.warnings == []

    def test_only_first_match_replaced(self):
        patcher = SettingsPatcher("A = 1\nA = 2\n")
        patcher.substitute("A", r"^A = .*$", "A = 0")
        assert patcher.text == "A = 0\nA = 2\n"

    def test_warning_names_file_and_anchor(self):
        patcher = SettingsPatcher("", filename="shop/settings.py")
        assert not patcher.substitute("DEBUG", r"^DEBUG", "DEBUG = False")
        assert patcher.warnings == ["shop/settings.py: could not find DEBUG; left unchanged"]

    def test_append_separates_with_newline(self):
        patcher = SettingsPatcher("A = 1")
        patcher.append("B = 2")
        assert patcher.text == "A = 1\nB = 2\n"
