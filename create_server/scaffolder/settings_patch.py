"""Targeted edits of a freshly generated Django ``settings.py``.

``django-admin startproject`` writes a settings module whose layout is stable
but not guaranteed.  Each edit below is a single anchored substitution; an
anchor that is not found leaves the file unchanged at that spot and is
recorded as a warning instead of aborting the run.  The ``DATABASES`` block is
replaced wholesale by a block rendered from the wiring variant.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

Replacement = str | Callable[[re.Match[str]], str]


class SettingsPatcher:
    """Accumulates substitutions on the text of a settings module."""

    def __init__(self, text: str, filename: str = "settings.py") -> None:
        self.text = text
        self.filename = filename
        self.warnings: list[str] = []

    def substitute(
        self,
        description: str,
        pattern: str,
        replacement: Replacement,
        *,
        flags: int = re.MULTILINE,
    ) -> bool:
        """Replace the first match of *pattern*; warn if there is none.

        A string *replacement* is inserted literally (no backreferences).
        Returns whether the substitution happened.
        """
        if isinstance(replacement, str):
            replacement = _literal(replacement)

        new_text, count = re.subn(pattern, replacement, self.text, count=1, flags=flags)
        if count == 0:
            self.warnings.append(
                f"{self.filename}: could not find {description}; left unchanged"
            )
            return False
        self.text = new_text
        return True

    def append(self, block: str) -> None:
        """Append *block* at the end of the file."""
        self.text = self.text.rstrip("\n") + "\n" + block
        if not self.text.endswith("\n"):
            self.text += "\n"


def _literal(text: str) -> Callable[[re.Match[str]], str]:
    return lambda _match: text


@dataclass(frozen=True)
class SettingsFragments:
    """Rendered snippets spliced into ``settings.py``."""

    header: str
    databases: str
    cors: str
    # (stock INSTALLED_APPS entry, replacement) pairs
    app_configs: tuple[tuple[str, str], ...] = ()
    trailer: str = ""


def patch_django_settings(
    text: str, app_name: str, fragments: SettingsFragments
) -> tuple[str, list[str]]:
    """Apply every settings edit to *text*.

    Returns:
        The patched text and the list of warnings for anchors that did not
        match.
    """
    patcher = SettingsPatcher(text)

    patcher.substitute(
        "the pathlib import",
        r"^from pathlib import Path\n",
        fragments.header,
    )
    patcher.substitute(
        "SECRET_KEY",
        r"^SECRET_KEY = .*$",
        "SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-change-me')",
    )
    patcher.substitute(
        "DEBUG",
        r"^DEBUG = .*$",
        "DEBUG = os.getenv('DEBUG', 'False') == 'True'",
    )
    patcher.substitute(
        "ALLOWED_HOSTS",
        r"^ALLOWED_HOSTS = \[.*\]$",
        "ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')",
    )
    patcher.substitute(
        "INSTALLED_APPS",
        r"^(INSTALLED_APPS = \[\n(?:.*\n)*?)\]",
        lambda match: f"{match.group(1)}    'corsheaders',\n    '{app_name}',\n]",
    )
    for stock, replacement in fragments.app_configs:
        patcher.substitute(
            f"{stock} in INSTALLED_APPS",
            rf"^([ \t]+)['\"]{re.escape(stock)}['\"],$",
            lambda match, entry=replacement: f"{match.group(1)}'{entry}',",
        )
    patcher.substitute(
        "MIDDLEWARE",
        r"^MIDDLEWARE = \[\n",
        "MIDDLEWARE = [\n    'corsheaders.middleware.CorsMiddleware',\n",
    )
    patcher.substitute(
        "the DATABASES block",
        r"^DATABASES = \{\n.*?^\}\n",
        fragments.databases,
        flags=re.MULTILINE | re.DOTALL,
    )
    patcher.append(fragments.cors)
    if fragments.trailer:
        patcher.append(fragments.trailer)
    return patcher.text, patcher.warnings


def patch_app_config(text: str, auto_field: str) -> tuple[str, list[str]]:
    """Point the ``default_auto_field`` of a ``startapp`` apps.py at *auto_field*."""
    patcher = SettingsPatcher(text, filename="apps.py")
    patcher.substitute(
        "default_auto_field",
        r"^([ \t]+default_auto_field = ).*$",
        lambda match: f"{match.group(1)}'{auto_field}'",
    )
    return patcher.text, patcher.warnings
